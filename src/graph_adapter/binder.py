"""Bind a flat tool parameter map onto an HTTP request."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

from .models import (
    ControlOptions,
    EndpointConfig,
    EndpointDescriptor,
    ParameterDefinition,
    ParameterLocation,
)
from .naming import same_parameter, to_wire_name

logger = logging.getLogger(__name__)

_PATH_SAFE = "-_.!~*'()"


@dataclass
class BoundRequest:
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


class ParameterBinder:
    def bind(
        self,
        descriptor: EndpointDescriptor,
        config: Optional[EndpointConfig],
        params: Dict[str, Any],
        control: Optional[ControlOptions] = None,
    ) -> BoundRequest:
        """Resolve path placeholders, query string, headers and body.

        ``params`` must already be free of control keys; see
        :func:`graph_adapter.models.split_control_params`.
        """
        control = control or ControlOptions()
        path = descriptor.path
        query: Dict[str, str] = {}
        headers: Dict[str, str] = {}
        body: Any = None

        for name, value in params.items():
            definition = self._find_definition(descriptor, name)
            wire_name = to_wire_name(name)

            if definition is None:
                if name == "body":
                    body = value
                    logger.info("Set body param: %s", _preview(body))
                continue

            if definition.location is ParameterLocation.PATH:
                encoded = quote(_stringify(value), safe=_PATH_SAFE)
                path = path.replace(f"{{{name}}}", encoded)
                path = re.sub(rf":{re.escape(name)}(?![\w-])", lambda _: encoded, path)
            elif definition.location is ParameterLocation.QUERY:
                query[wire_name] = _stringify(value)
            elif definition.location is ParameterLocation.HEADER:
                headers[wire_name] = _stringify(value)
            elif definition.location is ParameterLocation.BODY:
                body = self._coerce_body(definition, name, value)

        if config and config.supports_timezone and control.timezone:
            headers["Prefer"] = f'outlook.timezone="{control.timezone}"'
            logger.info('Setting timezone header: Prefer: outlook.timezone="%s"', control.timezone)

        if config and config.accept_header:
            headers["Accept"] = config.accept_header

        return BoundRequest(
            path=append_query(path, query),
            query=query,
            headers=headers,
            body=body,
        )

    def _find_definition(
        self, descriptor: EndpointDescriptor, name: str
    ) -> Optional[ParameterDefinition]:
        for definition in descriptor.parameters:
            if same_parameter(definition.name, name):
                return definition
        return None

    def _coerce_body(self, definition: ParameterDefinition, name: str, value: Any) -> Any:
        if definition.accepts(value):
            return value
        wrapped = {name: value}
        if definition.accepts(wrapped):
            logger.info(
                "Auto-corrected parameter '%s': nested field passed directly, wrapped it as {%s: ...}",
                name,
                name,
            )
            return wrapped
        return value


def append_query(path: str, query: Dict[str, str]) -> str:
    if not query:
        return path
    query_string = "&".join(
        f"{quote(key, safe='$')}={quote(value, safe='')}" for key, value in query.items()
    )
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query_string}"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _preview(value: Any, limit: int = 500) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    return text if len(text) <= limit else f"{text[:limit]}..."
