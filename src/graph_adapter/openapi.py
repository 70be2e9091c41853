"""OpenAPI document parser producing endpoint descriptors."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from .models import EndpointDescriptor, ParameterDefinition, ParameterLocation


logger = logging.getLogger(__name__)

MEDIA_DESCRIPTION = "Retrieved media content"

_LOCATIONS = {
    "path": ParameterLocation.PATH,
    "query": ParameterLocation.QUERY,
    "header": ParameterLocation.HEADER,
}


class OpenAPIParser:
    def extract_descriptors(self, spec: Dict[str, Any]) -> List[EndpointDescriptor]:
        descriptors: List[EndpointDescriptor] = []
        paths = spec.get("paths") or {}

        for path, methods in paths.items():
            shared_parameters = (methods or {}).get("parameters") or []
            for method, operation in (methods or {}).items():
                if method.lower() not in {"get", "post", "put", "patch", "delete"}:
                    continue
                name = operation.get("operationId") or self._fallback_name(method, path)
                description = operation.get("description") or operation.get("summary") or ""
                parameters = self._build_parameters(spec, operation, shared_parameters)

                descriptors.append(
                    EndpointDescriptor(
                        name=name,
                        method=method.upper(),
                        path=path,
                        parameters=tuple(parameters),
                        description=description,
                        returns_media=self._returns_media(operation),
                    )
                )

        return descriptors

    def _build_parameters(
        self,
        spec: Dict[str, Any],
        operation: Dict[str, Any],
        shared_parameters: List[Dict[str, Any]],
    ) -> List[ParameterDefinition]:
        definitions: List[ParameterDefinition] = []
        for parameter in [*shared_parameters, *(operation.get("parameters") or [])]:
            parameter = self._resolve_ref(spec, parameter)
            name = parameter.get("name")
            location = _LOCATIONS.get(parameter.get("in", ""))
            if not name or location is None:
                continue
            definitions.append(
                ParameterDefinition(
                    name=name,
                    location=location,
                    schema=parameter.get("schema"),
                    description=parameter.get("description"),
                )
            )

        request_body = self._resolve_ref(spec, operation.get("requestBody") or {})
        body_schema = self._extract_body_schema(request_body)
        if body_schema is not None:
            definitions.append(
                ParameterDefinition(
                    name=request_body.get("x-body-name", "body"),
                    location=ParameterLocation.BODY,
                    schema=self._inline_refs(spec, body_schema),
                    description=request_body.get("description"),
                )
            )
        return definitions

    def _extract_body_schema(self, request_body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        content = request_body.get("content") or {}
        json_body = content.get("application/json") or {}
        return json_body.get("schema")

    def _returns_media(self, operation: Dict[str, Any]) -> bool:
        for response in (operation.get("responses") or {}).values():
            if not isinstance(response, dict):
                continue
            if response.get("description") == MEDIA_DESCRIPTION:
                return True
            content_types = (response.get("content") or {}).keys()
            if content_types and not any("json" in ct for ct in content_types):
                return True
        return False

    def _resolve_ref(self, spec: Dict[str, Any], node: Dict[str, Any]) -> Dict[str, Any]:
        ref = node.get("$ref") if isinstance(node, dict) else None
        if not ref or not ref.startswith("#/"):
            return node
        target: Any = spec
        for part in ref[2:].split("/"):
            target = target.get(part, {}) if isinstance(target, dict) else {}
        return target if isinstance(target, dict) else {}

    def _inline_refs(self, spec: Dict[str, Any], schema: Any, depth: int = 0) -> Any:
        # jsonschema cannot follow "#/components/..." against a detached schema
        if depth > 20:
            return {}
        if isinstance(schema, dict):
            if "$ref" in schema:
                return self._inline_refs(spec, self._resolve_ref(spec, schema), depth + 1)
            return {key: self._inline_refs(spec, value, depth + 1) for key, value in schema.items()}
        if isinstance(schema, list):
            return [self._inline_refs(spec, item, depth + 1) for item in schema]
        return schema

    def _fallback_name(self, method: str, path: str) -> str:
        sanitized = re.sub(r"[{}:]", "", path.strip("/")).replace("/", "-")
        return f"{method.lower()}-{sanitized or 'root'}"
