"""Endpoint catalog: read-only descriptors joined with per-tool attributes."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .models import EndpointConfig, EndpointDescriptor, ParameterDefinition, ParameterLocation
from .openapi import MEDIA_DESCRIPTION, OpenAPIParser

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class EndpointCatalog:
    def __init__(
        self,
        descriptors: Iterable[EndpointDescriptor],
        configs: Iterable[EndpointConfig] = (),
    ) -> None:
        by_name: Dict[str, EndpointDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in by_name:
                logger.warning("Duplicate endpoint alias ignored: %s", descriptor.name)
                continue
            by_name[descriptor.name] = descriptor
        self._descriptors: Mapping[str, EndpointDescriptor] = MappingProxyType(by_name)
        self._configs: Mapping[str, EndpointConfig] = MappingProxyType(
            {config.tool_name: config for config in configs}
        )

    @classmethod
    def from_files(cls, api_path: PathLike, endpoints_path: Optional[PathLike] = None) -> "EndpointCatalog":
        descriptors = [descriptor_from_dict(item) for item in _load_json(api_path)]
        configs = [config_from_dict(item) for item in _load_json(endpoints_path)] if endpoints_path else []
        logger.info("Loaded %s endpoints and %s endpoint configs", len(descriptors), len(configs))
        return cls(descriptors, configs)

    @classmethod
    def from_openapi(
        cls, spec: Dict[str, Any], configs: Iterable[EndpointConfig] = ()
    ) -> "EndpointCatalog":
        return cls(OpenAPIParser().extract_descriptors(spec), configs)

    def get(self, name: str) -> Optional[EndpointDescriptor]:
        return self._descriptors.get(name)

    def config_for(self, name: str) -> Optional[EndpointConfig]:
        return self._configs.get(name)

    def required_scopes(self, org_mode: bool = False) -> List[str]:
        scopes = set()
        for name in self._descriptors:
            config = self._configs.get(name)
            if config is None:
                continue
            scopes.update(config.scopes)
            if org_mode:
                scopes.update(config.work_scopes)
        return sorted(scopes)

    def __iter__(self) -> Iterator[EndpointDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors


def descriptor_from_dict(item: Dict[str, Any]) -> EndpointDescriptor:
    parameters = tuple(
        ParameterDefinition(
            name=param["name"],
            location=ParameterLocation(param["type"]),
            schema=param.get("schema"),
            description=param.get("description"),
        )
        for param in item.get("parameters") or []
    )
    returns_media = bool(item.get("returnsMedia")) or any(
        error.get("description") == MEDIA_DESCRIPTION for error in item.get("errors") or []
    )
    return EndpointDescriptor(
        name=item["alias"],
        method=item["method"].upper(),
        path=item["path"],
        parameters=parameters,
        description=item.get("description") or "",
        returns_media=returns_media,
    )


def config_from_dict(item: Dict[str, Any]) -> EndpointConfig:
    return EndpointConfig(
        tool_name=item["toolName"],
        path_pattern=item.get("pathPattern", ""),
        method=item.get("method", "").upper(),
        scopes=tuple(item.get("scopes") or ()),
        work_scopes=tuple(item.get("workScopes") or ()),
        return_download_url=bool(item.get("returnDownloadUrl")),
        supports_timezone=bool(item.get("supportsTimezone")),
        llm_tip=item.get("llmTip"),
        accept_header=item.get("acceptHeader"),
    )


def _load_json(path: PathLike) -> List[Dict[str, Any]]:
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list in {path}")
    return data


def descriptor_to_dict(descriptor: EndpointDescriptor) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "alias": descriptor.name,
        "method": descriptor.method.lower(),
        "path": descriptor.path,
        "description": descriptor.description,
        "parameters": [
            {
                key: value
                for key, value in (
                    ("name", param.name),
                    ("type", param.location.value),
                    ("schema", param.schema),
                    ("description", param.description),
                )
                if value is not None
            }
            for param in descriptor.parameters
        ],
    }
    if descriptor.returns_media:
        item["returnsMedia"] = True
    return item
