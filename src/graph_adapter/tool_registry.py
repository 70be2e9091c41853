"""Tool registry for the Graph Tool Adapter."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, create_model

from .catalog import EndpointCatalog
from .categories import TOOL_CATEGORIES, combined_preset_pattern
from .config import Settings
from .models import EndpointConfig, EndpointDescriptor
from .naming import to_client_name


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredTool:
    descriptor: EndpointDescriptor
    config: Optional[EndpointConfig]
    input_model: Type[BaseModel]

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def read_only(self) -> bool:
        return self.descriptor.method.upper() == "GET"

    @property
    def description(self) -> str:
        description = (
            self.descriptor.description
            or f"Execute {self.descriptor.method.upper()} request to {self.descriptor.path}"
        )
        if self.config and self.config.llm_tip:
            description += f"\n\nTIP: {self.config.llm_tip}"
        return description


class ToolRegistry:
    def __init__(self, settings: Settings, catalog: EndpointCatalog) -> None:
        self.settings = settings
        self.catalog = catalog
        self._tools: Optional[Dict[str, RegisteredTool]] = None

    def load_tools(self) -> List[RegisteredTool]:
        if self._tools is None:
            self._tools = self._build()
        return list(self._tools.values())

    def get(self, name: str) -> Optional[RegisteredTool]:
        self.load_tools()
        return (self._tools or {}).get(name)

    def search(
        self, query: Optional[str] = None, category: Optional[str] = None, limit: int = 20
    ) -> List[RegisteredTool]:
        max_limit = max(0, min(limit, 50))
        query_lower = query.lower() if query else None
        category_def = TOOL_CATEGORIES.get(category) if category else None

        results: List[RegisteredTool] = []
        for tool in self.load_tools():
            if len(results) >= max_limit:
                break
            if category_def and not category_def.pattern.search(tool.name):
                continue
            if query_lower:
                tip = tool.config.llm_tip if tool.config else ""
                haystack = f"{tool.name} {tool.descriptor.path} {tool.descriptor.description} {tip or ''}"
                if query_lower not in haystack.lower():
                    continue
            results.append(tool)
        return results

    def _build(self) -> Dict[str, RegisteredTool]:
        enabled = self._enabled_pattern()
        tools: Dict[str, RegisteredTool] = {}
        skipped = 0

        for descriptor in self.catalog:
            config = self.catalog.config_for(descriptor.name)
            if not self.settings.adapter_org_mode and config and config.work_only:
                logger.info("Skipping work account tool %s - not in org mode", descriptor.name)
                skipped += 1
                continue
            if self.settings.adapter_read_only and descriptor.method.upper() != "GET":
                logger.info("Skipping write operation %s in read-only mode", descriptor.name)
                skipped += 1
                continue
            if enabled and not enabled.search(descriptor.name):
                logger.debug("Skipping tool %s - doesn't match filter pattern", descriptor.name)
                skipped += 1
                continue

            tools[descriptor.name] = RegisteredTool(
                descriptor=descriptor,
                config=config,
                input_model=build_input_model(descriptor, config),
            )

        logger.info("Tool registry built: %s registered, %s skipped", len(tools), skipped)
        return tools

    def _enabled_pattern(self) -> Optional[re.Pattern[str]]:
        pattern = self.settings.adapter_enabled_tools
        presets = self.settings.presets()
        if presets:
            pattern = combined_preset_pattern(presets)
        if not pattern:
            return None
        try:
            return re.compile(pattern, re.IGNORECASE)
        except re.error:
            logger.error("Invalid tool filter regex pattern: %s. Ignoring filter.", pattern)
            return None


def build_input_model(
    descriptor: EndpointDescriptor, config: Optional[EndpointConfig]
) -> Type[BaseModel]:
    fields: Dict[str, Tuple[Any, Any]] = {}

    for parameter in descriptor.parameters:
        client_name = to_client_name(parameter.name)
        field_name = _field_name(client_name)
        field_type = _schema_to_type(parameter.schema or {})
        alias = client_name if field_name != client_name else None
        fields[field_name] = (
            Optional[field_type],
            Field(None, alias=alias, description=parameter.description),
        )

    if descriptor.method.upper() == "GET":
        fields["fetchAllPages"] = (
            Optional[bool],
            Field(None, description="Automatically fetch all pages of results"),
        )
    fields["includeHeaders"] = (
        Optional[bool],
        Field(None, description="Include response headers (including ETag) in the response metadata"),
    )
    fields["excludeResponse"] = (
        Optional[bool],
        Field(
            None,
            description="Exclude the full response body and only return success or failure indication",
        ),
    )
    if config and config.supports_timezone:
        fields["timezone"] = (
            Optional[str],
            Field(
                None,
                description=(
                    'IANA timezone name (e.g., "America/New_York", "Europe/London") for calendar '
                    "event times. If not specified, times are returned in UTC."
                ),
            ),
        )

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    return create_model(f"{_sanitize_name(descriptor.name)}Input", __config__=model_config, **fields)


def _schema_to_type(schema: Dict[str, Any]) -> Any:
    schema_type = schema.get("type")
    if schema_type == "integer":
        return int
    if schema_type == "number":
        return float
    if schema_type == "boolean":
        return bool
    if schema_type == "array":
        return List[Any]
    if schema_type == "object":
        return Dict[str, Any]
    if schema_type == "string":
        return str
    return Any


def _field_name(name: str) -> str:
    sanitized = re.sub(r"\W", "_", name)
    if not sanitized or sanitized[0].isdigit() or sanitized.startswith("_"):
        sanitized = f"param_{sanitized.lstrip('_')}"
    return sanitized


def _sanitize_name(name: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in name)
