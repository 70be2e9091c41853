"""Internal models for endpoint definitions and tool results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator


CONTROL_KEYS = frozenset({"fetchAllPages", "includeHeaders", "excludeResponse", "timezone"})


class ParameterLocation(str, Enum):
    PATH = "Path"
    QUERY = "Query"
    BODY = "Body"
    HEADER = "Header"


@dataclass(frozen=True)
class ParameterDefinition:
    name: str
    location: ParameterLocation
    schema: Optional[Dict[str, Any]] = None
    description: Optional[str] = None

    @cached_property
    def _validator(self) -> Optional[Draft202012Validator]:
        if not self.schema:
            return None
        return Draft202012Validator(self.schema)

    def accepts(self, value: Any) -> bool:
        validator = self._validator
        if validator is None:
            return True
        return validator.is_valid(value)


@dataclass(frozen=True)
class EndpointDescriptor:
    name: str
    method: str
    path: str
    parameters: Tuple[ParameterDefinition, ...] = ()
    description: str = ""
    returns_media: bool = False


@dataclass(frozen=True)
class EndpointConfig:
    tool_name: str
    path_pattern: str = ""
    method: str = ""
    scopes: Tuple[str, ...] = ()
    work_scopes: Tuple[str, ...] = ()
    return_download_url: bool = False
    supports_timezone: bool = False
    llm_tip: Optional[str] = None
    accept_header: Optional[str] = None

    @property
    def work_only(self) -> bool:
        return not self.scopes and bool(self.work_scopes)


@dataclass(frozen=True)
class ControlOptions:
    fetch_all_pages: bool = False
    include_headers: bool = False
    exclude_response: bool = False
    timezone: Optional[str] = None


def split_control_params(params: Dict[str, Any]) -> Tuple[ControlOptions, Dict[str, Any]]:
    """Separate executor control keys from the parameters sent upstream."""
    api_params = {key: value for key, value in params.items() if key not in CONTROL_KEYS}
    timezone = params.get("timezone")
    options = ControlOptions(
        fetch_all_pages=params.get("fetchAllPages") is True,
        include_headers=params.get("includeHeaders") is True,
        exclude_response=params.get("excludeResponse") is True,
        timezone=str(timezone) if timezone else None,
    )
    return options, api_params


@dataclass
class ExecutionResult:
    content: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str, is_error: bool = False) -> "ExecutionResult":
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)

    @classmethod
    def failure(cls, message: str) -> "ExecutionResult":
        return cls.from_text(message, is_error=True)

    @classmethod
    def failure_json(cls, payload: Dict[str, Any]) -> "ExecutionResult":
        return cls.from_text(json.dumps(payload), is_error=True)

    def first_text(self) -> Optional[str]:
        if not self.content:
            return None
        first = self.content[0]
        if first.get("type") != "text":
            return None
        return first.get("text") or None
