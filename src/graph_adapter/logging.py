"""Logging helpers with redaction."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, Dict


# Graph download URLs are pre-authenticated and must be treated like tokens.
_SENSITIVE_KEYS = re.compile(
    r"(token|secret|api[_-]?key|password|authorization|client[_-]?assertion|downloadurl)",
    re.IGNORECASE,
)
_BINARY_KEYS = frozenset({"contentBytes"})


def configure_logging(level: str) -> None:
    # stdout carries the MCP stdio transport
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def redact_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a tool parameter map that is safe to log.

    Credentials and download URLs are masked and base64 attachment bodies are
    replaced by their length.
    """
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        if _SENSITIVE_KEYS.search(key):
            redacted[key] = "***REDACTED***"
        elif key in _BINARY_KEYS and isinstance(value, str):
            redacted[key] = f"<{len(value)} base64 chars>"
        elif isinstance(value, dict):
            redacted[key] = redact_payload(value)
        elif isinstance(value, list):
            redacted[key] = [redact_payload(v) if isinstance(v, dict) else v for v in value]
        else:
            redacted[key] = value
    return redacted
