"""OData query parameter naming.

Some MCP clients cannot send ``$`` in argument names, so the OData system
query options are accepted with or without the marker and always emitted
with it.
"""

from __future__ import annotations

ODATA_MARKER = "$"

ODATA_QUERY_NAMES = frozenset(
    {"filter", "select", "expand", "orderby", "skip", "top", "count", "search", "format"}
)


def strip_marker(name: str) -> str:
    return name[len(ODATA_MARKER):] if name.startswith(ODATA_MARKER) else name


def is_odata_name(name: str) -> bool:
    return strip_marker(name).lower() in ODATA_QUERY_NAMES


def to_wire_name(name: str) -> str:
    """Return the key sent upstream: ``top``, ``$top`` and ``$TOP`` all become ``$top``."""
    if is_odata_name(name):
        return f"{ODATA_MARKER}{strip_marker(name).lower()}"
    return name


def to_client_name(name: str) -> str:
    """Inverse of :func:`to_wire_name` for names advertised to clients."""
    if is_odata_name(name):
        return strip_marker(name).lower()
    return name


def same_parameter(defined: str, supplied: str) -> bool:
    if defined == supplied:
        return True
    if is_odata_name(defined) and is_odata_name(supplied):
        return strip_marker(defined).lower() == strip_marker(supplied).lower()
    return False
