"""MCP server setup for the Graph Tool Adapter."""

import logging
from typing import Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool, ToolResult
from mcp.types import ContentBlock
from pydantic import Field, TypeAdapter, ValidationError
from pydantic.json_schema import SkipJsonSchema
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .catalog import EndpointCatalog
from .categories import list_presets
from .config import Settings
from .graph_client import GraphClient, TokenProvider
from .models import ExecutionResult
from .service import ToolService
from .tool_registry import RegisteredTool, ToolRegistry
from .workflows.transcript import TOOL_DESCRIPTION, TOOL_NAME

logger = logging.getLogger(__name__)

_CONTENT_BLOCK: TypeAdapter[Any] = TypeAdapter(ContentBlock)


class CatalogTool(Tool):
    """A catalog endpoint published with its flat parameter schema."""

    service: SkipJsonSchema[Any] = Field(exclude=True)
    registered: SkipJsonSchema[Any] = Field(exclude=True)

    @classmethod
    def from_registered(cls, service: ToolService, tool: RegisteredTool) -> "CatalogTool":
        return cls(
            name=tool.name,
            description=tool.description,
            parameters=tool.input_model.model_json_schema(by_alias=True),
            service=service,
            registered=tool,
        )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        try:
            payload = self.registered.input_model.model_validate(arguments)
        except ValidationError as exc:
            raise ToolError(f"Invalid arguments for {self.name}: {exc}") from exc
        params = payload.model_dump(by_alias=True, exclude_none=True)
        return to_tool_result(await self.service.invoke(self.name, params))


def to_tool_result(result: ExecutionResult) -> ToolResult:
    """Map an execution result onto MCP content blocks, keeping the error flag."""
    content = [_CONTENT_BLOCK.validate_python(block) for block in result.content]
    return ToolResult(content=content, meta=result.metadata, is_error=result.is_error)


def build_server(
    settings: Settings,
    catalog: Optional[EndpointCatalog] = None,
    token_provider: Optional[TokenProvider] = None,
    graph_client: Optional[GraphClient] = None,
) -> tuple[FastMCP, object | None]:
    catalog = catalog or EndpointCatalog.from_files(
        settings.adapter_catalog_path, settings.adapter_endpoints_path
    )
    client = graph_client or GraphClient(
        base_url=settings.graph_base_url,
        api_version=settings.graph_api_version,
        access_token=settings.graph_access_token,
        token_provider=token_provider,
        timeout_seconds=settings.graph_timeout_seconds,
    )
    registry = ToolRegistry(settings, catalog)
    service = ToolService(registry, client)

    mcp = FastMCP(settings.service_name, instructions=_instructions())
    _register_healthcheck(mcp, settings, registry)
    app = _get_http_app(mcp, settings)
    _attach_auth(app, settings)

    logger.info(
        "Scopes required by the catalog: %s",
        " ".join(catalog.required_scopes(settings.adapter_org_mode)) or "(none)",
    )
    if settings.adapter_read_only:
        logger.info("Server running in READ-ONLY mode. Write operations are disabled.")

    if settings.adapter_discovery:
        logger.info("Discovery mode enabled - registering discovery tools only")
        _register_discovery_tools(mcp, service)
    else:
        for tool in registry.load_tools():
            mcp.add_tool(CatalogTool.from_registered(service, tool))
        _register_composite_tools(mcp, service)

    return mcp, app


def _register_discovery_tools(mcp: FastMCP, service: ToolService) -> None:
    total = len(service.registry.load_tools())
    categories = ", ".join(p["name"] for p in list_presets() if p["name"] != "all")

    async def search_tools(
        query: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 20,
    ) -> ToolResult:
        return to_tool_result(service.search_tools(query=query, category=category, limit=limit))

    async def execute_tool(
        tool_name: str, parameters: Optional[Dict[str, Any]] = None
    ) -> ToolResult:
        return to_tool_result(await service.invoke(tool_name, parameters or {}))

    mcp.tool(
        name="search-tools",
        description=(
            f"Search through {total} available Microsoft Graph API tools. Use this to find tools "
            "by name, path, or description before executing them. Categories: "
            f"{categories}."
        ),
    )(search_tools)
    mcp.tool(
        name="execute-tool",
        description=(
            "Execute a Microsoft Graph API tool by name. Use search-tools first to find "
            "available tools and their parameters."
        ),
    )(execute_tool)


def _register_composite_tools(mcp: FastMCP, service: ToolService) -> None:
    async def get_transcript_by_meeting(
        date: str,
        subjectContains: str,
        startTime: Optional[str] = None,
        endTime: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> ToolResult:
        params: Dict[str, Any] = {"date": date, "subjectContains": subjectContains}
        if startTime:
            params["startTime"] = startTime
        if endTime:
            params["endTime"] = endTime
        if timezone:
            params["timezone"] = timezone
        return to_tool_result(await service.get_transcript_by_meeting(params))

    mcp.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)(get_transcript_by_meeting)
    logger.info("Composite tools registered")


def _attach_auth(app, settings: Settings) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return
    if not settings.adapter_auth_token:
        logger.warning("ADAPTER_AUTH_TOKEN not set; HTTP endpoint is unauthenticated")
        return

    async def require_adapter_token(request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS" or request.url.path.endswith("/health"):
            return await call_next(request)

        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() == "bearer" and token.strip() == settings.adapter_auth_token:
            return await call_next(request)

        logger.warning("Rejected unauthenticated request to %s", request.url.path)
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    app.add_middleware(BaseHTTPMiddleware, dispatch=require_adapter_token)


def _register_healthcheck(mcp: FastMCP, settings: Settings, registry: ToolRegistry) -> None:
    @mcp.custom_route("/health", methods=["GET"])
    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        return JSONResponse(
            {
                "status": "ok",
                "graphApiVersion": settings.graph_api_version,
                "tools": len(registry.load_tools()),
                "readOnly": settings.adapter_read_only,
                "orgMode": settings.adapter_org_mode,
            }
        )


def _instructions() -> str:
    return (
        "Microsoft Graph tool adapter. "
        "Each tool maps to one Graph API endpoint; pass fetchAllPages=true on list tools "
        "to collect every page of results."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport in {"http", "streamable-http", "streamablehttp"}:
        app = mcp.http_app(transport="http", stateless_http=True, json_response=True)
    elif transport == "sse":
        app = mcp.http_app(transport="sse")
    else:
        return None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["mcp-session-id"],
    )
    return app
