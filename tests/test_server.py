import json

import httpx
import pytest
from fastmcp import Client
from starlette.testclient import TestClient

from graph_adapter.config import Settings
from graph_adapter.graph_client import GraphClient
from graph_adapter.server import build_server
from graph_adapter.workflows.transcript import TOOL_NAME


async def list_tools(mcp):
    async with Client(mcp) as client:
        return {tool.name: tool for tool in await client.list_tools()}


async def call(mcp, name, arguments):
    async with Client(mcp) as client:
        return await client.call_tool(name, arguments, raise_on_error=False)


def graph_returning(response: httpx.Response) -> GraphClient:
    return GraphClient(access_token="tkn", transport=httpx.MockTransport(lambda request: response))


@pytest.mark.asyncio
async def test_every_catalog_tool_and_the_composite_are_registered():
    mcp, app = build_server(Settings(adapter_transport="stdio"))

    names = set(await list_tools(mcp))

    assert app is None
    assert {"list-mail-messages", "send-mail", "get-calendar-view", TOOL_NAME} <= names
    assert "search-tools" not in names
    assert "list-users" not in names


@pytest.mark.asyncio
async def test_catalog_tools_take_flat_arguments():
    mcp, _ = build_server(Settings(adapter_transport="stdio"))
    tools = await list_tools(mcp)

    listing = tools["list-mail-messages"].input_schema["properties"]
    single = tools["get-mail-message"].input_schema["properties"]

    assert {"top", "filter", "select", "fetchAllPages", "includeHeaders", "excludeResponse"} <= set(listing)
    assert "payload" not in listing
    assert "message-id" in single


@pytest.mark.asyncio
async def test_flat_arguments_reach_graph():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"value": []})

    client = GraphClient(access_token="tkn", transport=httpx.MockTransport(handler))
    mcp, _ = build_server(Settings(adapter_transport="stdio"), graph_client=client)

    result = await call(mcp, "list-mail-messages", {"top": 2, "select": ["id", "subject"]})

    assert result.is_error is False
    assert seen["url"].endswith("/v1.0/me/messages?$top=2&$select=id%2Csubject")
    assert json.loads(result.content[0].text) == {"value": []}


@pytest.mark.asyncio
async def test_failures_set_the_error_flag():
    mcp, _ = build_server(Settings(adapter_transport="stdio", adapter_discovery=True))

    result = await call(mcp, "execute-tool", {"tool_name": "list-unicorns"})

    assert result.is_error is True
    assert json.loads(result.content[0].text) == {
        "error": "Tool not found: list-unicorns",
        "tip": "Use search-tools to find available tools.",
    }


@pytest.mark.asyncio
async def test_graph_error_status_sets_the_error_flag():
    graph = graph_returning(httpx.Response(403, json={"error": {"message": "Access denied"}}))
    mcp, _ = build_server(Settings(adapter_transport="stdio"), graph_client=graph)

    result = await call(mcp, "list-mail-messages", {})

    assert result.is_error is True
    assert json.loads(result.content[0].text) == {"error": "HTTP 403: Access denied", "statusCode": 403}


@pytest.mark.asyncio
async def test_media_is_returned_as_image_content():
    graph = graph_returning(httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"}))
    mcp, _ = build_server(Settings(adapter_transport="stdio"), graph_client=graph)

    result = await call(mcp, "get-user-photo-content", {})

    block = result.content[0]
    assert result.is_error is False
    assert block.type == "image"
    assert block.data == "iVBORw=="
    assert block.mime_type == "image/png"


@pytest.mark.asyncio
async def test_discovery_mode_registers_only_discovery_tools():
    mcp, _ = build_server(Settings(adapter_transport="stdio", adapter_discovery=True))

    assert set(await list_tools(mcp)) == {"search-tools", "execute-tool"}


def test_http_app_requires_bearer_token_except_for_health():
    _, app = build_server(Settings(adapter_transport="http", adapter_auth_token="s3cret"))
    client = TestClient(app)

    health = client.get("/health").json()
    assert health["status"] == "ok"
    assert health["graphApiVersion"] == "v1.0"
    assert health["tools"] > 0
    assert client.post("/mcp", json={}).status_code == 401
    assert client.post("/mcp", json={}, headers={"Authorization": "Bearer wrong"}).status_code == 401
