"""CLI entry point for the Graph Tool Adapter."""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from .config import get_settings
from .logging import configure_logging
from .server import build_server

logger = logging.getLogger(__name__)

HTTP_TRANSPORTS = frozenset({"http", "streamable-http", "streamablehttp", "sse"})


async def _run() -> None:
    settings = get_settings()
    configure_logging(settings.adapter_log_level)
    logger.info(
        "Graph tool adapter starting against %s/%s (transport=%s)",
        settings.graph_base_url.rstrip("/"),
        settings.graph_api_version,
        settings.adapter_transport,
    )
    if not settings.graph_access_token:
        logger.warning("GRAPH_ACCESS_TOKEN not set; Graph calls will be sent without a bearer token")

    mcp, app = build_server(settings)
    transport = settings.adapter_transport.lower()

    if transport in HTTP_TRANSPORTS:
        if not app:
            raise RuntimeError(f"HTTP app unavailable for transport={transport}")
        config = uvicorn.Config(
            app,
            host=settings.adapter_host,
            port=settings.adapter_port,
            log_level=settings.adapter_log_level.lower(),
        )
        await uvicorn.Server(config).serve()
        return
    await mcp.run_stdio_async(show_banner=False)


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
