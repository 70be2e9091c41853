"""Core adapter service: tool dispatch, discovery and composite tools."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from .executor import RequestExecutor
from .graph_client import GraphClient
from .models import ExecutionResult
from .tool_registry import ToolRegistry
from .workflows.transcript import TranscriptWorkflow

logger = logging.getLogger(__name__)


class ToolService:
    """
    Entry point for every tool call made by the MCP server.

    Catalog tools go through the request executor; the transcript lookup is
    a composite workflow issuing several Graph calls. No call raises: every
    outcome is an :class:`ExecutionResult`.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        client: GraphClient,
        executor: Optional[RequestExecutor] = None,
    ) -> None:
        self.registry = registry
        self.client = client
        self.executor = executor or RequestExecutor(client)
        self.transcripts = TranscriptWorkflow(client)

    async def invoke(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> ExecutionResult:
        tool = self.registry.get(tool_name)
        if tool is None:
            logger.warning("Tool not found: %s", tool_name)
            return ExecutionResult.failure_json(
                {
                    "error": f"Tool not found: {tool_name}",
                    "tip": "Use search-tools to find available tools.",
                }
            )
        return await self.executor.execute(tool.descriptor, tool.config, dict(params or {}))

    def search_tools(
        self, query: Optional[str] = None, category: Optional[str] = None, limit: int = 20
    ) -> ExecutionResult:
        matches = self.registry.search(query=query, category=category, limit=limit)
        payload = {
            "found": len(matches),
            "total": len(self.registry.load_tools()),
            "tools": [
                {
                    "name": tool.name,
                    "method": tool.descriptor.method.upper(),
                    "path": tool.descriptor.path,
                    "description": tool.descriptor.description
                    or f"{tool.descriptor.method.upper()} {tool.descriptor.path}",
                }
                for tool in matches
            ],
            "tip": "Use execute-tool with the tool name and required parameters to call any of these tools.",
        }
        return ExecutionResult.from_text(json.dumps(payload, indent=2))

    async def get_transcript_by_meeting(self, params: Dict[str, Any]) -> ExecutionResult:
        return await self.transcripts.run(params)
