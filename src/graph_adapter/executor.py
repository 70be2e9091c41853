"""Execution layer for catalog tool calls."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from .binder import ParameterBinder
from .graph_client import GraphClient, RequestOptions
from .logging import redact_payload
from .models import EndpointConfig, EndpointDescriptor, ExecutionResult, split_control_params
from .pagination import ITEMS_KEY, NEXT_LINK_KEY, PageAggregator

logger = logging.getLogger(__name__)

CONTENT_SUFFIX = "/content"


class RequestExecutor:
    def __init__(
        self,
        client: GraphClient,
        binder: Optional[ParameterBinder] = None,
        paginator: Optional[PageAggregator] = None,
    ) -> None:
        self.client = client
        self.binder = binder or ParameterBinder()
        self.paginator = paginator or PageAggregator(client)

    async def execute(
        self,
        descriptor: EndpointDescriptor,
        config: Optional[EndpointConfig],
        params: Dict[str, Any],
    ) -> ExecutionResult:
        logger.info("Tool %s called with params: %s", descriptor.name, redact_payload(params))
        try:
            control, api_params = split_control_params(params)
            bound = self.binder.bind(descriptor, config, api_params, control)

            options = RequestOptions(method=descriptor.method.upper(), headers=bound.headers)
            if options.method != "GET" and bound.body:
                options.body = bound.body if isinstance(bound.body, str) else json.dumps(bound.body)

            path = bound.path
            route, _, query = path.partition("?")
            is_media = descriptor.returns_media or route.endswith(CONTENT_SUFFIX)

            if config and config.return_download_url and route.endswith(CONTENT_SUFFIX):
                route = route[: -len(CONTENT_SUFFIX)]
                path = f"{route}?{query}" if query else route
                logger.info("Auto-returning download URL for %s", descriptor.name)
            elif is_media:
                options.raw_response = True

            options.include_headers = control.include_headers
            options.exclude_response = control.exclude_response

            logger.info("Making graph request to %s %s", options.method, path)
            response = await self.client.graph_request(path, options)

            if (
                control.fetch_all_pages
                and options.method == "GET"
                and not response.is_error
                and response.first_text()
            ):
                response = await self.paginator.aggregate(response, options)

            self._log_response(response)
            return ExecutionResult(
                content=list(response.content),
                metadata=response.metadata,
                is_error=response.is_error,
            )
        except Exception as exc:
            logger.error("Error in tool %s: %s", descriptor.name, exc)
            return ExecutionResult.failure_json(
                {"error": f"Error in tool {descriptor.name}: {exc}"}
            )

    def _log_response(self, response: ExecutionResult) -> None:
        text = response.first_text()
        if not text:
            return
        logger.info("Response size: %s characters", len(text))
        try:
            payload = json.loads(text)
        except ValueError:
            return
        if not isinstance(payload, dict):
            return
        if isinstance(payload.get(ITEMS_KEY), list):
            logger.info("Response contains %s items", len(payload[ITEMS_KEY]))
        if payload.get(NEXT_LINK_KEY):
            logger.info("Response has pagination nextLink: %s", payload[NEXT_LINK_KEY])
