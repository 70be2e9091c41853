"""Follow ``@odata.nextLink`` cursors and merge list results."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlsplit

from .graph_client import GraphClient, GraphRequestError, RequestOptions
from .models import ExecutionResult

logger = logging.getLogger(__name__)

MAX_PAGES = 100
ITEMS_KEY = "value"
NEXT_LINK_KEY = "@odata.nextLink"
COUNT_KEY = "@odata.count"

_VERSION_PREFIX = re.compile(r"^/(?:v\d+(?:\.\d+)?|beta)(?=/|$)")


@dataclass
class PaginationState:
    items: List[Any] = field(default_factory=list)
    next_link: Optional[str] = None
    page_count: int = 1


def split_next_link(next_link: str) -> tuple[str, Dict[str, str]]:
    """Turn an absolute next link into a version-less path and its query parameters."""
    parts = urlsplit(next_link)
    path = _VERSION_PREFIX.sub("", parts.path) or "/"
    return path, dict(parse_qsl(parts.query, keep_blank_values=True))


class PageAggregator:
    def __init__(self, client: GraphClient, max_pages: int = MAX_PAGES) -> None:
        self.client = client
        self.max_pages = max_pages

    async def aggregate(self, first: ExecutionResult, options: RequestOptions) -> ExecutionResult:
        text = first.first_text()
        if not text:
            return first
        try:
            combined = json.loads(text)
        except ValueError as exc:
            logger.error("Error during pagination: first page is not JSON (%s)", exc)
            return first
        if not isinstance(combined, dict):
            return first

        items = combined.get(ITEMS_KEY)
        state = PaginationState(
            items=list(items) if isinstance(items, list) else [],
            next_link=combined.get(NEXT_LINK_KEY),
        )

        while state.next_link and state.page_count < self.max_pages:
            logger.info("Fetching page %s from: %s", state.page_count + 1, state.next_link)
            try:
                page = await self._fetch_page(state.next_link, options)
            except (GraphRequestError, ValueError) as exc:
                logger.error("Error during pagination: %s", exc)
                break
            if page is None:
                break
            page_items = page.get(ITEMS_KEY)
            if isinstance(page_items, list):
                state.items.extend(page_items)
            state.next_link = page.get(NEXT_LINK_KEY)
            state.page_count += 1

        if state.next_link and state.page_count >= self.max_pages:
            logger.warning("Reached maximum page limit (%s) for pagination", self.max_pages)

        combined[ITEMS_KEY] = state.items
        if COUNT_KEY in combined:
            combined[COUNT_KEY] = len(state.items)
        combined.pop(NEXT_LINK_KEY, None)

        logger.info(
            "Pagination complete: collected %s items across %s pages",
            len(state.items),
            state.page_count,
        )
        content = list(first.content)
        content[0] = {"type": "text", "text": json.dumps(combined)}
        return ExecutionResult(content=content, metadata=first.metadata, is_error=first.is_error)

    async def _fetch_page(
        self, next_link: str, options: RequestOptions
    ) -> Optional[Dict[str, Any]]:
        path, query = split_next_link(next_link)
        response = await self.client.graph_request(path, replace(options, query_params=query))
        text = response.first_text()
        if response.is_error or not text:
            logger.error("Error during pagination: page request returned no usable body")
            return None
        page = json.loads(text)
        if not isinstance(page, dict):
            raise ValueError("page body is not a JSON object")
        return page
