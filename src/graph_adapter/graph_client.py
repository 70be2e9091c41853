"""Microsoft Graph HTTP client."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .models import ExecutionResult

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class GraphRequestError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class RequestOptions:
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    raw_response: bool = False
    include_headers: bool = False
    exclude_response: bool = False
    query_params: Optional[Dict[str, str]] = None


class GraphClient:
    def __init__(
        self,
        base_url: str = "https://graph.microsoft.com",
        api_version: str = "v1.0",
        access_token: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        timeout_seconds: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = f"{base_url.rstrip('/')}/{api_version.strip('/')}"
        self.access_token = access_token
        self.token_provider = token_provider
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def graph_request(self, path: str, options: RequestOptions) -> ExecutionResult:
        """Issue a tool call and shape the response into content blocks.

        HTTP error statuses come back as an error result; transport failures
        raise :class:`GraphRequestError`.
        """
        response = await self._send(path, options)

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Graph request failed: %s %s -> %s", options.method, path, message)
            return ExecutionResult.failure_json(
                {"error": message, "statusCode": response.status_code}
            )

        metadata: Optional[Dict[str, Any]] = None
        if options.include_headers:
            metadata = {"headers": dict(response.headers)}

        if options.exclude_response:
            result = ExecutionResult.from_text(json.dumps({"success": True}))
        elif options.raw_response:
            result = ExecutionResult(content=_raw_content(path, response))
        else:
            text = response.text if response.content else json.dumps({"message": "OK!"})
            result = ExecutionResult.from_text(text)

        result.metadata = metadata
        return result

    async def make_request(self, path: str, options: Optional[RequestOptions] = None) -> Any:
        """Return the decoded JSON body.

        Non-JSON bodies are wrapped as ``{"message": "OK!", "rawResponse": text}``.
        """
        options = options or RequestOptions()
        response = await self._send(path, options)
        if response.status_code >= 400:
            raise GraphRequestError(_error_message(response), status_code=response.status_code)
        if not response.content:
            return {"message": "OK!"}
        if _is_json(response):
            try:
                return response.json()
            except ValueError as exc:
                raise GraphRequestError(f"Invalid JSON response: {exc}") from exc
        return {"message": "OK!", "rawResponse": response.text}

    async def _send(self, path: str, options: RequestOptions) -> httpx.Response:
        headers = {"Accept": "application/json", **options.headers}
        token = await self._token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if options.body is not None:
            headers.setdefault("Content-Type", "application/json")

        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                return await client.request(
                    options.method.upper(),
                    url,
                    headers=headers,
                    params=options.query_params,
                    content=options.body,
                )
        except httpx.HTTPError as exc:
            raise GraphRequestError(str(exc) or exc.__class__.__name__) from exc

    async def _token(self) -> Optional[str]:
        if self.token_provider:
            return await self.token_provider()
        return self.access_token


def _is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "json" in content_type.lower()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text or response.reason_phrase}"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"HTTP {response.status_code}: {error['message']}"
    return f"HTTP {response.status_code}: {response.text}"


def _raw_content(path: str, response: httpx.Response) -> List[Dict[str, Any]]:
    mime_type = response.headers.get("content-type", "application/octet-stream").split(";")[0].strip()
    if _is_json(response) or mime_type.startswith("text/"):
        return [{"type": "text", "text": response.text}]

    data = base64.b64encode(response.content).decode("ascii")
    if mime_type.startswith("image/"):
        return [{"type": "image", "data": data, "mimeType": mime_type}]
    if mime_type.startswith("audio/"):
        return [{"type": "audio", "data": data, "mimeType": mime_type}]
    return [
        {
            "type": "resource",
            "resource": {"uri": f"graph://{path.lstrip('/')}", "blob": data, "mimeType": mime_type},
        }
    ]
