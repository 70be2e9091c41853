import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from graph_adapter.graph_client import GraphRequestError, RequestOptions
from graph_adapter.models import (
    EndpointConfig,
    EndpointDescriptor,
    ExecutionResult,
    ParameterDefinition,
    ParameterLocation,
)


Reply = Union[ExecutionResult, Exception, Callable[[str, RequestOptions], ExecutionResult]]


class FakeGraphClient:
    """Records every call and answers from queued or routed replies."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, RequestOptions]] = []
        self.graph_replies: List[Reply] = []
        self.routes: List[Tuple[str, Any]] = []

    async def graph_request(self, path: str, options: RequestOptions) -> ExecutionResult:
        self.calls.append((path, options))
        if not self.graph_replies:
            raise AssertionError(f"unexpected graph_request to {path}")
        reply = self.graph_replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(path, options)
        return reply

    async def make_request(self, path: str, options: Optional[RequestOptions] = None) -> Any:
        self.calls.append((path, options or RequestOptions()))
        for prefix, reply in self.routes:
            if path.startswith(prefix):
                if isinstance(reply, Exception):
                    raise reply
                return reply
        raise GraphRequestError(f"no route for {path}", status_code=404)

    def paths(self) -> List[str]:
        return [path for path, _ in self.calls]


def json_result(payload: Dict[str, Any]) -> ExecutionResult:
    return ExecutionResult.from_text(json.dumps(payload))


@pytest.fixture
def fake_client() -> FakeGraphClient:
    return FakeGraphClient()


@pytest.fixture
def list_messages() -> EndpointDescriptor:
    return EndpointDescriptor(
        name="list-mail-messages",
        method="GET",
        path="/me/messages",
        parameters=(
            ParameterDefinition("top", ParameterLocation.QUERY, {"type": "integer"}),
            ParameterDefinition("filter", ParameterLocation.QUERY, {"type": "string"}),
            ParameterDefinition("select", ParameterLocation.QUERY),
            ParameterDefinition("ConsistencyLevel", ParameterLocation.HEADER),
        ),
    )


@pytest.fixture
def send_mail() -> EndpointDescriptor:
    return EndpointDescriptor(
        name="send-mail",
        method="POST",
        path="/me/sendMail",
        parameters=(
            ParameterDefinition(
                "message",
                ParameterLocation.BODY,
                {
                    "type": "object",
                    "required": ["message"],
                    "properties": {"message": {"type": "object", "required": ["subject"]}},
                },
            ),
        ),
    )


@pytest.fixture
def calendar_events() -> Tuple[EndpointDescriptor, EndpointConfig]:
    descriptor = EndpointDescriptor(
        name="list-calendar-events",
        method="GET",
        path="/users/{user-id}/events",
        parameters=(ParameterDefinition("user-id", ParameterLocation.PATH),),
    )
    config = EndpointConfig(tool_name="list-calendar-events", supports_timezone=True)
    return descriptor, config
