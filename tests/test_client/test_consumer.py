"""Tests for the streaming HTTP consumer."""

import json

import httpx
import pytest

from data_agent.client.blocks import NoticeBlock, TextBlock
from data_agent.client.consumer import ServiceRequestError, StreamConsumer
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.protocol.codec import encode_sse
from data_agent.protocol.frames import DoneFrame, ErrorFrame, TextFrame

BASE_URL = "http://agent.test"


def _sse(*frames) -> bytes:
    return b"".join(encode_sse(frame) for frame in frames)


def _consumer(handler, updates=None) -> StreamConsumer:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    on_update = (lambda column, state: updates.append((column, state))) if updates is not None else None
    return StreamConsumer(BASE_URL, on_update=on_update, timeout=5, client=client)


@pytest.mark.asyncio
async def test_single_stream() -> None:
    """Test frames are folded into one untagged state."""
    seen: dict = {}
    updates: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            content=_sse(TextFrame(content="North "), TextFrame(content="leads."), DoneFrame()),
            headers={"content-type": "text/event-stream"},
        )

    body = {"messages": [{"role": "user", "content": "Top region?"}], "model": "blended"}
    states = await _consumer(handler, updates).send(body)

    assert seen == {"url": f"{BASE_URL}/chat", "body": body}
    assert list(states) == [None]
    assert states[None].status == "done"
    assert states[None].blocks == (TextBlock(text="North leads."),)
    assert len(updates) == 3


@pytest.mark.asyncio
async def test_fan_out_columns() -> None:
    """Test tagged frames go to their column and an untagged done ends the rest."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=_sse(
                TextFrame(content="A", column="solo"),
                TextFrame(content="B", column="blended"),
                ErrorFrame(message="Opus error: overloaded", column="blended"),
                DoneFrame(column="solo"),
                DoneFrame(),
            ),
        )

    states = await _consumer(handler).send({"messages": [], "model": "head-to-head"})

    assert set(states) == {"solo", "blended"}
    assert states["solo"].status == "done"
    assert states["blended"].status == "done"
    assert states["blended"].blocks[-1] == NoticeBlock(level="error", message="Opus error: overloaded")


@pytest.mark.asyncio
async def test_http_error_raises() -> None:
    """Test a rejected request surfaces the service's error message."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Failed to connect to tool provider: refused"})

    with pytest.raises(ServiceRequestError) as excinfo:
        await _consumer(handler).send({"messages": []})

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Failed to connect to tool provider: refused"


@pytest.mark.asyncio
async def test_cancelled_before_response() -> None:
    """Test cancelling marks the message cancelled without a request."""
    calls: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=_sse(DoneFrame()))

    token = CancellationToken()
    token.cancel("interrupted")

    states = await _consumer(handler).send({"messages": []}, token)

    assert calls == []
    assert states[None].status == "cancelled"


def test_untagged_terminal_without_columns() -> None:
    """Test apply folds untagged frames into the single state."""
    consumer = StreamConsumer(BASE_URL, timeout=5)

    consumer.apply(TextFrame(content="Hi"))
    consumer.apply(DoneFrame())

    assert consumer.states[None].status == "done"
