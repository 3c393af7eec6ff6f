"""Tests for the Anthropic-compatible streaming client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from data_agent.llm_client.claude import (
    AnthropicStreamClient,
    map_provider_error,
    normalize_event,
)
from data_agent.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMRateLimit,
    LLMServerError,
    LLMStreamError,
    LLMTimeout,
)

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/messages")


def _status_error(cls: type, status: int) -> Exception:
    return cls(
        f"Error code: {status}",
        response=httpx.Response(status, request=REQUEST),
        body=None,
    )


class TestNormalizeEvent:
    """Test raw SDK event normalization."""

    def test_tool_use_block_start(self) -> None:
        """Test tool_use block starts carry id and name."""
        event = SimpleNamespace(
            type="content_block_start",
            index=1,
            content_block=SimpleNamespace(type="tool_use", id="tu_1", name="query"),
        )

        assert normalize_event(event) == {
            "type": "block_start",
            "index": 1,
            "block_type": "tool_use",
            "id": "tu_1",
            "name": "query",
        }

    def test_text_block_start(self) -> None:
        """Test text block starts."""
        event = SimpleNamespace(
            type="content_block_start", index=0, content_block=SimpleNamespace(type="text")
        )
        assert normalize_event(event) == {"type": "block_start", "index": 0, "block_type": "text"}

    def test_deltas(self) -> None:
        """Test text and tool input deltas."""
        text = SimpleNamespace(
            type="content_block_delta", index=0, delta=SimpleNamespace(type="text_delta", text="Hi")
        )
        tool = SimpleNamespace(
            type="content_block_delta",
            index=1,
            delta=SimpleNamespace(type="input_json_delta", partial_json='{"sql": '),
        )

        assert normalize_event(text) == {"type": "text_delta", "index": 0, "text": "Hi"}
        assert normalize_event(tool) == {
            "type": "tool_input_delta",
            "index": 1,
            "partial_json": '{"sql": ',
        }

    def test_stop_events(self) -> None:
        """Test block and message stops."""
        assert normalize_event(SimpleNamespace(type="content_block_stop", index=2)) == {
            "type": "block_stop",
            "index": 2,
        }
        assert normalize_event(SimpleNamespace(type="message_stop")) == {"type": "message_stop"}

    def test_ignored_events(self) -> None:
        """Test events the executor does not need are dropped."""
        assert normalize_event(SimpleNamespace(type="ping")) is None
        assert normalize_event(SimpleNamespace(type="message_start")) is None
        thinking = SimpleNamespace(
            type="content_block_start", index=0, content_block=SimpleNamespace(type="thinking")
        )
        assert normalize_event(thinking) is None


class TestMapProviderError:
    """Test SDK error mapping."""

    def test_timeout(self) -> None:
        """Test timeouts map to LLMTimeout."""
        assert isinstance(map_provider_error(anthropic.APITimeoutError(REQUEST)), LLMTimeout)

    def test_connection(self) -> None:
        """Test connection failures map to LLMConnectionError."""
        error = anthropic.APIConnectionError(request=REQUEST)
        assert isinstance(map_provider_error(error), LLMConnectionError)

    def test_status_errors(self) -> None:
        """Test status codes map to rate-limit, server and client errors."""
        rate = map_provider_error(_status_error(anthropic.RateLimitError, 429))
        server = map_provider_error(_status_error(anthropic.InternalServerError, 500))
        bad = map_provider_error(_status_error(anthropic.BadRequestError, 400))

        assert isinstance(rate, LLMRateLimit)
        assert isinstance(server, LLMServerError)
        assert type(bad) is LLMClientError

    def test_other_errors(self) -> None:
        """Test anything else is a stream error."""
        assert isinstance(map_provider_error(ValueError("bad event")), LLMStreamError)


class TestAnthropicStreamClient:
    """Test the streaming client against a mocked SDK client."""

    def test_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a missing API key is reported."""
        from data_agent.config import settings

        monkeypatch.setattr(settings, "llm_api_key", None)
        with pytest.raises(ValueError, match="AGENT_LLM_API_KEY"):
            AnthropicStreamClient()

    @pytest.mark.asyncio
    async def test_stream_normalizes_events(self) -> None:
        """Test events are normalized and tools are only sent when present."""

        async def raw_events():
            yield SimpleNamespace(type="message_start")
            yield SimpleNamespace(
                type="content_block_start", index=0, content_block=SimpleNamespace(type="text")
            )
            yield SimpleNamespace(
                type="content_block_delta",
                index=0,
                delta=SimpleNamespace(type="text_delta", text="Hello"),
            )
            yield SimpleNamespace(type="content_block_stop", index=0)
            yield SimpleNamespace(type="message_stop")

        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=raw_events())
        client = AnthropicStreamClient(client=sdk)

        events = [
            event
            async for event in client.stream(
                model="m", system="s", messages=[], tools=[], max_tokens=10
            )
        ]

        assert [event["type"] for event in events] == [
            "block_start",
            "text_delta",
            "block_stop",
            "message_stop",
        ]
        kwargs = sdk.messages.create.await_args.kwargs
        assert kwargs["stream"] is True
        assert "tools" not in kwargs

    @pytest.mark.asyncio
    async def test_stream_maps_errors(self) -> None:
        """Test SDK failures are raised as LLMClientErrors."""
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(side_effect=_status_error(anthropic.RateLimitError, 429))
        client = AnthropicStreamClient(client=sdk)

        with pytest.raises(LLMRateLimit):
            async for _ in client.stream(
                model="m", system="s", messages=[], tools=[{"name": "t"}], max_tokens=10
            ):
                pass
