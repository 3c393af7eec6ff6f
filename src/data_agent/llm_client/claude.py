"""Streaming client for Anthropic-compatible messages APIs.

Wraps ``AsyncAnthropic`` and turns its raw server-sent events into the
normalized ProviderEvents consumed by the turn executor. The base URL is
configurable, so the same client drives OpenRouter's Anthropic-compatible
endpoint and Anthropic itself.
"""

from collections.abc import AsyncIterator
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from data_agent.config.settings import get_settings
from data_agent.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMRateLimit,
    LLMServerError,
    LLMStreamError,
    LLMTimeout,
    ProviderEvent,
)
from data_agent.telemetry import get_logger

log = get_logger(__name__)


def map_provider_error(error: Exception) -> LLMClientError:
    """Map an SDK exception onto the LLM client error hierarchy.

    Args:
        error: Exception raised by the anthropic SDK.

    Returns:
        The matching LLMClientError subclass instance.
    """
    message = str(error)
    if isinstance(error, anthropic.APITimeoutError):
        return LLMTimeout(message)
    if isinstance(error, anthropic.APIConnectionError):
        return LLMConnectionError(message)
    if isinstance(error, anthropic.RateLimitError):
        return LLMRateLimit(message)
    if isinstance(error, anthropic.InternalServerError):
        return LLMServerError(message)
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code >= 500:
            return LLMServerError(message)
        return LLMClientError(message)
    return LLMStreamError(message)


def normalize_event(event: Any) -> ProviderEvent | None:
    """Convert one raw SDK stream event to a ProviderEvent.

    Args:
        event: Raw event from ``messages.create(stream=True)``.

    Returns:
        Normalized event, or None for events the executor does not need
        (message_start, message_delta, ping, thinking deltas).
    """
    event_type = getattr(event, "type", None)

    if event_type == "content_block_start":
        block = event.content_block
        if block.type == "tool_use":
            return {
                "type": "block_start",
                "index": event.index,
                "block_type": "tool_use",
                "id": block.id,
                "name": block.name,
            }
        if block.type == "text":
            normalized: ProviderEvent = {
                "type": "block_start",
                "index": event.index,
                "block_type": "text",
            }
            return normalized
        return None

    if event_type == "content_block_delta":
        delta = event.delta
        if delta.type == "text_delta":
            return {"type": "text_delta", "index": event.index, "text": delta.text}
        if delta.type == "input_json_delta":
            return {
                "type": "tool_input_delta",
                "index": event.index,
                "partial_json": delta.partial_json,
            }
        return None

    if event_type == "content_block_stop":
        return {"type": "block_stop", "index": event.index}

    if event_type == "message_stop":
        return {"type": "message_stop"}

    return None


class AnthropicStreamClient:
    """Streaming model provider backed by the anthropic SDK.

    Usage:
        client = AnthropicStreamClient()
        async for event in client.stream(
            model="google/gemini-3-flash-preview",
            system="You are a data analyst.",
            messages=[{"role": "user", "content": "sales by region"}],
            tools=[],
            max_tokens=4096,
        ):
            ...
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Provider API key. Defaults to ``settings.llm_api_key``.
            base_url: Provider base URL. Defaults to ``settings.llm_base_url``.
            client: Pre-built SDK client (used by tests).

        Raises:
            ValueError: If no API key is configured and no client is given.
        """
        if client is not None:
            self.client = client
            return

        settings = get_settings()
        api_key = api_key or settings.llm_api_key
        if not api_key:
            raise ValueError(
                "Model provider API key not configured. Set AGENT_LLM_API_KEY environment variable."
            )
        self.client = AsyncAnthropic(api_key=api_key, base_url=base_url or settings.llm_base_url)

    async def stream(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> AsyncIterator[ProviderEvent]:
        """Stream one model call as normalized events.

        Args:
            model: Provider model id.
            system: System prompt.
            messages: Conversation in Anthropic message format.
            tools: Tool definitions in Anthropic format (may be empty).
            max_tokens: Output token limit.

        Yields:
            ProviderEvents in arrival order.

        Raises:
            LLMClientError: Subclass matching the SDK failure.
        """
        params: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": messages,
            "stream": True,
        }
        if tools:
            params["tools"] = tools

        try:
            stream = await self.client.messages.create(**params)
            async for raw in stream:
                event = normalize_event(raw)
                if event is not None:
                    yield event
        except anthropic.AnthropicError as e:
            mapped = map_provider_error(e)
            log.warning(
                "llm_stream_failed",
                model=model,
                error=str(e),
                error_type=type(mapped).__name__,
            )
            raise mapped from e
