"""Type definitions for the LLM client module.

This module defines:
- ProviderEvent: normalized streaming event produced by a model provider
- ModelProvider: protocol every streaming provider implements
- Error classes: hierarchy of LLM client errors
"""

from collections.abc import AsyncIterator
from typing import Any, Literal, Protocol

from typing_extensions import NotRequired, TypedDict

ProviderEventType = Literal[
    "block_start", "text_delta", "tool_input_delta", "block_stop", "message_stop"
]


class ProviderEvent(TypedDict):
    """Normalized streaming event.

    Provider SDKs differ in their raw event shapes; the turn executor only
    sees these.

    Attributes:
        type: Event kind.
        index: Content block index (block_start, block_stop and deltas).
        block_type: ``"text"`` or ``"tool_use"`` (block_start only).
        id: Tool call id (tool_use block_start only).
        name: Tool name (tool_use block_start only).
        text: Text fragment (text_delta only).
        partial_json: Serialized tool input fragment (tool_input_delta only).
    """

    type: ProviderEventType
    index: NotRequired[int]
    block_type: NotRequired[str]
    id: NotRequired[str]
    name: NotRequired[str]
    text: NotRequired[str]
    partial_json: NotRequired[str]


class ModelProvider(Protocol):
    """Streaming model provider.

    ``stream`` is an async generator yielding ProviderEvents for one model call.
    """

    def stream(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> AsyncIterator[ProviderEvent]:
        """Stream one model call."""
        ...


# Error hierarchy


class LLMClientError(Exception):
    """Base exception for all LLM client errors."""

    pass


class LLMTimeout(LLMClientError):
    """Raised when an LLM request times out."""

    pass


class LLMConnectionError(LLMClientError):
    """Raised when connection to the LLM provider fails."""

    pass


class LLMRateLimit(LLMClientError):
    """Raised when the LLM provider returns a rate limit error."""

    pass


class LLMServerError(LLMClientError):
    """Raised when the LLM provider returns an error (5xx)."""

    pass


class LLMInvalidResponse(LLMClientError):
    """Raised when the LLM provider returns an invalid or unexpected response."""

    pass


class LLMStreamError(LLMClientError):
    """Raised when a stream breaks or delivers a malformed event mid-turn."""

    pass
