"""Model provider client module.

Normalized streaming events, the provider protocol and the Anthropic-compatible
streaming client.
"""

from typing import TYPE_CHECKING

from data_agent.llm_client.models import (
    FanOutDefinition,
    ModelCatalogue,
    ModelEntry,
    ModelRoute,
    PipelineDefinition,
    RouteKind,
)
from data_agent.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMStreamError,
    LLMTimeout,
    ModelProvider,
    ProviderEvent,
)

if TYPE_CHECKING:
    from data_agent.llm_client.claude import AnthropicStreamClient
else:
    # Lazy import: the client reads settings, which import this package's models
    def __getattr__(name: str):
        if name == "AnthropicStreamClient":
            from data_agent.llm_client.claude import AnthropicStreamClient

            return AnthropicStreamClient
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AnthropicStreamClient",
    "FanOutDefinition",
    "LLMClientError",
    "LLMConnectionError",
    "LLMInvalidResponse",
    "LLMRateLimit",
    "LLMServerError",
    "LLMStreamError",
    "LLMTimeout",
    "ModelCatalogue",
    "ModelEntry",
    "ModelProvider",
    "ModelRoute",
    "PipelineDefinition",
    "ProviderEvent",
    "RouteKind",
]
