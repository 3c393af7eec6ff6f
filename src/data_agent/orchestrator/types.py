"""Core types for the orchestrator.

This module defines the data structures used throughout the orchestrator:
- ExchangeState: state machine states
- TurnOutput: what one model call produced
- ExchangeContext: mutable state container passed through the step functions
- ExchangeResult: summary returned to the caller
- ExchangeRequest / ExchangeServices: what a route runs on
- Error classes for fatal orchestration failures
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypedDict

from data_agent.documents.store import DocumentStore
from data_agent.governance.models import AccessPolicy
from data_agent.llm_client.models import ModelCatalogue
from data_agent.llm_client.types import ModelProvider
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.retry import RetryPolicy, RetryState
from data_agent.protocol.emitter import FrameSink
from data_agent.telemetry import TraceContext
from data_agent.tools.gateway import ToolGateway
from data_agent.tools.registry import ToolRegistry
from data_agent.tools.types import ToolCallRequest, ToolResult


class ExchangeState(str, Enum):
    """State machine states for one exchange."""

    AWAITING_TURN = "awaiting_turn"
    STREAMING = "streaming"
    TOOL_PHASE = "tool_phase"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({ExchangeState.FINISHED, ExchangeState.FAILED, ExchangeState.CANCELLED})


@dataclass
class TurnOutput:
    """Result of one completed model call.

    Attributes:
        text_segments: Text of each text block, in order.
        tool_calls: Tool calls requested in this turn.
        content_blocks: Assistant content blocks (text and tool_use) in order.
        text: All text of the turn concatenated.
        trailing_text: Text after the last tool block (all text if no tools).
    """

    text_segments: list[str] = field(default_factory=list)
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    content_blocks: list[dict[str, Any]] = field(default_factory=list)
    text: str = ""
    trailing_text: str = ""


@dataclass
class ToolActivity:
    """One executed tool call and its result."""

    request: ToolCallRequest
    result: ToolResult
    turn: int = 0


@dataclass
class ExchangeContext:
    """Mutable state container passed through the exchange state machine.

    The conversation (``messages``) is owned by this context for the lifetime
    of the exchange. It only ever grows by whole turns: one assistant message
    with every text and tool_use block, then one user message answering every
    tool_use with a tool_result.

    Attributes:
        trace_ctx: Trace context for telemetry.
        model: Provider model id.
        system_prompt: System prompt for every turn.
        messages: Conversation in Anthropic message format.
        provider: Streaming model provider.
        gateway: Tool gateway for this exchange.
        emit: Frame sink.
        token: Cancellation token.
        retry_policy: Retry policy for transient stream failures.
        tools: Tool definitions offered to the model (Anthropic format).
        max_tokens: Output cap per turn.
        max_turns: Turn ceiling; exceeding it is fatal.
        turn_timeout: Upper bound in seconds for one streamed turn.
        collect: Data-gathering mode: narration goes out as intermediate_text
            and only pre-tool text is shown.
        retry_label: Name used in retry notices.
        turn_separator: Send a blank-line text frame between turns.
    """

    trace_ctx: TraceContext
    model: str
    system_prompt: str
    messages: list[dict[str, Any]]
    provider: ModelProvider
    gateway: ToolGateway
    emit: FrameSink
    token: CancellationToken
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    tools: list[dict[str, Any]] = field(default_factory=list)
    max_tokens: int = 16384
    max_turns: int = 25
    turn_timeout: float = 300.0
    collect: bool = False
    retry_label: str = "request"
    turn_separator: bool = True

    # Progress
    state: ExchangeState = ExchangeState.AWAITING_TURN
    turn_count: int = 0
    retry: RetryState = field(default_factory=RetryState)
    last_turn: TurnOutput | None = None
    turns: list[TurnOutput] = field(default_factory=list)
    tool_activity: list[ToolActivity] = field(default_factory=list)
    error: Exception | None = None

    @property
    def final_text(self) -> str:
        """Text of the last completed turn."""
        return self.last_turn.text if self.last_turn else ""


class ExchangeResult(TypedDict, total=False):
    """Summary of a finished exchange.

    Fields:
        state: Terminal state reached.
        final_text: Text of the last turn.
        content_id: Id of the persisted document, if one was saved.
        turns: Number of completed model turns.
        error: Error message if the exchange failed.
        trace_id: Trace ID for telemetry correlation.
        columns: Per-column results of a fan-out exchange.
    """

    state: ExchangeState
    final_text: str
    content_id: str | None
    turns: int
    error: str | None
    trace_id: str
    columns: dict[str, "ExchangeResult"]


# Error hierarchy


class OrchestratorError(Exception):
    """Base exception for fatal orchestration failures."""

    pass


class RetryExhaustedError(OrchestratorError):
    """Raised when a model call keeps failing after every allowed retry."""

    pass


class MaxTurnsExceededError(OrchestratorError):
    """Raised when an exchange needs more model turns than allowed."""

    pass


class ExchangeTimeoutError(OrchestratorError):
    """Raised when a whole exchange exceeds its time budget."""

    pass


@dataclass
class ExchangeRequest:
    """One inbound chat request, independent of the transport.

    Attributes:
        messages: Prior conversation plus the new user message, as
            ``{"role", "content"}`` dicts with plain-text content.
        model: Requested model, pipeline or fan-out id (None for the default).
        is_mobile: Ask for single-column report layouts.
        include_metadata: Inject data-source metadata into system prompts.
        column_messages: Per-column conversations for fan-out. A column
            without an entry uses ``messages``.
    """

    messages: list[dict[str, Any]]
    model: str | None = None
    is_mobile: bool = False
    include_metadata: bool = True
    column_messages: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    @property
    def question(self) -> str:
        """Text of the latest user message."""
        for message in reversed(self.messages):
            if message.get("role") == "user":
                content = message.get("content", "")
                return content if isinstance(content, str) else str(content)
        return ""

    def conversation(self) -> list[dict[str, Any]]:
        """Fresh copy of the messages in provider format."""
        return [{"role": m["role"], "content": m["content"]} for m in self.messages]


@dataclass
class ExchangeServices:
    """Collaborators and limits shared by every exchange of one request.

    Built per request by the service; nothing in here is mutated by an exchange.
    """

    provider: ModelProvider
    registry: ToolRegistry
    catalogue: ModelCatalogue
    policy: AccessPolicy = field(default_factory=AccessPolicy)
    store: DocumentStore | None = None
    metadata: str | None = None
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    max_tokens: int = 16384
    max_turns: int = 25
    turn_timeout: float = 300.0
    exchange_timeout: float | None = 900.0

    @classmethod
    def from_settings(
        cls,
        provider: ModelProvider,
        registry: ToolRegistry,
        catalogue: ModelCatalogue,
        policy: AccessPolicy,
        store: DocumentStore | None = None,
        metadata: str | None = None,
    ) -> "ExchangeServices":
        """Build services with limits taken from settings."""
        from data_agent.config import settings  # noqa: PLC0415

        return cls(
            provider=provider,
            registry=registry,
            catalogue=catalogue,
            policy=policy,
            store=store,
            metadata=metadata,
            retry_policy=RetryPolicy.from_settings(),
            max_tokens=settings.llm_max_tokens,
            max_turns=settings.orchestrator_max_turns,
            turn_timeout=settings.turn_timeout_seconds,
            exchange_timeout=settings.exchange_timeout_seconds,
        )
