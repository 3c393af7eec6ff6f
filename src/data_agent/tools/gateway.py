"""Tool gateway: validate, dispatch and normalize tool calls.

Every call is classified into a tagged variant by tool name before anything
runs:

- ``ChartCall`` / ``MapCall``: synthetic tools, arguments validated against
  their pydantic schema, handled in-process by emitting a frame.
- ``RemoteCall``: a registered remote data tool, checked against the access
  policy and dispatched to its executor.
- ``UnknownCall``: anything else, always rejected.

``execute`` never raises for tool-level failures. Denials, invalid arguments
and remote errors all come back as error ToolResults so the model can adapt.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Union

from pydantic import ValidationError

from data_agent.governance.models import AccessPolicy
from data_agent.protocol.emitter import FrameSink
from data_agent.protocol.frames import ChartFrame, MapFrame
from data_agent.telemetry import (
    POLICY_VIOLATION,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TraceContext,
    get_logger,
)
from data_agent.tools.access import check_tool_access
from data_agent.tools.registry import RemoteExecutor, ToolRegistry
from data_agent.tools.synthetic import (
    CHART_ACK,
    CHART_TOOL_NAME,
    MAP_ACK,
    MAP_TOOL_NAME,
    ChartArgs,
    MapArgs,
)
from data_agent.tools.types import ToolCallRequest, ToolKind, ToolResult

log = get_logger(__name__)


@dataclass(frozen=True)
class ChartCall:
    request: ToolCallRequest
    args: ChartArgs


@dataclass(frozen=True)
class MapCall:
    request: ToolCallRequest
    args: MapArgs


@dataclass(frozen=True)
class RemoteCall:
    request: ToolCallRequest
    executor: RemoteExecutor


@dataclass(frozen=True)
class UnknownCall:
    request: ToolCallRequest


@dataclass(frozen=True)
class InvalidCall:
    request: ToolCallRequest
    reason: str


ClassifiedCall = Union[ChartCall, MapCall, RemoteCall, UnknownCall, InvalidCall]


class ToolGateway:
    """Executes tool calls for one exchange.

    Holds no state across calls beyond its registry and policy.
    """

    def __init__(self, registry: ToolRegistry, policy: AccessPolicy | None = None) -> None:
        """Initialize the gateway.

        Args:
            registry: Tools offered to the model in this exchange.
            policy: Access policy for remote tools. Defaults to the built-in policy.
        """
        self.registry = registry
        self.policy = policy or AccessPolicy()

    def classify(self, request: ToolCallRequest) -> ClassifiedCall:
        """Map a request onto its tagged variant.

        Synthetic tools are only recognised when registered, so a registry
        without visualization tools (pipeline data gathering) rejects them.
        """
        entry = self.registry.get_tool(request.name)
        if entry is None:
            return UnknownCall(request)

        tool_def, executor = entry
        if tool_def.kind == ToolKind.SYNTHETIC:
            try:
                if request.name == CHART_TOOL_NAME:
                    return ChartCall(request, ChartArgs.model_validate(request.input))
                if request.name == MAP_TOOL_NAME:
                    return MapCall(request, MapArgs.model_validate(request.input))
            except ValidationError as e:
                return InvalidCall(request, _summarize_validation(e))
            return UnknownCall(request)

        if executor is None:
            return UnknownCall(request)
        return RemoteCall(request, executor)

    async def execute(
        self, request: ToolCallRequest, emit: FrameSink, trace_ctx: TraceContext
    ) -> ToolResult:
        """Execute one tool call.

        Args:
            request: The model's tool call.
            emit: Frame sink for chart/map frames.
            trace_ctx: Trace context for telemetry.

        Returns:
            ToolResult answering ``request``.
        """
        call = self.classify(request)
        span_ctx, span_id = trace_ctx.new_span()
        log.info(
            TOOL_CALL_STARTED,
            tool_name=request.name,
            tool_use_id=request.id,
            variant=type(call).__name__,
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )
        start_time = time.monotonic()

        if isinstance(call, ChartCall):
            await emit(ChartFrame(spec=request.input))
            return self._success(request, CHART_ACK, start_time, trace_ctx, span_id)

        if isinstance(call, MapCall):
            await emit(MapFrame(spec=request.input))
            return self._success(request, MAP_ACK, start_time, trace_ctx, span_id)

        if isinstance(call, UnknownCall):
            return self._failure(
                request, f"Unknown tool: {request.name}", start_time, trace_ctx, span_id
            )

        if isinstance(call, InvalidCall):
            return self._failure(
                request,
                f"Invalid arguments for {request.name}: {call.reason}",
                start_time,
                trace_ctx,
                span_id,
            )

        permission = check_tool_access(request.input, self.policy)
        if not permission.allowed:
            log.warning(
                POLICY_VIOLATION,
                tool_name=request.name,
                reason=permission.reason,
                trace_id=trace_ctx.trace_id,
                span_id=span_id,
            )
            return ToolResult(
                tool_use_id=request.id,
                tool_name=request.name,
                content=permission.reason,
                is_error=True,
            )

        try:
            content = await call.executor(request.input)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            return self._failure(
                request, f"Error executing tool: {e}", start_time, trace_ctx, span_id, exc=e
            )
        return self._success(request, content, start_time, trace_ctx, span_id)

    def _success(
        self,
        request: ToolCallRequest,
        content: str,
        start_time: float,
        trace_ctx: TraceContext,
        span_id: str,
    ) -> ToolResult:
        latency_ms = (time.monotonic() - start_time) * 1000
        log.info(
            TOOL_CALL_COMPLETED,
            tool_name=request.name,
            latency_ms=latency_ms,
            result_chars=len(content),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )
        return ToolResult(
            tool_use_id=request.id,
            tool_name=request.name,
            content=content,
            latency_ms=latency_ms,
        )

    def _failure(
        self,
        request: ToolCallRequest,
        message: str,
        start_time: float,
        trace_ctx: TraceContext,
        span_id: str,
        exc: Exception | None = None,
    ) -> ToolResult:
        latency_ms = (time.monotonic() - start_time) * 1000
        log.warning(
            TOOL_CALL_FAILED,
            tool_name=request.name,
            error=message,
            error_type=type(exc).__name__ if exc else None,
            latency_ms=latency_ms,
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )
        return ToolResult(
            tool_use_id=request.id,
            tool_name=request.name,
            content=message,
            is_error=True,
            latency_ms=latency_ms,
        )


def _summarize_validation(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(item) for item in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)

