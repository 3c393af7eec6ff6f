"""Fan-out: run several routes side by side over the same input.

Each column is a fully independent exchange with its own conversation,
cancellation token, trace span and emitter. Column frames are tagged with
the column name and interleave on the parent stream. The parent sequence
ends with one untagged terminal frame once every column has settled.
"""

import asyncio
from collections.abc import Awaitable, Callable

from data_agent.llm_client.models import FanOutDefinition, ModelRoute
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.types import (
    ExchangeRequest,
    ExchangeResult,
    ExchangeServices,
    ExchangeState,
)
from data_agent.protocol.emitter import ColumnEmitter, EventEmitter, FrameSink
from data_agent.protocol.frames import CancelledFrame, DoneFrame
from data_agent.telemetry import FANOUT_COLUMN_FINISHED, FANOUT_STARTED, TraceContext, get_logger

log = get_logger(__name__)

# Runs one resolved route to completion, terminal frames included.
RouteRunner = Callable[
    [ExchangeRequest, ExchangeServices, ModelRoute, FrameSink, CancellationToken, TraceContext],
    Awaitable[ExchangeResult],
]


async def run_fanout(
    request: ExchangeRequest,
    services: ExchangeServices,
    fan_out_id: str,
    definition: FanOutDefinition,
    emitter: EventEmitter,
    token: CancellationToken,
    trace_ctx: TraceContext,
    run_route: RouteRunner,
) -> ExchangeResult:
    """Run every column concurrently and close the parent sequence.

    Args:
        request: The inbound request; each column gets its own copy of the
            conversation.
        services: Shared collaborators.
        fan_out_id: Fan-out id, for logging.
        definition: Columns to run.
        emitter: Parent emitter.
        token: Parent token; cancelling it cancels every column.
        trace_ctx: Parent trace context.
        run_route: Runs one resolved column route.

    Returns:
        ExchangeResult whose ``columns`` holds each column's result.
    """
    log.info(
        FANOUT_STARTED,
        trace_id=trace_ctx.trace_id,
        fan_out=fan_out_id,
        columns=list(definition.columns),
    )

    names = list(definition.columns)
    runs = []
    for name in names:
        route = services.catalogue.resolve(definition.columns[name])
        span_ctx, span_id = trace_ctx.new_span()
        column_emitter = ColumnEmitter(emitter, name, span_ctx)
        runs.append(
            _run_column(
                name, request, services, route, column_emitter, token.child(), span_ctx, run_route
            )
        )

    results = await asyncio.gather(*runs)
    columns = dict(zip(names, results, strict=True))

    if token.cancelled:
        await emitter.send(CancelledFrame())
        state = ExchangeState.CANCELLED
    else:
        await emitter.send(DoneFrame())
        state = ExchangeState.FINISHED

    return {
        "state": state,
        "final_text": "",
        "content_id": None,
        "turns": sum(result.get("turns", 0) for result in results),
        "error": None,
        "trace_id": trace_ctx.trace_id,
        "columns": columns,
    }


async def _run_column(
    name: str,
    request: ExchangeRequest,
    services: ExchangeServices,
    route: ModelRoute,
    emitter: ColumnEmitter,
    token: CancellationToken,
    trace_ctx: TraceContext,
    run_route: RouteRunner,
) -> ExchangeResult:
    messages = request.column_messages.get(name) or request.messages
    column_request = ExchangeRequest(
        messages=[{"role": m["role"], "content": m["content"]} for m in messages],
        model=route.model_id,
        is_mobile=request.is_mobile,
        include_metadata=request.include_metadata,
    )
    result = await run_route(column_request, services, route, emitter.send, token, trace_ctx)
    log.info(
        FANOUT_COLUMN_FINISHED,
        trace_id=trace_ctx.trace_id,
        column=name,
        route=route.model_id,
        state=result["state"].value,
    )
    return result
