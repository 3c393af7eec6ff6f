"""Route a request to its orchestration strategy.

The request's ``model`` field is resolved against the model catalogue:

- a plain model runs a standalone exchange with every tool
- a pipeline id runs the two-phase pipeline
- a fan-out id runs each column as an independent route
"""

from data_agent.llm_client.models import ModelRoute, RouteKind
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.executor import run_standalone
from data_agent.orchestrator.fanout import run_fanout
from data_agent.orchestrator.pipeline import TwoPhasePipeline
from data_agent.orchestrator.prompts import get_system_prompt
from data_agent.orchestrator.types import (
    ExchangeContext,
    ExchangeRequest,
    ExchangeResult,
    ExchangeServices,
)
from data_agent.protocol.emitter import EventEmitter, FrameSink
from data_agent.telemetry import TraceContext, get_logger
from data_agent.tools.gateway import ToolGateway

log = get_logger(__name__)


def build_standalone_context(
    request: ExchangeRequest,
    services: ExchangeServices,
    model: str,
    emit: FrameSink,
    token: CancellationToken,
    trace_ctx: TraceContext,
) -> ExchangeContext:
    """Create the context for a single-model exchange."""
    metadata = services.metadata if request.include_metadata else None
    return ExchangeContext(
        trace_ctx=trace_ctx,
        model=model,
        system_prompt=get_system_prompt(request.is_mobile, metadata, services.policy),
        messages=request.conversation(),
        provider=services.provider,
        gateway=ToolGateway(services.registry, services.policy),
        emit=emit,
        token=token,
        retry_policy=services.retry_policy,
        tools=services.registry.get_tool_definitions_for_llm(),
        max_tokens=services.catalogue.max_tokens_for(model, services.max_tokens),
        max_turns=services.max_turns,
        turn_timeout=services.turn_timeout,
    )


async def run_route(
    request: ExchangeRequest,
    services: ExchangeServices,
    route: ModelRoute,
    emit: FrameSink,
    token: CancellationToken,
    trace_ctx: TraceContext,
) -> ExchangeResult:
    """Run a standalone or pipeline route to its terminal frame."""
    if route.kind == RouteKind.PIPELINE:
        definition = services.catalogue.pipelines[route.model_id]
        pipeline = TwoPhasePipeline(services, definition, emit, token, trace_ctx)
        return await pipeline.run(request)

    ctx = build_standalone_context(request, services, route.model_id, emit, token, trace_ctx)
    return await run_standalone(ctx, services.store, services.exchange_timeout)


async def run_exchange(
    request: ExchangeRequest,
    services: ExchangeServices,
    emitter: EventEmitter,
    token: CancellationToken,
    trace_ctx: TraceContext | None = None,
) -> ExchangeResult:
    """Run one request end to end.

    Every frame, the terminal one included, goes to ``emitter``. Never raises.

    Args:
        request: Inbound request.
        services: Collaborators and limits.
        emitter: Frame sequence for this request.
        token: Cancellation token; the service cancels it on client disconnect.
        trace_ctx: Trace context. A new trace is started if omitted.

    Returns:
        ExchangeResult summary.
    """
    trace_ctx = trace_ctx or TraceContext.new_trace()
    route = services.catalogue.resolve(request.model)
    log.info(
        "exchange_routed",
        trace_id=trace_ctx.trace_id,
        requested=request.model,
        route=route.kind.value,
        model_id=route.model_id,
    )

    if route.kind == RouteKind.FANOUT:
        return await run_fanout(
            request,
            services,
            route.model_id,
            services.catalogue.fan_outs[route.model_id],
            emitter,
            token,
            trace_ctx,
            run_route,
        )
    return await run_route(request, services, route, emitter.send, token, trace_ctx)
