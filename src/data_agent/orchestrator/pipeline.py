"""Two-phase pipeline: a tool-using gatherer followed by a tool-less reporter.

Phase 1 runs a full exchange in collect mode against the remote data tools
only. Its narration goes out as ``intermediate_text`` and its findings are
accumulated into a collected-data buffer. Phase 2 hands the user's question
plus that buffer to the report model, which streams the final answer (an
HTML report) as ordinary ``text``.

Both phases share one frame sequence, so only the pipeline sends terminal
frames.
"""

import asyncio

import orjson

from data_agent.llm_client.models import PipelineDefinition
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.executor import (
    build_result,
    emit_terminal,
    execute_exchange,
    persist_document,
)
from data_agent.orchestrator.prompts import (
    format_report_request,
    get_data_gathering_prompt,
    get_report_generation_prompt,
)
from data_agent.orchestrator.types import (
    ExchangeContext,
    ExchangeRequest,
    ExchangeResult,
    ExchangeServices,
    ExchangeState,
    ExchangeTimeoutError,
)
from data_agent.protocol.emitter import FrameSink
from data_agent.protocol.frames import IntermediateOutputFrame, TextFrame
from data_agent.telemetry import (
    ORCHESTRATOR_FATAL_ERROR,
    PIPELINE_PHASE_COMPLETED,
    PIPELINE_PHASE_FAILED,
    PIPELINE_PHASE_STARTED,
    TraceContext,
    get_logger,
)
from data_agent.tools.gateway import ToolGateway
from data_agent.tools.registry import ToolRegistry
from data_agent.tools.types import ToolKind

log = get_logger(__name__)

DATA_GATHERING_SOURCE = "data_gathering"


def build_collected_data(ctx: ExchangeContext) -> str:
    """Accumulate phase-1 findings in the order they were produced.

    For every turn: the turn's closing text (after its last tool block)
    followed by a newline, then one section per successful tool call.
    Failed or denied calls are left out.
    """
    parts: list[str] = []
    for index, turn in enumerate(ctx.turns):
        parts.append(turn.trailing_text + "\n")
        for activity in ctx.tool_activity:
            if activity.turn != index or activity.result.is_error:
                continue
            arguments = orjson.dumps(activity.request.input).decode()
            parts.append(
                f"\n**Tool: {activity.request.name}**\n"
                f"Input: {arguments}\n"
                f"Result: {activity.result.content}\n"
            )
    return "".join(parts)


class TwoPhasePipeline:
    """Runs one pipeline exchange.

    Usage:
        pipeline = TwoPhasePipeline(services, definition, emit, token, trace_ctx)
        result = await pipeline.run(request)
    """

    def __init__(
        self,
        services: ExchangeServices,
        definition: PipelineDefinition,
        emit: FrameSink,
        token: CancellationToken,
        trace_ctx: TraceContext,
    ) -> None:
        self.services = services
        self.definition = definition
        self.emit = emit
        self.token = token
        self.trace_ctx = trace_ctx
        catalogue = services.catalogue
        self.gather_label = catalogue.label_for(definition.gather_model)
        self.report_label = catalogue.label_for(definition.report_model)

    async def run(self, request: ExchangeRequest) -> ExchangeResult:
        """Run both phases and end the frame sequence.

        Never raises: failures end the sequence with ``error`` then ``done``,
        cancellation with ``cancelled``.
        """
        timeout = self.services.exchange_timeout
        ctx: ExchangeContext | None = None
        prefix = ""
        content_id: str | None = None
        try:
            async with asyncio.timeout(timeout):
                await self.emit(TextFrame(content=f"Gathering data with {self.gather_label}...\n\n"))
                ctx = self._gather_context(request)
                prefix = f"{self.gather_label} error: "
                await self._run_phase(ctx, "gather")
                if ctx.state != ExchangeState.FINISHED:
                    return await self._finish(ctx, prefix)

                collected = build_collected_data(ctx)
                if ctx.final_text:
                    await self.emit(
                        IntermediateOutputFrame(source=DATA_GATHERING_SOURCE, content=ctx.final_text)
                    )

                await self.emit(
                    TextFrame(content=f"\nGenerating report with {self.report_label}...\n\n")
                )
                ctx = self._report_context(request, collected)
                prefix = f"{self.report_label} error: "
                await self._run_phase(ctx, "report")
                if ctx.state == ExchangeState.FINISHED:
                    content_id = await persist_document(
                        ctx.final_text,
                        self.services.store,
                        self.emit,
                        self.trace_ctx,
                        model=ctx.model,
                    )
        except TimeoutError:
            ctx = ctx or self._gather_context(request)
            ctx.error = ExchangeTimeoutError(f"Exchange exceeded {timeout:g}s timeout")
            ctx.state = ExchangeState.FAILED
        except Exception as e:
            log.critical(ORCHESTRATOR_FATAL_ERROR, trace_id=self.trace_ctx.trace_id, exc_info=True)
            ctx = ctx or self._gather_context(request)
            ctx.error = e
            ctx.state = ExchangeState.FAILED

        return await self._finish(ctx, prefix, content_id)

    async def _run_phase(self, ctx: ExchangeContext, phase: str) -> None:
        log.info(
            PIPELINE_PHASE_STARTED,
            trace_id=self.trace_ctx.trace_id,
            phase=phase,
            model=ctx.model,
        )
        await execute_exchange(ctx)
        if ctx.state == ExchangeState.FINISHED:
            log.info(
                PIPELINE_PHASE_COMPLETED,
                trace_id=self.trace_ctx.trace_id,
                phase=phase,
                turns=ctx.turn_count,
                tool_calls=len(ctx.tool_activity),
            )
        else:
            log.warning(
                PIPELINE_PHASE_FAILED,
                trace_id=self.trace_ctx.trace_id,
                phase=phase,
                state=ctx.state.value,
                error=str(ctx.error) if ctx.error else None,
            )

    async def _finish(
        self, ctx: ExchangeContext, prefix: str, content_id: str | None = None
    ) -> ExchangeResult:
        await emit_terminal(ctx, self.emit, message_prefix=prefix)
        return build_result(ctx, content_id)

    def _gather_context(self, request: ExchangeRequest) -> ExchangeContext:
        services = self.services
        metadata = services.metadata if request.include_metadata else None
        data_registry = services.registry.subset(ToolKind.REMOTE)
        return ExchangeContext(
            trace_ctx=self.trace_ctx,
            model=self.definition.gather_model,
            system_prompt=get_data_gathering_prompt(metadata, services.policy),
            messages=request.conversation(),
            provider=services.provider,
            gateway=ToolGateway(data_registry, services.policy),
            emit=self.emit,
            token=self.token,
            retry_policy=services.retry_policy,
            tools=data_registry.get_tool_definitions_for_llm(),
            max_tokens=self.definition.gather_max_tokens,
            max_turns=services.max_turns,
            turn_timeout=services.turn_timeout,
            collect=True,
            retry_label=self.gather_label,
            turn_separator=False,
        )

    def _report_context(self, request: ExchangeRequest, collected: str) -> ExchangeContext:
        services = self.services
        report_model = self.definition.report_model
        return ExchangeContext(
            trace_ctx=self.trace_ctx,
            model=report_model,
            system_prompt=get_report_generation_prompt(request.is_mobile),
            messages=[
                {"role": "user", "content": format_report_request(request.question, collected)}
            ],
            provider=services.provider,
            gateway=ToolGateway(ToolRegistry(), services.policy),
            emit=self.emit,
            token=self.token,
            retry_policy=services.retry_policy,
            tools=[],
            max_tokens=services.catalogue.max_tokens_for(report_model, services.max_tokens),
            max_turns=services.max_turns,
            turn_timeout=services.turn_timeout,
            retry_label=self.report_label,
            turn_separator=False,
        )
