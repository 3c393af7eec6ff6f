"""Conversation orchestrator state machine.

This module implements the exchange loop as an explicit state machine:

    AWAITING_TURN -> STREAMING -> TOOL_PHASE -> AWAITING_TURN -> ... -> FINISHED

Each state has a step function that takes the mutable ExchangeContext and
returns the next state. FAILED and CANCELLED are terminal as well.

``execute_exchange`` only drives the states. Terminal frames (``done``,
``error``, ``cancelled``) and document persistence belong to the callers:
``run_standalone`` here, and the two-phase pipeline, which runs two
exchanges back to back under one frame sequence.
"""

import asyncio
import time

from data_agent.documents.detection import contains_document, extract_document
from data_agent.documents.store import DocumentStore, DocumentStoreError
from data_agent.llm_client.types import LLMClientError, LLMTimeout
from data_agent.orchestrator.cancellation import ExchangeCancelled
from data_agent.orchestrator.retry import RetryState
from data_agent.orchestrator.turn import TurnExecutor
from data_agent.orchestrator.types import (
    TERMINAL_STATES,
    ExchangeContext,
    ExchangeResult,
    ExchangeState,
    ExchangeTimeoutError,
    MaxTurnsExceededError,
    OrchestratorError,
    RetryExhaustedError,
    ToolActivity,
    TurnOutput,
)
from data_agent.protocol.emitter import FrameSink
from data_agent.protocol.frames import (
    CancelledFrame,
    ContentSavedFrame,
    DoneFrame,
    ErrorFrame,
    TextFrame,
    ToolEndFrame,
    ToolStartFrame,
)
from data_agent.security import sanitize_error_message
from data_agent.telemetry import (
    DOCUMENT_DETECTED,
    DOCUMENT_SAVE_FAILED,
    EXCHANGE_CANCELLED,
    EXCHANGE_COMPLETED,
    EXCHANGE_FAILED,
    EXCHANGE_STARTED,
    ORCHESTRATOR_FATAL_ERROR,
    STATE_TRANSITION,
    TOOL_BATCH_COMPLETED,
    TURN_COMPLETED,
    TURN_FAILED,
    TURN_RETRY_SCHEDULED,
    TURN_STARTED,
    UNKNOWN_STATE,
    TraceContext,
    get_logger,
)
from data_agent.tools.types import ToolCallRequest, ToolResult

log = get_logger(__name__)

CANCELLED_TOOL_MESSAGE = "Tool call cancelled before it completed."


async def execute_exchange(ctx: ExchangeContext) -> ExchangeContext:
    """Main execution loop: iterate states until terminal.

    Args:
        ctx: Exchange context holding the conversation and its collaborators.

    Returns:
        The same context, in a terminal state. ``ctx.error`` is set when the
        state is FAILED.
    """
    state = ctx.state

    log.info(
        EXCHANGE_STARTED,
        trace_id=ctx.trace_ctx.trace_id,
        model=ctx.model,
        messages=len(ctx.messages),
        tools=len(ctx.tools),
        collect=ctx.collect,
    )

    # Step function registry
    step_functions = {
        ExchangeState.AWAITING_TURN: step_awaiting_turn,
        ExchangeState.STREAMING: step_streaming,
        ExchangeState.TOOL_PHASE: step_tool_phase,
    }

    try:
        while state not in TERMINAL_STATES:
            log.debug(STATE_TRANSITION, trace_id=ctx.trace_ctx.trace_id, from_state=state.value)
            ctx.state = state

            step_func = step_functions.get(state)
            if not step_func:
                log.error(UNKNOWN_STATE, trace_id=ctx.trace_ctx.trace_id, state=state.value)
                ctx.error = ValueError(f"Unknown state: {state}")
                state = ExchangeState.FAILED
                break

            state = await step_func(ctx)

    except ExchangeCancelled:
        state = ExchangeState.CANCELLED
    except OrchestratorError as e:
        ctx.error = e
        state = ExchangeState.FAILED

    ctx.state = state

    if state == ExchangeState.FINISHED:
        log.info(
            EXCHANGE_COMPLETED,
            trace_id=ctx.trace_ctx.trace_id,
            turns=ctx.turn_count,
            tool_calls=len(ctx.tool_activity),
            reply_length=len(ctx.final_text),
        )
    elif state == ExchangeState.CANCELLED:
        log.info(
            EXCHANGE_CANCELLED,
            trace_id=ctx.trace_ctx.trace_id,
            turns=ctx.turn_count,
            reason=ctx.token.reason,
        )
    else:
        log.warning(
            EXCHANGE_FAILED,
            trace_id=ctx.trace_ctx.trace_id,
            turns=ctx.turn_count,
            error=str(ctx.error) if ctx.error else "Unknown error",
            error_type=type(ctx.error).__name__ if ctx.error else None,
        )

    return ctx


async def step_awaiting_turn(ctx: ExchangeContext) -> ExchangeState:
    """Prepare the next model call.

    Raises:
        MaxTurnsExceededError: If the turn ceiling has been reached.
        ExchangeCancelled: If the token has fired.
    """
    ctx.token.raise_if_cancelled()

    if ctx.turn_count >= ctx.max_turns:
        raise MaxTurnsExceededError(f"Exceeded maximum of {ctx.max_turns} model turns")

    if ctx.turn_separator and ctx.turn_count > 0 and ctx.retry.attempt == 0:
        await ctx.emit(TextFrame(content="\n\n"))

    return ExchangeState.STREAMING


async def step_streaming(ctx: ExchangeContext) -> ExchangeState:
    """Run one model call, retrying transient failures.

    A failed attempt is discarded entirely; the retry re-issues the same
    request with the same conversation.
    """
    log.info(
        TURN_STARTED,
        trace_id=ctx.trace_ctx.trace_id,
        model=ctx.model,
        turn=ctx.turn_count + 1,
        attempt=ctx.retry.attempt,
    )
    start_time = time.monotonic()
    executor = TurnExecutor(
        ctx.provider, ctx.emit, ctx.trace_ctx, token=ctx.token, collect=ctx.collect
    )

    try:
        async with asyncio.timeout(ctx.turn_timeout):
            output = await ctx.token.run(
                executor.run(
                    model=ctx.model,
                    system=ctx.system_prompt,
                    messages=ctx.messages,
                    tools=ctx.tools,
                    max_tokens=ctx.max_tokens,
                )
            )
    except ExchangeCancelled:
        raise
    except TimeoutError:
        error: Exception = LLMTimeout(f"Model turn exceeded {ctx.turn_timeout:g}s timeout")
        return await _handle_turn_failure(ctx, error)
    except Exception as e:
        return await _handle_turn_failure(ctx, e)

    ctx.last_turn = output
    ctx.turns.append(output)
    ctx.turn_count += 1
    ctx.retry = RetryState()

    log.info(
        TURN_COMPLETED,
        trace_id=ctx.trace_ctx.trace_id,
        turn=ctx.turn_count,
        tool_calls=len(output.tool_calls),
        text_length=len(output.text),
        latency_ms=(time.monotonic() - start_time) * 1000,
    )
    return ExchangeState.TOOL_PHASE


async def _handle_turn_failure(ctx: ExchangeContext, error: Exception) -> ExchangeState:
    policy = ctx.retry_policy
    if policy.should_retry(ctx.retry, error):
        ctx.retry.attempt += 1
        ctx.retry.last_error = error
        delay = policy.delay_for(ctx.retry.attempt)
        log.warning(
            TURN_RETRY_SCHEDULED,
            trace_id=ctx.trace_ctx.trace_id,
            attempt=ctx.retry.attempt,
            max_attempts=policy.max_attempts,
            delay_seconds=delay,
            error=str(error),
            error_type=type(error).__name__,
        )
        await ctx.emit(TextFrame(content=policy.notice(ctx.retry.attempt, ctx.retry_label)))
        await ctx.token.sleep(delay)
        return ExchangeState.AWAITING_TURN

    log.error(
        TURN_FAILED,
        trace_id=ctx.trace_ctx.trace_id,
        attempt=ctx.retry.attempt,
        error=str(error),
        error_type=type(error).__name__,
    )
    if policy.is_transient(error):
        raise RetryExhaustedError(str(error) or type(error).__name__) from error
    ctx.error = error
    return ExchangeState.FAILED


async def step_tool_phase(ctx: ExchangeContext) -> ExchangeState:
    """Execute every tool call of the last turn and extend the conversation.

    With no tool calls the exchange is finished.
    """
    turn = ctx.last_turn
    if turn is None or not turn.tool_calls:
        return ExchangeState.FINISHED

    for call in turn.tool_calls:
        await ctx.emit(ToolStartFrame(tool=call.name, args=call.input, sql=call.sql))

    results = await _run_tool_batch(ctx, turn)

    for call in turn.tool_calls:
        await ctx.emit(ToolEndFrame(tool=call.name))

    _append_tool_round(ctx, turn, results)
    return ExchangeState.AWAITING_TURN


async def _run_tool_batch(ctx: ExchangeContext, turn: TurnOutput) -> list[ToolResult]:
    """Run the turn's calls concurrently and return results in call order.

    One failing call never cancels its siblings. When the token fires, calls
    that already finished keep their results, the rest are answered with a
    cancellation error, and the round is still recorded before
    ExchangeCancelled propagates.
    """
    start_time = time.monotonic()
    tasks = [
        asyncio.ensure_future(ctx.gateway.execute(call, ctx.emit, ctx.trace_ctx))
        for call in turn.tool_calls
    ]
    try:
        await ctx.token.run(asyncio.gather(*tasks))
    except ExchangeCancelled:
        results = [
            _settled_result(task, call) for task, call in zip(tasks, turn.tool_calls, strict=True)
        ]
        _append_tool_round(ctx, turn, results)
        raise

    results = [task.result() for task in tasks]
    log.info(
        TOOL_BATCH_COMPLETED,
        trace_id=ctx.trace_ctx.trace_id,
        count=len(results),
        failed=sum(1 for result in results if result.is_error),
        latency_ms=(time.monotonic() - start_time) * 1000,
    )
    return results


def _settled_result(task: asyncio.Future[ToolResult], call: ToolCallRequest) -> ToolResult:
    if task.done() and not task.cancelled() and task.exception() is None:
        return task.result()
    return ToolResult(
        tool_use_id=call.id,
        tool_name=call.name,
        content=CANCELLED_TOOL_MESSAGE,
        is_error=True,
    )


def _append_tool_round(
    ctx: ExchangeContext, turn: TurnOutput, results: list[ToolResult]
) -> None:
    """Append the assistant turn and its answering tool results."""
    ctx.messages.append({"role": "assistant", "content": list(turn.content_blocks)})
    ctx.messages.append({"role": "user", "content": [result.to_block() for result in results]})
    turn_index = len(ctx.turns) - 1
    for call, result in zip(turn.tool_calls, results, strict=True):
        ctx.tool_activity.append(ToolActivity(request=call, result=result, turn=turn_index))


async def persist_document(
    text: str,
    store: DocumentStore | None,
    emit: FrameSink,
    trace_ctx: TraceContext,
    model: str | None = None,
) -> str | None:
    """Save a generated document found in ``text`` and announce it.

    A failed save is logged and otherwise ignored.

    Returns:
        The document id, or None if nothing was saved.
    """
    if store is None or not contains_document(text):
        return None
    document = extract_document(text)
    if not document:
        return None

    log.info(DOCUMENT_DETECTED, trace_id=trace_ctx.trace_id, length=len(document), model=model)
    try:
        content_id = await store.save(document, model=model)
    except DocumentStoreError as e:
        log.error(DOCUMENT_SAVE_FAILED, trace_id=trace_ctx.trace_id, error=str(e))
        return None

    await emit(ContentSavedFrame(content_id=content_id))
    return content_id


def error_message(error: Exception | None) -> str:
    """Text carried by an ``error`` frame for a failed exchange.

    Provider and orchestration errors keep their own message; anything else
    is an unexpected failure and is sanitized.
    """
    if error is None:
        return "Unknown error"
    if isinstance(error, (OrchestratorError, LLMClientError)):
        return str(error) or type(error).__name__
    return sanitize_error_message(error)


async def emit_terminal(
    ctx: ExchangeContext, emit: FrameSink, message_prefix: str = ""
) -> None:
    """Send the terminal frame(s) matching the context's final state."""
    if ctx.state == ExchangeState.CANCELLED:
        await emit(CancelledFrame())
        return
    if ctx.state == ExchangeState.FAILED:
        await emit(ErrorFrame(message=f"{message_prefix}{error_message(ctx.error)}"))
    await emit(DoneFrame())


async def run_standalone(
    ctx: ExchangeContext,
    store: DocumentStore | None = None,
    exchange_timeout: float | None = None,
) -> ExchangeResult:
    """Run a single-model exchange end to end, including terminal frames.

    This is the public entry point for standalone models. It never raises:
    every failure ends the frame sequence with ``error`` then ``done``.

    Args:
        ctx: Exchange context.
        store: Document store for generated reports, or None to skip saving.
        exchange_timeout: Upper bound in seconds for the whole exchange.

    Returns:
        ExchangeResult summary.
    """
    content_id: str | None = None
    try:
        async with asyncio.timeout(exchange_timeout):
            await execute_exchange(ctx)
            if ctx.state == ExchangeState.FINISHED:
                content_id = await persist_document(
                    ctx.final_text, store, ctx.emit, ctx.trace_ctx, model=ctx.model
                )
    except TimeoutError:
        ctx.error = ExchangeTimeoutError(f"Exchange exceeded {exchange_timeout:g}s timeout")
        ctx.state = ExchangeState.FAILED
        log.warning(EXCHANGE_FAILED, trace_id=ctx.trace_ctx.trace_id, error=str(ctx.error))
    except Exception as e:
        log.critical(ORCHESTRATOR_FATAL_ERROR, trace_id=ctx.trace_ctx.trace_id, exc_info=True)
        ctx.error = e
        ctx.state = ExchangeState.FAILED

    await emit_terminal(ctx, ctx.emit)
    return build_result(ctx, content_id)


def build_result(ctx: ExchangeContext, content_id: str | None = None) -> ExchangeResult:
    """Summarize a finished context."""
    return {
        "state": ctx.state,
        "final_text": ctx.final_text,
        "content_id": content_id,
        "turns": ctx.turn_count,
        "error": error_message(ctx.error) if ctx.state == ExchangeState.FAILED else None,
        "trace_id": ctx.trace_ctx.trace_id,
    }
