"""Tests for fan-out over independent columns."""

import pytest

from data_agent.llm_client.types import LLMClientError
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.routing import run_exchange
from data_agent.orchestrator.types import ExchangeRequest, ExchangeState
from data_agent.protocol.emitter import EventEmitter
from tests.test_orchestrator.scripted import PerModelProvider, make_services, text_turn

QUESTION = {"role": "user", "content": "Compare regions"}


def _provider(solo_script=None) -> PerModelProvider:
    return PerModelProvider(
        {
            "solo-model": [solo_script or text_turn("Solo answer.")],
            "gather-model": [text_turn("Gathered.")],
            "report-model": [text_turn("Report.")],
        }
    )


async def _fan_out(provider, trace_ctx, token=None, **request_options):
    emitter = EventEmitter(trace_ctx)
    request = ExchangeRequest(messages=[QUESTION], model="head-to-head", **request_options)
    result = await run_exchange(
        request, make_services(provider), emitter, token or CancellationToken(), trace_ctx
    )
    frames = [frame async for frame in emitter.frames()]
    return result, frames


def _column(frames, name: str) -> list[str]:
    return [frame.type for frame in frames if frame.column == name]


@pytest.mark.asyncio
async def test_columns_are_tagged_and_parent_ends_once(trace_ctx) -> None:
    """Test each column keeps its own sequence and the parent ends untagged."""
    result, frames = await _fan_out(_provider(), trace_ctx)

    assert _column(frames, "solo") == ["text", "done"]
    assert _column(frames, "blended") == ["text", "intermediate_output", "text", "text", "done"]
    untagged = [frame for frame in frames if frame.column is None]
    assert [frame.type for frame in untagged] == ["done"]
    assert frames[-1] is untagged[0]
    assert result["state"] == ExchangeState.FINISHED
    assert set(result["columns"]) == {"solo", "blended"}
    assert result["columns"]["solo"]["final_text"] == "Solo answer."


@pytest.mark.asyncio
async def test_column_failure_does_not_affect_others(trace_ctx) -> None:
    """Test one column's error stays within that column."""
    provider = _provider(solo_script=LLMClientError("invalid api key"))

    result, frames = await _fan_out(provider, trace_ctx)

    assert _column(frames, "solo") == ["error", "done"]
    error = next(frame for frame in frames if frame.type == "error")
    assert error.message == "invalid api key"
    assert _column(frames, "blended")[-1] == "done"
    assert frames[-1].type == "done"
    assert frames[-1].column is None
    assert result["columns"]["solo"]["state"] == ExchangeState.FAILED
    assert result["columns"]["blended"]["state"] == ExchangeState.FINISHED


@pytest.mark.asyncio
async def test_column_messages_override_shared_conversation(trace_ctx) -> None:
    """Test a column with its own history uses it instead of the shared messages."""
    history = [
        {"role": "user", "content": "Orders by region"},
        {"role": "assistant", "content": "North leads."},
        QUESTION,
    ]
    provider = _provider()

    await _fan_out(provider, trace_ctx, column_messages={"solo": history})

    assert provider.calls("solo-model")[0]["messages"] == history
    assert provider.calls("gather-model")[0]["messages"] == [QUESTION]


@pytest.mark.asyncio
async def test_cancellation_reaches_every_column(trace_ctx) -> None:
    """Test a cancelled parent cancels every column and ends with cancelled."""
    token = CancellationToken()
    token.cancel("client_disconnected")

    result, frames = await _fan_out(_provider(), trace_ctx, token=token)

    assert _column(frames, "solo") == ["cancelled"]
    assert _column(frames, "blended") == ["text", "cancelled"]
    assert frames[-1].type == "cancelled"
    assert frames[-1].column is None
    assert result["state"] == ExchangeState.CANCELLED
