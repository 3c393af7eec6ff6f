"""Tests for the single-turn stream executor."""

import pytest

from data_agent.llm_client.types import LLMStreamError
from data_agent.orchestrator.cancellation import CancellationToken, ExchangeCancelled
from data_agent.orchestrator.turn import TurnExecutor, parse_tool_input
from tests.test_orchestrator.scripted import ScriptedProvider, text_events, tool_events

QUERY_ARGS = {"database": "eastlake", "sql": "SELECT region, count(*) FROM orders GROUP BY 1"}


def _narrated_tool_turn() -> list[dict]:
    return (
        text_events("Let me ", "check.", index=0)
        + tool_events(1, "tu_1", "query", QUERY_ARGS)
        + text_events("Done.", index=2)
        + [{"type": "message_stop"}]
    )


async def _run(provider, recorder, trace_ctx, **kwargs):
    executor = TurnExecutor(provider, recorder, trace_ctx, **kwargs)
    return await executor.run(model="m", system="s", messages=[], tools=[], max_tokens=100)


@pytest.mark.asyncio
async def test_text_streams_live_until_tool_block(recorder, trace_ctx) -> None:
    """Test pre-tool text streams live and post-tool text is sent once at the end."""
    output = await _run(ScriptedProvider(_narrated_tool_turn()), recorder, trace_ctx)

    assert [frame.content for frame in recorder.frames] == ["Let me ", "check.", "Done."]
    assert recorder.types == ["text", "text", "text"]
    assert output.text == "Let me check.Done."
    assert output.text_segments == ["Let me check.", "Done."]
    assert output.trailing_text == "Done."


@pytest.mark.asyncio
async def test_tool_call_assembled_from_fragments(recorder, trace_ctx) -> None:
    """Test JSON fragments are joined and parsed into the call input."""
    output = await _run(ScriptedProvider(_narrated_tool_turn()), recorder, trace_ctx)

    assert len(output.tool_calls) == 1
    call = output.tool_calls[0]
    assert (call.id, call.name, call.input) == ("tu_1", "query", QUERY_ARGS)
    assert call.sql == QUERY_ARGS["sql"]
    assert [block["type"] for block in output.content_blocks] == ["text", "tool_use", "text"]
    assert output.content_blocks[1] == {
        "type": "tool_use",
        "id": "tu_1",
        "name": "query",
        "input": QUERY_ARGS,
    }


@pytest.mark.asyncio
async def test_collect_mode_sends_narration_as_intermediate(recorder, trace_ctx) -> None:
    """Test collect mode only emits the pre-tool narration, as intermediate text."""
    output = await _run(ScriptedProvider(_narrated_tool_turn()), recorder, trace_ctx, collect=True)

    assert recorder.types == ["intermediate_text"]
    assert recorder.frames[0].content == "Let me check."
    assert output.trailing_text == "Done."


@pytest.mark.asyncio
async def test_collect_mode_without_tools_is_silent(recorder, trace_ctx) -> None:
    """Test a tool-less collect turn keeps its text in the output only."""
    provider = ScriptedProvider(text_events("Summary") + [{"type": "message_stop"}])

    output = await _run(provider, recorder, trace_ctx, collect=True)

    assert recorder.frames == []
    assert output.text == "Summary"
    assert output.trailing_text == "Summary"


@pytest.mark.asyncio
async def test_text_without_block_start(recorder, trace_ctx) -> None:
    """Test text deltas that arrive without a block start still count."""
    provider = ScriptedProvider([{"type": "text_delta", "text": "Hi"}, {"type": "message_stop"}])

    output = await _run(provider, recorder, trace_ctx)

    assert recorder.text == "Hi"
    assert output.content_blocks == [{"type": "text", "text": "Hi"}]


@pytest.mark.asyncio
async def test_invalid_tool_json_degrades_to_empty_input(recorder, trace_ctx) -> None:
    """Test unparseable tool input becomes an empty argument dict."""
    provider = ScriptedProvider(
        [
            {"type": "block_start", "index": 0, "block_type": "tool_use", "id": "tu_9", "name": "query"},
            {"type": "tool_input_delta", "index": 0, "partial_json": '{"sql": '},
            {"type": "block_stop", "index": 0},
            {"type": "message_stop"},
        ]
    )

    output = await _run(provider, recorder, trace_ctx)

    assert output.tool_calls[0].input == {}


@pytest.mark.asyncio
async def test_tool_delta_for_unknown_block_fails(recorder, trace_ctx) -> None:
    """Test input fragments for a block that never started break the turn."""
    provider = ScriptedProvider([{"type": "tool_input_delta", "index": 3, "partial_json": "{}"}])

    with pytest.raises(LLMStreamError, match="unknown block 3"):
        await _run(provider, recorder, trace_ctx)


@pytest.mark.asyncio
async def test_stream_errors_propagate(recorder, trace_ctx) -> None:
    """Test a failure mid-stream reaches the caller after the live text."""
    provider = ScriptedProvider(text_events("partial")[:2] + [LLMStreamError("stream error")])

    with pytest.raises(LLMStreamError):
        await _run(provider, recorder, trace_ctx)

    assert recorder.text == "partial"


@pytest.mark.asyncio
async def test_cancelled_token_stops_stream(recorder, trace_ctx) -> None:
    """Test a fired token ends the turn at the next event."""
    token = CancellationToken()
    token.cancel("user")

    with pytest.raises(ExchangeCancelled):
        await _run(ScriptedProvider(_narrated_tool_turn()), recorder, trace_ctx, token=token)

    assert recorder.frames == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", {}),
        ("   ", {}),
        ('{"sql": "SELECT 1"}', {"sql": "SELECT 1"}),
        ("[1, 2]", {}),
        ("not json", {}),
    ],
)
def test_parse_tool_input(raw: str, expected: dict) -> None:
    """Test buffered tool input parsing."""
    assert parse_tool_input(raw, "query") == expected
