"""Tests for the two-phase gather-then-report pipeline."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import orjson
import pytest

from data_agent.llm_client.types import LLMClientError
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.pipeline import (
    DATA_GATHERING_SOURCE,
    TwoPhasePipeline,
    build_collected_data,
)
from data_agent.orchestrator.types import ExchangeRequest, ExchangeState, ToolActivity, TurnOutput
from data_agent.tools.types import ToolCallRequest, ToolResult
from tests.test_orchestrator.scripted import (
    PerModelProvider,
    make_services,
    text_turn,
    tool_turn,
)

QUERY_ARGS = {"database": "eastlake", "sql": "SELECT region, count(*) FROM orders GROUP BY 1"}
REPORT = "<!DOCTYPE html><html><body>Orders by region</body></html>"
QUESTION = "How many orders per region?"


def _request(**kwargs) -> ExchangeRequest:
    return ExchangeRequest(messages=[{"role": "user", "content": QUESTION}], **kwargs)


def _happy_provider() -> PerModelProvider:
    return PerModelProvider(
        {
            "gather-model": [
                tool_turn("Querying orders by region.", ("tu_1", "query", QUERY_ARGS)),
                text_turn("**Data Summary:** north has 10 orders."),
            ],
            "report-model": [text_turn(f"```html\n{REPORT}\n```")],
        }
    )


async def _run_pipeline(provider, recorder, trace_ctx, request=None, token=None, **services):
    services = make_services(provider, **services)
    pipeline = TwoPhasePipeline(
        services,
        services.catalogue.pipelines["blended"],
        recorder,
        token or CancellationToken(),
        trace_ctx,
    )
    return await pipeline.run(request or _request())


@pytest.mark.asyncio
async def test_pipeline_frame_sequence(recorder, trace_ctx) -> None:
    """Test progress text, narration, tool frames, phase-1 output and the report."""
    store = AsyncMock()
    store.save.return_value = "report-1"

    result = await _run_pipeline(_happy_provider(), recorder, trace_ctx, store=store)

    assert recorder.types == [
        "text",
        "intermediate_text",
        "tool_start",
        "tool_end",
        "intermediate_output",
        "text",
        "text",
        "content_saved",
        "done",
    ]
    texts = [frame.content for frame in recorder.of_type("text")]
    assert texts[0] == "Gathering data with Gemini...\n\n"
    assert texts[1] == "\nGenerating report with Opus...\n\n"
    assert recorder.of_type("intermediate_text")[0].content == "Querying orders by region."
    output = recorder.of_type("intermediate_output")[0]
    assert output.source == DATA_GATHERING_SOURCE
    assert output.content == "**Data Summary:** north has 10 orders."
    assert result["state"] == ExchangeState.FINISHED
    assert result["content_id"] == "report-1"
    store.save.assert_awaited_once_with(REPORT, model="report-model")


@pytest.mark.asyncio
async def test_gather_phase_uses_data_tools_only(recorder, trace_ctx) -> None:
    """Test phase 1 sees only remote tools and the pipeline's token cap."""
    provider = _happy_provider()

    await _run_pipeline(provider, recorder, trace_ctx)

    gather_call = provider.calls("gather-model")[0]
    assert gather_call["tools"] == ["query"]
    assert gather_call["max_tokens"] == 2048
    assert "gathering data" in gather_call["system"]


@pytest.mark.asyncio
async def test_report_phase_receives_collected_data(recorder, trace_ctx) -> None:
    """Test phase 2 gets the question and findings with no tools."""
    provider = _happy_provider()

    await _run_pipeline(provider, recorder, trace_ctx)

    report_call = provider.calls("report-model")[0]
    assert report_call["tools"] == []
    assert report_call["max_tokens"] == 4000
    assert len(report_call["messages"]) == 1
    content = report_call["messages"][0]["content"]
    assert f"**User's Question:** {QUESTION}" in content
    assert "**Tool: query**" in content
    assert f"Input: {orjson.dumps(QUERY_ARGS).decode()}" in content
    assert "Result: region,orders\nnorth,10" in content
    assert "**Data Summary:** north has 10 orders." in content


@pytest.mark.asyncio
async def test_gather_failure_is_prefixed(recorder, trace_ctx) -> None:
    """Test a phase-1 failure names the gathering model and skips phase 2."""
    provider = PerModelProvider(
        {"gather-model": [LLMClientError("quota exceeded")], "report-model": []}
    )

    result = await _run_pipeline(provider, recorder, trace_ctx)

    assert recorder.types == ["text", "error", "done"]
    assert recorder.of_type("error")[0].message == "Gemini error: quota exceeded"
    assert result["state"] == ExchangeState.FAILED
    assert provider.calls("report-model") == []


@pytest.mark.asyncio
async def test_report_failure_is_prefixed(recorder, trace_ctx) -> None:
    """Test a phase-2 failure names the report model."""
    provider = PerModelProvider(
        {
            "gather-model": [text_turn("Nothing to query.")],
            "report-model": [LLMClientError("context too long")],
        }
    )

    await _run_pipeline(provider, recorder, trace_ctx)

    assert recorder.types[-2:] == ["error", "done"]
    assert recorder.of_type("error")[0].message == "Opus error: context too long"


@pytest.mark.asyncio
async def test_metadata_follows_request_flag(recorder, trace_ctx) -> None:
    """Test metadata is only injected into the gathering prompt when requested."""
    with_metadata = _happy_provider()
    without_metadata = _happy_provider()

    await _run_pipeline(with_metadata, recorder, trace_ctx, metadata="TABLE orders(region)")
    await _run_pipeline(
        without_metadata,
        recorder,
        trace_ctx,
        request=_request(include_metadata=False),
        metadata="TABLE orders(region)",
    )

    assert "TABLE orders(region)" in with_metadata.calls("gather-model")[0]["system"]
    assert "TABLE orders(region)" not in without_metadata.calls("gather-model")[0]["system"]


@pytest.mark.asyncio
async def test_cancelled_pipeline(recorder, trace_ctx) -> None:
    """Test a cancelled token ends the pipeline with a cancelled frame."""
    token = CancellationToken()
    token.cancel("user")

    result = await _run_pipeline(_happy_provider(), recorder, trace_ctx, token=token)

    assert recorder.types == ["text", "cancelled"]
    assert result["state"] == ExchangeState.CANCELLED


def test_build_collected_data_skips_failed_calls() -> None:
    """Test failed tool calls are left out of the collected data."""
    ctx = SimpleNamespace()
    ctx.turns = [TurnOutput(trailing_text=""), TurnOutput(trailing_text="Summary")]
    ctx.tool_activity = [
        ToolActivity(
            request=ToolCallRequest(id="a", name="query", input={"sql": "SELECT 1"}),
            result=ToolResult(tool_use_id="a", tool_name="query", content="1"),
            turn=0,
        ),
        ToolActivity(
            request=ToolCallRequest(id="b", name="query", input={"sql": "SELECT x"}),
            result=ToolResult(tool_use_id="b", tool_name="query", content="boom", is_error=True),
            turn=0,
        ),
    ]

    collected = build_collected_data(ctx)

    assert collected == (
        "\n"
        '\n**Tool: query**\nInput: {"sql":"SELECT 1"}\nResult: 1\n'
        "Summary\n"
    )


@pytest.mark.asyncio
async def test_empty_gather_phase_still_reports(recorder, trace_ctx) -> None:
    """Test a gathering phase with no text and no tool calls still produces a saved report."""
    provider = PerModelProvider(
        {
            "gather-model": [[{"type": "message_stop"}]],
            "report-model": [text_turn(f"Here is the report.\n```html\n{REPORT}\n```")],
        }
    )
    store = AsyncMock()
    store.save.return_value = "report-2"

    result = await _run_pipeline(provider, recorder, trace_ctx, store=store)

    assert recorder.types == ["text", "text", "text", "content_saved", "done"]
    texts = [frame.content for frame in recorder.of_type("text")]
    assert texts[0] == "Gathering data with Gemini...\n\n"
    assert texts[1] == "\nGenerating report with Opus...\n\n"
    assert recorder.of_type("content_saved")[0].content_id == "report-2"
    store.save.assert_awaited_once_with(REPORT, model="report-model")
    assert result["state"] == ExchangeState.FINISHED
    assert len(provider.calls("report-model")) == 1
