"""Tests for the pure stream reducer."""

from data_agent.client.blocks import (
    ChainOfThoughtBlock,
    ChartBlock,
    ContentSegment,
    DocumentBlock,
    IntermediateBlock,
    NoticeBlock,
    SuggestionsBlock,
    TextBlock,
)
from data_agent.client.reducer import CANCELLED_NOTICE, StreamState, reduce, reduce_all
from data_agent.protocol.frames import (
    CancelledFrame,
    ChartFrame,
    ContentSavedFrame,
    DoneFrame,
    ErrorFrame,
    IntermediateOutputFrame,
    IntermediateTextFrame,
    TextFrame,
    ToolEndFrame,
    ToolStartFrame,
)

DOCUMENT = "<!DOCTYPE html><html><body>Hi</body></html>"
CHART_SPEC = {"type": "bar", "title": "Orders", "data": [{"r": "north", "n": 10}], "xKey": "r", "yKey": "n"}


def test_plain_answer() -> None:
    """Test text streams into one answer block."""
    streaming = reduce_all([TextFrame(content="Hello "), TextFrame(content="world")])
    finished = reduce(streaming, DoneFrame())

    assert streaming.blocks == (TextBlock(text="Hello world"),)
    assert finished.blocks == (TextBlock(text="Hello world"),)
    assert finished.status == "done"


def test_tool_start_commits_narration_and_query() -> None:
    """Test narration and the tool's query move into the chain of thought."""
    during = reduce_all(
        [
            TextFrame(content="Let me check."),
            ToolStartFrame(tool="query", sql="SELECT count(*) FROM orders"),
        ]
    )
    final = reduce_all(
        [ToolEndFrame(tool="query"), TextFrame(content="\n\n"), TextFrame(content="Ten orders."), DoneFrame()],
        during,
    )

    assert during.raw_text == ""
    assert during.active_tools == ("query",)
    assert during.blocks[0].active is True
    assert final.blocks == (
        ChainOfThoughtBlock(
            segments=(
                ContentSegment(type="text", content="Let me check."),
                ContentSegment(type="sql", content="SELECT count(*) FROM orders"),
            ),
            active=False,
        ),
        TextBlock(text="Ten orders."),
    )
    assert final.active_tools == ()


def test_streaming_document() -> None:
    """Test a document renders while streaming and completes on done."""
    partial = reduce_all(
        [TextFrame(content="Here is the report.\n```html\n<!DOCTYPE html><html>")]
    )

    assert partial.blocks == (
        ChainOfThoughtBlock(
            segments=(ContentSegment(type="text", content="Here is the report."),), active=True
        ),
        DocumentBlock(content="<!DOCTYPE html><html>", is_complete=False),
    )

    final = reduce_all(
        [
            TextFrame(content="<body>Hi</body></html>\n```\n\nSuggested follow-ups:\n- Show trend"),
            ContentSavedFrame(content_id="doc-1"),
            DoneFrame(),
        ],
        partial,
    )

    assert final.blocks == (
        ChainOfThoughtBlock(
            segments=(ContentSegment(type="text", content="Here is the report."),), active=False
        ),
        DocumentBlock(content=DOCUMENT, is_complete=True, saved_id="doc-1"),
        SuggestionsBlock(items=("Show trend",)),
    )


def test_document_cut_off_by_done() -> None:
    """Test a stream ending inside a document still yields the document."""
    state = reduce_all([TextFrame(content="```html\n<!DOCTYPE html><html><body>"), DoneFrame()])

    assert state.blocks == (DocumentBlock(content="<!DOCTYPE html><html><body>", is_complete=True),)


def test_pipeline_and_visual_ordering() -> None:
    """Test chain of thought, intermediate output, charts then the answer."""
    state = reduce_all(
        [
            TextFrame(content="Gathering data with Gemini...\n\n"),
            IntermediateTextFrame(content="Querying orders."),
            ToolStartFrame(tool="query", sql="SELECT 1"),
            ToolEndFrame(tool="query"),
            ChartFrame(spec=CHART_SPEC),
            IntermediateOutputFrame(source="data_gathering", content="Summary"),
            TextFrame(content="Final answer"),
            DoneFrame(),
        ]
    )

    assert [block.type for block in state.blocks] == [
        "chain_of_thought",
        "intermediate",
        "chart",
        "text",
    ]
    assert state.blocks[0].narration == "Gathering data with Gemini...\nQuerying orders."
    assert state.blocks[0].sql_statements == ["SELECT 1"]
    assert state.blocks[1] == IntermediateBlock(source="data_gathering", content="Summary")
    assert state.blocks[2] == ChartBlock(spec=CHART_SPEC)


def test_intermediate_output_replaced_per_source() -> None:
    """Test a second output from the same source replaces the first."""
    state = reduce_all(
        [
            IntermediateOutputFrame(source="data_gathering", content="old"),
            IntermediateOutputFrame(source="data_gathering", content="new"),
        ]
    )

    assert state.intermediates == (IntermediateBlock(source="data_gathering", content="new"),)


def test_error_notice() -> None:
    """Test an error keeps partial text and only the first error counts."""
    state = reduce_all(
        [
            TextFrame(content="partial"),
            ErrorFrame(message="Gemini error: quota exceeded"),
            ErrorFrame(message="second"),
            DoneFrame(),
        ]
    )

    assert state.blocks == (
        TextBlock(text="partial"),
        NoticeBlock(level="error", message="Gemini error: quota exceeded"),
    )


def test_cancelled_notice_and_late_frames() -> None:
    """Test cancellation keeps partial output and ignores later frames."""
    cancelled = reduce_all([TextFrame(content="partial"), CancelledFrame()])

    assert cancelled.blocks == (
        TextBlock(text="partial"),
        NoticeBlock(level="cancelled", message=CANCELLED_NOTICE),
    )
    assert reduce(cancelled, TextFrame(content="late")) is cancelled


def test_replaying_done_is_stable() -> None:
    """Test a second done leaves the state unchanged."""
    done = reduce_all([TextFrame(content="Answer"), DoneFrame()])

    assert reduce(done, DoneFrame()) == done


def test_reduce_does_not_mutate_input() -> None:
    """Test the previous state is left untouched."""
    before = StreamState()
    after = reduce(before, TextFrame(content="x"))

    assert before.raw_text == ""
    assert before.blocks == ()
    assert after.raw_text == "x"


def test_tool_end_removes_one_instance() -> None:
    """Test parallel calls of one tool are tracked individually."""
    state = reduce_all(
        [
            ToolStartFrame(tool="query"),
            ToolStartFrame(tool="query"),
            ToolEndFrame(tool="query"),
        ]
    )

    assert state.active_tools == ("query",)


def test_live_text_committed_before_intermediate_narration() -> None:
    """Test text streamed before intermediate narration keeps its place in the chain of thought."""
    state = reduce_all(
        [
            TextFrame(content="Gathering data with Gemini...\n\n"),
            IntermediateTextFrame(content="Step A narration."),
            ToolStartFrame(tool="query", sql="SELECT region FROM orders"),
            ToolEndFrame(tool="query"),
            IntermediateTextFrame(content="Step B narration."),
        ]
    )

    chain = state.blocks[0]
    assert isinstance(chain, ChainOfThoughtBlock)
    narration = chain.narration
    assert narration.index("Gathering data with Gemini...") < narration.index("Step A narration.")
    assert [segment.type for segment in chain.segments] == ["text", "sql", "text"]
    assert chain.segments[-1].content == "Step B narration."
    assert state.raw_text == ""
