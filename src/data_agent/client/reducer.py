"""Pure stream reducer: fold event frames into display blocks.

``reduce(state, frame)`` returns a new StreamState and never mutates its
input. The rendered ``blocks`` are recomputed from the bookkeeping fields on
every frame, so replaying a frame that changes no bookkeeping (a second
``done``, say) yields an equal state.

Text handling:

- Live text accumulates in ``raw_text`` until a ``tool_start`` frame commits
  it to the chain-of-thought aggregate together with the tool's query. The
  live buffer is then cleared, so committed text never reappears in the
  final answer.
- Once ``raw_text`` contains the start of a generated document, everything
  from that offset on is re-rendered as the in-progress document on each
  frame, and the prose before it joins the chain of thought.
- On ``done`` the remaining live text becomes the final answer. A complete
  document in it is split out with its surrounding prose, and a trailing
  follow-up list becomes a suggestions block.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

from data_agent.client.blocks import (
    ChainOfThoughtBlock,
    ChartBlock,
    DisplayBlock,
    DocumentBlock,
    IntermediateBlock,
    MapBlock,
    NoticeBlock,
    SuggestionsBlock,
    TextBlock,
)
from data_agent.client.segments import parse_content_segments, split_suggestions
from data_agent.documents.detection import detect_document_start, extract_document_parts
from data_agent.protocol.frames import (
    BaseFrame,
    CancelledFrame,
    ChartFrame,
    ContentSavedFrame,
    DoneFrame,
    ErrorFrame,
    IntermediateOutputFrame,
    IntermediateTextFrame,
    MapFrame,
    TextFrame,
    ToolEndFrame,
    ToolStartFrame,
)

StreamStatus = Literal["streaming", "done", "cancelled"]

CANCELLED_NOTICE = "Response cancelled."


class StreamState(BaseModel):
    """Everything the reducer knows about one assistant message.

    Attributes:
        blocks: Rendered display blocks.
        raw_text: Live text since the last commit.
        committed: Chain-of-thought aggregate (narration and fenced queries).
        document_start: Offset in ``raw_text`` where a document begins.
        before_document: Prose in ``raw_text`` before the document.
        visuals: Chart and map blocks in arrival order.
        intermediates: Intermediate outputs, one per source.
        saved_id: Id of the persisted document.
        active_tools: Tools started and not yet ended.
        status: Streaming, or the terminal frame seen.
        error: Message of an ``error`` frame.
    """

    model_config = ConfigDict(frozen=True)

    blocks: tuple[DisplayBlock, ...] = ()
    raw_text: str = ""
    committed: str = ""
    document_start: int | None = None
    before_document: str = ""
    visuals: tuple[ChartBlock | MapBlock, ...] = ()
    intermediates: tuple[IntermediateBlock, ...] = ()
    saved_id: str | None = None
    active_tools: tuple[str, ...] = ()
    status: StreamStatus = "streaming"
    error: str | None = None

    @property
    def finished(self) -> bool:
        return self.status != "streaming"


def reduce(state: StreamState, frame: BaseFrame) -> StreamState:
    """Fold one frame into the state.

    Frames arriving after a terminal frame are ignored.

    Args:
        state: Current state.
        frame: Next frame.

    Returns:
        The new state (``state`` itself when nothing changes).
    """
    if state.finished:
        return state

    updates: dict[str, object]
    if isinstance(frame, TextFrame):
        updates = _on_text(state, frame.content)
    elif isinstance(frame, ToolStartFrame):
        updates = _on_tool_start(state, frame)
    elif isinstance(frame, ToolEndFrame):
        updates = {"active_tools": _without_one(state.active_tools, frame.tool)}
    elif isinstance(frame, ChartFrame):
        updates = {"visuals": (*state.visuals, ChartBlock(spec=frame.spec))}
    elif isinstance(frame, MapFrame):
        updates = {"visuals": (*state.visuals, MapBlock(spec=frame.spec))}
    elif isinstance(frame, IntermediateTextFrame):
        updates = _on_intermediate_text(state, frame.content)
    elif isinstance(frame, IntermediateOutputFrame):
        kept = tuple(block for block in state.intermediates if block.source != frame.source)
        block = IntermediateBlock(source=frame.source, content=frame.content)
        updates = {"intermediates": (*kept, block)}
    elif isinstance(frame, ContentSavedFrame):
        updates = {"saved_id": frame.content_id}
    elif isinstance(frame, ErrorFrame):
        if state.error is not None:
            return state
        updates = {"error": frame.message or "An error occurred"}
    elif isinstance(frame, DoneFrame):
        updates = {"status": "done", "active_tools": ()}
    elif isinstance(frame, CancelledFrame):
        updates = {"status": "cancelled", "active_tools": ()}
    else:
        return state

    new_state = state.model_copy(update=updates)
    return new_state.model_copy(update={"blocks": render(new_state)})


def reduce_all(frames: list[BaseFrame], state: StreamState | None = None) -> StreamState:
    """Fold a sequence of frames, starting from ``state`` or an empty state."""
    state = state or StreamState()
    for frame in frames:
        state = reduce(state, frame)
    return state


def _on_text(state: StreamState, content: str) -> dict[str, object]:
    raw_text = state.raw_text + content
    updates: dict[str, object] = {"raw_text": raw_text}
    if state.document_start is None:
        start = detect_document_start(raw_text)
        if start is not None:
            updates["document_start"] = start.offset
            updates["before_document"] = start.before
    return updates


def _commit_pending(state: StreamState) -> dict[str, object]:
    """Move live prose into the chain of thought, keeping any in-progress document."""
    if state.document_start is not None:
        # Only the prose before an in-progress document is committed
        pending = state.before_document
        remaining = state.raw_text[state.document_start :]
        document_start: int | None = 0
    else:
        pending = state.raw_text.strip()
        remaining = ""
        document_start = None

    committed = state.committed
    if pending:
        committed = _append(committed, pending) + "\n"
    return {
        "committed": committed,
        "raw_text": remaining,
        "document_start": document_start,
        "before_document": "",
    }


def _on_intermediate_text(state: StreamState, content: str) -> dict[str, object]:
    updates = _commit_pending(state)
    updates["committed"] = str(updates["committed"]) + content
    return updates


def _on_tool_start(state: StreamState, frame: ToolStartFrame) -> dict[str, object]:
    updates = _commit_pending(state)
    if frame.sql:
        updates["committed"] = _append(
            str(updates["committed"]), f"```sql\n{frame.sql.strip()}\n```\n"
        )
    updates["active_tools"] = (*state.active_tools, frame.tool)
    return updates


def _without_one(items: tuple[str, ...], item: str) -> tuple[str, ...]:
    if item not in items:
        return items
    index = items.index(item)
    return items[:index] + items[index + 1 :]


def _append(narration: str, text: str) -> str:
    if not text:
        return narration
    if narration and not narration.endswith("\n"):
        narration += "\n"
    return narration + text


def _document_body(text: str) -> str:
    """Strip the opening fence (and a closing one, if present) from streaming text."""
    body = text
    if body.startswith("```"):
        newline = body.find("\n")
        body = body[newline + 1 :] if newline != -1 else ""
    closing = body.find("```")
    if closing != -1:
        body = body[:closing]
    return body.strip()


def _chain_of_thought(text: str, active: bool) -> list[DisplayBlock]:
    segments = parse_content_segments(text)
    if not segments:
        return []
    return [ChainOfThoughtBlock(segments=tuple(segments), active=active)]


def _answer_blocks(text: str) -> list[DisplayBlock]:
    body, items = split_suggestions(text.strip())
    blocks: list[DisplayBlock] = []
    if body.strip():
        blocks.append(TextBlock(text=body.strip()))
    if items:
        blocks.append(SuggestionsBlock(items=tuple(items)))
    return blocks


def render(state: StreamState) -> tuple[DisplayBlock, ...]:
    """Compute the display blocks for ``state``.

    Order: chain of thought, intermediate outputs, charts and maps, the
    document, the answer text, suggestions, then any notice.
    """
    streaming = state.status == "streaming"
    narration = state.committed
    document: DocumentBlock | None = None
    answer: list[DisplayBlock] = []

    if streaming:
        if state.document_start is not None:
            narration = _append(narration, state.before_document)
            document = DocumentBlock(
                content=_document_body(state.raw_text[state.document_start :]),
                is_complete=False,
                saved_id=state.saved_id,
            )
        elif state.raw_text.strip():
            answer = [TextBlock(text=state.raw_text)]
    else:
        parts = extract_document_parts(state.raw_text) if state.raw_text else None
        if parts is not None:
            narration = _append(narration, parts.before)
            document = DocumentBlock(content=parts.document, is_complete=True, saved_id=state.saved_id)
            answer = _answer_blocks(parts.after)
        elif state.document_start is not None:
            # Stream ended inside the document
            narration = _append(narration, state.before_document)
            document = DocumentBlock(
                content=_document_body(state.raw_text[state.document_start :]),
                is_complete=True,
                saved_id=state.saved_id,
            )
        else:
            answer = _answer_blocks(state.raw_text)

    blocks: list[DisplayBlock] = []
    blocks.extend(_chain_of_thought(narration, active=streaming))
    blocks.extend(state.intermediates)
    blocks.extend(state.visuals)
    if document is not None:
        blocks.append(document)
    blocks.extend(answer)
    if state.error is not None:
        blocks.append(NoticeBlock(level="error", message=state.error))
    if state.status == "cancelled":
        blocks.append(NoticeBlock(level="cancelled", message=CANCELLED_NOTICE))
    return tuple(blocks)
