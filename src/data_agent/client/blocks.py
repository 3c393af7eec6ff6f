"""Display blocks: the typed, renderable content of one assistant message.

One assistant message is an ordered tuple of blocks. The reducer rebuilds the
whole tuple on every frame, so blocks are frozen.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ContentSegment(BaseModel):
    """One prose or query segment of chain-of-thought text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text", "sql"]
    content: str


class _Block(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextBlock(_Block):
    type: Literal["text"] = "text"
    text: str


class ChainOfThoughtBlock(_Block):
    """Narration and the queries run while producing the answer.

    Attributes:
        segments: Prose and query segments in arrival order.
        active: Whether the exchange is still running.
    """

    type: Literal["chain_of_thought"] = "chain_of_thought"
    segments: tuple[ContentSegment, ...] = ()
    active: bool = False

    @property
    def narration(self) -> str:
        """Prose segments joined by blank lines."""
        return "\n\n".join(s.content for s in self.segments if s.type == "text")

    @property
    def sql_statements(self) -> list[str]:
        """Query segments in order."""
        return [s.content for s in self.segments if s.type == "sql"]


class ChartBlock(_Block):
    type: Literal["chart"] = "chart"
    spec: dict[str, Any]


class MapBlock(_Block):
    type: Literal["map"] = "map"
    spec: dict[str, Any]


class DocumentBlock(_Block):
    """A generated HTML document, possibly still streaming."""

    type: Literal["document"] = "document"
    content: str
    is_complete: bool = False
    saved_id: str | None = None


class IntermediateBlock(_Block):
    """Output of a non-final pipeline phase."""

    type: Literal["intermediate"] = "intermediate"
    source: str
    content: str


class SuggestionsBlock(_Block):
    type: Literal["suggestions"] = "suggestions"
    items: tuple[str, ...]


class NoticeBlock(_Block):
    """An error or cancellation note appended after the content."""

    type: Literal["notice"] = "notice"
    level: Literal["error", "cancelled"]
    message: str


DisplayBlock = Annotated[
    Union[
        TextBlock,
        ChainOfThoughtBlock,
        ChartBlock,
        MapBlock,
        DocumentBlock,
        IntermediateBlock,
        SuggestionsBlock,
        NoticeBlock,
    ],
    Field(discriminator="type"),
]


def blocks_to_text(blocks: tuple[Any, ...] | list[Any]) -> str:
    """Flatten an assistant message to plain text for the next request.

    Prose, narration, intermediate output and documents are kept; charts,
    maps, suggestions and notices are dropped.
    """
    parts: list[str] = []
    for block in blocks:
        if isinstance(block, TextBlock) and block.text:
            parts.append(block.text)
        elif isinstance(block, ChainOfThoughtBlock):
            for segment in block.segments:
                if segment.type == "sql":
                    parts.append(f"```sql\n{segment.content}\n```")
                else:
                    parts.append(segment.content)
        elif isinstance(block, IntermediateBlock) and block.content:
            parts.append(block.content)
        elif isinstance(block, DocumentBlock) and block.content:
            parts.append(block.content)
    return "\n\n".join(parts)
