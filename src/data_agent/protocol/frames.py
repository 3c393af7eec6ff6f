"""Event frames streamed from the orchestrator to the client.

Frames are a tagged union keyed by ``type``. Field names follow the wire
format (``contentId`` is the only camelCase field). Every frame may carry a
``column`` tag when several independent exchanges share one stream.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class BaseFrame(BaseModel):
    """Fields shared by every frame."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    column: str | None = Field(None, description="Fan-out column this frame belongs to")

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the wire dict, omitting unset optional fields."""
        data = self.model_dump(by_alias=True)
        return {key: value for key, value in data.items() if value is not None}

    def with_column(self, column: str) -> "BaseFrame":
        """Return a copy tagged with ``column``."""
        return self.model_copy(update={"column": column})


class TextFrame(BaseFrame):
    type: Literal["text"] = "text"
    content: str


class ToolStartFrame(BaseFrame):
    type: Literal["tool_start"] = "tool_start"
    tool: str
    args: dict[str, Any] | None = None
    sql: str | None = None


class ToolEndFrame(BaseFrame):
    type: Literal["tool_end"] = "tool_end"
    tool: str


class ChartFrame(BaseFrame):
    type: Literal["chart"] = "chart"
    spec: dict[str, Any]


class MapFrame(BaseFrame):
    type: Literal["map"] = "map"
    spec: dict[str, Any]


class ContentSavedFrame(BaseFrame):
    type: Literal["content_saved"] = "content_saved"
    content_id: str = Field(..., alias="contentId")


class IntermediateTextFrame(BaseFrame):
    """Narration from a data-gathering phase, kept apart from the final answer."""

    type: Literal["intermediate_text"] = "intermediate_text"
    content: str


class IntermediateOutputFrame(BaseFrame):
    """Complete output of a non-final phase, replacing earlier output of the same source."""

    type: Literal["intermediate_output"] = "intermediate_output"
    source: str
    content: str


class ErrorFrame(BaseFrame):
    type: Literal["error"] = "error"
    message: str


class CancelledFrame(BaseFrame):
    type: Literal["cancelled"] = "cancelled"


class DoneFrame(BaseFrame):
    type: Literal["done"] = "done"


Frame = Annotated[
    Union[
        TextFrame,
        ToolStartFrame,
        ToolEndFrame,
        ChartFrame,
        MapFrame,
        ContentSavedFrame,
        IntermediateTextFrame,
        IntermediateOutputFrame,
        ErrorFrame,
        CancelledFrame,
        DoneFrame,
    ],
    Field(discriminator="type"),
]

FRAME_ADAPTER: TypeAdapter[Frame] = TypeAdapter(Frame)

# Frames after which a sequence accepts nothing more.
TERMINAL_FRAME_TYPES = frozenset({"done", "cancelled"})


def parse_frame(data: dict[str, Any]) -> Frame:
    """Validate a decoded wire dict into a Frame.

    Raises:
        pydantic.ValidationError: If the dict is not a known frame.
    """
    return FRAME_ADAPTER.validate_python(data)


def is_terminal(frame: BaseFrame) -> bool:
    """Whether ``frame`` ends its sequence."""
    return getattr(frame, "type", None) in TERMINAL_FRAME_TYPES
