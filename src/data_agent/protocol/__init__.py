"""Event protocol: typed frames, the ordered emitter and SSE encoding."""

from data_agent.protocol.codec import FrameDecoder, encode_sse
from data_agent.protocol.emitter import ColumnEmitter, EventEmitter, FrameSink
from data_agent.protocol.frames import (
    FRAME_ADAPTER,
    TERMINAL_FRAME_TYPES,
    BaseFrame,
    CancelledFrame,
    ChartFrame,
    ContentSavedFrame,
    DoneFrame,
    ErrorFrame,
    Frame,
    IntermediateOutputFrame,
    IntermediateTextFrame,
    MapFrame,
    TextFrame,
    ToolEndFrame,
    ToolStartFrame,
    is_terminal,
    parse_frame,
)

__all__ = [
    "FRAME_ADAPTER",
    "TERMINAL_FRAME_TYPES",
    "BaseFrame",
    "CancelledFrame",
    "ChartFrame",
    "ColumnEmitter",
    "ContentSavedFrame",
    "DoneFrame",
    "ErrorFrame",
    "EventEmitter",
    "Frame",
    "FrameDecoder",
    "FrameSink",
    "IntermediateOutputFrame",
    "IntermediateTextFrame",
    "MapFrame",
    "TextFrame",
    "ToolEndFrame",
    "ToolStartFrame",
    "encode_sse",
    "is_terminal",
    "parse_frame",
]
