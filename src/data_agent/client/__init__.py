"""Client module: display blocks, the pure stream reducer and its shell.

The CLI (``data_agent.client.cli``) is imported on demand by the console
script, not here.
"""

from data_agent.client.blocks import (
    ChainOfThoughtBlock,
    ChartBlock,
    ContentSegment,
    DisplayBlock,
    DocumentBlock,
    IntermediateBlock,
    MapBlock,
    NoticeBlock,
    SuggestionsBlock,
    TextBlock,
    blocks_to_text,
)
from data_agent.client.consumer import ServiceRequestError, StreamConsumer
from data_agent.client.reducer import StreamState, reduce, reduce_all, render
from data_agent.client.segments import parse_content_segments, split_suggestions
from data_agent.client.session import ChatSession, SessionMessage, SharedContext

__all__ = [
    # Reducer
    "StreamState",
    "reduce",
    "reduce_all",
    "render",
    # Blocks
    "DisplayBlock",
    "TextBlock",
    "ChainOfThoughtBlock",
    "ChartBlock",
    "MapBlock",
    "DocumentBlock",
    "IntermediateBlock",
    "SuggestionsBlock",
    "NoticeBlock",
    "ContentSegment",
    "blocks_to_text",
    # Segments
    "parse_content_segments",
    "split_suggestions",
    # Shell
    "StreamConsumer",
    "ServiceRequestError",
    "ChatSession",
    "SessionMessage",
    "SharedContext",
]
