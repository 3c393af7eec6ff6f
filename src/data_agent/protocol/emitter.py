"""Ordered frame delivery from an exchange to the HTTP response.

The emitter enforces the terminal-frame contract: nothing after ``done`` or
``cancelled``, ``error`` at most once and then only ``done``. Frames that
break the contract are logged and dropped rather than raised, so a late
producer can never corrupt a finished stream.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from data_agent.protocol.codec import encode_sse
from data_agent.protocol.frames import BaseFrame, DoneFrame, ErrorFrame, is_terminal
from data_agent.telemetry import FRAME_DROPPED, TraceContext, get_logger

log = get_logger(__name__)

# Anything frames can be sent to: EventEmitter.send or a test recorder.
FrameSink = Callable[[BaseFrame], Awaitable[Any]]


class EventEmitter:
    """Queue-backed emitter for one frame sequence.

    Producers ``await send(frame)``; the HTTP layer iterates ``sse()``.
    """

    def __init__(self, trace_ctx: TraceContext | None = None) -> None:
        self.trace_ctx = trace_ctx
        self._queue: asyncio.Queue[BaseFrame | None] = asyncio.Queue()
        self._closed = False
        self._error_sent = False

    @property
    def closed(self) -> bool:
        """Whether a terminal frame has been sent."""
        return self._closed

    @property
    def error_sent(self) -> bool:
        return self._error_sent

    async def send(self, frame: BaseFrame) -> bool:
        """Send a frame, subject to the terminal-frame contract.

        Args:
            frame: Frame to send.

        Returns:
            True if the frame was accepted, False if it was dropped.
        """
        if self._closed:
            return self._drop(frame, "after_terminal")
        if isinstance(frame, ErrorFrame):
            if self._error_sent:
                return self._drop(frame, "duplicate_error")
            self._error_sent = True
        elif self._error_sent and not isinstance(frame, DoneFrame):
            return self._drop(frame, "after_error")

        await self._put(frame)
        if is_terminal(frame):
            self._closed = True
            await self._finish()
        return True

    async def close(self) -> None:
        """End the sequence without a terminal frame (producer crashed or went away)."""
        if not self._closed:
            self._closed = True
            await self._finish()

    async def forward(self, frame: BaseFrame) -> None:
        """Enqueue a frame that a child emitter has already checked."""
        if self._closed:
            self._drop(frame, "after_terminal")
            return
        await self._queue.put(frame)

    async def frames(self) -> AsyncIterator[BaseFrame]:
        """Yield frames until the sequence ends."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    async def sse(self) -> AsyncIterator[bytes]:
        """Yield frames encoded as SSE records."""
        async for frame in self.frames():
            yield encode_sse(frame)

    async def _put(self, frame: BaseFrame) -> None:
        await self._queue.put(frame)

    async def _finish(self) -> None:
        await self._queue.put(None)

    def _drop(self, frame: BaseFrame, reason: str) -> bool:
        log.warning(
            FRAME_DROPPED,
            frame_type=getattr(frame, "type", None),
            reason=reason,
            trace_id=self.trace_ctx.trace_id if self.trace_ctx else None,
        )
        return False


class ColumnEmitter(EventEmitter):
    """Per-column emitter sharing its parent's stream.

    Frames are tagged with the column name and forwarded to the parent. The
    column's own terminal frame ends the column, not the parent stream.
    """

    def __init__(
        self, parent: EventEmitter, column: str, trace_ctx: TraceContext | None = None
    ) -> None:
        super().__init__(trace_ctx or parent.trace_ctx)
        self.parent = parent
        self.column = column

    async def _put(self, frame: BaseFrame) -> None:
        await self.parent.forward(frame.with_column(self.column))

    async def _finish(self) -> None:
        return None
