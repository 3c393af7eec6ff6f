"""Shared test fixtures."""

import pytest

from data_agent.protocol.frames import BaseFrame
from data_agent.telemetry import TraceContext


class FrameRecorder:
    """Frame sink that keeps every frame it is sent."""

    def __init__(self) -> None:
        self.frames: list[BaseFrame] = []

    async def __call__(self, frame: BaseFrame) -> bool:
        self.frames.append(frame)
        return True

    @property
    def types(self) -> list[str]:
        return [frame.type for frame in self.frames]

    def of_type(self, frame_type: str) -> list[BaseFrame]:
        return [frame for frame in self.frames if frame.type == frame_type]

    @property
    def text(self) -> str:
        return "".join(frame.content for frame in self.of_type("text"))


@pytest.fixture
def recorder() -> FrameRecorder:
    """Recording frame sink."""
    return FrameRecorder()


@pytest.fixture
def trace_ctx() -> TraceContext:
    """Fresh trace context."""
    return TraceContext.new_trace()
