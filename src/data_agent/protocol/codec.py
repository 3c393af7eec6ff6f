"""Server-Sent-Events encoding and incremental decoding of frames.

Each frame is one SSE record: ``data: {json}\\n\\n``. The decoder tolerates
records split across network reads, CRLF line endings, comment lines and
multi-line ``data:`` fields.
"""

import codecs

import orjson
from pydantic import ValidationError

from data_agent.protocol.frames import BaseFrame, Frame, parse_frame
from data_agent.telemetry import CLIENT_FRAME_INVALID, get_logger

log = get_logger(__name__)


def encode_sse(frame: BaseFrame) -> bytes:
    """Encode a frame as one SSE record."""
    return b"data: " + orjson.dumps(frame.to_wire()) + b"\n\n"


class FrameDecoder:
    """Incremental SSE decoder.

    Usage:
        decoder = FrameDecoder()
        async for chunk in response.aiter_bytes():
            for frame in decoder.feed(chunk):
                ...
        for frame in decoder.flush():
            ...
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[Frame]:
        """Add a chunk and return every frame completed by it."""
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._buffer = (self._buffer + text).replace("\r\n", "\n")

        frames: list[Frame] = []
        while "\n\n" in self._buffer:
            record, self._buffer = self._buffer.split("\n\n", 1)
            frame = self._parse_record(record)
            if frame is not None:
                frames.append(frame)
        return frames

    def flush(self) -> list[Frame]:
        """Parse whatever remains once the stream has ended."""
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        remainder = remainder.replace("\r\n", "\n").strip("\n")
        if not remainder:
            return []
        frame = self._parse_record(remainder)
        return [frame] if frame is not None else []

    def _parse_record(self, record: str) -> Frame | None:
        data_lines = []
        for line in record.split("\n"):
            if not line or line.startswith(":"):
                continue
            if line.startswith("data:"):
                value = line[5:]
                data_lines.append(value[1:] if value.startswith(" ") else value)
        if not data_lines:
            return None

        payload = "\n".join(data_lines)
        try:
            return parse_frame(orjson.loads(payload))
        except (orjson.JSONDecodeError, ValidationError) as e:
            log.warning(CLIENT_FRAME_INVALID, payload=payload[:200], error=str(e))
            return None
