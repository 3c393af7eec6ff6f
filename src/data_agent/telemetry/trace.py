"""Trace context for exchange correlation.

Every exchange (one user message and the multi-turn loop it triggers) runs
under its own trace. Fan-out columns and pipeline phases run in child spans.
"""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class TraceContext:
    """Lightweight, immutable trace context.

    Attributes:
        trace_id: Unique identifier for the exchange (UUID string).
        parent_span_id: Span this context was derived from, if any.
    """

    trace_id: str
    parent_span_id: str | None = None

    @classmethod
    def new_trace(cls) -> "TraceContext":
        """Start a new trace with a generated trace_id and no parent span."""
        return cls(trace_id=str(uuid.uuid4()))

    def new_span(self) -> tuple["TraceContext", str]:
        """Create a child span within this trace.

        Returns:
            A tuple of (child context whose parent_span_id is the new span, span_id).
        """
        span_id = str(uuid.uuid4())
        return TraceContext(trace_id=self.trace_id, parent_span_id=span_id), span_id
