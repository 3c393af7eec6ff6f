"""Telemetry module for structured logging and trace correlation.

This module provides:
- TraceContext for exchange correlation
- Structured logging via structlog
- Semantic event constants
"""

from data_agent.telemetry.events import (
    CLIENT_DISCONNECTED,
    CLIENT_FRAME_INVALID,
    CLIENT_STREAM_FINISHED,
    CLIENT_STREAM_STARTED,
    DOCUMENTS_PURGED,
    DOCUMENT_DETECTED,
    DOCUMENT_SAVED,
    DOCUMENT_SAVE_FAILED,
    EXCHANGE_CANCELLED,
    EXCHANGE_COMPLETED,
    EXCHANGE_FAILED,
    EXCHANGE_STARTED,
    FANOUT_COLUMN_FINISHED,
    FANOUT_STARTED,
    FRAME_DROPPED,
    MCP_CONNECTED,
    MCP_CONNECT_FAILED,
    MCP_DISCONNECTED,
    MCP_TOOL_DISCOVERED,
    MCP_TOOL_HIDDEN,
    ORCHESTRATOR_FATAL_ERROR,
    PIPELINE_PHASE_COMPLETED,
    PIPELINE_PHASE_FAILED,
    PIPELINE_PHASE_STARTED,
    POLICY_VIOLATION,
    REQUEST_RECEIVED,
    REQUEST_REJECTED,
    STATE_TRANSITION,
    STREAM_CLOSED,
    STREAM_OPENED,
    TOOL_BATCH_COMPLETED,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_INPUT_PARSE_FAILED,
    TURN_COMPLETED,
    TURN_FAILED,
    TURN_RETRY_SCHEDULED,
    TURN_STARTED,
    UNKNOWN_STATE,
)
from data_agent.telemetry.logger import configure_logging, get_logger
from data_agent.telemetry.trace import TraceContext

__all__ = [
    # Core exports
    "TraceContext",
    "get_logger",
    "configure_logging",
    # Event constants
    "REQUEST_RECEIVED",
    "REQUEST_REJECTED",
    "STREAM_OPENED",
    "STREAM_CLOSED",
    "CLIENT_DISCONNECTED",
    "EXCHANGE_STARTED",
    "EXCHANGE_COMPLETED",
    "EXCHANGE_FAILED",
    "EXCHANGE_CANCELLED",
    "STATE_TRANSITION",
    "UNKNOWN_STATE",
    "ORCHESTRATOR_FATAL_ERROR",
    "TURN_STARTED",
    "TURN_COMPLETED",
    "TURN_FAILED",
    "TURN_RETRY_SCHEDULED",
    "TOOL_INPUT_PARSE_FAILED",
    "TOOL_CALL_STARTED",
    "TOOL_CALL_COMPLETED",
    "TOOL_CALL_FAILED",
    "TOOL_BATCH_COMPLETED",
    "POLICY_VIOLATION",
    "PIPELINE_PHASE_STARTED",
    "PIPELINE_PHASE_COMPLETED",
    "PIPELINE_PHASE_FAILED",
    "FANOUT_STARTED",
    "FANOUT_COLUMN_FINISHED",
    "FRAME_DROPPED",
    "DOCUMENT_DETECTED",
    "DOCUMENT_SAVED",
    "DOCUMENT_SAVE_FAILED",
    "DOCUMENTS_PURGED",
    "MCP_CONNECTED",
    "MCP_CONNECT_FAILED",
    "MCP_DISCONNECTED",
    "MCP_TOOL_DISCOVERED",
    "MCP_TOOL_HIDDEN",
    "CLIENT_STREAM_STARTED",
    "CLIENT_STREAM_FINISHED",
    "CLIENT_FRAME_INVALID",
]
