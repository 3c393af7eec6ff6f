"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings so that
exchange traces can be reconstructed reliably from the JSON log files.
"""

# Service events
REQUEST_RECEIVED = "request_received"
REQUEST_REJECTED = "request_rejected"
STREAM_OPENED = "stream_opened"
STREAM_CLOSED = "stream_closed"
CLIENT_DISCONNECTED = "client_disconnected"

# Orchestrator events
EXCHANGE_STARTED = "exchange_started"
EXCHANGE_COMPLETED = "exchange_completed"
EXCHANGE_FAILED = "exchange_failed"
EXCHANGE_CANCELLED = "exchange_cancelled"
STATE_TRANSITION = "state_transition"
UNKNOWN_STATE = "unknown_state"
ORCHESTRATOR_FATAL_ERROR = "orchestrator_fatal_error"

# Turn (model call) events
TURN_STARTED = "turn_started"
TURN_COMPLETED = "turn_completed"
TURN_FAILED = "turn_failed"
TURN_RETRY_SCHEDULED = "turn_retry_scheduled"
TOOL_INPUT_PARSE_FAILED = "tool_input_parse_failed"

# Tool gateway events
TOOL_CALL_STARTED = "tool_call_started"
TOOL_CALL_COMPLETED = "tool_call_completed"
TOOL_CALL_FAILED = "tool_call_failed"
TOOL_BATCH_COMPLETED = "tool_batch_completed"
POLICY_VIOLATION = "policy_violation"

# Two-phase pipeline events
PIPELINE_PHASE_STARTED = "pipeline_phase_started"
PIPELINE_PHASE_COMPLETED = "pipeline_phase_completed"
PIPELINE_PHASE_FAILED = "pipeline_phase_failed"

# Fan-out events
FANOUT_STARTED = "fanout_started"
FANOUT_COLUMN_FINISHED = "fanout_column_finished"

# Event emitter events
FRAME_DROPPED = "frame_dropped"

# Document events
DOCUMENT_DETECTED = "document_detected"
DOCUMENT_SAVED = "document_saved"
DOCUMENT_SAVE_FAILED = "document_save_failed"
DOCUMENTS_PURGED = "documents_purged"

# MCP events
MCP_CONNECTED = "mcp_connected"
MCP_CONNECT_FAILED = "mcp_connect_failed"
MCP_DISCONNECTED = "mcp_disconnected"
MCP_TOOL_DISCOVERED = "mcp_tool_discovered"
MCP_TOOL_HIDDEN = "mcp_tool_hidden"

# Client events
CLIENT_STREAM_STARTED = "client_stream_started"
CLIENT_STREAM_FINISHED = "client_stream_finished"
CLIENT_FRAME_INVALID = "client_frame_invalid"
