"""Tool gateway module.

Tool definitions, the registry, synthetic visualization tools, remote access
checks and the gateway that executes calls.
"""

from data_agent.tools.access import PermissionResult, check_tool_access, is_source_allowed
from data_agent.tools.gateway import ToolGateway
from data_agent.tools.registry import RemoteExecutor, ToolRegistry
from data_agent.tools.synthetic import (
    CHART_ACK,
    CHART_TOOL,
    CHART_TOOL_NAME,
    MAP_ACK,
    MAP_TOOL,
    MAP_TOOL_NAME,
    ChartArgs,
    MapArgs,
    register_synthetic_tools,
)
from data_agent.tools.types import (
    ToolCallRequest,
    ToolDefinition,
    ToolExecutionError,
    ToolKind,
    ToolResult,
)

__all__ = [
    "CHART_ACK",
    "CHART_TOOL",
    "CHART_TOOL_NAME",
    "MAP_ACK",
    "MAP_TOOL",
    "MAP_TOOL_NAME",
    "ChartArgs",
    "MapArgs",
    "PermissionResult",
    "RemoteExecutor",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolExecutionError",
    "ToolGateway",
    "ToolKind",
    "ToolRegistry",
    "ToolResult",
    "check_tool_access",
    "is_source_allowed",
    "register_synthetic_tools",
]
