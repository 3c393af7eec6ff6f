"""Type conversions between MCP and gateway tool formats."""

from typing import Any

from data_agent.tools.types import ToolDefinition, ToolKind


def mcp_tool_to_definition(mcp_tool: dict[str, Any]) -> ToolDefinition:
    """Convert an MCP tool schema to a ToolDefinition.

    Args:
        mcp_tool: MCP tool schema from list_tools().
        Format: {
            "name": "query",
            "description": "Run a read-only SQL query",
            "inputSchema": {
                "type": "object",
                "properties": {...},
                "required": [...]
            }
        }

    Returns:
        Remote ToolDefinition. The name is kept as advertised and the input
        schema is passed through unchanged.
    """
    input_schema = mcp_tool.get("inputSchema") or {"type": "object", "properties": {}}
    return ToolDefinition(
        name=mcp_tool.get("name", ""),
        description=mcp_tool.get("description") or "",
        input_schema=input_schema,
        kind=ToolKind.REMOTE,
    )
