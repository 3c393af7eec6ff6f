"""Remote tool provider integration over MCP (streamable HTTP)."""

from data_agent.mcp.client import MCPClientWrapper
from data_agent.mcp.gateway import MCPConnectionError, MCPGatewayAdapter
from data_agent.mcp.types import mcp_tool_to_definition

__all__ = [
    "MCPClientWrapper",
    "MCPConnectionError",
    "MCPGatewayAdapter",
    "mcp_tool_to_definition",
]
