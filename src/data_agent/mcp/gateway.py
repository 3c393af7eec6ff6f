"""MCP adapter registering remote data tools with a ToolRegistry."""

from typing import Any

from data_agent.config import settings
from data_agent.governance.models import AccessPolicy
from data_agent.mcp.client import MCPClientWrapper
from data_agent.mcp.types import mcp_tool_to_definition
from data_agent.telemetry import MCP_TOOL_DISCOVERED, MCP_TOOL_HIDDEN, get_logger
from data_agent.tools.registry import RemoteExecutor, ToolRegistry

log = get_logger(__name__)


class MCPConnectionError(Exception):
    """Raised when the remote tool provider cannot be reached or queried."""

    pass


class MCPGatewayAdapter:
    """Connects to the remote tool provider and registers its tools.

    One adapter serves one exchange: the service opens a fresh connection per
    request. Unlike a best-effort integration, a failed connection is an error
    here, since an exchange without its data tools cannot answer anything.

    Usage:
        registry = ToolRegistry()
        async with MCPGatewayAdapter(registry, policy) as adapter:
            ...  # tool calls go through the registry's executors
    """

    def __init__(
        self,
        registry: ToolRegistry,
        policy: AccessPolicy | None = None,
        client: MCPClientWrapper | None = None,
    ):
        """Initialize adapter.

        Args:
            registry: Tool registry to register remote tools with.
            policy: Access policy naming hidden tools. Defaults to the built-in policy.
            client: Pre-built client (used by tests). Defaults to one built from settings.
        """
        self.registry = registry
        self.policy = policy or AccessPolicy()
        self.client = client or MCPClientWrapper(
            url=settings.mcp_server_url,
            token=settings.mcp_token,
            timeout=settings.mcp_timeout_seconds,
        )
        self._connected = False
        self.tool_names: list[str] = []

    async def __aenter__(self) -> "MCPGatewayAdapter":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    async def initialize(self) -> None:
        """Connect, discover tools and register them.

        Raises:
            MCPConnectionError: If connecting or listing tools fails.
        """
        try:
            await self.client.connect()
            self._connected = True
            mcp_tools = await self.client.list_tools()
        except Exception as e:
            await self.shutdown()
            raise MCPConnectionError(str(e) or type(e).__name__) from e

        hidden = set(self.policy.hidden_remote_tools)
        for mcp_tool in mcp_tools:
            name = mcp_tool.get("name", "")
            if name in hidden:
                log.info(MCP_TOOL_HIDDEN, tool=name)
                continue
            tool_def = mcp_tool_to_definition(mcp_tool)
            self.registry.register(tool_def, self._create_executor(name))
            self.tool_names.append(name)
            log.debug(MCP_TOOL_DISCOVERED, tool=name)

        log.info("mcp_gateway_initialized", tools_count=len(self.tool_names), tools=self.tool_names)

    def _create_executor(self, mcp_tool_name: str) -> RemoteExecutor:
        """Create the async executor for one remote tool.

        Args:
            mcp_tool_name: Tool name as advertised by the server.

        Returns:
            Async executor taking the argument dict and returning result text.
        """

        async def executor(arguments: dict[str, Any]) -> str:
            if not self._connected:
                raise RuntimeError("MCP gateway not connected")
            return await self.client.call_tool(mcp_tool_name, arguments)

        return executor

    async def shutdown(self) -> None:
        """Close the connection."""
        self._connected = False
        await self.client.close()
