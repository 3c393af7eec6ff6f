"""MCP client wrapper for the streamable HTTP transport.

The MCP SDK's transport and session are anyio context managers that must be
entered and exited by the same task. The service opens the connection in the
request handler but uses and closes it from the response streaming task, so
the wrapper owns a dedicated runner task that enters both contexts, reports
readiness and waits for a close request before exiting them.
"""

import asyncio
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any

import orjson
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from data_agent.telemetry import MCP_CONNECT_FAILED, MCP_CONNECTED, MCP_DISCONNECTED, get_logger
from data_agent.tools.types import ToolExecutionError

log = get_logger(__name__)


class MCPClientWrapper:
    """Wraps the MCP SDK client for a remote streamable-HTTP server.

    Usage:
        async with MCPClientWrapper(url, token, timeout=60) as client:
            tools = await client.list_tools()
            text = await client.call_tool("query", {"sql": "SELECT 1"})
    """

    def __init__(self, url: str, token: str | None = None, timeout: int = 60):
        """Initialize MCP client wrapper.

        Args:
            url: MCP server URL.
            token: Bearer token sent in the Authorization header.
            timeout: Timeout for connect, list and tool-call reads in seconds.
        """
        self.url = url
        self.token = token
        self.timeout = timeout
        self.session: ClientSession | None = None
        self._runner: asyncio.Task[None] | None = None
        self._ready: asyncio.Future[None] | None = None
        self._stop: asyncio.Event | None = None

    async def __aenter__(self) -> "MCPClientWrapper":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the transport, create the session and run the handshake.

        Raises:
            asyncio.TimeoutError: If the handshake does not finish in time.
            Exception: Whatever the transport raised while connecting.
        """
        loop = asyncio.get_running_loop()
        self._ready = loop.create_future()
        self._stop = asyncio.Event()
        self._runner = asyncio.create_task(
            self._run(self._ready, self._stop), name="mcp-session"
        )

        try:
            await asyncio.wait_for(asyncio.shield(self._ready), timeout=self.timeout)
        except BaseException as e:
            log.error(MCP_CONNECT_FAILED, url=self.url, error=str(e), error_type=type(e).__name__)
            await self.close()
            raise

        log.info(MCP_CONNECTED, url=self.url)

    async def close(self) -> None:
        """Ask the runner task to exit the session and transport, then wait for it."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        if self._stop is not None:
            self._stop.set()
        try:
            await asyncio.wait_for(runner, timeout=self.timeout)
        except asyncio.TimeoutError:
            runner.cancel()
            log.warning("mcp_client_close_timeout", url=self.url)
        except Exception as e:
            # Connect failures were already reported by connect()
            log.debug("mcp_client_close_error", error=str(e))
        finally:
            self.session = None
        log.info(MCP_DISCONNECTED, url=self.url)

    async def _run(self, ready: asyncio.Future[None], stop: asyncio.Event) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        try:
            async with AsyncExitStack() as stack:
                read_stream, write_stream, _ = await stack.enter_async_context(
                    streamablehttp_client(
                        self.url, headers=headers, timeout=timedelta(seconds=self.timeout)
                    )
                )
                session = await stack.enter_async_context(
                    ClientSession(read_stream, write_stream)
                )
                await session.initialize()
                self.session = session
                ready.set_result(None)
                await stop.wait()
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            else:
                log.warning("mcp_session_ended", error=str(e), error_type=type(e).__name__)

    async def list_tools(self) -> list[dict[str, Any]]:
        """List available tools.

        Returns:
            List of tool schemas (MCP format: name, description, inputSchema).

        Raises:
            RuntimeError: If client not connected.
        """
        if not self.session:
            raise RuntimeError("MCP client not connected - use async with context manager")

        result = await asyncio.wait_for(self.session.list_tools(), timeout=self.timeout)
        tools = [tool.model_dump() for tool in result.tools]
        log.debug("mcp_tools_listed", count=len(tools))
        return tools

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Call a tool and return its result as text.

        Args:
            name: Tool name as advertised by the server.
            arguments: Tool arguments.

        Returns:
            Text content items joined with newlines, or the JSON serialization
            of the whole result when it has no text content.

        Raises:
            RuntimeError: If client not connected.
            ToolExecutionError: If the server reports a tool error.
        """
        if not self.session:
            raise RuntimeError("MCP client not connected - use async with context manager")

        log.info("mcp_tool_calling", tool=name)
        result = await self.session.call_tool(
            name, arguments, read_timeout_seconds=timedelta(seconds=self.timeout)
        )

        texts = [item.text for item in result.content or [] if getattr(item, "type", None) == "text"]
        if result.isError:
            message = "\n".join(texts) or "Unknown tool error"
            log.warning("mcp_tool_returned_error", tool=name, error=message[:500])
            raise ToolExecutionError(message)

        if result.content:
            text = "\n".join(texts)
        else:
            text = orjson.dumps(result.model_dump(mode="json", by_alias=True)).decode()
        log.info("mcp_tool_response_received", tool=name, chars=len(text))
        return text
