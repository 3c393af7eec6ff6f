"""Tool registry for tool discovery and registration.

This module provides the ToolRegistry class that manages tool definitions
and their executor functions. Remote tools carry an async executor; synthetic
tools are handled by the gateway itself and register without one.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from data_agent.telemetry import get_logger
from data_agent.tools.types import ToolDefinition, ToolKind

log = get_logger(__name__)

RemoteExecutor = Callable[[dict[str, Any]], Awaitable[str]]


class ToolRegistry:
    """Central registry of tools available to one exchange."""

    def __init__(self) -> None:
        """Initialize empty tool registry."""
        self._tools: dict[str, tuple[ToolDefinition, RemoteExecutor | None]] = {}

    def register(self, tool_def: ToolDefinition, executor: RemoteExecutor | None = None) -> None:
        """Register a tool with its definition and executor function.

        Args:
            tool_def: Tool definition.
            executor: Async callable taking the argument dict and returning the
                result text. Required for remote tools.

        Raises:
            ValueError: If the name is already registered, or a remote tool
                has no executor.
        """
        if tool_def.name in self._tools:
            raise ValueError(f"Tool '{tool_def.name}' is already registered")
        if tool_def.kind == ToolKind.REMOTE and executor is None:
            raise ValueError(f"Remote tool '{tool_def.name}' requires an executor")

        self._tools[tool_def.name] = (tool_def, executor)
        log.debug("tool_registered", tool_name=tool_def.name, kind=tool_def.kind.value)

    def get_tool(self, name: str) -> tuple[ToolDefinition, RemoteExecutor | None] | None:
        """Retrieve tool definition and executor.

        Args:
            name: Tool name to retrieve.

        Returns:
            Tuple of (ToolDefinition, executor) if found, None otherwise.
        """
        return self._tools.get(name)

    def list_tools(self, kind: ToolKind | None = None) -> list[ToolDefinition]:
        """List registered tools, optionally filtered by kind."""
        if kind is None:
            return [tool_def for tool_def, _ in self._tools.values()]
        return [tool_def for tool_def, _ in self._tools.values() if tool_def.kind == kind]

    def list_tool_names(self) -> list[str]:
        """List names of all registered tools."""
        return list(self._tools.keys())

    def get_tool_definitions_for_llm(self, data_only: bool = False) -> list[dict[str, Any]]:
        """Get tool definitions in Anthropic messages API format.

        Args:
            data_only: If True, only remote data tools are returned (the
                data-gathering phase of the pipeline has no visualization tools).

        Returns:
            List of ``{"name", "description", "input_schema"}`` dicts.
        """
        tools = self.list_tools(ToolKind.REMOTE if data_only else None)
        return [tool_def.to_anthropic() for tool_def in tools]

    def subset(self, kind: ToolKind) -> "ToolRegistry":
        """Copy of this registry holding only tools of ``kind``."""
        registry = ToolRegistry()
        for tool_def, executor in self._tools.values():
            if tool_def.kind == kind:
                registry._tools[tool_def.name] = (tool_def, executor)
        return registry
