"""Type definitions for the tool gateway.

This module defines the Pydantic models for tool definitions, tool call
requests and tool results used by the gateway and the orchestrator.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ToolKind(str, Enum):
    """Where a tool executes."""

    REMOTE = "remote"  # Dispatched to the remote tool provider
    SYNTHETIC = "synthetic"  # Handled in-process (chart/map)


class ToolDefinition(BaseModel):
    """Tool definition offered to the model.

    ``input_schema`` is a JSON Schema object, passed through unchanged from the
    remote provider for remote tools.
    """

    name: str = Field(..., description="Tool name (e.g., 'query', 'generate_chart')")
    description: str = Field("", description="Description shown to the model")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for the tool arguments",
    )
    kind: ToolKind = Field(ToolKind.REMOTE, description="Execution location")

    def to_anthropic(self) -> dict[str, Any]:
        """Render in Anthropic messages API tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model.

    Created by the turn executor when a tool_use block completes, consumed
    exactly once by the gateway.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider tool_use id")
    name: str = Field(..., description="Requested tool name")
    input: dict[str, Any] = Field(default_factory=dict, description="Parsed arguments")

    @property
    def sql(self) -> str | None:
        """Query text carried by the call, if any."""
        value = self.input.get("sql")
        return value if isinstance(value, str) else None


class ToolResult(BaseModel):
    """Result from tool execution, always answering exactly one ToolCallRequest."""

    tool_use_id: str = Field(..., description="Id of the answered tool_use block")
    tool_name: str = Field(..., description="Name of the executed tool")
    content: str = Field(..., description="Text handed back to the model")
    is_error: bool = Field(False, description="Whether the call failed or was denied")
    latency_ms: float = Field(0.0, ge=0, description="Execution latency in milliseconds")

    def to_block(self) -> dict[str, Any]:
        """Render as an Anthropic ``tool_result`` content block."""
        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            block["is_error"] = True
        return block


class ToolExecutionError(Exception):
    """Raised when a remote tool call fails."""

    pass
