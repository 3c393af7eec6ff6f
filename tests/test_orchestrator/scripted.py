"""Scripted model provider and event builders shared by orchestrator tests."""

import asyncio
import copy
from typing import Any

import orjson

from data_agent.governance.models import AccessPolicy
from data_agent.llm_client.models import (
    FanOutDefinition,
    ModelCatalogue,
    ModelEntry,
    PipelineDefinition,
)
from data_agent.orchestrator.retry import RetryPolicy
from data_agent.orchestrator.types import ExchangeServices
from data_agent.tools import ToolDefinition, ToolRegistry, register_synthetic_tools


def text_events(*chunks: str, index: int = 0) -> list[dict[str, Any]]:
    """Events for one text block streamed in ``chunks``."""
    events: list[dict[str, Any]] = [{"type": "block_start", "index": index, "block_type": "text"}]
    events += [{"type": "text_delta", "index": index, "text": chunk} for chunk in chunks]
    events.append({"type": "block_stop", "index": index})
    return events


def tool_events(index: int, tool_id: str, name: str, arguments: dict[str, Any]) -> list[dict[str, Any]]:
    """Events for one tool_use block whose JSON input arrives in two fragments."""
    raw = orjson.dumps(arguments).decode()
    middle = len(raw) // 2
    return [
        {"type": "block_start", "index": index, "block_type": "tool_use", "id": tool_id, "name": name},
        {"type": "tool_input_delta", "index": index, "partial_json": raw[:middle]},
        {"type": "tool_input_delta", "index": index, "partial_json": raw[middle:]},
        {"type": "block_stop", "index": index},
    ]


def text_turn(text: str) -> list[dict[str, Any]]:
    """A complete turn answering with ``text`` only."""
    return text_events(text) + [{"type": "message_stop"}]


def tool_turn(text: str, *calls: tuple[str, str, dict[str, Any]]) -> list[dict[str, Any]]:
    """A complete turn: optional narration then one tool_use block per call."""
    events = text_events(text) if text else []
    offset = 1 if text else 0
    for position, (tool_id, name, arguments) in enumerate(calls):
        events += tool_events(offset + position, tool_id, name, arguments)
    events.append({"type": "message_stop"})
    return events


def stall(seconds: float) -> dict[str, Any]:
    """Pseudo-event making the scripted stream sleep."""
    return {"type": "_sleep", "seconds": seconds}


class ScriptedProvider:
    """Model provider replaying one scripted turn per ``stream`` call.

    Each script is a list of events (which may include a raised exception
    or a ``stall``) or an exception raised before any event.
    """

    def __init__(self, *scripts: Any) -> None:
        self.scripts = list(scripts)
        self.calls: list[dict[str, Any]] = []

    async def stream(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ):
        self.calls.append(
            {
                "model": model,
                "system": system,
                "messages": copy.deepcopy(messages),
                "tools": [tool["name"] for tool in tools],
                "max_tokens": max_tokens,
            }
        )
        if not self.scripts:
            raise AssertionError("provider called more often than scripted")
        script = self.scripts.pop(0)
        if isinstance(script, BaseException):
            raise script
        for event in script:
            if isinstance(event, BaseException):
                raise event
            if event["type"] == "_sleep":
                await asyncio.sleep(event["seconds"])
                continue
            yield event


def make_registry(executor=None) -> ToolRegistry:
    """Registry with one remote ``query`` tool."""

    async def default_executor(arguments: dict[str, Any]) -> str:
        return "region,orders\nnorth,10"

    registry = ToolRegistry()
    registry.register(
        ToolDefinition(name="query", description="Run SQL"),
        executor or default_executor,
    )
    return registry


class PerModelProvider:
    """Routes each ``stream`` call to a ScriptedProvider chosen by model id.

    Concurrent fan-out columns call the provider in no fixed order, so each
    model gets its own script queue.
    """

    def __init__(self, scripts: dict[str, list[Any]]) -> None:
        self.providers = {model: ScriptedProvider(*queue) for model, queue in scripts.items()}

    def stream(self, **kwargs: Any):
        return self.providers[kwargs["model"]].stream(**kwargs)

    def calls(self, model: str) -> list[dict[str, Any]]:
        return self.providers[model].calls


def make_catalogue() -> ModelCatalogue:
    """Catalogue with three models, one pipeline and one fan-out."""
    return ModelCatalogue(
        default_model="gather-model",
        models={
            "gather-model": ModelEntry(id="gather-model", label="Gemini"),
            "report-model": ModelEntry(id="report-model", label="Opus", max_tokens=4000),
            "solo-model": ModelEntry(id="solo-model", label="Solo"),
        },
        pipelines={
            "blended": PipelineDefinition(
                gather_model="gather-model", report_model="report-model", gather_max_tokens=2048
            )
        },
        fan_outs={
            "head-to-head": FanOutDefinition(columns={"solo": "solo-model", "blended": "blended"})
        },
    )


def make_services(provider: Any, **overrides: Any) -> ExchangeServices:
    """Services with a query tool plus the visualization tools."""
    registry = make_registry()
    register_synthetic_tools(registry)
    options: dict[str, Any] = {
        "provider": provider,
        "registry": registry,
        "catalogue": make_catalogue(),
        "policy": AccessPolicy(),
        "retry_policy": RetryPolicy(max_attempts=3, base_delay=0),
    }
    options.update(overrides)
    return ExchangeServices(**options)
