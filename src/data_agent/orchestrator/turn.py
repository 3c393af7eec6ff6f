"""Turn executor: drive one model call to completion.

Consumes the provider's normalized event stream, forwards text to the client
and assembles tool calls from their streamed JSON fragments.

Text handling within a turn:

- Before the first tool block, text is sent as it arrives.
- Once a tool block has started, further text is withheld and sent as one
  frame when the turn completes, just before the tool phase.
- In collect mode (pipeline data gathering) nothing streams live. Text that
  precedes a tool block is sent as ``intermediate_text`` when the tool block
  starts; the rest stays in the turn output.

Stream failures propagate to the caller untouched: a partial turn is
discarded, never resumed.
"""

from dataclasses import dataclass, field
from typing import Any

import orjson

from data_agent.llm_client.types import LLMStreamError, ModelProvider
from data_agent.orchestrator.cancellation import CancellationToken
from data_agent.orchestrator.types import TurnOutput
from data_agent.protocol.emitter import FrameSink
from data_agent.protocol.frames import IntermediateTextFrame, TextFrame
from data_agent.telemetry import TOOL_INPUT_PARSE_FAILED, TraceContext, get_logger
from data_agent.tools.types import ToolCallRequest

log = get_logger(__name__)


@dataclass
class _Block:
    kind: str
    id: str = ""
    name: str = ""
    parts: list[str] = field(default_factory=list)


def parse_tool_input(raw: str, tool_name: str = "", trace_id: str | None = None) -> dict[str, Any]:
    """Parse a buffered tool input.

    Args:
        raw: Concatenated ``partial_json`` fragments.
        tool_name: Tool name for logging.
        trace_id: Trace id for logging.

    Returns:
        The parsed object. Empty input is ``{}``; invalid JSON or a non-object
        value degrades to ``{}`` instead of failing the turn.
    """
    if not raw.strip():
        return {}
    try:
        value = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        log.warning(TOOL_INPUT_PARSE_FAILED, tool_name=tool_name, error=str(e), trace_id=trace_id)
        return {}
    if not isinstance(value, dict):
        log.warning(
            TOOL_INPUT_PARSE_FAILED,
            tool_name=tool_name,
            error=f"expected object, got {type(value).__name__}",
            trace_id=trace_id,
        )
        return {}
    return value


class TurnExecutor:
    """Runs one streamed model call.

    Usage:
        executor = TurnExecutor(provider, emit, trace_ctx)
        output = await executor.run(
            model="google/gemini-3-flash-preview",
            system=prompt,
            messages=messages,
            tools=tools,
            max_tokens=16384,
        )
    """

    def __init__(
        self,
        provider: ModelProvider,
        emit: FrameSink,
        trace_ctx: TraceContext,
        token: CancellationToken | None = None,
        collect: bool = False,
    ) -> None:
        self.provider = provider
        self.emit = emit
        self.trace_ctx = trace_ctx
        self.token = token
        self.collect = collect

    async def run(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> TurnOutput:
        """Stream one model call and return what it produced.

        Raises:
            LLMClientError: Provider failures, including broken streams.
            ExchangeCancelled: If the token fires between events.
        """
        blocks: dict[int, _Block] = {}
        order: list[int] = []
        tool_started = False
        pending: list[str] = []  # Collect mode: pre-tool text not yet flushed
        withheld: list[str] = []

        stream = self.provider.stream(
            model=model, system=system, messages=messages, tools=tools, max_tokens=max_tokens
        )
        async for event in stream:
            if self.token is not None:
                self.token.raise_if_cancelled()
            event_type = event["type"]

            if event_type == "block_start":
                index = event.get("index", len(order))
                kind = event.get("block_type", "text")
                blocks[index] = _Block(kind=kind, id=event.get("id", ""), name=event.get("name", ""))
                order.append(index)
                if kind == "tool_use":
                    tool_started = True
                    if self.collect and pending:
                        await self.emit(IntermediateTextFrame(content="".join(pending)))
                        pending.clear()

            elif event_type == "text_delta":
                text = event.get("text", "")
                if not text:
                    continue
                block = self._text_block(blocks, order, event.get("index"))
                block.parts.append(text)
                if self.collect:
                    if not tool_started:
                        pending.append(text)
                elif tool_started:
                    withheld.append(text)
                else:
                    await self.emit(TextFrame(content=text))

            elif event_type == "tool_input_delta":
                index = event.get("index")
                block = blocks.get(index) if index is not None else None
                if block is None or block.kind != "tool_use":
                    raise LLMStreamError(f"tool input delta for unknown block {index}")
                block.parts.append(event.get("partial_json", ""))

            elif event_type == "message_stop":
                break

        output = self._assemble(blocks, order)
        if withheld:
            await self.emit(TextFrame(content="".join(withheld)))
        return output

    def _text_block(self, blocks: dict[int, _Block], order: list[int], index: int | None) -> _Block:
        if index is not None and index in blocks and blocks[index].kind == "text":
            return blocks[index]
        # Some providers send text deltas without a block_start
        new_index = index if index is not None and index not in blocks else max(blocks, default=-1) + 1
        blocks[new_index] = _Block(kind="text")
        order.append(new_index)
        return blocks[new_index]

    def _assemble(self, blocks: dict[int, _Block], order: list[int]) -> TurnOutput:
        output = TurnOutput()
        trailing: list[str] = []
        for index in order:
            block = blocks[index]
            if block.kind == "tool_use":
                call = ToolCallRequest(
                    id=block.id,
                    name=block.name,
                    input=parse_tool_input(
                        "".join(block.parts), block.name, self.trace_ctx.trace_id
                    ),
                )
                output.tool_calls.append(call)
                output.content_blocks.append(
                    {"type": "tool_use", "id": call.id, "name": call.name, "input": call.input}
                )
                trailing.clear()
            elif block.kind == "text":
                text = "".join(block.parts)
                if not text:
                    continue
                output.text_segments.append(text)
                output.content_blocks.append({"type": "text", "text": text})
                trailing.append(text)

        output.text = "".join(output.text_segments)
        output.trailing_text = "".join(trailing)
        return output
