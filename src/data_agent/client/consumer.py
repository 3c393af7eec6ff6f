"""Stream consumer: the side-effecting shell around the pure reducer.

Posts a chat request, decodes the SSE body into frames, folds each frame into
the state of its column and reports every new state to a callback.
"""

from collections.abc import Callable
from typing import Any

import httpx

from data_agent.client.reducer import StreamState, reduce
from data_agent.orchestrator.cancellation import CancellationToken, ExchangeCancelled
from data_agent.protocol.codec import FrameDecoder
from data_agent.protocol.frames import BaseFrame, CancelledFrame, is_terminal
from data_agent.telemetry import (
    CLIENT_DISCONNECTED,
    CLIENT_STREAM_FINISHED,
    CLIENT_STREAM_STARTED,
    get_logger,
)

log = get_logger(__name__)

# Called with (column, new state); column is None outside fan-out.
UpdateCallback = Callable[[str | None, StreamState], None]


class ServiceRequestError(Exception):
    """The service rejected the request before streaming started."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class StreamConsumer:
    """Consumes one streamed chat response.

    Usage:
        consumer = StreamConsumer("http://localhost:9000", on_update=render)
        states = await consumer.send({"messages": [...], "model": "blended"})
    """

    def __init__(
        self,
        base_url: str | None = None,
        on_update: UpdateCallback | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the consumer.

        Args:
            base_url: Service URL. Defaults to ``settings.service_url``.
            on_update: Callback invoked after every applied frame.
            timeout: Read timeout in seconds. Defaults to
                ``settings.client_timeout_seconds``.
            client: Shared HTTP client. One is created per request if omitted.
        """
        if base_url is None or timeout is None:
            from data_agent.config import settings  # noqa: PLC0415

            base_url = base_url or settings.service_url
            timeout = timeout if timeout is not None else settings.client_timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.on_update = on_update
        self.timeout = timeout
        self._client = client
        self.states: dict[str | None, StreamState] = {}

    async def send(
        self, body: dict[str, Any], token: CancellationToken | None = None
    ) -> dict[str | None, StreamState]:
        """Post ``body`` to ``/chat`` and consume the stream to its end.

        Args:
            body: ChatRequest JSON body.
            token: Cancelling it closes the response and marks every
                unfinished column as cancelled.

        Returns:
            Final state per column (key None outside fan-out).

        Raises:
            ServiceRequestError: On a 4xx/5xx response.
            httpx.HTTPError: On transport failures.
        """
        self.states = {}
        token = token or CancellationToken()
        log.info(CLIENT_STREAM_STARTED, url=f"{self.base_url}/chat", model=body.get("model"))
        try:
            await token.run(self._read(body))
        except ExchangeCancelled:
            log.info(CLIENT_DISCONNECTED, reason=token.reason)
            self._cancel_unfinished()

        log.info(
            CLIENT_STREAM_FINISHED,
            columns=[column for column in self.states if column is not None],
            statuses={str(column): state.status for column, state in self.states.items()},
        )
        return self.states

    async def _read(self, body: dict[str, Any]) -> None:
        if self._client is not None:
            await self._read_with(self._client, body)
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0)) as client:
            await self._read_with(client, body)

    async def _read_with(self, client: httpx.AsyncClient, body: dict[str, Any]) -> None:
        decoder = FrameDecoder()
        async with client.stream("POST", f"{self.base_url}/chat", json=body) as response:
            if response.status_code >= 400:
                await response.aread()
                raise ServiceRequestError(response.status_code, _error_message(response))

            async for chunk in response.aiter_bytes():
                for frame in decoder.feed(chunk):
                    self.apply(frame)
            for frame in decoder.flush():
                self.apply(frame)

    def apply(self, frame: BaseFrame) -> None:
        """Fold one frame into its column's state.

        An untagged terminal frame while columns exist ends every column that
        has not ended on its own.
        """
        column = frame.column
        columns = [key for key in self.states if key is not None]
        if column is None and columns and is_terminal(frame):
            for key in columns:
                self._update(key, frame)
            return
        self._update(column, frame)

    def _update(self, column: str | None, frame: BaseFrame) -> None:
        previous = self.states.get(column, StreamState())
        state = reduce(previous, frame)
        self.states[column] = state
        if state is not previous and self.on_update is not None:
            self.on_update(column, state)

    def _cancel_unfinished(self) -> None:
        if not self.states:
            self.states[None] = StreamState()
        for column in list(self.states):
            self._update(column, CancelledFrame())


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and "error" in data:
        return str(data["error"])
    return response.text
