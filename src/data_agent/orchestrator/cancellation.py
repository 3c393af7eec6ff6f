"""Cooperative cancellation.

A CancellationToken is passed through every suspension point of an exchange.
``run`` races an awaitable against the token so an in-flight provider call or
tool batch is abandoned as soon as the token fires.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class ExchangeCancelled(Exception):
    """Raised at a suspension point once the exchange's token is cancelled.

    Cancellation is not an error: it ends the exchange with a ``cancelled``
    frame and keeps partial output.
    """

    pass


class CancellationToken:
    """Cancellation signal shared by one exchange.

    Child tokens (fan-out columns) are cancelled with their parent but can
    also be cancelled on their own.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: list["CancellationToken"] = []
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel this token and every child."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        for child in self._children:
            child.cancel(reason)

    def child(self) -> "CancellationToken":
        """Create a token cancelled whenever this one is."""
        token = CancellationToken()
        if self.cancelled:
            token.cancel(self.reason or "cancelled")
        self._children.append(token)
        return token

    def raise_if_cancelled(self) -> None:
        """Raise ExchangeCancelled if the token has fired."""
        if self.cancelled:
            raise ExchangeCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        """Wait until the token fires."""
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Args:
            awaitable: Coroutine or future to run.

        Returns:
            The awaitable's result.

        Raises:
            ExchangeCancelled: If the token fires first; the awaitable is cancelled.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self.raise_if_cancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise ExchangeCancelled(self.reason or "cancelled")

    async def sleep(self, seconds: float) -> None:
        """Sleep, waking early with ExchangeCancelled if the token fires."""
        await self.run(asyncio.sleep(seconds))
