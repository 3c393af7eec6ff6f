"""Retry policy for transient model-provider failures.

Only stream-level failures are retried. Tool failures never reach this
module: the gateway turns them into error tool results.
"""

import asyncio
from dataclasses import dataclass

from data_agent.llm_client.types import LLMConnectionError, LLMStreamError, LLMTimeout

TRANSIENT_MARKERS = (
    "json error injected",
    "stream error",
    "network error",
    "timeout",
    "econnreset",
    "socket hang up",
)

_TRANSIENT_TYPES = (
    LLMTimeout,
    LLMConnectionError,
    LLMStreamError,
    asyncio.TimeoutError,
    ConnectionError,
)


@dataclass
class RetryState:
    """Retry bookkeeping for a single model call.

    A fresh state is created for every turn; retries of the same turn share it.
    """

    attempt: int = 0
    last_error: Exception | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Classifies errors and computes linear backoff.

    Attributes:
        max_attempts: Retries allowed per model call. The failure after the
            last retry is fatal.
        base_delay: Backoff unit in seconds; retry ``n`` waits ``n * base_delay``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        from data_agent.config import settings  # noqa: PLC0415

        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
        )

    def is_transient(self, error: BaseException) -> bool:
        """Whether ``error`` is worth retrying.

        Args:
            error: Exception raised by the turn.

        Returns:
            True for timeouts, connection failures and broken streams, by type
            or by a known marker in the message.
        """
        if isinstance(error, _TRANSIENT_TYPES):
            return True
        message = str(error).lower()
        return any(marker in message for marker in TRANSIENT_MARKERS)

    def should_retry(self, state: RetryState, error: BaseException) -> bool:
        """Whether another attempt is allowed after ``error``."""
        return self.is_transient(error) and state.attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry ``attempt`` (1-based)."""
        return self.base_delay * attempt

    def notice(self, attempt: int, label: str = "request") -> str:
        """Human-readable retry notice streamed to the client."""
        return f"\n[Retrying {label} {attempt}/{self.max_attempts}...]\n"
