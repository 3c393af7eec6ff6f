"""Tests for the transient-failure retry policy."""

import asyncio

import pytest

from data_agent.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMStreamError,
    LLMTimeout,
)
from data_agent.orchestrator.retry import RetryPolicy, RetryState


class TestIsTransient:
    """Test error classification."""

    @pytest.mark.parametrize(
        "error",
        [
            LLMTimeout("slow"),
            LLMConnectionError("refused"),
            LLMStreamError("broken"),
            asyncio.TimeoutError(),
            ConnectionResetError("reset"),
        ],
    )
    def test_transient_types(self, error: Exception) -> None:
        """Test timeouts, connection failures and broken streams are transient."""
        assert RetryPolicy().is_transient(error)

    @pytest.mark.parametrize(
        "message",
        ["JSON error injected into SSE stream", "upstream ECONNRESET", "socket hang up"],
    )
    def test_transient_markers(self, message: str) -> None:
        """Test known failure markers in the message make an error transient."""
        assert RetryPolicy().is_transient(RuntimeError(message))

    def test_other_errors_are_fatal(self) -> None:
        """Test everything else is not retried."""
        policy = RetryPolicy()
        assert not policy.is_transient(LLMClientError("invalid model id"))
        assert not policy.is_transient(ValueError("bad request"))


def test_should_retry_respects_max_attempts() -> None:
    """Test retries stop once the attempt count reaches the maximum."""
    policy = RetryPolicy(max_attempts=2)
    error = LLMStreamError("stream error")

    assert policy.should_retry(RetryState(attempt=0), error)
    assert policy.should_retry(RetryState(attempt=1), error)
    assert not policy.should_retry(RetryState(attempt=2), error)
    assert not policy.should_retry(RetryState(attempt=0), ValueError("nope"))


def test_linear_backoff() -> None:
    """Test retry n waits n times the base delay."""
    policy = RetryPolicy(base_delay=1.5)

    assert policy.delay_for(1) == 1.5
    assert policy.delay_for(3) == 4.5


def test_notice_text() -> None:
    """Test the retry notice names the label and attempt."""
    policy = RetryPolicy(max_attempts=3)

    assert policy.notice(1) == "\n[Retrying request 1/3...]\n"
    assert policy.notice(2, "Gemini") == "\n[Retrying Gemini 2/3...]\n"


def test_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test limits are read from settings."""
    from data_agent.config import settings

    monkeypatch.setattr(settings, "retry_max_attempts", 5)
    monkeypatch.setattr(settings, "retry_base_delay_seconds", 0.25)

    policy = RetryPolicy.from_settings()

    assert policy.max_attempts == 5
    assert policy.base_delay == 0.25
