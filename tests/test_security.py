"""Tests for user-facing error sanitization."""

import pytest

from data_agent.mcp.gateway import MCPConnectionError
from data_agent.security import sanitize_error_message


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (TimeoutError("read timed out"), "The request took too long to process. Please try again."),
        (
            MCPConnectionError("Connection refused"),
            "Unable to reach the upstream service. Please try again in a moment.",
        ),
        (
            RuntimeError("HTTP 401 from provider"),
            "The upstream service rejected the credentials. Please check your configuration.",
        ),
        (RuntimeError("rate limit reached"), "Too many requests. Please wait a moment and try again."),
        (KeyError("tool not found"), "The requested resource was not found."),
        (ValueError("bad things"), "An error occurred while processing your request. Please try again."),
    ],
)
def test_error_categories(error: Exception, expected: str) -> None:
    """Test errors are mapped to short category messages."""
    assert sanitize_error_message(error) == expected


def test_paths_and_tokens_never_leak() -> None:
    """Test details that would classify an error are matched after scrubbing."""
    error = RuntimeError("failed at /srv/config/app.yaml line 12 with Bearer sk-secret")

    message = sanitize_error_message(error)

    assert "/srv" not in message
    assert "sk-secret" not in message
    assert message == "An error occurred while processing your request. Please try again."
