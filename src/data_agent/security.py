"""Security utilities for preventing information disclosure."""

import re


def sanitize_error_message(error: Exception) -> str:
    """Create a user-facing error message without exposing internal details.

    Paths, memory addresses, line numbers and bearer tokens are stripped and the
    error is mapped to a short category message. Used for HTTP error bodies;
    in-band ``error`` frames carry the provider message instead.

    Args:
        error: The exception that occurred.

    Returns:
        A sanitized, user-friendly error message.
    """
    error_type = type(error).__name__
    error_str = str(error)

    error_str = re.sub(r"(?i)bearer\s+\S+", "Bearer [token]", error_str)
    error_str = re.sub(r"/[^\s]+", "[path]", error_str)
    error_str = re.sub(r"0x[0-9a-fA-F]+", "[address]", error_str)
    error_str = re.sub(r"line \d+", "[line]", error_str)
    lowered = error_str.lower()

    if "Timeout" in error_type or "timeout" in lowered:
        return "The request took too long to process. Please try again."
    elif "Connection" in error_type or "connection" in lowered:
        return "Unable to reach the upstream service. Please try again in a moment."
    elif "Permission" in error_type or "unauthorized" in lowered or "401" in lowered:
        return "The upstream service rejected the credentials. Please check your configuration."
    elif "RateLimit" in error_type or "rate limit" in lowered:
        return "Too many requests. Please wait a moment and try again."
    elif "Validation" in error_type or "validation" in lowered:
        return "Invalid request format. Please check your input and try again."
    elif "NotFound" in error_type or "not found" in lowered:
        return "The requested resource was not found."
    elif "Config" in error_type or "config" in lowered:
        return "Service configuration error. Please contact support."
    else:
        return "An error occurred while processing your request. Please try again."
