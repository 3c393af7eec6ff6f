"""Bootstrap configuration helpers (pre-settings).

Logging has to be configured before the pydantic settings singleton exists,
because loading settings logs. These helpers read the handful of values logging
needs straight from the environment.

Keep this module free of telemetry imports.
"""

from __future__ import annotations

import os

from data_agent.config.validators import validate_log_format, validate_log_level


def get_bootstrap_log_level(default: str = "INFO") -> str:
    """Get logging level from environment without importing settings.

    Args:
        default: Default log level if not set or invalid.

    Returns:
        Uppercased, validated log level string.
    """
    value = os.getenv("APP_LOG_LEVEL", default)
    try:
        return validate_log_level(value)
    except ValueError:
        return validate_log_level(default)


def get_bootstrap_log_format(default: str = "json") -> str:
    """Get log format ("json" or "console") from environment without importing settings."""
    value = os.getenv("APP_LOG_FORMAT", default)
    try:
        return validate_log_format(value)
    except ValueError:
        return validate_log_format(default)
