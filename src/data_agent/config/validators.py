"""Custom validators for configuration values."""

from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Uppercased log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if value.upper() not in valid_levels:
        raise ValueError(f"log_level must be one of {sorted(valid_levels)}, got {value}")
    return value.upper()


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Raises:
        ValueError: If log format is not valid.
    """
    valid_formats = {"json", "console"}
    if value.lower() not in valid_formats:
        raise ValueError(f"log_format must be one of {sorted(valid_formats)}, got {value}")
    return value.lower()


def resolve_path(value: Path | str) -> Path:
    """Resolve a relative path against the project root.

    Args:
        value: Path value (string or Path).

    Returns:
        Absolute, resolved Path.
    """
    path = Path(value) if isinstance(value, str) else value
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path.resolve()


def validate_model_id(value: str) -> str:
    """Validate a provider model identifier is non-empty and has no whitespace.

    Raises:
        ValueError: If the identifier is blank or contains whitespace.
    """
    stripped = value.strip()
    if not stripped or any(ch.isspace() for ch in stripped):
        raise ValueError(f"model id must be a non-empty token without spaces, got {value!r}")
    return stripped
