"""Shared YAML loading utilities for configuration files.

Domain loaders (access policy, model catalogue) build on ``load_yaml_file`` and
``format_validation_error`` so they report problems the same way.
"""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

log = structlog.get_logger(__name__)


class ConfigLoadError(Exception):
    """Base exception for configuration loading errors."""

    pass


def load_yaml_file(
    file_path: Path, error_class: type[Exception] = ConfigLoadError
) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        file_path: Path to the YAML file.
        error_class: Exception class to raise on errors. Defaults to ConfigLoadError.

    Returns:
        Parsed YAML mapping. Returns an empty dict for an empty file.

    Raises:
        error_class: If the file cannot be read, cannot be parsed, or does not
            contain a mapping at the top level.

    Example:
        >>> data = load_yaml_file(Path("config/access_policy.yaml"))
        >>> data.get("allowed_sources")
        ['eastlake']
    """
    try:
        with file_path.open("r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise error_class(f"Configuration file not found: {file_path}") from None
    except yaml.YAMLError as e:
        raise error_class(f"Failed to parse YAML file {file_path}: {e}") from None
    except OSError as e:
        raise error_class(f"Unexpected error reading {file_path}: {e}") from None

    if content is None:
        log.debug("yaml_file_empty", file_path=str(file_path))
        return {}
    if not isinstance(content, dict):
        raise error_class(
            f"Configuration file {file_path} must contain a mapping, got {type(content).__name__}"
        )
    return content


def format_validation_error(error: ValidationError) -> str:
    """Render a pydantic ValidationError as ``field -> path: message`` lines."""
    lines = []
    for item in error.errors():
        field_path = " -> ".join(str(loc) for loc in item["loc"])
        lines.append(f"{field_path}: {item['msg']}")
    return "\n".join(lines)
