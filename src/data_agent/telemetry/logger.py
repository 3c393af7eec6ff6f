"""Structured logging configuration using structlog.

Log records go to two places:
- a rotating JSON-lines file (``current.jsonl``) in the configured log directory
- stderr, rendered either as JSON or as coloured console output

Every record carries a UTC timestamp, the log level, the logger name and a short
``component`` name derived from the logger name.
"""

import logging
import logging.handlers
import pathlib
import sys
from typing import Any

import structlog

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "mcp", "sqlalchemy.engine", "uvicorn.access")


def _get_log_settings() -> tuple[str, str, pathlib.Path]:
    """Resolve log level, log format and log directory.

    Returns:
        Tuple of (level, format, directory).
    """
    # Bootstrap from environment to avoid circular imports during startup.
    from data_agent.config.bootstrap import (  # noqa: PLC0415
        get_bootstrap_log_format,
        get_bootstrap_log_level,
    )

    level = get_bootstrap_log_level()
    log_format = get_bootstrap_log_format()
    try:
        from data_agent.config.settings import get_settings  # noqa: PLC0415

        log_dir = pathlib.Path(str(get_settings().log_dir))
    except Exception:
        # Settings not importable yet (first import during config loading)
        project_root = pathlib.Path(__file__).parent.parent.parent.parent
        log_dir = project_root / "telemetry" / "logs"
    return level, log_format, log_dir


def _add_component(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the last segment of the logger name as ``component``.

    Args:
        logger: The logger instance (stdlib or structlog).
        method_name: The log method name.
        event_dict: The event dictionary.

    Returns:
        Event dictionary with component added.
    """
    if "component" in event_dict:
        return event_dict
    name = event_dict.get("logger") or getattr(logger, "name", "") or ""
    event_dict["component"] = name.rsplit(".", 1)[-1] if name else "unknown"
    return event_dict


def _shared_pre_chain() -> list[Any]:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_component,
    ]


def _file_handler(log_dir: pathlib.Path) -> logging.Handler:
    """Create the rotating JSON-lines file handler."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=str(log_dir / "current.jsonl"),
        maxBytes=50 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_shared_pre_chain(),
        )
    )
    return handler


def _console_handler(log_format: str) -> logging.Handler:
    """Create the stderr handler rendering JSON or coloured console output."""
    renderer: Any
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_shared_pre_chain())
    )
    return handler


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger.

    Call once at startup; ``get_logger`` calls it lazily if nobody has.
    """
    level, log_format, log_dir = _get_log_settings()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # The file keeps INFO+ regardless of the console level so exchanges can be replayed.
    try:
        file_handler = _file_handler(log_dir)
    except OSError:
        file_handler = None
    if file_handler is not None:
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    console_handler = _console_handler(log_format)
    console_handler.setLevel(getattr(logging, level, logging.INFO))
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_component,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:  # Returns structlog.stdlib.BoundLogger
    """Get a structured logger instance.

    Args:
        name: Logger name (typically ``__name__`` of the calling module).

    Returns:
        Configured structlog logger.

    Example:
        >>> from data_agent.telemetry import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("exchange_started", trace_id="abc", model="blended")
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)
