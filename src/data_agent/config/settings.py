"""Application configuration settings.

This module provides the AppConfig class and the settings singleton.
"""

from pathlib import Path

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from data_agent.config.env_loader import Environment, get_environment, load_env_files
from data_agent.config.validators import (
    resolve_path,
    validate_log_format,
    validate_log_level,
    validate_model_id,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Values come from AGENT_-prefixed environment variables (after .env files
    are loaded by env_loader) and fall back to the defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )
    debug: bool = Field(default=False, alias="APP_DEBUG", description="Debug mode flag")
    project_name: str = Field(default="Data Agent", description="Project name")
    version: str = Field(default="0.1.0", description="Application version")

    # Telemetry
    log_dir: Path = Field(default=Path("telemetry/logs"), description="Log directory path")
    log_level: str = Field(
        default="INFO",
        alias="APP_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="json", alias="APP_LOG_FORMAT", description="Console log format (json or console)"
    )

    # Model provider (Anthropic-compatible messages API)
    llm_api_key: str | None = Field(default=None, description="API key for the model provider")
    llm_base_url: str = Field(
        default="https://openrouter.ai/api",
        description="Base URL of the Anthropic-compatible model provider",
    )
    default_model: str = Field(
        default="google/gemini-3-flash-preview",
        description="Model used when a request does not name one",
    )
    llm_max_tokens: int = Field(default=16384, ge=1, description="Max output tokens per turn")

    # Two-phase pipeline
    pipeline_gather_model: str = Field(
        default="google/gemini-3-flash-preview", description="Model for the data-gathering phase"
    )
    pipeline_report_model: str = Field(
        default="anthropic/claude-opus-4.5", description="Model for the report-generation phase"
    )
    pipeline_gather_max_tokens: int = Field(
        default=8192, ge=1, description="Max output tokens per data-gathering turn"
    )

    # Retry policy
    retry_max_attempts: int = Field(
        default=3, ge=0, description="Retries allowed per model call on transient errors"
    )
    retry_base_delay_seconds: float = Field(
        default=1.0, ge=0, description="Backoff unit; retry n sleeps n times this value"
    )

    # Orchestrator hardening
    orchestrator_max_turns: int = Field(
        default=25, ge=1, description="Maximum model turns per exchange before failing"
    )
    turn_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Upper bound for a single streamed model turn"
    )
    exchange_timeout_seconds: float = Field(
        default=900.0, gt=0, description="Upper bound for a whole exchange"
    )

    # Remote tool provider (MCP over streamable HTTP)
    mcp_server_url: str = Field(
        default="https://api.motherduck.com/mcp", description="Remote MCP server URL"
    )
    mcp_token: str | None = Field(default=None, description="Bearer token for the MCP server")
    mcp_timeout_seconds: int = Field(
        default=60, ge=1, le=600, description="Timeout for MCP connect, list and tool calls"
    )

    # Domain config files
    access_policy_path: Path = Field(
        default=Path("config/access_policy.yaml"), description="Path to the access policy file"
    )
    model_catalogue_path: Path = Field(
        default=Path("config/models.yaml"), description="Path to the model catalogue file"
    )
    dataset_catalogue_path: Path = Field(
        default=Path("config/datasets.yaml"), description="Path to the dataset catalogue file"
    )
    metadata_path: Path = Field(
        default=Path("config/metadata.md"),
        description="Optional data-source metadata injected into system prompts",
    )

    # Documents
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data_agent.db",
        description="SQLAlchemy async URL for the document store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    document_retention_days: int = Field(
        default=30, ge=1, description="Days a saved document stays retrievable"
    )

    # Service
    service_host: str = Field(default="0.0.0.0", description="Service host address")
    service_port: int = Field(default=9000, description="Service port number")
    service_url: str = Field(
        default="http://localhost:9000", description="Base URL clients use to reach the service"
    )
    client_timeout_seconds: float = Field(
        default=900.0, gt=0, description="Client-side read timeout for streamed responses"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("default_model", "pipeline_gather_model", "pipeline_report_model")
    @classmethod
    def validate_model_ids(cls, v: str) -> str:
        """Validate model identifiers."""
        return validate_model_id(v)

    @field_validator(
        "log_dir",
        "access_policy_path",
        "model_catalogue_path",
        "dataset_catalogue_path",
        "metadata_path",
        mode="before",
    )
    @classmethod
    def resolve_paths(cls, v: Path | str) -> Path:
        """Resolve relative paths to absolute."""
        return resolve_path(v)


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    Loads .env files in priority order, then builds AppConfig from the
    environment.

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    log.info("loading_app_config", environment=get_environment().value)
    load_env_files()

    try:
        config = AppConfig()
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise

    log.info(
        "app_config_loaded",
        environment=config.environment.value,
        default_model=config.default_model,
        log_level=config.log_level,
        max_turns=config.orchestrator_max_turns,
    )
    return config


def get_settings() -> AppConfig:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings
