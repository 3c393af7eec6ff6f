"""Environment variable file loader with priority-based loading."""

import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from data_agent.telemetry import get_logger

log = get_logger(__name__)


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


_ALIASES = {
    "production": Environment.PRODUCTION,
    "prod": Environment.PRODUCTION,
    "staging": Environment.STAGING,
    "stage": Environment.STAGING,
    "test": Environment.TEST,
}


def get_environment() -> Environment:
    """Detect current environment from the APP_ENV environment variable.

    Returns:
        Environment enum value, DEVELOPMENT when unset or unrecognised.

    Note: environment detection happens before settings exist, so this reads
    os.environ directly.
    """
    return _ALIASES.get(os.getenv("APP_ENV", "").lower(), Environment.DEVELOPMENT)


def load_env_files(project_root: Path | None = None) -> list[str]:
    """Load .env files in priority order.

    Priority order (highest to lowest):
    1. `.env.{environment}.local`
    2. `.env.{environment}`
    3. `.env.local`
    4. `.env`

    Explicit environment variables always win over file values.

    Args:
        project_root: Directory holding the .env files. Defaults to the project root.

    Returns:
        Names of the files that were loaded, lowest priority first.
    """
    if project_root is None:
        project_root = Path(__file__).parent.parent.parent.parent

    env_name = get_environment().value
    candidates = [
        ".env.{}.local".format(env_name),
        ".env.{}".format(env_name),
        ".env.local",
        ".env",
    ]

    # load_dotenv(override=False) keeps the first value seen, so load highest priority first
    loaded_files = []
    for name in candidates:
        env_file = project_root / name
        if env_file.exists():
            load_dotenv(env_file, override=False)
            loaded_files.append(name)
    loaded_files.reverse()

    if loaded_files:
        log.info("env_files_loaded", environment=env_name, files=loaded_files)
    else:
        log.debug("no_env_files_found", environment=env_name, project_root=str(project_root))
    return loaded_files
