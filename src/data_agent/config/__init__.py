"""Unified configuration management for the Data Agent.

A single source of truth for configuration: environment variables, .env files,
YAML domain files and defaults.
"""

from data_agent.config.env_loader import Environment, get_environment
from data_agent.config.settings import AppConfig, get_settings, load_app_config

# Singleton instance
settings = get_settings()

from data_agent.config.catalogue_loader import (  # noqa: E402
    FANOUT_ID,
    PIPELINE_ID,
    ModelCatalogueError,
    build_default_catalogue,
    load_model_catalogue,
)
from data_agent.config.dataset_loader import (  # noqa: E402
    DatasetCatalogue,
    DatasetCatalogueError,
    load_dataset_catalogue,
)
from data_agent.config.loader import ConfigLoadError  # noqa: E402
from data_agent.config.policy_loader import (  # noqa: E402
    AccessPolicyConfigError,
    load_access_policy,
)

__all__ = [
    # App-level settings
    "settings",
    "AppConfig",
    "get_settings",
    "load_app_config",
    "Environment",
    "get_environment",
    # Domain loaders
    "load_access_policy",
    "load_model_catalogue",
    "build_default_catalogue",
    "load_dataset_catalogue",
    "DatasetCatalogue",
    "PIPELINE_ID",
    "FANOUT_ID",
    # Exception classes
    "ConfigLoadError",
    "AccessPolicyConfigError",
    "ModelCatalogueError",
    "DatasetCatalogueError",
]
