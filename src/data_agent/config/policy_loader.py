"""Load and validate the tool access policy from YAML.

All configuration loaders live in the config/ module.
"""

from pathlib import Path

import structlog
from pydantic import ValidationError

from data_agent.config.loader import ConfigLoadError, format_validation_error, load_yaml_file
from data_agent.governance.models import AccessPolicy

log = structlog.get_logger(__name__)


class AccessPolicyConfigError(ConfigLoadError):
    """Raised when the access policy cannot be loaded or validated."""

    pass


def load_access_policy(config_path: Path | str | None = None) -> AccessPolicy:
    """Load and validate the access policy.

    A missing file is not an error: the built-in policy (allow-list
    ``["eastlake"]``) is returned instead, so a bare checkout still enforces
    a restrictive default.

    Args:
        config_path: Path to the policy YAML. If None, uses
            ``settings.access_policy_path``.

    Returns:
        Validated AccessPolicy.

    Raises:
        AccessPolicyConfigError: If the file exists but cannot be parsed or validated.

    Example:
        >>> policy = load_access_policy()
        >>> policy.allowed_sources
        ['eastlake']
    """
    if config_path is None:
        from data_agent.config import settings  # noqa: PLC0415

        config_path = settings.access_policy_path
    config_path = Path(config_path)

    if not config_path.exists():
        log.info("access_policy_default_used", config_path=str(config_path))
        return AccessPolicy()

    content = load_yaml_file(config_path, error_class=AccessPolicyConfigError)
    try:
        policy = AccessPolicy.model_validate(content)
    except ValidationError as e:
        raise AccessPolicyConfigError(
            f"Access policy validation failed:\n{format_validation_error(e)}"
        ) from None

    log.info(
        "access_policy_loaded",
        config_path=str(config_path),
        allowed_sources=policy.allowed_sources,
        hidden_remote_tools=policy.hidden_remote_tools,
    )
    return policy
