"""Access checks for remote data tools.

Two checks run before a remote call is dispatched:

1. Source-naming argument fields (``database`` by default) must name an
   allowed source, either exactly or in ``source.*`` form.
2. Query argument fields (``sql`` by default) are scanned for
   ``FROM|JOIN|INTO source.table`` references. Schema qualifiers such as
   ``main`` or ``public`` are exempt.

The query scan is a regex heuristic, not a parser: it can reject a qualified
name that is not a source and miss an obfuscated reference.
"""

import re
from typing import Any

from data_agent.governance.models import AccessPolicy

SOURCE_REFERENCE_PATTERN = re.compile(
    r"\b(?:FROM|JOIN|INTO)\s+([A-Za-z_][A-Za-z0-9_]{2,})\.([A-Za-z_][A-Za-z0-9_]*)",
    re.IGNORECASE,
)


class PermissionResult:
    """Result of a permission check."""

    def __init__(self, allowed: bool, reason: str = "") -> None:
        """Initialize permission result.

        Args:
            allowed: Whether permission is granted.
            reason: Reason for denial (if not allowed).
        """
        self.allowed = allowed
        self.reason = reason


def is_source_allowed(name: str, policy: AccessPolicy) -> bool:
    """Check a source name against the allow-list.

    Args:
        name: Source name as given by the model.
        policy: Access policy.

    Returns:
        True if the name equals an allowed source or starts with ``source.``.
    """
    normalized = name.lower().strip()
    return any(
        normalized == allowed or normalized.startswith(f"{allowed}.")
        for allowed in policy.allowed_sources
    )


def find_source_references(query: str, policy: AccessPolicy) -> list[str]:
    """Return qualifiers in ``query`` that look like source references.

    Exempt schema names are skipped; allowed and denied names are both returned.
    """
    refs = []
    for match in SOURCE_REFERENCE_PATTERN.finditer(query):
        qualifier = match.group(1)
        if qualifier.lower() in policy.exempt_schemas:
            continue
        refs.append(qualifier)
    return refs


def check_tool_access(arguments: dict[str, Any], policy: AccessPolicy) -> PermissionResult:
    """Validate remote tool arguments against the access policy.

    Args:
        arguments: Parsed tool arguments.
        policy: Access policy.

    Returns:
        PermissionResult; ``reason`` starts with "Access denied" on denial.
    """
    allowed_list = policy.describe_allowed()

    for field in policy.source_argument_fields:
        value = arguments.get(field)
        if isinstance(value, str) and value and not is_source_allowed(value, policy):
            return PermissionResult(
                allowed=False,
                reason=(
                    f"Access denied: Database '{value}' is not in the allowed list. "
                    f"You can only access: {allowed_list}"
                ),
            )

    for field in policy.query_argument_fields:
        query = arguments.get(field)
        if not isinstance(query, str):
            continue
        for qualifier in find_source_references(query, policy):
            if not is_source_allowed(qualifier, policy):
                return PermissionResult(
                    allowed=False,
                    reason=(
                        f"Access denied: Query references unauthorized database '{qualifier}'. "
                        f"You can only access: {allowed_list}"
                    ),
                )

    return PermissionResult(allowed=True)
