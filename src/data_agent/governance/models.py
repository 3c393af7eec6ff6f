"""Pydantic models for tool access governance.

The access policy decides which remote data sources a tool call may touch.
It is loaded from YAML by ``data_agent.config.load_access_policy``.
"""

from pydantic import BaseModel, Field, field_validator


class AccessPolicy(BaseModel):
    """Allow-list policy applied to remote data tools before dispatch.

    Attributes:
        allowed_sources: Data sources (databases) tools may access. Matching is
            case-insensitive and also accepts ``source.<anything>``.
        exempt_schemas: Namespace qualifiers that are never treated as a source
            when scanning query text (e.g. ``main.orders``).
        source_argument_fields: Argument names whose value names a data source.
        query_argument_fields: Argument names holding free-text queries to scan.
        hidden_remote_tools: Provider tools never offered to the model.
    """

    allowed_sources: list[str] = Field(
        default_factory=lambda: ["eastlake"], description="Allowed data sources"
    )
    exempt_schemas: list[str] = Field(
        default_factory=lambda: ["main", "public", "information_schema", "pg_catalog"],
        description="Schema qualifiers exempt from the source check",
    )
    source_argument_fields: list[str] = Field(
        default_factory=lambda: ["database"], description="Arguments naming a data source"
    )
    query_argument_fields: list[str] = Field(
        default_factory=lambda: ["sql"], description="Arguments holding query text"
    )
    hidden_remote_tools: list[str] = Field(
        default_factory=lambda: ["list_databases"],
        description="Remote tools filtered out of the model's tool catalogue",
    )

    @field_validator("allowed_sources", "exempt_schemas")
    @classmethod
    def normalize_names(cls, v: list[str]) -> list[str]:
        """Lowercase and strip names; reject blanks."""
        normalized = [name.strip().lower() for name in v]
        if any(not name for name in normalized):
            raise ValueError("names must be non-empty")
        return normalized

    def describe_allowed(self) -> str:
        """Comma-separated allow-list for denial messages and prompts."""
        return ", ".join(self.allowed_sources)
