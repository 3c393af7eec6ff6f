"""Tests for the access policy loader."""

from pathlib import Path

import pytest

from data_agent.config import AccessPolicyConfigError, load_access_policy
from data_agent.governance.models import AccessPolicy


class TestLoadAccessPolicy:
    """Test loading the access policy from YAML."""

    def test_missing_file_uses_default(self, tmp_path: Path) -> None:
        """Test a missing file falls back to the built-in policy."""
        policy = load_access_policy(tmp_path / "missing.yaml")

        assert policy == AccessPolicy()
        assert policy.allowed_sources == ["eastlake"]
        assert policy.hidden_remote_tools == ["list_databases"]

    def test_load_valid_policy(self, tmp_path: Path) -> None:
        """Test a valid file is loaded and names normalized."""
        path = tmp_path / "policy.yaml"
        path.write_text(
            """
allowed_sources:
  - Eastlake
  - " Sales "
hidden_remote_tools: []
"""
        )

        policy = load_access_policy(path)

        assert policy.allowed_sources == ["eastlake", "sales"]
        assert policy.hidden_remote_tools == []
        assert policy.query_argument_fields == ["sql"]

    def test_blank_source_rejected(self, tmp_path: Path) -> None:
        """Test blank source names fail validation."""
        path = tmp_path / "policy.yaml"
        path.write_text("allowed_sources: ['  ']\n")

        with pytest.raises(AccessPolicyConfigError, match="allowed_sources"):
            load_access_policy(path)

    def test_wrong_type_rejected(self, tmp_path: Path) -> None:
        """Test a non-list allow-list fails validation."""
        path = tmp_path / "policy.yaml"
        path.write_text("allowed_sources: 42\n")

        with pytest.raises(AccessPolicyConfigError, match="validation failed"):
            load_access_policy(path)

    def test_unparseable_file(self, tmp_path: Path) -> None:
        """Test YAML syntax errors raise AccessPolicyConfigError."""
        path = tmp_path / "policy.yaml"
        path.write_text("allowed_sources: [eastlake\n")

        with pytest.raises(AccessPolicyConfigError):
            load_access_policy(path)

    def test_repository_policy_file(self) -> None:
        """Test the shipped config/access_policy.yaml is valid."""
        path = Path(__file__).parents[2] / "config" / "access_policy.yaml"

        policy = load_access_policy(path)

        assert policy.allowed_sources == ["eastlake"]
        assert "main" in policy.exempt_schemas


def test_describe_allowed() -> None:
    """Test the allow-list description used in prompts and denials."""
    policy = AccessPolicy(allowed_sources=["eastlake", "sales"])
    assert policy.describe_allowed() == "eastlake, sales"
