"""Tests for shared YAML loader utilities."""

from pathlib import Path

import pytest
from pydantic import BaseModel, ValidationError

from data_agent.config.loader import ConfigLoadError, format_validation_error, load_yaml_file


class TestLoadYamlFile:
    """Test shared YAML loading utility."""

    def test_load_valid_yaml(self, tmp_path: Path) -> None:
        """Test loading a valid YAML file."""
        yaml_file = tmp_path / "test.yaml"
        yaml_file.write_text(
            """
key1: value1
key2:
  nested: value2
list:
  - item1
  - item2
"""
        )

        result = load_yaml_file(yaml_file)

        assert result == {
            "key1": "value1",
            "key2": {"nested": "value2"},
            "list": ["item1", "item2"],
        }

    def test_load_empty_file(self, tmp_path: Path) -> None:
        """Test that empty file returns empty dict."""
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert load_yaml_file(yaml_file) == {}

    def test_load_comments_only(self, tmp_path: Path) -> None:
        """Test that a file with only comments returns empty dict."""
        yaml_file = tmp_path / "comments.yaml"
        yaml_file.write_text("# Just comments\n# No actual content")

        assert load_yaml_file(yaml_file) == {}

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """Test that missing file raises ConfigLoadError."""
        with pytest.raises(ConfigLoadError, match="not found"):
            load_yaml_file(tmp_path / "nonexistent.yaml")

    def test_load_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that invalid YAML raises ConfigLoadError."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("key: [unclosed")

        with pytest.raises(ConfigLoadError, match="Failed to parse"):
            load_yaml_file(yaml_file)

    def test_top_level_list_rejected(self, tmp_path: Path) -> None:
        """Test that a top-level sequence is not accepted as configuration."""
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigLoadError, match="must contain a mapping"):
            load_yaml_file(yaml_file)

    def test_custom_error_class(self, tmp_path: Path) -> None:
        """Test that the requested error class is raised."""

        class CustomError(Exception):
            pass

        with pytest.raises(CustomError):
            load_yaml_file(tmp_path / "missing.yaml", error_class=CustomError)


def test_format_validation_error() -> None:
    """Test validation errors render as field path lines."""

    class Inner(BaseModel):
        count: int

    class Outer(BaseModel):
        inner: Inner

    with pytest.raises(ValidationError) as exc_info:
        Outer.model_validate({"inner": {"count": "many"}})

    text = format_validation_error(exc_info.value)
    assert text.startswith("inner -> count: ")
