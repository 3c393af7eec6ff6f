"""Tests for the dataset catalogue loader."""

from pathlib import Path

import pytest

from data_agent.config import DatasetCatalogueError, load_dataset_catalogue


class TestLoadDatasetCatalogue:
    """Test loading the dataset catalogue from YAML."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """Test a missing file yields no datasets."""
        catalogue = load_dataset_catalogue(tmp_path / "missing.yaml")

        assert catalogue.datasets == []
        assert catalogue.summaries() == []

    def test_sorted_by_name(self, tmp_path: Path) -> None:
        """Test datasets are listed by name and looked up by url path."""
        path = tmp_path / "datasets.yaml"
        path.write_text(
            """
datasets:
  - name: Westfield
    url_path: westfield
  - name: eastlake
    url_path: eastlake
    example_prompts: ["Orders per region?"]
    metadata: Tables live in eastlake.main.
"""
        )

        catalogue = load_dataset_catalogue(path)

        assert [dataset.name for dataset in catalogue.datasets] == ["eastlake", "Westfield"]
        assert catalogue.get("eastlake").metadata == "Tables live in eastlake.main."
        assert catalogue.get("missing") is None

    def test_summaries_omit_metadata(self, tmp_path: Path) -> None:
        """Test listing entries leave out the metadata notes."""
        path = tmp_path / "datasets.yaml"
        path.write_text(
            "datasets:\n  - name: Eastlake\n    url_path: eastlake\n    metadata: notes\n"
        )

        summary = load_dataset_catalogue(path).summaries()[0]

        assert summary.model_dump() == {
            "name": "Eastlake",
            "description": None,
            "url_path": "eastlake",
            "example_prompts": [],
        }

    def test_invalid_url_path_rejected(self, tmp_path: Path) -> None:
        """Test url paths outside lowercase letters, digits and hyphens fail."""
        path = tmp_path / "datasets.yaml"
        path.write_text("datasets:\n  - name: Eastlake\n    url_path: East_Lake\n")

        with pytest.raises(DatasetCatalogueError, match="url_path"):
            load_dataset_catalogue(path)

    def test_duplicate_url_path_rejected(self, tmp_path: Path) -> None:
        """Test two datasets cannot share a url path."""
        path = tmp_path / "datasets.yaml"
        path.write_text(
            "datasets:\n"
            "  - name: Eastlake\n    url_path: eastlake\n"
            "  - name: Eastlake copy\n    url_path: eastlake\n"
        )

        with pytest.raises(DatasetCatalogueError, match="duplicate url_path"):
            load_dataset_catalogue(path)

    def test_repository_catalogue_file(self) -> None:
        """Test the shipped config/datasets.yaml is valid."""
        path = Path(__file__).parents[2] / "config" / "datasets.yaml"

        catalogue = load_dataset_catalogue(path)

        eastlake = catalogue.get("eastlake")
        assert eastlake is not None
        assert eastlake.example_prompts
