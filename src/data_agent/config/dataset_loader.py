"""Load and validate the dataset catalogue from YAML.

The catalogue describes the data sources users can ask about: a display
name, a short description, example questions and optional metadata notes.
It is read-only at runtime; edit the YAML file to change it.
"""

import re
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from data_agent.config.loader import ConfigLoadError, format_validation_error, load_yaml_file

log = structlog.get_logger(__name__)

_URL_PATH_PATTERN = re.compile(r"^[a-z0-9-]+$")


class DatasetCatalogueError(ConfigLoadError):
    """Raised when the dataset catalogue cannot be loaded or is invalid."""

    pass


class DatasetSummary(BaseModel):
    """Public listing entry for one dataset."""

    name: str
    description: str | None = None
    url_path: str
    example_prompts: list[str] = Field(default_factory=list)


class DatasetEntry(DatasetSummary):
    """One dataset, including the metadata notes shown to the model."""

    metadata: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("url_path")
    @classmethod
    def validate_url_path(cls, v: str) -> str:
        """Only lowercase letters, digits and hyphens."""
        if not _URL_PATH_PATTERN.match(v):
            raise ValueError("url_path must contain only lowercase letters, numbers, and hyphens")
        return v

    def summary(self) -> DatasetSummary:
        return DatasetSummary.model_validate(self.model_dump(exclude={"metadata"}))


class DatasetCatalogue(BaseModel):
    """All configured datasets, kept sorted by name."""

    datasets: list[DatasetEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_paths(self) -> "DatasetCatalogue":
        seen: set[str] = set()
        for dataset in self.datasets:
            if dataset.url_path in seen:
                raise ValueError(f"duplicate url_path: {dataset.url_path}")
            seen.add(dataset.url_path)
        self.datasets.sort(key=lambda dataset: dataset.name.lower())
        return self

    def get(self, url_path: str) -> DatasetEntry | None:
        """Return the dataset at ``url_path``, or None."""
        for dataset in self.datasets:
            if dataset.url_path == url_path:
                return dataset
        return None

    def summaries(self) -> list[DatasetSummary]:
        """Listing entries, without metadata."""
        return [dataset.summary() for dataset in self.datasets]


def load_dataset_catalogue(config_path: Path | str | None = None) -> DatasetCatalogue:
    """Load and validate the dataset catalogue.

    A missing or empty file yields an empty catalogue.

    Args:
        config_path: Path to datasets.yaml. If None, uses
            ``settings.dataset_catalogue_path``.

    Returns:
        Validated DatasetCatalogue.

    Raises:
        DatasetCatalogueError: If the file exists but cannot be parsed or validated.
    """
    if config_path is None:
        from data_agent.config import settings  # noqa: PLC0415

        config_path = settings.dataset_catalogue_path
    config_path = Path(config_path)

    if not config_path.exists():
        log.info("dataset_catalogue_missing", config_path=str(config_path))
        return DatasetCatalogue()

    content = load_yaml_file(config_path, error_class=DatasetCatalogueError)
    if not content:
        log.warning("dataset_catalogue_empty", config_path=str(config_path))
        return DatasetCatalogue()

    try:
        catalogue = DatasetCatalogue.model_validate(content)
    except ValidationError as e:
        raise DatasetCatalogueError(
            f"Dataset catalogue validation failed:\n{format_validation_error(e)}"
        ) from None

    log.info(
        "dataset_catalogue_loaded",
        datasets=[dataset.url_path for dataset in catalogue.datasets],
    )
    return catalogue
