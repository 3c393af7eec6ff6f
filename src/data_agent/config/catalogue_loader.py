"""Load and validate the model catalogue from YAML.

The catalogue names the models a request may select, the two-phase pipelines
and the fan-out groups. Without a catalogue file a default one is built from
settings.
"""

from pathlib import Path

import structlog
from pydantic import ValidationError

from data_agent.config.loader import ConfigLoadError, format_validation_error, load_yaml_file
from data_agent.config.settings import AppConfig
from data_agent.llm_client.models import (
    FanOutDefinition,
    ModelCatalogue,
    ModelEntry,
    PipelineDefinition,
)

log = structlog.get_logger(__name__)

PIPELINE_ID = "blended"
FANOUT_ID = "head-to-head"


class ModelCatalogueError(ConfigLoadError):
    """Raised when the model catalogue cannot be loaded or is invalid."""

    pass


def build_default_catalogue(config: AppConfig) -> ModelCatalogue:
    """Build the catalogue used when no catalogue file exists.

    Args:
        config: Application settings supplying model ids.

    Returns:
        Catalogue with the default model, the report model, the ``blended``
        pipeline and a ``head-to-head`` fan-out over all three.
    """
    models = {
        config.default_model: ModelEntry(id=config.default_model, label="Gemini"),
        config.pipeline_gather_model: ModelEntry(id=config.pipeline_gather_model, label="Gemini"),
        config.pipeline_report_model: ModelEntry(
            id=config.pipeline_report_model, label="Claude Opus"
        ),
    }
    return ModelCatalogue(
        default_model=config.default_model,
        models=models,
        pipelines={
            PIPELINE_ID: PipelineDefinition(
                gather_model=config.pipeline_gather_model,
                report_model=config.pipeline_report_model,
                gather_max_tokens=config.pipeline_gather_max_tokens,
            )
        },
        fan_outs={
            FANOUT_ID: FanOutDefinition(
                columns={
                    "gemini": config.default_model,
                    "opus": config.pipeline_report_model,
                    "blended": PIPELINE_ID,
                }
            )
        },
    )


def load_model_catalogue(
    config_path: Path | str | None = None, config: AppConfig | None = None
) -> ModelCatalogue:
    """Load and validate the model catalogue.

    Args:
        config_path: Path to models.yaml. If None, uses ``settings.model_catalogue_path``.
        config: Settings used for the default catalogue. If None, uses the singleton.

    Returns:
        Validated ModelCatalogue.

    Raises:
        ModelCatalogueError: If the file exists but cannot be parsed or validated.
    """
    if config is None:
        from data_agent.config import settings  # noqa: PLC0415

        config = settings
    config_path = Path(config_path) if config_path is not None else config.model_catalogue_path

    if not config_path.exists():
        log.info("model_catalogue_default_used", config_path=str(config_path))
        return build_default_catalogue(config)

    content = load_yaml_file(config_path, error_class=ModelCatalogueError)
    if not content:
        log.warning("model_catalogue_empty", config_path=str(config_path))
        return build_default_catalogue(config)

    try:
        catalogue = ModelCatalogue.model_validate(content)
    except ValidationError as e:
        raise ModelCatalogueError(
            f"Model catalogue validation failed:\n{format_validation_error(e)}"
        ) from None

    log.info(
        "model_catalogue_loaded",
        default_model=catalogue.default_model,
        models=list(catalogue.models),
        pipelines=list(catalogue.pipelines),
        fan_outs=list(catalogue.fan_outs),
    )
    return catalogue
