"""Pydantic models for the model catalogue.

The catalogue maps the ``model`` field of an inbound request onto one of three
orchestration routes: a single model, the two-phase pipeline, or a fan-out over
several independent columns.
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class RouteKind(str, Enum):
    """How a requested model identifier is orchestrated."""

    STANDALONE = "standalone"
    PIPELINE = "pipeline"
    FANOUT = "fanout"


class ModelEntry(BaseModel):
    """A single provider model.

    Attributes:
        id: Provider model identifier (e.g. "anthropic/claude-opus-4.5").
        label: Human-readable name used in progress text.
        max_tokens: Optional per-model output token cap (None uses settings).
    """

    id: str = Field(..., description="Provider model identifier")
    label: str = Field(..., description="Display name")
    max_tokens: int | None = Field(None, ge=1, description="Output token cap override")


class PipelineDefinition(BaseModel):
    """Two-phase pipeline: a tool-using gatherer followed by a tool-less reporter."""

    gather_model: str = Field(..., description="Model id for data gathering")
    report_model: str = Field(..., description="Model id for report generation")
    gather_max_tokens: int = Field(8192, ge=1, description="Output cap for gathering turns")


class FanOutDefinition(BaseModel):
    """Fan-out: run every column as an independent exchange over the same input.

    Attributes:
        columns: Mapping of column name to a model id or pipeline id.
    """

    columns: dict[str, str] = Field(..., min_length=1, description="Column name to route id")


class ModelRoute(BaseModel):
    """Resolved orchestration route for a requested model identifier."""

    kind: RouteKind
    model_id: str
    label: str


class ModelCatalogue(BaseModel):
    """Complete model catalogue (config/models.yaml after validation)."""

    default_model: str = Field(..., description="Model id used when a request names none")
    models: dict[str, ModelEntry] = Field(default_factory=dict, description="Models by id")
    pipelines: dict[str, PipelineDefinition] = Field(
        default_factory=dict, description="Pipelines by id"
    )
    fan_outs: dict[str, FanOutDefinition] = Field(
        default_factory=dict, description="Fan-outs by id"
    )

    @model_validator(mode="after")
    def check_references(self) -> "ModelCatalogue":
        """Fan-out columns may not name another fan-out."""
        for fan_out_id, fan_out in self.fan_outs.items():
            for column, target in fan_out.columns.items():
                if target in self.fan_outs:
                    raise ValueError(
                        f"fan-out '{fan_out_id}' column '{column}' cannot nest fan-out '{target}'"
                    )
        return self

    def label_for(self, model_id: str) -> str:
        """Display label for a model id, falling back to the id itself."""
        entry = self.models.get(model_id)
        return entry.label if entry else model_id

    def max_tokens_for(self, model_id: str, default: int) -> int:
        """Output token cap for a model id."""
        entry = self.models.get(model_id)
        if entry and entry.max_tokens:
            return entry.max_tokens
        return default

    def resolve(self, requested: str | None) -> ModelRoute:
        """Resolve a requested model identifier to an orchestration route.

        Unknown identifiers are passed through as standalone models so any
        provider model can be addressed directly.

        Args:
            requested: The request's ``model`` field, or None.

        Returns:
            The resolved ModelRoute.
        """
        model_id = requested or self.default_model
        if model_id in self.fan_outs:
            return ModelRoute(kind=RouteKind.FANOUT, model_id=model_id, label=model_id)
        if model_id in self.pipelines:
            return ModelRoute(kind=RouteKind.PIPELINE, model_id=model_id, label=model_id)
        return ModelRoute(
            kind=RouteKind.STANDALONE, model_id=model_id, label=self.label_for(model_id)
        )
