"""In-process visualization tools.

``generate_chart`` and ``generate_map`` never leave the process. Calling one
emits a ``chart``/``map`` frame to the client and hands the model a fixed
acknowledgment so its context reflects that the visual was shown.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from data_agent.tools.registry import ToolRegistry
from data_agent.tools.types import ToolDefinition, ToolKind

CHART_TOOL_NAME = "generate_chart"
MAP_TOOL_NAME = "generate_map"

CHART_ACK = "Chart generated and displayed to user."
MAP_ACK = "Map generated and displayed to user."


class ChartArgs(BaseModel):
    """Arguments of ``generate_chart``."""

    type: Literal["line", "bar", "pie", "xmr"]
    title: str
    data: list[dict[str, Any]]
    xKey: str  # noqa: N815
    yKey: str  # noqa: N815


class MapPoint(BaseModel):
    """One marker of ``generate_map``."""

    lat: float
    lng: float
    label: str
    value: float
    details: dict[str, Any] | None = None


class MapArgs(BaseModel):
    """Arguments of ``generate_map``."""

    title: str
    data: list[MapPoint]
    center: list[float] | None = Field(None, min_length=2, max_length=2)
    zoom: float | None = Field(None, ge=1, le=18)
    valueLabel: str | None = None  # noqa: N815


CHART_TOOL = ToolDefinition(
    name=CHART_TOOL_NAME,
    kind=ToolKind.SYNTHETIC,
    description=(
        "Generate a chart to visualize data. Use this after querying data to create visual "
        "representations. The chart will be displayed inline in the chat."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "type": {
                "type": "string",
                "enum": ["line", "bar", "pie", "xmr"],
                "description": (
                    "The type of chart to generate. Use line for trends over time, bar for "
                    "comparisons, pie for proportions, xmr for statistical process control."
                ),
            },
            "title": {"type": "string", "description": "A descriptive title for the chart."},
            "data": {
                "type": "array",
                "items": {"type": "object"},
                "description": "Array of data objects with keys matching xKey and yKey.",
            },
            "xKey": {
                "type": "string",
                "description": "The key in data objects to use for the x-axis.",
            },
            "yKey": {
                "type": "string",
                "description": "The key in data objects to use for the y-axis.",
            },
        },
        "required": ["type", "title", "data", "xKey", "yKey"],
    },
)

MAP_TOOL = ToolDefinition(
    name=MAP_TOOL_NAME,
    kind=ToolKind.SYNTHETIC,
    description=(
        "Generate an interactive map to visualize geographic data. Use this when data has "
        "location information. Markers are sized by value with popup details."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "A descriptive title for the map."},
            "data": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "lat": {"type": "number", "description": "Latitude coordinate"},
                        "lng": {"type": "number", "description": "Longitude coordinate"},
                        "label": {"type": "string", "description": "Marker label"},
                        "value": {"type": "number", "description": "Value for marker size"},
                        "details": {"type": "object", "description": "Extra popup fields"},
                    },
                    "required": ["lat", "lng", "label", "value"],
                },
                "description": "Array of location objects with coordinates and data.",
            },
            "center": {
                "type": "array",
                "items": {"type": "number"},
                "description": "Optional [lat, lng] center point for the map.",
            },
            "zoom": {"type": "number", "description": "Optional zoom level (1-18)."},
            "valueLabel": {
                "type": "string",
                "description": "Label for the value field in popups (e.g., 'Revenue').",
            },
        },
        "required": ["title", "data"],
    },
)


def register_synthetic_tools(registry: ToolRegistry) -> None:
    """Register ``generate_chart`` and ``generate_map`` with a registry."""
    registry.register(CHART_TOOL)
    registry.register(MAP_TOOL)
