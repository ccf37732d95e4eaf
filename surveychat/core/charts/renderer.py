"""Chart renderer mapping computed series to Plotly figures."""

from typing import Any, Dict, List, Optional
import json
import logging

import plotly.graph_objects as go

from surveychat.core.charts.aggregation import (
    OTHER_LABEL,
    CategorySeries,
    HistogramSeries,
    ScatterSeries,
    SeriesData,
)
from surveychat.core.charts.recipe import Aggregation, ChartType, Recipe

logger = logging.getLogger(__name__)

PALETTE = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#17becf",
    "#bcbd22",
    "#7f7f7f",
]
OTHER_COLOR = "#b0b7c3"
DIMMED_COLOR = "#e3e6ea"

DEFAULT_HEIGHT = 320
LONG_LABEL_LENGTH = 12
TICK_ANGLE = -35


def y_axis_title(recipe: Recipe) -> str:
    """Y axis label derived from the aggregation kind."""
    if recipe.type == ChartType.SCATTER.value:
        return recipe.y_column
    if recipe.type == ChartType.HISTOGRAM.value or recipe.aggregation == Aggregation.COUNT:
        return "Count"
    if recipe.aggregation == Aggregation.AVERAGE:
        return f"Avg {recipe.y_column}"
    return recipe.y_column


def category_colors(labels: List[str], active_value: Optional[str] = None) -> List[str]:
    """
    Colour per shown label.

    Real categories cycle through the palette by position; ``Other`` is
    always grey. With an active filter on the chart's column, every label
    except the filtered one is dimmed.
    """
    colors = []
    for index, label in enumerate(labels):
        if label == OTHER_LABEL:
            color = OTHER_COLOR
        else:
            color = PALETTE[index % len(PALETTE)]
        if active_value is not None and label != active_value:
            color = DIMMED_COLOR
        colors.append(color)
    return colors


def _needs_rotation(labels: List[str]) -> bool:
    return any(len(str(label)) > LONG_LABEL_LENGTH for label in labels)


def _category_traces(recipe: Recipe, series: CategorySeries, active_value: Optional[str]):
    colors = category_colors(series.labels, active_value)

    if recipe.type == ChartType.PIE.value:
        return go.Pie(
            labels=series.labels,
            values=series.values,
            marker={"colors": colors},
            sort=False,
            textinfo="label+percent",
            customdata=series.labels,
        )

    return go.Bar(
        x=series.labels,
        y=series.values,
        marker_color=colors,
        customdata=series.labels,
        hovertemplate="%{x}: %{y}<extra></extra>",
    )


def render_chart(
    recipe: Recipe,
    series: SeriesData,
    active_value: Optional[str] = None,
    height: int = DEFAULT_HEIGHT,
) -> go.Figure:
    """
    Build the figure for one chart card.

    Args:
        recipe: Chart recipe
        series: Series computed for the recipe
        active_value: Filtered value of the recipe's x column, if any
        height: Fixed chart height in pixels

    Returns:
        Plotly figure
    """
    layout: Dict[str, Any] = {
        "height": height,
        "showlegend": False,
        "margin": {"l": 48, "r": 16, "t": 40 if recipe.title else 16, "b": 48},
    }
    if recipe.title:
        layout["title"] = {"text": recipe.title}

    if isinstance(series, CategorySeries):
        trace = _category_traces(recipe, series, active_value)
        if recipe.type == ChartType.BAR.value:
            layout["xaxis"] = {"title": {"text": recipe.x_column}, "type": "category"}
            layout["yaxis"] = {"title": {"text": y_axis_title(recipe)}}
            if _needs_rotation(series.labels):
                layout["xaxis"]["tickangle"] = TICK_ANGLE

    elif isinstance(series, ScatterSeries):
        trace = go.Scatter(
            x=series.x,
            y=series.y,
            mode="markers",
            marker={"color": PALETTE[0], "opacity": 0.6},
        )
        layout["xaxis"] = {"title": {"text": recipe.x_column}}
        layout["yaxis"] = {"title": {"text": y_axis_title(recipe)}}

    elif isinstance(series, HistogramSeries):
        trace = go.Histogram(x=series.values, marker_color=PALETTE[0])
        layout["xaxis"] = {"title": {"text": recipe.x_column}}
        layout["yaxis"] = {"title": {"text": y_axis_title(recipe)}}

    else:
        raise TypeError(f"Unsupported series type: {type(series).__name__}")

    return go.Figure(data=[trace], layout=layout)


def figure_to_dict(figure: go.Figure) -> Dict[str, Any]:
    """JSON-safe figure payload; NaN samples become nulls."""
    return json.loads(figure.to_json())
