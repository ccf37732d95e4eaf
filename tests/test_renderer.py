from __future__ import annotations

import math

import pytest

from surveychat.core.charts.aggregation import CategorySeries, HistogramSeries, ScatterSeries
from surveychat.core.charts.recipe import parse_recipe
from surveychat.core.charts.renderer import (
    DIMMED_COLOR,
    OTHER_COLOR,
    PALETTE,
    TICK_ANGLE,
    category_colors,
    figure_to_dict,
    render_chart,
    y_axis_title,
)


def test_palette_cycles_by_position_and_other_is_grey() -> None:
    labels = [f"label-{i}" for i in range(len(PALETTE) + 1)] + ["Other"]

    colors = category_colors(labels)

    assert colors[0] == PALETTE[0]
    assert colors[len(PALETTE)] == PALETTE[0]
    assert colors[-1] == OTHER_COLOR
    assert OTHER_COLOR not in PALETTE


def test_active_value_dims_other_labels() -> None:
    colors = category_colors(["Tech", "Finance", "Other"], active_value="Finance")

    assert colors == [DIMMED_COLOR, PALETTE[1], DIMMED_COLOR]


@pytest.mark.parametrize(
    ("recipe", "title"),
    [
        ({"type": "bar", "xColumn": "industry"}, "Count"),
        ({"type": "bar", "xColumn": "industry", "yColumn": "age", "aggregation": "average"}, "Avg age"),
        ({"type": "bar", "xColumn": "industry", "yColumn": "hours", "aggregation": "sum"}, "hours"),
        ({"type": "histogram", "xColumn": "age"}, "Count"),
        ({"type": "scatter", "xColumn": "age", "yColumn": "salary"}, "salary"),
    ],
)
def test_y_axis_titles(recipe: dict, title: str) -> None:
    assert y_axis_title(parse_recipe(recipe)) == title


def test_bar_chart_layout() -> None:
    recipe = parse_recipe({"type": "bar", "xColumn": "job_role", "title": "Roles"})
    series = CategorySeries(labels=["Individual Contributor", "Manager"], values=[3, 2])

    figure = figure_to_dict(render_chart(recipe, series, height=300))

    layout = figure["layout"]
    assert layout["height"] == 300
    assert layout["showlegend"] is False
    assert layout["title"]["text"] == "Roles"
    assert layout["xaxis"]["tickangle"] == TICK_ANGLE
    assert layout["yaxis"]["title"]["text"] == "Count"

    trace = figure["data"][0]
    assert trace["type"] == "bar"
    assert trace["x"] == ["Individual Contributor", "Manager"]
    assert trace["customdata"] == ["Individual Contributor", "Manager"]


def test_short_labels_are_not_rotated() -> None:
    recipe = parse_recipe({"type": "bar", "xColumn": "industry"})

    figure = figure_to_dict(render_chart(recipe, CategorySeries(["Tech"], [1])))

    assert "tickangle" not in figure["layout"]["xaxis"]


def test_pie_keeps_label_order_and_hides_legend() -> None:
    recipe = parse_recipe({"type": "pie", "xColumn": "industry"})
    series = CategorySeries(labels=["Tech", "Other"], values=[2, 2])

    figure = figure_to_dict(render_chart(recipe, series, active_value="Tech"))

    trace = figure["data"][0]
    assert trace["type"] == "pie"
    assert trace["sort"] is False
    assert trace["marker"]["colors"] == [PALETTE[0], DIMMED_COLOR]
    assert figure["layout"]["showlegend"] is False


def test_nan_samples_serialise_as_null() -> None:
    scatter = parse_recipe({"type": "scatter", "xColumn": "age", "yColumn": "salary"})
    figure = figure_to_dict(render_chart(scatter, ScatterSeries(x=[1.0, math.nan], y=[2.0, 3.0])))

    assert figure["data"][0]["mode"] == "markers"
    assert figure["data"][0]["x"] == [1.0, None]

    histogram = parse_recipe({"type": "histogram", "xColumn": "age"})
    figure = figure_to_dict(render_chart(histogram, HistogramSeries(values=[math.nan, 4.0])))

    assert figure["data"][0]["type"] == "histogram"
    assert figure["data"][0]["x"] == [None, 4.0]


def test_unsupported_series_raises() -> None:
    recipe = parse_recipe({"type": "bar", "xColumn": "industry"})

    with pytest.raises(TypeError):
        render_chart(recipe, {"labels": []})  # type: ignore[arg-type]
