from __future__ import annotations

import math

import pytest

from surveychat.core.charts.aggregation import (
    OTHER_LABEL,
    CategorySeries,
    HistogramSeries,
    ScatterSeries,
    category_order,
    compute_series,
)
from surveychat.core.charts.recipe import parse_recipe
from surveychat.core.rows.store import RowStore

COUNT_BY_INDUSTRY = {"type": "bar", "xColumn": "industry", "aggregation": "count"}


def test_count_without_selection_shows_every_category(industry_store: RowStore) -> None:
    series = compute_series(parse_recipe(COUNT_BY_INDUSTRY), industry_store.rows)

    assert isinstance(series, CategorySeries)
    assert dict(zip(series.labels, series.values)) == {"Tech": 2, "Finance": 1, "Unknown": 1}
    assert sum(series.values) == 4
    assert OTHER_LABEL not in series.labels


def test_count_with_selection_merges_into_other(industry_store: RowStore) -> None:
    series = compute_series(parse_recipe(COUNT_BY_INDUSTRY), industry_store.rows, ["Tech"])

    assert series.labels == ["Tech", "Other"]
    assert series.values == [2, 2]


def test_ties_break_lexicographically() -> None:
    store = RowStore.from_records(
        [{"c": "b"}, {"c": "a"}, {"c": "c"}, {"c": "c"}, {"c": "b"}, {"c": "a"}, {"c": "d"}]
    )

    assert category_order(store.rows, "c") == ["a", "b", "c", "d"]


@pytest.mark.parametrize(
    "selection",
    [None, ["Tech"], ["Finance", "Media"], ["Legal"], ["Tech", "Finance", "Healthcare", "Retail"]],
)
def test_count_total_matches_row_count(survey_store: RowStore, selection) -> None:
    series = compute_series(parse_recipe(COUNT_BY_INDUSTRY), survey_store.rows, selection)

    assert sum(series.values) == len(survey_store)


def test_shown_labels_keep_frequency_order(survey_store: RowStore) -> None:
    series = compute_series(
        parse_recipe(COUNT_BY_INDUSTRY), survey_store.rows, ["Legal", "Tech", "Retail"]
    )

    assert series.labels == ["Tech", "Retail", "Legal", "Other"]
    assert series.values == [5, 2, 1, 8]


def test_average_never_adds_other_bucket() -> None:
    store = RowStore.from_records(
        [
            {"industry": "Tech", "salary": "100"},
            {"industry": "Tech", "salary": "201"},
            {"industry": "Tech", "salary": "n/a"},
            {"industry": "Finance", "salary": "50"},
            {"industry": "Retail", "salary": ""},
        ]
    )
    recipe = parse_recipe(
        {"type": "bar", "xColumn": "industry", "yColumn": "salary", "aggregation": "average"}
    )

    everything = compute_series(recipe, store.rows)
    assert dict(zip(everything.labels, everything.values)) == {
        "Tech": 150.5,
        "Finance": 50.0,
        "Retail": 0.0,
    }

    selected = compute_series(recipe, store.rows, ["Tech"])
    assert selected.labels == ["Tech"]
    assert selected.values == [150.5]


def test_average_rounds_to_two_decimals() -> None:
    store = RowStore.from_records(
        [{"g": "x", "v": "1"}, {"g": "x", "v": "1"}, {"g": "x", "v": "2"}]
    )
    recipe = parse_recipe({"type": "bar", "xColumn": "g", "yColumn": "v", "aggregation": "average"})

    assert compute_series(recipe, store.rows).values == [1.33]


def test_sum_skips_non_numeric_and_merges_other() -> None:
    store = RowStore.from_records(
        [
            {"industry": "Tech", "hours": "10"},
            {"industry": "Tech", "hours": "5"},
            {"industry": "Finance", "hours": "7"},
            {"industry": "Retail", "hours": "x"},
            {"industry": "Media", "hours": "3"},
        ]
    )
    recipe = parse_recipe(
        {"type": "pie", "xColumn": "industry", "yColumn": "hours", "aggregation": "sum"}
    )

    series = compute_series(recipe, store.rows, ["Tech"])

    assert series.labels == ["Tech", "Other"]
    assert series.values == [15.0, 10.0]


def test_sum_other_bucket_omitted_when_zero() -> None:
    store = RowStore.from_records(
        [
            {"industry": "Tech", "hours": "10"},
            {"industry": "Tech", "hours": "5"},
            {"industry": "Retail", "hours": ""},
        ]
    )
    recipe = parse_recipe(
        {"type": "bar", "xColumn": "industry", "yColumn": "hours", "aggregation": "sum"}
    )

    series = compute_series(recipe, store.rows, ["Tech"])

    assert series.labels == ["Tech"]


def test_missing_column_degrades_to_unknown(industry_store: RowStore) -> None:
    recipe = parse_recipe({"type": "bar", "xColumn": "nope"})

    series = compute_series(recipe, industry_store.rows)

    assert series.labels == ["Unknown"]
    assert series.values == [4]


def test_empty_rows_yield_empty_series() -> None:
    series = compute_series(parse_recipe(COUNT_BY_INDUSTRY), [])

    assert series == CategorySeries()


def test_scatter_and_histogram_keep_nan_samples() -> None:
    store = RowStore.from_records(
        [{"age": "30", "salary": "1000"}, {"age": "", "salary": "2000"}, {"age": "41", "salary": "x"}]
    )

    scatter = compute_series(
        parse_recipe({"type": "scatter", "xColumn": "age", "yColumn": "salary"}), store.rows
    )
    assert isinstance(scatter, ScatterSeries)
    assert scatter.x[0] == 30.0
    assert math.isnan(scatter.x[1])
    assert math.isnan(scatter.y[2])

    histogram = compute_series(parse_recipe({"type": "histogram", "xColumn": "age"}), store.rows)
    assert isinstance(histogram, HistogramSeries)
    assert len(histogram.values) == 3
    assert histogram.values[2] == 41.0
