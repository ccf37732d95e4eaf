"""Aggregation engine turning a recipe and a row subset into plot-ready series."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union
import logging

import numpy as np
import pandas as pd

from surveychat.core.charts.recipe import Aggregation, ChartType, Recipe
from surveychat.core.rows.store import Row

logger = logging.getLogger(__name__)

OTHER_LABEL = "Other"


@dataclass(frozen=True)
class CategorySeries:
    """Grouped values for bar and pie charts."""

    labels: List[str] = field(default_factory=list)
    values: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, list]:
        return {"labels": list(self.labels), "values": list(self.values)}


@dataclass(frozen=True)
class ScatterSeries:
    """Parallel numeric samples; NaN marks an unplottable point."""

    x: List[float] = field(default_factory=list)
    y: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, list]:
        return {"x": list(self.x), "y": list(self.y)}


@dataclass(frozen=True)
class HistogramSeries:
    """Raw numeric samples, binned by the renderer."""

    values: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, list]:
        return {"values": list(self.values)}


SeriesData = Union[CategorySeries, ScatterSeries, HistogramSeries]


def category_counts(rows: Sequence[Row], column: str) -> pd.Series:
    """
    Count rows per category label.

    Labels are ordered by descending count; equal counts fall back to
    lexicographic label order so the result does not depend on row order.

    Args:
        rows: Row subset to count over
        column: Grouping column

    Returns:
        Series of counts indexed by label
    """
    labels = pd.Series([row.category(column) for row in rows], dtype=object)
    counts = labels.value_counts(sort=False).rename_axis("label").reset_index(name="size")
    counts = counts.sort_values(["size", "label"], ascending=[False, True], kind="mergesort")
    return pd.Series(counts["size"].to_numpy(), index=counts["label"].to_numpy(), dtype="int64")


def category_order(rows: Sequence[Row], column: str) -> List[str]:
    """Category labels of ``column`` in display order."""
    return [str(label) for label in category_counts(rows, column).index]


def _group_values(
    rows: Sequence[Row],
    x_column: str,
    y_column: Optional[str],
    aggregation: Aggregation,
    counts: pd.Series,
) -> Dict[str, float]:
    """Scalar per category for the requested aggregation."""
    if aggregation == Aggregation.COUNT or not y_column:
        return {str(label): int(size) for label, size in counts.items()}

    keys = [row.category(x_column) for row in rows]
    numbers = pd.Series([row.number(y_column) for row in rows], dtype="float64")
    grouped = numbers.groupby(pd.Series(keys, dtype=object), sort=False)

    if aggregation == Aggregation.SUM:
        # NaN entries are skipped; a group with no numeric value sums to 0
        totals = grouped.sum()
        return {str(label): float(value) for label, value in totals.items()}

    means = grouped.mean().fillna(0.0).round(2)
    return {str(label): float(value) for label, value in means.items()}


def compute_series(
    recipe: Recipe,
    rows: Sequence[Row],
    selection: Optional[Iterable[str]] = None,
) -> SeriesData:
    """
    Compute the plotted data for one chart.

    The rows are expected to be filtered already. For categorical charts the
    optional ``selection`` lists the labels shown individually; every other
    label is merged into an ``Other`` bucket, except for averages where the
    collapsed labels are dropped.

    Args:
        recipe: Chart recipe
        rows: Filtered row subset
        selection: Labels to show, or None to show every label

    Returns:
        Series matching the recipe's chart type
    """
    if recipe.type == ChartType.SCATTER.value:
        return ScatterSeries(
            x=[row.number(recipe.x_column) for row in rows],
            y=[row.number(recipe.y_column) for row in rows],
        )

    if recipe.type == ChartType.HISTOGRAM.value:
        return HistogramSeries(values=[row.number(recipe.x_column) for row in rows])

    counts = category_counts(rows, recipe.x_column)
    if counts.empty:
        return CategorySeries()

    order = [str(label) for label in counts.index]
    values = _group_values(rows, recipe.x_column, recipe.y_column, recipe.aggregation, counts)

    if selection is None:
        shown = order
        collapsed: List[str] = []
    else:
        selected = set(selection)
        shown = [label for label in order if label in selected]
        collapsed = [label for label in order if label not in selected]

    labels = list(shown)
    series_values = [values[label] for label in shown]

    if recipe.aggregation != Aggregation.AVERAGE and collapsed:
        other = sum(values[label] for label in collapsed)
        if other != 0 and not np.isnan(other):
            labels.append(OTHER_LABEL)
            series_values.append(other)

    return CategorySeries(labels=labels, values=series_values)
