"""Chart recipe to visualization pipeline."""

from .recipe import Aggregation, ChartType, Recipe, parse_recipe, parse_recipes
from .aggregation import CategorySeries, HistogramSeries, ScatterSeries, compute_series
from .bucketing import CategorySelections
from .filters import FilterChip, FilterState
from .renderer import render_chart
from .controller import DashboardSession, DashboardView

__all__ = [
    'Aggregation',
    'ChartType',
    'Recipe',
    'parse_recipe',
    'parse_recipes',
    'CategorySeries',
    'HistogramSeries',
    'ScatterSeries',
    'compute_series',
    'CategorySelections',
    'FilterChip',
    'FilterState',
    'render_chart',
    'DashboardSession',
    'DashboardView',
]
