"""Cross-filter controller owning one page session's dashboard state."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging
import uuid

from surveychat.core.charts.aggregation import OTHER_LABEL, category_order, compute_series
from surveychat.core.charts.bucketing import DEFAULT_TOP_K, CategorySelections
from surveychat.core.charts.filters import FilterChip, FilterState
from surveychat.core.charts.recipe import Recipe
from surveychat.core.charts.renderer import DEFAULT_HEIGHT, figure_to_dict, render_chart
from surveychat.core.rows.store import Row, RowStore
from surveychat.utils.exceptions import CardNotFoundException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartCard:
    """One recipe placed on the dashboard."""

    card_id: str
    recipe: Recipe

    @property
    def clickable(self) -> bool:
        return self.recipe.is_categorical


@dataclass
class RenderedCard:
    """Card state after a render pass."""

    card_id: str
    recipe: Recipe
    clickable: bool
    figure: Optional[Dict[str, Any]]
    categories: List[str] = field(default_factory=list)
    selected: Optional[List[str]] = None
    all_selected: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cardId": self.card_id,
            "recipe": self.recipe.to_wire(),
            "clickable": self.clickable,
            "categories": self.categories,
            "selected": self.selected,
            "allSelected": self.all_selected,
            "figure": self.figure,
            "error": self.error,
        }


@dataclass
class DashboardView:
    """Everything the page needs to draw the dashboard."""

    session_id: str
    filters: List[FilterChip]
    cards: List[RenderedCard]
    row_count: int
    total_rows: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "filters": [chip.to_dict() for chip in self.filters],
            "cards": [card.to_dict() for card in self.cards],
            "rowCount": self.row_count,
            "totalRows": self.total_rows,
        }


Observer = Callable[[DashboardView], None]


class DashboardSession:
    """
    Filter state and category selections for one page lifetime.

    Every mutation recomputes the filtered rows, re-renders every card and
    hands the new view to the subscribed observers. Nothing is persisted.
    """

    def __init__(
        self,
        store: RowStore,
        recipes: Sequence[Recipe],
        session_id: Optional[str] = None,
        top_k: int = DEFAULT_TOP_K,
        chart_height: int = DEFAULT_HEIGHT,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.store = store
        self.cards = [ChartCard(f"card-{index}", recipe) for index, recipe in enumerate(recipes)]
        self.filters = FilterState()
        self.selections = CategorySelections(top_k)
        self.chart_height = chart_height
        self._observers: List[Observer] = []
        self._view: Optional[DashboardView] = None

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def card(self, card_id: str) -> ChartCard:
        for card in self.cards:
            if card.card_id == card_id:
                return card
        raise CardNotFoundException(card_id)

    def filtered_rows(self) -> List[Row]:
        return self.filters.apply(self.store.rows)

    @property
    def view(self) -> DashboardView:
        if self._view is None:
            self._view = self.render()
        return self._view

    def render(self) -> DashboardView:
        rows = self.filtered_rows()
        return DashboardView(
            session_id=self.session_id,
            filters=self.filters.chips(),
            cards=[self._render_card(card, rows) for card in self.cards],
            row_count=len(rows),
            total_rows=len(self.store),
        )

    def _card_rows(self, card: ChartCard, rows: List[Row]) -> List[Row]:
        """
        Rows a card is drawn from.

        A categorical card whose own column is filtered ignores that filter,
        so the filtered value is drawn in full colour next to its dimmed
        siblings.
        """
        if card.clickable and card.recipe.x_column in self.filters:
            return self.filters.apply(self.store.rows, exclude=card.recipe.x_column)
        return rows

    def _render_card(self, card: ChartCard, rows: List[Row]) -> RenderedCard:
        recipe = card.recipe
        try:
            categories: List[str] = []
            selected = None
            all_selected = True
            active_value = None

            if card.clickable:
                rows = self._card_rows(card, rows)
                categories = category_order(rows, recipe.x_column)
                selected = self.selections.ensure_selection(card.card_id, recipe.x_column, rows)
                all_selected = selected is None or self.selections.is_all(card.card_id, categories)
                active_value = self.filters.get(recipe.x_column)

            series = compute_series(recipe, rows, selected)
            figure = render_chart(recipe, series, active_value=active_value, height=self.chart_height)
            return RenderedCard(
                card_id=card.card_id,
                recipe=recipe,
                clickable=card.clickable,
                figure=figure_to_dict(figure),
                categories=categories,
                selected=selected,
                all_selected=all_selected,
            )
        except Exception as e:
            logger.error(f"Failed to render {card.card_id}: {e}", exc_info=True)
            return RenderedCard(
                card_id=card.card_id,
                recipe=recipe,
                clickable=card.clickable,
                figure=None,
                error="Chart could not be rendered",
            )

    def _changed(self) -> DashboardView:
        self._view = self.render()
        for observer in list(self._observers):
            try:
                observer(self._view)
            except Exception as e:
                logger.error(f"Dashboard observer failed: {e}", exc_info=True)
        return self._view

    def click(self, card_id: str, label: str) -> bool:
        """
        Toggle the cross-filter for a clicked bar or pie slice.

        Scatter and histogram cards and the synthetic ``Other`` bucket are
        not filterable.

        Returns:
            True if the filter state changed
        """
        card = self.card(card_id)
        if not card.clickable or label == OTHER_LABEL:
            logger.debug(f"Ignoring click on {card_id} label={label!r}")
            return False

        self.filters.toggle(card.recipe.x_column, label)
        self._changed()
        return True

    def remove_filter(self, column: str) -> bool:
        if not self.filters.remove(column):
            return False
        self._changed()
        return True

    def clear_filters(self) -> bool:
        if not self.filters.clear():
            return False
        self._changed()
        return True

    def _card_categories(self, card: ChartCard) -> List[str]:
        rows = self._card_rows(card, self.filtered_rows())
        categories = category_order(rows, card.recipe.x_column)
        # make sure the default exists before it gets edited
        self.selections.ensure_selection(card.card_id, card.recipe.x_column, rows)
        return categories

    def toggle_category(self, card_id: str, label: str) -> bool:
        """Show or collapse one category on a card."""
        card = self.card(card_id)
        if not card.clickable:
            return False

        categories = self._card_categories(card)
        if not self.selections.needs_selection(categories):
            return False

        if not self.selections.toggle(card_id, label, categories):
            return False
        self._changed()
        return True

    def toggle_all_categories(self, card_id: str) -> bool:
        """Flip a card between all categories and the default top-K."""
        card = self.card(card_id)
        if not card.clickable:
            return False

        categories = self._card_categories(card)
        if not self.selections.needs_selection(categories):
            return False

        if not self.selections.toggle_all(card_id, categories):
            return False
        self._changed()
        return True
