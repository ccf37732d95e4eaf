"""Per-card memory of which category labels are shown versus collapsed."""

from typing import Dict, List, Optional, Sequence
import logging

from surveychat.core.charts.aggregation import category_order
from surveychat.core.rows.store import Row

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 4


class CategorySelections:
    """
    Shown-label selections keyed by chart card id.

    A card only gets a selection once its x column has more distinct values
    than ``top_k``. The default selection is the ``top_k`` most frequent
    labels; after that, user picks persist even when filters change the
    ranking.
    """

    def __init__(self, top_k: int = DEFAULT_TOP_K):
        if top_k < 1:
            raise ValueError("top_k must be >= 1")
        self.top_k = top_k
        self._selections: Dict[str, List[str]] = {}

    def needs_selection(self, categories: Sequence[str]) -> bool:
        return len(categories) > self.top_k

    def default_selection(self, categories: Sequence[str]) -> List[str]:
        return list(categories[: self.top_k])

    def ensure_selection(
        self, card_id: str, column: str, rows: Sequence[Row]
    ) -> Optional[List[str]]:
        """
        Selection to pass to the aggregation engine for one card.

        Args:
            card_id: Chart card identifier
            column: The card's x column
            rows: Currently filtered rows

        Returns:
            Shown labels, or None when every category fits on the chart
        """
        categories = category_order(rows, column)
        if not self.needs_selection(categories):
            return None

        if card_id not in self._selections:
            self._selections[card_id] = self.default_selection(categories)
            logger.debug(f"Default selection for {card_id}: {self._selections[card_id]}")

        return list(self._selections[card_id])

    def selection(self, card_id: str) -> Optional[List[str]]:
        selected = self._selections.get(card_id)
        return list(selected) if selected is not None else None

    def toggle(self, card_id: str, label: str, categories: Sequence[str]) -> bool:
        """
        Add or remove one label from a card's selection.

        Removing the last selected label is rejected.

        Returns:
            True if the selection changed
        """
        current = self._selections.get(card_id)
        selected = list(current) if current is not None else self.default_selection(categories)

        if label in selected:
            if len(selected) <= 1:
                logger.info(f"Refusing to remove last selected category of {card_id}")
                return False
            selected.remove(label)
        elif label not in categories:
            logger.warning(f"Ignoring unknown category {label!r} for {card_id}")
            return False
        else:
            selected.append(label)

        self._selections[card_id] = selected
        return True

    def is_all(self, card_id: str, categories: Sequence[str]) -> bool:
        selected = self._selections.get(card_id)
        return selected is not None and len(selected) == len(categories)

    def toggle_all(self, card_id: str, categories: Sequence[str]) -> bool:
        """Flip between every category and the default top-K."""
        if not categories:
            return False

        if self.is_all(card_id, categories):
            self._selections[card_id] = self.default_selection(categories)
        else:
            self._selections[card_id] = list(categories)
        return True

    def reset(self) -> None:
        self._selections.clear()
