"""Cross-filter state: one selected value per column."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import logging

from surveychat.core.rows.store import Row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterChip:
    """Visible summary of one active filter."""

    column: str
    value: str

    @property
    def label(self) -> str:
        return f"{self.column}: {self.value}"

    def to_dict(self) -> Dict[str, str]:
        return {"column": self.column, "value": self.value, "label": self.label}


class FilterState:
    """Conjunction of column filters; an empty state lets every row through."""

    def __init__(self):
        self._filters: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._filters)

    def __contains__(self, column: str) -> bool:
        return column in self._filters

    def get(self, column: str) -> Optional[str]:
        return self._filters.get(column)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._filters)

    def set(self, column: str, value: str) -> None:
        """Filter ``column`` to ``value``, replacing any previous value."""
        self._filters[column] = value

    def toggle(self, column: str, value: str) -> bool:
        """
        Click semantics: clear the filter when it already holds ``value``,
        otherwise set it.

        Returns:
            True if the filter is active after the call
        """
        if self._filters.get(column) == value:
            del self._filters[column]
            logger.info(f"Cleared filter {column}={value!r}")
            return False

        self._filters[column] = value
        logger.info(f"Set filter {column}={value!r}")
        return True

    def remove(self, column: str) -> bool:
        return self._filters.pop(column, None) is not None

    def clear(self) -> bool:
        had_filters = bool(self._filters)
        self._filters.clear()
        return had_filters

    def matches(self, row: Row, exclude: Optional[str] = None) -> bool:
        # category() maps blanks to "Unknown", so clicking that bar filters blanks
        return all(
            row.category(column) == value
            for column, value in self._filters.items()
            if column != exclude
        )

    def apply(self, rows: Sequence[Row], exclude: Optional[str] = None) -> List[Row]:
        """
        Rows passing every filter.

        Args:
            rows: Rows to filter
            exclude: Column whose filter is ignored, so a chart of that column
                can still draw the values the filter hides

        Returns:
            Matching rows in their original order
        """
        if not self._filters:
            return list(rows)
        return [row for row in rows if self.matches(row, exclude)]

    def chips(self) -> List[FilterChip]:
        return [FilterChip(column, value) for column, value in self._filters.items()]
