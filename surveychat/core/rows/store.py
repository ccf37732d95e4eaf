"""Read-only store of survey rows loaded from CSV."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence
import logging

import chardet
import numpy as np
import pandas as pd

from surveychat.utils.exceptions import DatasetLoadException

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown"


def coerce_number(value: Any) -> float:
    """Permissive numeric cast; anything unparseable becomes NaN."""
    if value is None:
        return np.nan
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return np.nan
    try:
        return float(pd.to_numeric(value, errors="coerce"))
    except (TypeError, ValueError):
        return np.nan


class Row(Mapping):
    """
    Immutable survey record mapping column name to the raw CSV string.

    Numeric values are never stored; use :meth:`number` to coerce on demand.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping):
        self._values: Dict[str, str] = {
            str(key): "" if value is None else str(value)
            for key, value in values.items()
        }

    def __getitem__(self, column: str) -> str:
        return self._values[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))

    def __repr__(self) -> str:
        return f"Row({self._values!r})"

    def text(self, column: str) -> str:
        """Raw value, empty string when the column is absent."""
        return self._values.get(column, "")

    def category(self, column: str) -> str:
        """Grouping label; missing or blank values map to ``Unknown``."""
        value = self._values.get(column, "").strip()
        return value if value else UNKNOWN_LABEL

    def number(self, column: str) -> float:
        """Numeric value or NaN."""
        return coerce_number(self._values.get(column))

    def to_dict(self) -> Dict[str, str]:
        return dict(self._values)


class RowStore:
    """Ordered, read-only sequence of rows plus the source column order."""

    def __init__(self, rows: Iterable[Row] = (), columns: Optional[Sequence[str]] = None):
        self._rows: tuple = tuple(rows)
        if columns is None:
            seen: Dict[str, None] = {}
            for row in self._rows:
                for column in row:
                    seen.setdefault(column, None)
            columns = list(seen)
        self._columns: tuple = tuple(columns)
        self._frame: Optional[pd.DataFrame] = None

    @classmethod
    def empty(cls) -> "RowStore":
        return cls((), ())

    @classmethod
    def from_records(cls, records: Iterable[Mapping]) -> "RowStore":
        return cls(Row(record) for record in records)

    @classmethod
    def from_csv(cls, file_path: str) -> "RowStore":
        """
        Load a CSV file keeping every cell as a string.

        Args:
            file_path: Path to the CSV file

        Returns:
            Populated row store
        """
        path = Path(file_path)
        if not path.exists():
            raise DatasetLoadException(f"Dataset file not found: {file_path}")

        encoding = "utf-8"
        try:
            with open(path, "rb") as f:
                raw_data = f.read(10000)  # first 10KB is enough to guess
                result = chardet.detect(raw_data)
                if result["encoding"]:
                    encoding = result["encoding"]
                    logger.info(f"Detected encoding: {encoding}")
        except OSError as e:
            logger.warning(f"Could not detect encoding, using utf-8: {e}")

        try:
            df = pd.read_csv(
                path,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding=encoding,
            )
        except (UnicodeDecodeError, LookupError):
            logger.warning(f"Decoding with {encoding} failed, retrying with utf-8")
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DatasetLoadException(f"Failed to parse dataset: {e}")

        columns = [str(col) for col in df.columns]
        rows = [Row(record) for record in df.to_dict(orient="records")]
        store = cls(rows, columns)
        logger.info(f"Loaded CSV: {len(store)} rows, {len(columns)} columns")
        return store

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def rows(self) -> List[Row]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> Row:
        return self._rows[index]

    def to_records(self) -> List[Dict[str, str]]:
        return [row.to_dict() for row in self._rows]

    def dataframe(self) -> pd.DataFrame:
        """String-typed DataFrame view of the rows, built once."""
        if self._frame is None:
            self._frame = pd.DataFrame(self.to_records(), columns=list(self._columns))
        return self._frame.copy()
