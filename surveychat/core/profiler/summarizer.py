"""One-pass dataset summariser used to brief the language model."""

from typing import Any, Dict, List, Optional
import json
import logging

import pandas as pd
from pydantic import BaseModel

from surveychat.core.rows.store import RowStore

logger = logging.getLogger(__name__)

CATEGORY_PREVIEW = 8
SAMPLE_ROWS = 5


class NumericColumnSummary(BaseModel):
    """Stats for a column whose non-empty values all parse as numbers."""

    name: str
    min_value: float
    max_value: float
    mean_value: float


class CategoricalColumnSummary(BaseModel):
    """Distinct values for any other column."""

    name: str
    unique_count: int
    preview: List[str] = []


class DatasetSummary(BaseModel):
    """Compact description of the dataset."""

    total_rows: int
    total_columns: int
    numeric_columns: List[NumericColumnSummary] = []
    categorical_columns: List[CategoricalColumnSummary] = []
    sample_rows: List[Dict[str, Any]] = []

    @property
    def numeric_names(self) -> List[str]:
        return [col.name for col in self.numeric_columns]

    @property
    def categorical_names(self) -> List[str]:
        return [col.name for col in self.categorical_columns]

    def unique_count(self, column: str) -> Optional[int]:
        for col in self.categorical_columns:
            if col.name == column:
                return col.unique_count
        return None

    def to_prompt(self) -> str:
        """Render the summary as plain text for a system prompt."""
        stats = [
            f"  {col.name}: min={col.min_value:g}, max={col.max_value:g}, avg={col.mean_value:.2f}"
            for col in self.numeric_columns
        ]
        cat_info = []
        for col in self.categorical_columns:
            preview = ", ".join(col.preview)
            more = ", ..." if col.unique_count > len(col.preview) else ""
            cat_info.append(f"  {col.name}: {col.unique_count} unique values ({preview}{more})")

        return "\n".join(
            [
                f"Dataset: {self.total_rows} rows, {self.total_columns} columns.",
                "",
                "Numeric columns (with stats):",
                *stats,
                "",
                "Categorical columns (with unique values):",
                *cat_info,
                "",
                f"Sample rows (first {len(self.sample_rows)}):",
                json.dumps(self.sample_rows, indent=2),
            ]
        )


def summarize_dataset(store: RowStore) -> DatasetSummary:
    """
    Sniff column types and collect stats in a single pass over the columns.

    A column is numeric when it has at least one non-empty value and every
    non-empty value parses as a number; everything else is categorical.
    """
    df = store.dataframe()
    numeric_columns: List[NumericColumnSummary] = []
    categorical_columns: List[CategoricalColumnSummary] = []

    for column in store.columns:
        series = df[column].astype(str).str.strip()
        values = series[series != ""]
        numbers = pd.to_numeric(values, errors="coerce")

        if len(values) > 0 and numbers.notna().all():
            numeric_columns.append(
                NumericColumnSummary(
                    name=column,
                    min_value=float(numbers.min()),
                    max_value=float(numbers.max()),
                    mean_value=float(numbers.mean()),
                )
            )
        else:
            unique = list(dict.fromkeys(values.tolist()))
            categorical_columns.append(
                CategoricalColumnSummary(
                    name=column,
                    unique_count=len(unique),
                    preview=unique[:CATEGORY_PREVIEW],
                )
            )

    summary = DatasetSummary(
        total_rows=len(store),
        total_columns=len(store.columns),
        numeric_columns=numeric_columns,
        categorical_columns=categorical_columns,
        sample_rows=store.to_records()[:SAMPLE_ROWS],
    )
    logger.info(
        f"Summarised dataset: {len(numeric_columns)} numeric, "
        f"{len(categorical_columns)} categorical columns"
    )
    return summary
