from __future__ import annotations

import pytest

from surveychat.core.rows.store import RowStore


@pytest.fixture
def industry_store() -> RowStore:
    return RowStore.from_records(
        [
            {"industry": "Tech"},
            {"industry": "Tech"},
            {"industry": "Finance"},
            {"industry": ""},
        ]
    )


@pytest.fixture
def survey_store() -> RowStore:
    """Six industries so that top-4 bucketing kicks in."""
    records = []
    layout = [
        ("Tech", 5, "High"),
        ("Finance", 4, "Medium"),
        ("Healthcare", 3, "Low"),
        ("Retail", 2, "High"),
        ("Media", 1, "Low"),
        ("Legal", 1, "Medium"),
    ]
    index = 0
    for industry, count, risk in layout:
        for offset in range(count):
            index += 1
            records.append(
                {
                    "respondent_id": f"R{index:03d}",
                    "industry": industry,
                    "displacement_risk": risk,
                    "age": str(25 + index),
                    "annual_salary_usd": "" if offset == 1 else str(40000 + index * 1000),
                }
            )
    return RowStore.from_records(records)
