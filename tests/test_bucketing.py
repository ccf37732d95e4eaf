from __future__ import annotations

import pytest

from surveychat.core.charts.aggregation import category_order
from surveychat.core.charts.bucketing import CategorySelections
from surveychat.core.rows.store import RowStore

ORDER = ["Tech", "Finance", "Healthcare", "Retail", "Legal", "Media"]


def test_survey_fixture_order(survey_store: RowStore) -> None:
    assert category_order(survey_store.rows, "industry") == ORDER


def test_no_selection_when_categories_fit(industry_store: RowStore) -> None:
    selections = CategorySelections()

    assert selections.ensure_selection("card-0", "industry", industry_store.rows) is None
    assert selections.selection("card-0") is None


def test_default_selection_is_top_four(survey_store: RowStore) -> None:
    selections = CategorySelections()

    selected = selections.ensure_selection("card-0", "industry", survey_store.rows)

    assert selected == ORDER[:4]
    assert not selections.is_all("card-0", ORDER)


def test_selection_survives_rank_changes(survey_store: RowStore) -> None:
    selections = CategorySelections(top_k=2)
    selections.ensure_selection("card-0", "industry", survey_store.rows)
    selections.toggle("card-0", "Media", ORDER)

    # a different row subset ranks the categories differently
    fewer = [row for row in survey_store.rows if row["industry"] != "Tech"]

    assert selections.ensure_selection("card-0", "industry", fewer) == ["Tech", "Finance", "Media"]


def test_toggle_never_empties_selection() -> None:
    selections = CategorySelections()

    for label in ORDER * 2:
        if label in (selections.selection("card-0") or ORDER[:4]):
            selections.toggle("card-0", label, ORDER)

    assert len(selections.selection("card-0")) == 1


def test_toggle_rejects_unknown_label() -> None:
    selections = CategorySelections()

    assert not selections.toggle("card-0", "Agriculture", ORDER)
    assert selections.selection("card-0") is None

    selections.toggle("card-0", "Tech", ORDER)
    assert not selections.toggle("card-0", "Agriculture", ORDER)
    assert selections.selection("card-0") == ["Finance", "Healthcare", "Retail"]


def test_rejected_toggle_does_not_store_a_default() -> None:
    selections = CategorySelections(top_k=1)

    assert not selections.toggle("card-0", "Tech", ORDER)
    assert selections.selection("card-0") is None

    assert selections.toggle("card-0", "Finance", ORDER)
    assert selections.selection("card-0") == ["Tech", "Finance"]


def test_toggle_all_flips_between_all_and_default() -> None:
    selections = CategorySelections()
    selections.toggle("card-0", "Tech", ORDER)

    assert selections.toggle_all("card-0", ORDER)
    assert selections.selection("card-0") == ORDER
    assert selections.is_all("card-0", ORDER)

    assert selections.toggle_all("card-0", ORDER)
    assert selections.selection("card-0") == ORDER[:4]
    assert not selections.toggle_all("card-0", [])


def test_top_k_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CategorySelections(top_k=0)


def test_reset_forgets_every_card(survey_store: RowStore) -> None:
    selections = CategorySelections()
    selections.ensure_selection("card-0", "industry", survey_store.rows)

    selections.reset()

    assert selections.selection("card-0") is None
