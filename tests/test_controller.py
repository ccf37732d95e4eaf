from __future__ import annotations

from typing import List

import pytest

from surveychat.core.charts.controller import DashboardSession, DashboardView
from surveychat.core.charts.recipe import parse_recipes
from surveychat.core.rows.store import RowStore
from surveychat.utils.exceptions import CardNotFoundException

RECIPES = [
    {"type": "bar", "xColumn": "industry", "aggregation": "count", "title": "By industry"},
    {"type": "pie", "xColumn": "displacement_risk"},
    {"type": "scatter", "xColumn": "age", "yColumn": "annual_salary_usd"},
    {"type": "histogram", "xColumn": "age"},
]


def _session(store: RowStore) -> DashboardSession:
    return DashboardSession(store, parse_recipes(RECIPES), session_id="s-1")


def test_click_toggles_filter_and_row_count(industry_store: RowStore) -> None:
    session = DashboardSession(
        industry_store, parse_recipes([{"type": "bar", "xColumn": "industry"}])
    )

    assert session.click("card-0", "Tech")
    assert session.view.row_count == 2
    assert [chip.label for chip in session.view.filters] == ["industry: Tech"]

    assert session.click("card-0", "Tech")
    assert session.view.row_count == 4
    assert session.view.filters == []


def test_other_and_non_categorical_clicks_are_ignored(survey_store: RowStore) -> None:
    session = _session(survey_store)

    assert not session.click("card-0", "Other")
    assert not session.click("card-2", "30")
    assert not session.click("card-3", "30")
    assert len(session.filters) == 0


def test_unknown_card_raises(survey_store: RowStore) -> None:
    session = _session(survey_store)

    with pytest.raises(CardNotFoundException):
        session.click("card-99", "Tech")


def test_initial_view_buckets_large_columns(survey_store: RowStore) -> None:
    view = _session(survey_store).view.to_dict()

    assert view["sessionId"] == "s-1"
    assert view["rowCount"] == view["totalRows"] == 16

    bar = view["cards"][0]
    assert bar["clickable"] is True
    assert bar["selected"] == ["Tech", "Finance", "Healthcare", "Retail"]
    assert bar["allSelected"] is False
    assert bar["figure"]["data"][0]["x"] == ["Tech", "Finance", "Healthcare", "Retail", "Other"]

    pie = view["cards"][1]
    assert pie["selected"] is None
    assert pie["allSelected"] is True

    assert view["cards"][2]["clickable"] is False
    assert view["cards"][2]["categories"] == []


def test_filter_dims_cards_of_the_same_column(survey_store: RowStore) -> None:
    session = _session(survey_store)

    session.click("card-1", "High")

    view = session.view.to_dict()
    assert view["rowCount"] == 7
    pie = view["cards"][1]["figure"]["data"][0]
    assert pie["labels"] == ["High", "Medium", "Low"]
    assert pie["marker"]["colors"] == ["#1f77b4", "#e3e6ea", "#e3e6ea"]

    # the industry chart is not the filtered column: filtered rows, nothing dimmed
    bar = view["cards"][0]["figure"]["data"][0]
    assert bar["x"] == ["Tech", "Retail"]
    assert "#e3e6ea" not in bar["marker"]["color"]


def test_same_column_card_still_honours_other_filters(survey_store: RowStore) -> None:
    session = _session(survey_store)

    session.click("card-0", "Tech")
    session.click("card-1", "High")

    view = session.view.to_dict()
    assert view["rowCount"] == 5
    assert [chip["label"] for chip in view["filters"]] == [
        "industry: Tech",
        "displacement_risk: High",
    ]

    bar = view["cards"][0]["figure"]["data"][0]
    assert bar["x"] == ["Tech", "Retail"]
    assert bar["marker"]["color"] == ["#1f77b4", "#e3e6ea"]

    pie = view["cards"][1]["figure"]["data"][0]
    assert pie["labels"] == ["High"]
    assert pie["marker"]["colors"] == ["#1f77b4"]


def test_clicking_a_dimmed_value_moves_the_filter(survey_store: RowStore) -> None:
    session = _session(survey_store)
    session.click("card-1", "High")

    assert session.click("card-1", "Low")

    assert session.filters.as_dict() == {"displacement_risk": "Low"}
    assert session.view.row_count == 4


def test_selections_survive_filter_changes(survey_store: RowStore) -> None:
    session = _session(survey_store)
    assert session.view.cards[0].selected == ["Tech", "Finance", "Healthcare", "Retail"]

    assert session.toggle_category("card-0", "Media")
    session.click("card-1", "Medium")
    session.clear_filters()

    assert session.view.cards[0].selected == ["Tech", "Finance", "Healthcare", "Retail", "Media"]


def test_toggle_all_categories(survey_store: RowStore) -> None:
    session = _session(survey_store)

    assert session.toggle_all_categories("card-0")
    assert session.view.cards[0].all_selected
    assert "Other" not in session.view.cards[0].figure["data"][0]["x"]

    assert session.toggle_all_categories("card-0")
    assert session.view.cards[0].selected == ["Tech", "Finance", "Healthcare", "Retail"]


def test_category_toggles_ignored_when_everything_fits(survey_store: RowStore) -> None:
    session = _session(survey_store)

    assert not session.toggle_category("card-1", "High")
    assert not session.toggle_all_categories("card-1")
    assert not session.toggle_category("card-3", "30")


def test_observers_receive_every_render(industry_store: RowStore) -> None:
    session = DashboardSession(
        industry_store, parse_recipes([{"type": "bar", "xColumn": "industry"}])
    )
    seen: List[DashboardView] = []
    unsubscribe = session.subscribe(seen.append)

    session.click("card-0", "Finance")
    session.remove_filter("industry")
    assert not session.remove_filter("industry")

    assert [view.row_count for view in seen] == [1, 4]

    unsubscribe()
    session.click("card-0", "Finance")
    assert len(seen) == 2


def test_failing_observer_does_not_break_mutation(industry_store: RowStore) -> None:
    session = DashboardSession(
        industry_store, parse_recipes([{"type": "bar", "xColumn": "industry"}])
    )

    def broken(view: DashboardView) -> None:
        raise RuntimeError("boom")

    session.subscribe(broken)

    assert session.click("card-0", "Tech")
    assert session.view.row_count == 2


def test_missing_column_card_still_renders(industry_store: RowStore) -> None:
    session = DashboardSession(
        industry_store,
        parse_recipes([{"type": "histogram", "xColumn": "nope"}, {"type": "bar", "xColumn": "nope"}]),
    )

    cards = session.view.cards

    assert all(card.error is None for card in cards)
    assert cards[1].figure["data"][0]["x"] == ["Unknown"]
