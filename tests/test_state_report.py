import pytest

from src.transformers.state_report import (GENERIC_SAVINGS_RATE, grade_for, report_card_states,
                                           savings_estimate, state_report_card)
from tests.conftest import STATES


def test_report_card_states_exclude_territories_and_sort_by_name():
    assert [s["state"] for s in report_card_states(STATES)] == ["CA", "IL", "MA", "TX"]


def test_ranks_count_from_highest_value():
    card = state_report_card(STATES, "tx")
    assert card["state"] == "TX"
    assert card["name"] == "Texas"
    assert card["total_states"] == 4
    assert card["ranks"] == {"cost": 2, "avgOpioidRate": 1, "costPerBene": 4}


@pytest.mark.parametrize("abbr, grade", [
    ("CA", "C"),  # (2 + 2) / 2 / 4 = 0.5
    ("IL", "D"),  # (3 + 3) / 2 / 4 = 0.75
    ("MA", "D"),  # (1 + 4) / 2 / 4 = 0.625
    ("TX", "D"),  # (4 + 1) / 2 / 4 = 0.625
])
def test_grades(abbr, grade):
    assert state_report_card(STATES, abbr)["grade"] == grade


@pytest.mark.parametrize("opioid, cost, total, grade", [
    (1, 3, 10, "A"),
    (4, 4, 10, "B"),
    (5, 7, 10, "C"),
    (8, 8, 10, "D"),
    (9, 10, 10, "F"),
])
def test_grade_bands(opioid, cost, total, grade):
    assert grade_for(opioid, cost, total) == grade


def test_territories_have_no_report_card():
    assert state_report_card(STATES, "GU") is None
    assert state_report_card(STATES, "ZZ") is None


def test_national_savings():
    result = savings_estimate(STATES)
    assert result["national"]["savings"] == pytest.approx(185.4e9 * GENERIC_SAVINGS_RATE)
    assert result["national"]["savings_display"] == "$135.34B"
    assert result["selected"] is None
    assert [o["state"] for o in result["states"]] == ["CA", "GU", "IL", "MA", "TX"]


def test_state_savings_use_brand_cost():
    result = savings_estimate(STATES, "il")
    selected = result["selected"]
    assert selected["state"] == "IL"
    assert selected["savings"] == pytest.approx(2e9 * 0.73)
    assert selected["savings_display"] == "$1.46B"


def test_unknown_state_savings():
    assert savings_estimate(STATES, "ZZ") is None
