import pytest

from src.transformers.comparisons import (POPULAR_COMPARISONS, CompareInputError, better_side,
                                          compare_providers, compare_specialties,
                                          not_found_message, validate_npis)
from tests.conftest import PROVIDER_DETAILS, SPECIALTIES


def test_validate_npis():
    assert validate_npis(" 1000000001 ", "1000000006") == ("1000000001", "1000000006")
    with pytest.raises(CompareInputError, match="Please enter two NPI numbers."):
        validate_npis("1000000001", "")
    with pytest.raises(CompareInputError, match="Please enter two different NPI numbers."):
        validate_npis("1000000001", "1000000001")


def test_not_found_messages():
    assert not_found_message("1", "2", None, None) == (
        "Both NPIs were not found. Only providers with 11+ claims are included.")
    assert not_found_message("1", "2", {}, None) == (
        "NPI 2 was not found. Only providers with 11+ claims are included.")
    assert not_found_message("1", "2", None, {}) == (
        "NPI 1 was not found. Only providers with 11+ claims are included.")


def test_better_side():
    assert better_side(10, 5, "higher") == 1
    assert better_side(10, 5, "lower") == 2
    assert better_side(5, 5, "lower") == 0
    assert better_side(None, 5, "lower") == 0


def test_compare_providers_metrics():
    result = compare_providers(PROVIDER_DETAILS["1000000001"], PROVIDER_DETAILS["1000000006"])
    winners = {m["metric"]: m["winner"] for m in result["metrics"]}
    assert winners == {
        "claims": 2,
        "cost": 1,
        "costPerBene": 1,
        "opioidRate": 2,
        "brandPct": 0,
        "riskScore": 2,
    }
    assert result["provider1"]["risk_badge"] == "🔴 High Risk"
    assert result["provider2"]["flag_labels"] == ["OIG Excluded Provider"]
    cost = next(m for m in result["metrics"] if m["metric"] == "cost")
    assert cost["provider2_display"] == "$250K"


def test_compare_specialties_needs_two_matches():
    result = compare_specialties(SPECIALTIES, ["Cardiology", "Astrology"])
    assert result["ready"] is False
    assert result["unknown"] == ["Astrology"]
    assert result["metrics"] == []
    assert result["popular"] == POPULAR_COMPARISONS


def test_compare_specialties_metric_rows():
    result = compare_specialties(SPECIALTIES, ["Cardiology", "Family Practice"])
    assert result["ready"] is True
    assert result["selected"] == ["Cardiology", "Family Practice"]
    rows = {r["metric"]: r["values"] for r in result["metrics"]}
    assert rows["Providers"] == [2000, 5000]
    assert rows["Avg Opioid %"] == [2.0, 8.5]
    assert rows["Cost/Provider ($K)"] == [51, 40]


def test_compare_specialties_caps_at_three():
    names = ["Cardiology", "Family Practice", "Internal Medicine", "Nurse Practitioner"]
    result = compare_specialties(SPECIALTIES, names)
    assert len(result["selected"]) == 3
    assert "Nurse Practitioner" not in result["selected"]
    assert result["options"][0] == "Cardiology"
