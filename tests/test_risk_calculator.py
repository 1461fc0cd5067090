import pytest

from src.transformers.risk_calculator import calculate_risk_score, parse_metric, risk_level


def test_no_inputs_is_low_risk():
    result = calculate_risk_score()
    assert result["score"] == 0
    assert result["level"] == "low"
    assert result["label"] == "Low"
    assert result["breakdown"] == []


def test_opioid_rate_scores_peer_and_percentile_tiers():
    result = calculate_risk_score(opioid_rate=55)
    # > 50 vs peers (20) and > 50.3 national (10)
    assert result["score"] == 30
    assert result["level"] == "elevated"
    assert [p["pts"] for p in result["breakdown"]] == [20, 10]


@pytest.mark.parametrize("rate, points", [
    (20, 0),
    (20.1, 6),
    (30.5, 12),
    (40, 12 + 5),
    (71, 25 + 15),
])
def test_opioid_thresholds_are_strict(rate, points):
    assert calculate_risk_score(opioid_rate=rate)["score"] == points


def test_cost_and_brand_tiers():
    assert calculate_risk_score(cost_per_bene=2395)["score"] == 0
    assert calculate_risk_score(cost_per_bene=2396)["score"] == 3
    assert calculate_risk_score(cost_per_bene=5000)["score"] == 6
    assert calculate_risk_score(cost_per_bene=20000)["score"] == 10
    assert calculate_risk_score(brand_pct=26)["score"] == 2
    assert calculate_risk_score(brand_pct=45)["score"] == 5
    assert calculate_risk_score(brand_pct=61)["score"] == 8


def test_flags_add_points():
    result = calculate_risk_score(is_excluded=True, opioid_benzo_combo=True,
                                  low_drug_diversity=True, elderly_antipsychotics=True)
    assert result["score"] == 20 + 8 + 5 + 10
    assert result["level"] == "elevated"
    assert result["breakdown"][0] == {"label": "OIG excluded provider", "pts": 20}


def test_score_is_capped_at_100():
    result = calculate_risk_score(opioid_rate=90, cost_per_bene=20000, brand_pct=80,
                                  is_excluded=True, opioid_benzo_combo=True,
                                  low_drug_diversity=True, elderly_antipsychotics=True)
    # 25 + 15 + 10 + 8 + 20 + 8 + 5 + 10 = 101
    assert result["score"] == 100
    assert result["level"] == "high"
    assert result["label"] == "High"


def test_non_numeric_inputs_count_as_zero():
    result = calculate_risk_score(opioid_rate="abc", cost_per_bene="", brand_pct=None)
    assert result["score"] == 0
    assert result["inputs"]["opioid_rate"] == 0.0


def test_parse_metric():
    assert parse_metric("12.5") == 12.5
    assert parse_metric("nan") == 0.0
    assert parse_metric(None) == 0.0


def test_risk_level_boundaries():
    assert risk_level(50) == "high"
    assert risk_level(49) == "elevated"
    assert risk_level(30) == "elevated"
    assert risk_level(15) == "moderate"
    assert risk_level(14) == "low"
