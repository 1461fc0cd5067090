"""
Simplified fraud-risk score calculator
Re-applies the published threshold rules to user-entered metrics
"""
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from config.settings import RiskConfig

logger = logging.getLogger(__name__)

# (threshold, points, label) tiers; the first tier the value exceeds wins
OPIOID_PEER_TIERS = [
    (70, 25, "Extreme opioid rate vs peers"),
    (50, 20, "Very high opioid rate vs peers"),
    (30, 12, "High opioid rate vs peers"),
    (20, 6, "Elevated opioid rate"),
]

OPIOID_PERCENTILE_TIERS = [
    (70.6, 15, "99th percentile opioid (national)"),
    (50.3, 10, "95th percentile opioid (national)"),
    (37.2, 5, "90th percentile opioid (national)"),
]

COST_TIERS = [
    (15157, 10, "Extreme cost outlier (99th percentile)"),
    (4216, 6, "High cost outlier (95th percentile)"),
    (2395, 3, "Elevated cost per patient"),
]

BRAND_TIERS = [
    (60, 8, "Extreme brand preference"),
    (40, 5, "High brand preference"),
    (25, 2, "Elevated brand preference"),
]

FLAG_POINTS = {
    "is_excluded": (20, "OIG excluded provider"),
    "opioid_benzo_combo": (8, "Opioid + benzodiazepine combo"),
    "low_drug_diversity": (5, "Low drug diversity"),
    "elderly_antipsychotics": (10, "Elderly antipsychotic prescribing"),
}


def parse_metric(value: Union[str, float, int, None]) -> float:
    """Read a user-entered number; blanks and junk count as 0"""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    # NaN compares unequal to itself
    return number if number == number else 0.0


def _tier(value: float, tiers: List[Tuple[float, int, str]]) -> Optional[Dict[str, Any]]:
    for threshold, points, label in tiers:
        if value > threshold:
            return {"label": label, "pts": points}
    return None


def risk_level(score: int) -> str:
    if score >= RiskConfig.HIGH_SCORE:
        return "high"
    if score >= RiskConfig.ELEVATED_SCORE:
        return "elevated"
    if score >= RiskConfig.MODERATE_SCORE:
        return "moderate"
    return "low"


def calculate_risk_score(opioid_rate: Union[str, float, None] = 0,
                         cost_per_bene: Union[str, float, None] = 0,
                         brand_pct: Union[str, float, None] = 0,
                         is_excluded: bool = False,
                         opioid_benzo_combo: bool = False,
                         low_drug_diversity: bool = False,
                         elderly_antipsychotics: bool = False) -> Dict[str, Any]:
    """Score a provider profile on the 0-100 scale"""
    op = parse_metric(opioid_rate)
    cpb = parse_metric(cost_per_bene)
    bp = parse_metric(brand_pct)

    parts = [
        _tier(op, OPIOID_PEER_TIERS),
        _tier(op, OPIOID_PERCENTILE_TIERS),
        _tier(cpb, COST_TIERS),
        _tier(bp, BRAND_TIERS),
    ]
    breakdown = [p for p in parts if p is not None]

    flags = {
        "is_excluded": is_excluded,
        "opioid_benzo_combo": opioid_benzo_combo,
        "low_drug_diversity": low_drug_diversity,
        "elderly_antipsychotics": elderly_antipsychotics,
    }
    for flag, enabled in flags.items():
        if enabled:
            points, label = FLAG_POINTS[flag]
            breakdown.append({"label": label, "pts": points})

    score = min(RiskConfig.MAX_SCORE, sum(p["pts"] for p in breakdown))
    level = risk_level(score)
    logger.debug(f"Risk calculator: opioid={op} cost={cpb} brand={bp} -> {score}")

    return {
        "inputs": {
            "opioid_rate": op,
            "cost_per_bene": cpb,
            "brand_pct": bp,
            **flags,
        },
        "score": score,
        "level": level,
        "label": level.capitalize(),
        "breakdown": sorted(breakdown, key=lambda p: p["pts"], reverse=True),
    }
