"""
State report card grades and the generic-substitution savings estimate
"""
import logging
from typing import Any, Dict, List, Optional

from src.utils.formatting import STATE_NAMES, TERRITORIES, fmt_money

logger = logging.getLogger(__name__)

# (upper bound of the averaged rank fraction, grade)
GRADE_BANDS = [(0.2, "A"), (0.4, "B"), (0.6, "C"), (0.8, "D")]

NATIONAL_BRAND_COST = 185_400_000_000
NATIONAL_GENERIC_COST = 39_400_000_000
NATIONAL_BRAND_PCT = 13.4
GENERIC_SAVINGS_RATE = 0.73  # generics cost ~73% less on average


def report_card_states(states: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """The 50 states, DC and PR, ordered by full name"""
    graded = [s for s in states if s.get("state") in STATE_NAMES and s["state"] not in TERRITORIES]
    return sorted(graded, key=lambda s: STATE_NAMES[s["state"]])


def rank_of(ordered: List[Dict[str, Any]], abbr: str) -> int:
    """1-based position of a state in an ordered list, 0 when absent"""
    for i, s in enumerate(ordered):
        if s["state"] == abbr:
            return i + 1
    return 0


def grade_for(opioid_position: int, cost_position: int, total: int) -> str:
    """Letter grade from two positions counted from the lowest value (1 = lowest)"""
    pct = ((opioid_position + cost_position) / 2) / total
    for bound, grade in GRADE_BANDS:
        if pct <= bound:
            return grade
    return "F"


def _desc(states: List[Dict[str, Any]], field: str) -> List[Dict[str, Any]]:
    return sorted(states, key=lambda s: s.get(field) or 0, reverse=True)


def state_report_card(states: List[Dict[str, Any]], abbr: str) -> Optional[Dict[str, Any]]:
    """Rankings and grade for one state, None when it is not graded"""
    graded = report_card_states(states)
    abbr = abbr.upper()
    record = next((s for s in graded if s["state"] == abbr), None)
    if record is None:
        return None

    total = len(graded)
    cost_rank = rank_of(_desc(graded, "cost"), abbr)
    opioid_rank = rank_of(_desc(graded, "avgOpioidRate"), abbr)
    cost_per_bene_rank = rank_of(_desc(graded, "costPerBene"), abbr)

    # Ranks count from the highest value; grades reward low opioid and low cost per patient
    grade = grade_for(total - opioid_rank + 1, total - cost_per_bene_rank + 1, total)

    return {
        "state": abbr,
        "name": STATE_NAMES[abbr],
        "grade": grade,
        "total_states": total,
        "ranks": {
            "cost": cost_rank,
            "avgOpioidRate": opioid_rank,
            "costPerBene": cost_per_bene_rank,
        },
        "record": record,
    }


def savings_estimate(states: List[Dict[str, Any]], abbr: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """National and (optionally) per-state savings from switching brand to generic
    Returns None when a requested state has no record"""
    options = sorted(
        ({"state": s["state"], "name": STATE_NAMES.get(s["state"], s["state"])} for s in states),
        key=lambda o: o["state"],
    )
    national_savings = NATIONAL_BRAND_COST * GENERIC_SAVINGS_RATE
    result = {
        "national": {
            "brand_cost": NATIONAL_BRAND_COST,
            "generic_cost": NATIONAL_GENERIC_COST,
            "brand_pct": NATIONAL_BRAND_PCT,
            "savings_rate": GENERIC_SAVINGS_RATE,
            "savings": national_savings,
            "savings_display": fmt_money(national_savings),
        },
        "states": options,
        "selected": None,
    }

    if abbr:
        record = next((s for s in states if s["state"] == abbr.upper()), None)
        if record is None:
            return None
        brand_cost = record.get("brandCost") or 0
        savings = brand_cost * GENERIC_SAVINGS_RATE
        result["selected"] = {
            "state": record["state"],
            "name": STATE_NAMES.get(record["state"], record["state"]),
            "brand_cost": brand_cost,
            "generic_cost": record.get("genericCost"),
            "brand_pct": record.get("brandPct"),
            "providers": record.get("providers"),
            "savings": savings,
            "savings_display": fmt_money(savings),
        }
    return result
