"""
Side-by-side provider and specialty comparisons
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from src.utils.formatting import flag_label, fmt, fmt_money, fmt_pct, risk_badge

logger = logging.getLogger(__name__)

HIGHER = "higher"
LOWER = "lower"

# (field, label, which side wins, display format)
PROVIDER_METRICS = [
    ("claims", "Total Claims", HIGHER, "number"),
    ("cost", "Total Cost", LOWER, "money"),
    ("costPerBene", "Cost per Patient", LOWER, "money"),
    ("opioidRate", "Opioid Rate", LOWER, "pct"),
    ("brandPct", "Brand Name %", LOWER, "pct"),
    ("riskScore", "Risk Score", LOWER, "number"),
]

MAX_SPECIALTIES = 3
MIN_SPECIALTIES = 2

POPULAR_COMPARISONS = [
    ["Internal Medicine", "Family Practice"],
    ["Nurse Practitioner", "Physician Assistant"],
    ["Cardiology", "Gastroenterology", "Pulmonary Disease"],
    ["Ophthalmology", "Optometry"],
]


class CompareInputError(ValueError):
    """Bad input to the provider comparison"""


class ProviderNotFound(LookupError):
    """One or both compared NPIs have no provider record"""


def _display(value: Any, kind: str) -> str:
    if value is None:
        return "N/A"
    if kind == "money":
        return fmt_money(value)
    if kind == "pct":
        return fmt_pct(value)
    return fmt(value)


def better_side(a: Optional[float], b: Optional[float], direction: str) -> int:
    """1 or 2 for the better provider, 0 for a tie or missing values"""
    if a is None or b is None or a == b:
        return 0
    if direction == HIGHER:
        return 1 if a > b else 2
    return 1 if a < b else 2


def validate_npis(npi1: Optional[str], npi2: Optional[str]) -> tuple:
    npi1 = (npi1 or "").strip()
    npi2 = (npi2 or "").strip()
    if not npi1 or not npi2:
        raise CompareInputError("Please enter two NPI numbers.")
    if npi1 == npi2:
        raise CompareInputError("Please enter two different NPI numbers.")
    return npi1, npi2


def not_found_message(npi1: str, npi2: str, p1: Optional[dict], p2: Optional[dict]) -> str:
    if p1 is None and p2 is None:
        who = "Both NPIs were"
    else:
        who = f"NPI {npi1 if p1 is None else npi2} was"
    return f"{who} not found. Only providers with 11+ claims are included."


def _summary(provider: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **provider,
        "risk_badge": risk_badge(provider.get("riskLevel")),
        "flag_labels": [flag_label(f) for f in provider.get("riskFlags") or []],
    }


def compare_providers(p1: Dict[str, Any], p2: Dict[str, Any]) -> Dict[str, Any]:
    """Metric-by-metric comparison of two full provider records"""
    metrics = []
    for field, label, direction, kind in PROVIDER_METRICS:
        a, b = p1.get(field), p2.get(field)
        metrics.append({
            "metric": field,
            "label": label,
            "better": direction,
            "provider1": a,
            "provider2": b,
            "provider1_display": _display(a, kind),
            "provider2_display": _display(b, kind),
            "winner": better_side(a, b, direction),
        })
    return {
        "provider1": _summary(p1),
        "provider2": _summary(p2),
        "metrics": metrics,
    }


def _cost_per_provider_k(spec: Dict[str, Any]) -> Optional[int]:
    value = spec.get("costPerProvider")
    return None if value is None else round(value / 1000)


SPECIALTY_METRICS = [
    ("Providers", lambda s: s.get("providers")),
    ("Avg Opioid %", lambda s: s.get("avgOpioidRate")),
    ("Avg Brand %", lambda s: s.get("avgBrandPct")),
    ("Cost/Provider ($K)", _cost_per_provider_k),
]


def compare_specialties(specialties: List[Dict[str, Any]], names: Sequence[str]) -> Dict[str, Any]:
    """Compare up to three specialties; needs at least two known names"""
    by_name = {s["specialty"]: s for s in specialties}
    requested = [n for n in names if n][:MAX_SPECIALTIES]
    selected = [by_name[n] for n in requested if n in by_name]
    unknown = [n for n in requested if n not in by_name]
    if unknown:
        logger.info(f"Specialty comparison: unknown specialties {unknown}")

    ready = len(selected) >= MIN_SPECIALTIES
    rows = []
    if ready:
        for label, getter in SPECIALTY_METRICS:
            rows.append({"metric": label, "values": [getter(s) for s in selected]})

    return {
        "ready": ready,
        "selected": [s["specialty"] for s in selected],
        "unknown": unknown,
        "specialties": selected,
        "metrics": rows,
        "options": sorted(by_name),
        "popular": POPULAR_COMPARISONS,
    }
