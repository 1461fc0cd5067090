"""
Specialty peer benchmarks built from the precomputed specialty statistics
"""
import logging
from typing import Any, Dict, List, Optional

from config.settings import PageConfig
from src.utils.formatting import fmt_money, fmt_pct

logger = logging.getLogger(__name__)

# Providers more than this many standard deviations above their specialty mean are outliers
OUTLIER_SIGMA = 2

PEER_METRICS = [
    ("opioidRate", "Opioid Rate", "pct"),
    ("costPerBene", "Cost per Beneficiary", "money"),
    ("brandPct", "Brand Name %", "pct"),
]

# Profile tab -> (mean field, p90 field) of the flattened profile rows
PROFILE_CATEGORIES = {
    "opioid": ("opioidMean", "opioidP90"),
    "cost": ("costMean", "costP90"),
    "brand": ("brandMean", "brandP90"),
}


def _dist_value(stats: Dict[str, Any], metric: str, key: str) -> Optional[float]:
    return (stats.get(metric) or {}).get(key)


def outlier_threshold(dist: Dict[str, Any]) -> Optional[float]:
    """mean + 2 sigma of a distribution"""
    mean, std = dist.get("mean"), dist.get("std")
    if mean is None or std is None:
        return None
    return mean + OUTLIER_SIGMA * std


def format_metric(value: Optional[float], unit: str) -> str:
    return fmt_money(value) if unit == "money" else fmt_pct(value)


def build_profile_rows(specialties: List[Dict[str, Any]],
                       specialty_stats: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten specialties that have peer statistics into one row each"""
    rows = []
    for spec in specialties:
        stats = specialty_stats.get(spec.get("specialty"))
        if not stats:
            continue
        rows.append({
            "specialty": spec["specialty"],
            "providers": spec.get("providers"),
            "opioidMean": _dist_value(stats, "opioidRate", "mean"),
            "opioidP90": _dist_value(stats, "opioidRate", "p90"),
            "opioidP95": _dist_value(stats, "opioidRate", "p95"),
            "costMean": _dist_value(stats, "costPerBene", "mean"),
            "costP90": _dist_value(stats, "costPerBene", "p90"),
            "brandMean": _dist_value(stats, "brandPct", "mean"),
            "brandP90": _dist_value(stats, "brandPct", "p90"),
            "n": stats.get("n"),
        })
    return rows


def build_peer_rows(specialty_stats: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """One row per specialty for the peer comparison table, largest first"""
    rows = [
        {
            "name": name,
            "n": stats.get("n", 0),
            "opioidMean": _dist_value(stats, "opioidRate", "mean"),
            "costMean": _dist_value(stats, "costPerBene", "mean"),
            "brandMean": _dist_value(stats, "brandPct", "mean"),
            "opioidP95": _dist_value(stats, "opioidRate", "p95"),
        }
        for name, stats in specialty_stats.items()
    ]
    return sorted(rows, key=lambda r: r["n"] or 0, reverse=True)


def peer_highlights(rows: List[Dict[str, Any]],
                    limit: int = PageConfig.PEER_HIGHLIGHT_LIMIT,
                    min_providers: int = PageConfig.PEER_HIGHLIGHT_MIN_PROVIDERS) -> Dict[str, Any]:
    """Headline specialties of the peer comparison page"""

    def top(candidates, field, reverse=True):
        present = [r for r in candidates if r[field] is not None]
        return sorted(present, key=lambda r: r[field], reverse=reverse)[:limit]

    return {
        "total_providers": sum(r["n"] or 0 for r in rows),
        "specialty_count": len(rows),
        "highest_opioid": top(rows, "opioidMean"),
        "lowest_opioid": top([r for r in rows if (r["n"] or 0) >= min_providers], "opioidMean", reverse=False),
        "highest_cost": top(rows, "costMean"),
        "highest_brand": top(rows, "brandMean"),
    }


def specialty_options(specialty_stats: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"specialty": name, "n": specialty_stats[name].get("n", 0)}
        for name in sorted(specialty_stats)
    ]


def peer_lookup(specialty_stats: Dict[str, Dict[str, Any]], specialty: str) -> Optional[Dict[str, Any]]:
    """Benchmarks and outlier thresholds for one specialty, None when unknown"""
    stats = specialty_stats.get(specialty)
    if stats is None:
        return None

    metrics = []
    for field, label, unit in PEER_METRICS:
        dist = stats.get(field) or {}
        threshold = outlier_threshold(dist)
        metrics.append({
            "metric": field,
            "label": label,
            "unit": unit,
            "distribution": dist,
            "outlier_threshold": threshold,
            "outlier_threshold_display": format_metric(threshold, unit),
            "median_display": format_metric(dist.get("p50"), unit),
            "mean_display": format_metric(dist.get("mean"), unit),
        })

    return {
        "specialty": specialty,
        "n": stats.get("n", 0),
        "outlier_sigma": OUTLIER_SIGMA,
        "metrics": metrics,
    }
