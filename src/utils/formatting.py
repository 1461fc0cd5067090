"""
Display formatting helpers shared by the API and the dashboard
"""
import re
from typing import Optional, Union

Number = Union[int, float]

RISK_LEVELS = ["high", "elevated", "moderate", "low"]

# Higher is more severe; unknown levels sort below "low"
RISK_SEVERITY = {"high": 3, "elevated": 2, "moderate": 1, "low": 0}

RISK_BADGES = {
    "high": "🔴 High Risk",
    "elevated": "🟠 Elevated",
    "moderate": "🟡 Moderate",
    "low": "🟢 Low",
}

FLAG_LABELS = {
    # Specialty-adjusted flags
    "extreme_opioid_vs_peers": "Extreme opioid rate vs specialty peers",
    "very_high_opioid_vs_peers": "Very high opioid rate vs specialty peers",
    "high_opioid_vs_peers": "High opioid rate vs specialty peers",
    "99th_pctile_opioid": "99th percentile opioid prescribing",
    "95th_pctile_opioid": "95th percentile opioid prescribing",
    "90th_pctile_opioid": "90th percentile opioid prescribing",
    "high_la_opioid_vs_peers": "High long-acting opioid rate vs peers",
    "elevated_la_opioid": "Elevated long-acting opioid rate",
    "extreme_cost_outlier": "Extreme cost outlier (population + peer)",
    "high_cost_outlier": "High cost outlier (population + peer)",
    "elevated_cost": "Elevated cost per beneficiary",
    "extreme_brand_preference": "Extreme brand-name preference",
    "high_brand_preference": "High brand-name preference",
    "high_antipsych_elderly": "High antipsychotic prescribing (65+)",
    "elevated_antipsych_elderly": "Elevated antipsychotic prescribing (65+)",
    "opioid_benzo_coprescriber": "Opioid + benzodiazepine co-prescriber",
    "leie_excluded": "OIG Excluded Provider",
    "low_drug_diversity": "Low drug diversity",
    "very_low_drug_diversity": "Very low drug diversity",
    "high_fills_per_patient": "High fills per patient",
    "extreme_fills_per_patient": "Extreme fills per patient",
    # Legacy flags still present in older provider files
    "extreme_opioid": "Extreme opioid prescribing rate",
    "very_high_opioid": "Very high opioid prescribing rate",
    "high_opioid": "High opioid prescribing rate",
    "high_la_opioid": "High long-acting opioid rate",
    "extreme_cost": "Extreme cost per beneficiary",
    "high_cost": "High cost per beneficiary",
    "extreme_brand": "Extreme brand-name prescribing",
    "high_brand": "High brand-name prescribing",
    "high_volume_opioid": "High volume + high opioid combo",
}

# Flags offered as filters in the risk explorer
EXPLORER_FLAGS = [
    "leie_excluded",
    "opioid_benzo_coprescriber",
    "extreme_opioid_vs_peers",
    "99th_pctile_opioid",
    "extreme_cost_outlier",
    "high_antipsych_elderly",
    "extreme_brand_preference",
    "extreme_fills_per_patient",
    "very_low_drug_diversity",
]

STATE_NAMES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "PR": "Puerto Rico",
    "RI": "Rhode Island", "SC": "South Carolina", "SD": "South Dakota",
    "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming",
    # Territories
    "VI": "Virgin Islands", "GU": "Guam", "AS": "American Samoa",
    "MP": "Northern Mariana Islands",
}

TERRITORIES = {"VI", "GU", "AS", "MP"}


def fmt_money(n: Optional[Number]) -> str:
    """Format a dollar amount compactly ($1.23B, $4.5M, $12K, $950)"""
    if n is None:
        return "N/A"
    if abs(n) >= 1e9:
        return f"${n / 1e9:.2f}B"
    if abs(n) >= 1e6:
        return f"${n / 1e6:.1f}M"
    if abs(n) >= 1e3:
        return f"${n / 1e3:.0f}K"
    return f"${n:.0f}"


def fmt(n: Optional[Number]) -> str:
    """Format a number with thousands separators"""
    if n is None:
        return "N/A"
    if isinstance(n, float) and not n.is_integer():
        return f"{n:,.3f}".rstrip("0").rstrip(".")
    return f"{int(n):,}"


def fmt_pct(n: Optional[Number]) -> str:
    return "N/A" if n is None else f"{n:.1f}%"


def slugify(s: str) -> str:
    """Convert string to URL-friendly slug"""
    return re.sub(r'[^a-z0-9]+', '-', s.lower()).strip('-') if s else ""


def title_case(s: str) -> str:
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), s.lower())


def risk_badge(level: Optional[str]) -> str:
    return RISK_BADGES.get(level or "", RISK_BADGES["low"])


def flag_label(flag: str) -> str:
    return FLAG_LABELS.get(flag, flag.replace("_", " "))


def state_name(abbr: str) -> str:
    """Full state name for a postal code, or the code itself when unknown"""
    return STATE_NAMES.get(abbr.upper(), abbr) if abbr else ""
