"""
Configuration settings for the OpenPrescriber site
"""
import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("OPENPRESCRIBER_DATA_DIR", BASE_DIR / "public" / "data"))
EXPORT_DIR = Path(os.getenv("OPENPRESCRIBER_EXPORT_DIR", BASE_DIR / "exports"))

# Snapshot year of the precomputed data
DATA_YEAR = 2023

# File names
class DataFiles:
    PROVIDER_INDEX = "provider-index.json"
    HIGH_RISK = "high-risk.json"
    TOP_OPIOID = "top-opioid.json"
    TOP_COST = "top-cost.json"
    OPIOID_BY_STATE = "opioid-by-state.json"
    STATES = "states.json"
    STATE_YEARLY = "state-yearly.json"
    SPECIALTIES = "specialties.json"
    SPECIALTY_STATS = "specialty-stats.json"
    DRUGS = "drugs.json"
    DRUGS_FULL = "drugs-full.json"
    EXCLUDED = "excluded.json"
    DRUG_COMBOS = "drug-combos.json"
    STATS = "stats.json"
    YEARLY_TRENDS = "yearly-trends.json"
    ML_SCORES = "ml-scores.json"
    ML_PREDICTIONS = "ml-predictions.json"
    RISK_DISTRIBUTION = "risk-distribution.json"

    # Files every page of the site depends on
    REQUIRED = [
        PROVIDER_INDEX, HIGH_RISK, TOP_OPIOID, OPIOID_BY_STATE, STATES,
        SPECIALTIES, SPECIALTY_STATS, DRUGS, EXCLUDED, DRUG_COMBOS, STATS,
        YEARLY_TRENDS,
    ]

# Downloads page catalog: (category, file, description)
DOWNLOAD_CATALOG = [
    ("Provider Data", DataFiles.PROVIDER_INDEX, "Searchable index of flagged and high-volume providers"),
    ("Provider Data", DataFiles.HIGH_RISK, "All providers flagged as high-risk by the scoring model"),
    ("Provider Data", DataFiles.EXCLUDED, "OIG-excluded providers still active in Medicare Part D"),
    ("Provider Data", DataFiles.TOP_OPIOID, "Top opioid prescribers by rate"),
    ("Provider Data", DataFiles.TOP_COST, "Top prescribers by total drug cost"),
    ("Provider Data", DataFiles.RISK_DISTRIBUTION, "Risk score distribution across all scored providers"),
    ("Drug Data", DataFiles.DRUGS, "Top drugs by total Medicare Part D cost"),
    ("Drug Data", DataFiles.DRUG_COMBOS, "Opioid + benzodiazepine co-prescribers"),
    ("Geographic Data", DataFiles.STATES, "States and territories with prescriber counts, costs, opioid rates"),
    ("Geographic Data", DataFiles.OPIOID_BY_STATE, "State-level opioid prescribing breakdown"),
    ("Specialty & ML Data", DataFiles.SPECIALTIES, "Medical specialties with prescribing patterns"),
    ("Specialty & ML Data", DataFiles.ML_PREDICTIONS, "ML fraud detection predictions with confidence scores"),
    ("Summary", DataFiles.STATS, "Aggregate statistics: providers, claims, cost, opioid counts, risk breakdown"),
    ("Summary", DataFiles.YEARLY_TRENDS, "5-year trend data: costs, providers, opioid rates"),
]

# List view settings
class PageConfig:
    DEFAULT_PAGE_SIZE = 50
    EXCLUDED_PAGE_SIZE = 25
    DRUG_COSTS_PAGE_SIZE = 25

    SEARCH_MIN_CHARS = 2
    SEARCH_LIMIT = 100
    DRUG_LOOKUP_LIMIT = 50
    CITY_SUGGESTION_LIMIT = 10

    RISK_EXPLORER_LIMIT = 100
    RISK_EXPLORER_MIN_SCORE = 30

    # Opioid prescriber table hides low-volume prescribers
    OPIOID_MIN_CLAIMS = 100

    # Detail page list lengths
    DETAIL_PROVIDER_LIMIT = 50
    DETAIL_OPIOID_LIMIT = 20

    # Breakdown lengths on summary views
    TOP_GROUP_LIMIT = 10
    PEER_HIGHLIGHT_LIMIT = 5
    PEER_HIGHLIGHT_MIN_PROVIDERS = 100

    # ML fraud detection page
    ML_TOP_PREDICTIONS = 100
    ML_TOP_SPECIALTIES = 8
    ML_TOP_STATES = 10

    # Brand vs generic page
    BRAND_SPECIALTY_LIMIT = 30
    TOP_COST_LIMIT = 50
    SMALL_SAMPLE_PROVIDERS = 25

# Risk score thresholds shared by the flagged and report views
class RiskConfig:
    HIGH_SCORE = 50
    ELEVATED_SCORE = 30
    MODERATE_SCORE = 15
    MAX_SCORE = 100
    ML_ALERT_SCORE = 0.75

    # ML score tiers: (tier, label, min score, exclusive upper bound)
    ML_SCORE_TIERS = [
        ("very_high", "Very High", 0.95, None),
        ("high", "High", 0.85, 0.95),
        ("elevated", "Elevated", 0.80, 0.85),
    ]

# API settings
class APIConfig:
    HOST = os.getenv("OPENPRESCRIBER_HOST", "0.0.0.0")
    PORT = int(os.getenv("OPENPRESCRIBER_PORT", "8000"))
    API_BASE_URL = os.getenv("OPENPRESCRIBER_API_URL", "http://localhost:8000")

    REQUEST_TIMEOUT = 10
    CACHE_TTL = 300  # Dashboard cache, seconds

    FRONTEND_PORT = 8501

# Logging settings
class LoggingConfig:
    LEVEL = os.getenv("OPENPRESCRIBER_LOG_LEVEL", "INFO")
    FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
