"""
Shared fixtures: a small synthetic data directory written to tmp_path
"""
import json

import pytest

from src.loaders.json_loader import JsonDataLoader

PROVIDER_INDEX = [
    {"npi": "1000000001", "name": "Alice Adams", "city": "Springfield", "state": "IL",
     "specialty": "Family Practice", "claims": 500, "cost": 50000, "riskLevel": "high"},
    {"npi": "1000000002", "name": "Bob Brown", "city": "Springfield", "state": "MO",
     "specialty": "Internal Medicine", "claims": 300, "cost": 120000, "riskLevel": "low"},
    {"npi": "1000000003", "name": "carol Clark", "city": "Chicago", "state": "IL",
     "specialty": "Cardiology", "claims": 800, "cost": 90000, "riskLevel": "elevated"},
    {"npi": "1000000004", "name": "Dan Davis", "city": "Austin", "state": "TX",
     "specialty": "Family Practice", "claims": 150, "cost": 20000, "riskLevel": "moderate"},
    {"npi": "1000000005", "name": "Eve Evans", "city": "Austin", "state": "TX",
     "specialty": "Nurse Practitioner", "claims": 50, "cost": 5000, "riskLevel": "low"},
    {"npi": "1000000006", "name": "Frank Fisher", "city": "Boston", "state": "MA",
     "specialty": "Internal Medicine", "claims": 1000, "cost": 250000, "riskLevel": "high"},
]

HIGH_RISK = [
    {"npi": "1000000003", "name": "carol Clark", "credentials": "DO", "city": "Chicago", "state": "IL",
     "specialty": "Cardiology", "claims": 800, "cost": 90000, "benes": 200, "opioidRate": 5.0,
     "costPerBene": 450.0, "brandPct": 30.0, "claimsPerBene": 4.0, "riskScore": 35, "riskLevel": "elevated",
     "riskFlags": ["extreme_cost_outlier"], "isExcluded": False, "opioidBenzoCombination": False},
    {"npi": "1000000001", "name": "Alice Adams", "credentials": "MD", "city": "Springfield", "state": "IL",
     "specialty": "Family Practice", "claims": 500, "cost": 50000, "benes": 100, "opioidRate": 45.0,
     "costPerBene": 500.0, "brandPct": 20.0, "claimsPerBene": 5.0, "riskScore": 72, "riskLevel": "high",
     "riskFlags": ["opioid_benzo_coprescriber", "extreme_opioid_vs_peers"], "isExcluded": False,
     "opioidBenzoCombination": True},
    {"npi": "1000000004", "name": "Dan Davis", "credentials": "MD", "city": "Austin", "state": "TX",
     "specialty": "Family Practice", "claims": 150, "cost": 20000, "benes": 60, "opioidRate": 30.0,
     "costPerBene": 333.3, "brandPct": 10.0, "claimsPerBene": 2.5, "riskScore": 20, "riskLevel": "moderate",
     "riskFlags": ["opioid_benzo_coprescriber"], "isExcluded": False, "opioidBenzoCombination": True},
    {"npi": "1000000006", "name": "Frank Fisher", "credentials": "MD", "city": "Boston", "state": "MA",
     "specialty": "Internal Medicine", "claims": 1000, "cost": 250000, "benes": 100, "opioidRate": 10.0,
     "costPerBene": 2500.0, "brandPct": 20.0, "claimsPerBene": 10.0, "riskScore": 55, "riskLevel": "high",
     "riskFlags": ["leie_excluded"], "isExcluded": True, "opioidBenzoCombination": False},
]

TOP_OPIOID = [
    {"npi": "1000000001", "name": "Alice Adams", "credentials": "MD", "city": "Springfield", "state": "IL",
     "specialty": "Family Practice", "opioidRate": 45.0, "opioidClaims": 225, "claims": 500, "riskLevel": "high"},
    {"npi": "1000000004", "name": "Dan Davis", "credentials": "MD", "city": "Austin", "state": "TX",
     "specialty": "Family Practice", "opioidRate": 30.0, "opioidClaims": 45, "claims": 150, "riskLevel": "moderate"},
    {"npi": "1000000005", "name": "Eve Evans", "credentials": "NP", "city": "Austin", "state": "TX",
     "specialty": "Nurse Practitioner", "opioidRate": 60.0, "opioidClaims": 30, "claims": 50, "riskLevel": "low"},
    {"npi": "1000000007", "name": "Gina Green", "credentials": "MD", "city": "Peoria", "state": "IL",
     "specialty": "Family Practice", "opioidRate": 25.0, "opioidClaims": 25, "claims": 100, "riskLevel": "low"},
]

OPIOID_BY_STATE = [
    {"state": "IL", "providers": 100, "opioidProv": 40, "highOpioid": 5, "opioidClaims": 1000,
     "avgOpioidRate": 12.5, "opioidPct": 40.0},
    {"state": "TX", "providers": 200, "opioidProv": 60, "highOpioid": 10, "opioidClaims": 2000,
     "avgOpioidRate": 15.0, "opioidPct": 30.0},
    {"state": "MA", "providers": 50, "opioidProv": 0, "highOpioid": 0, "opioidClaims": 0,
     "avgOpioidRate": 0.0, "opioidPct": 0.0},
    {"state": "CA", "providers": 300, "opioidProv": 100, "highOpioid": 20, "opioidClaims": 5000,
     "avgOpioidRate": 8.0, "opioidPct": 33.3},
]

STATES = [
    {"state": "TX", "providers": 200, "claims": 70000, "cost": 7e9, "benes": 20000, "opioidProv": 60,
     "highOpioid": 10, "opioidClaims": 2000, "avgOpioidRate": 15.0, "costPerBene": 800.0,
     "brandCost": 2.5e9, "genericCost": 4.5e9, "brandPct": 14.0},
    {"state": "IL", "providers": 100, "claims": 50000, "cost": 5e9, "benes": 10000, "opioidProv": 40,
     "highOpioid": 5, "opioidClaims": 1000, "avgOpioidRate": 12.5, "costPerBene": 1100.0,
     "brandCost": 2e9, "genericCost": 3e9, "brandPct": 13.0},
    {"state": "MA", "providers": 50, "claims": 20000, "cost": 2e9, "benes": 5000, "opioidProv": 0,
     "highOpioid": 0, "opioidClaims": 0, "avgOpioidRate": 6.0, "costPerBene": 1300.0,
     "brandCost": 1e9, "genericCost": 1e9, "brandPct": 15.0},
    {"state": "CA", "providers": 300, "claims": 90000, "cost": 9e9, "benes": 30000, "opioidProv": 100,
     "highOpioid": 20, "opioidClaims": 5000, "avgOpioidRate": 8.0, "costPerBene": 900.0,
     "brandCost": 3e9, "genericCost": 6e9, "brandPct": 12.0},
    {"state": "GU", "providers": 5, "claims": 100, "cost": 1e7, "benes": 50, "opioidProv": 1,
     "highOpioid": 0, "opioidClaims": 5, "avgOpioidRate": 20.0, "costPerBene": 2000.0,
     "brandCost": 1e6, "genericCost": 9e6, "brandPct": 10.0},
]

STATE_YEARLY = {
    "IL": [
        {"year": 2022, "state": "IL", "providers": 98, "claims": 48000, "cost": 4.8e9,
         "opioidProv": 41, "avgOpioidRate": 13.0},
        {"year": 2023, "state": "IL", "providers": 100, "claims": 50000, "cost": 5e9,
         "opioidProv": 40, "avgOpioidRate": 12.5},
    ],
}

SPECIALTIES = [
    {"specialty": "Family Practice", "providers": 5000, "claims": 1000000, "cost": 2e8, "opioidProv": 1000,
     "avgOpioidRate": 8.5, "avgBrandPct": 12.0, "costPerProvider": 40000},
    {"specialty": "Internal Medicine", "providers": 6000, "claims": 1200000, "cost": 3e8, "opioidProv": 900,
     "avgOpioidRate": 6.0, "avgBrandPct": 15.0, "costPerProvider": 50000},
    {"specialty": "Cardiology", "providers": 2000, "claims": 400000, "cost": 1e8, "opioidProv": 50,
     "avgOpioidRate": 2.0, "avgBrandPct": 20.0, "costPerProvider": 51400},
    {"specialty": "Nurse Practitioner", "providers": 8000, "claims": 900000, "cost": 1.6e8, "opioidProv": 2000,
     "avgOpioidRate": 7.0, "avgBrandPct": 10.0, "costPerProvider": 20000},
    {"specialty": "Dermatology", "providers": 500, "claims": 50000, "cost": 1e7, "opioidProv": 10,
     "avgOpioidRate": 1.0, "avgBrandPct": 30.0, "costPerProvider": 20000},
]


def _dist(mean, std, p50, p90, p95):
    return {"mean": mean, "std": std, "p50": p50, "p90": p90, "p95": p95}


SPECIALTY_STATS = {
    "Family Practice": {"n": 5000, "opioidRate": _dist(8.5, 5.0, 7.0, 18.0, 22.0),
                        "costPerBene": _dist(1000.0, 400.0, 900.0, 1600.0, 2000.0),
                        "brandPct": _dist(12.0, 6.0, 11.0, 20.0, 25.0)},
    "Internal Medicine": {"n": 6000, "opioidRate": _dist(6.0, 4.0, 5.0, 12.0, 15.0),
                          "costPerBene": _dist(1200.0, 500.0, 1100.0, 2000.0, 2400.0),
                          "brandPct": _dist(15.0, 7.0, 14.0, 24.0, 28.0)},
    "Cardiology": {"n": 2000, "opioidRate": _dist(2.0, 1.0, 2.0, 3.5, 4.0),
                   "costPerBene": _dist(1500.0, 600.0, 1400.0, 2400.0, 2900.0),
                   "brandPct": _dist(20.0, 8.0, 19.0, 31.0, 35.0)},
    "Nurse Practitioner": {"n": 80, "opioidRate": _dist(7.0, 6.0, 5.0, 16.0, 20.0),
                           "costPerBene": _dist(800.0, 300.0, 700.0, 1300.0, 1500.0),
                           "brandPct": _dist(10.0, 5.0, 9.0, 17.0, 20.0)},
}

DRUGS = [
    {"generic": "Apixaban", "brand": "Eliquis", "claims": 1000000, "cost": 5e9, "benes": 300000,
     "providers": 200000, "costPerClaim": 500.0, "fills": 1100000},
    {"generic": "Semaglutide", "brand": "Ozempic", "claims": 500000, "cost": 4e9, "benes": 100000,
     "providers": 100000, "costPerClaim": 800.0, "fills": 520000},
    {"generic": "Atorvastatin Calcium", "brand": "Lipitor", "claims": 2000000, "cost": 1e9, "benes": 800000,
     "providers": 300000, "costPerClaim": 50.0, "fills": 2100000},
    {"generic": "Insulin Glargine", "brand": "Lantus", "claims": 800000, "cost": 3e9, "benes": 200000,
     "providers": 150000, "costPerClaim": 375.0, "fills": 810000},
]

DRUGS_FULL = DRUGS + [
    {"generic": "Gabapentin", "brand": "Neurontin", "claims": 3000000, "cost": 5e8, "benes": 900000,
     "providers": 400000, "costPerClaim": 16.7, "fills": 3100000},
]

EXCLUDED = [
    {"npi": "1000000008", "name": "Hank Hill", "credentials": "DDS", "city": "Dallas", "state": "TX",
     "specialty": "Dentist", "claims": 30, "cost": 3000, "opioidRate": 50.0, "riskScore": 40,
     "riskFlags": ["leie_excluded"], "isExcluded": True},
    {"npi": "1000000006", "name": "Frank Fisher", "credentials": "MD", "city": "Boston", "state": "MA",
     "specialty": "Internal Medicine", "claims": 1000, "cost": 250000, "opioidRate": 10.0, "riskScore": 55,
     "riskFlags": ["leie_excluded"], "isExcluded": True},
]

DRUG_COMBOS = [
    {"npi": "1000000004", "name": "Dan Davis", "city": "Austin", "state": "TX", "specialty": "Family Practice",
     "claims": 150, "cost": 20000, "opioidRate": 30.0, "riskLevel": "moderate", "anomalyScore": 0.5},
    {"npi": "1000000001", "name": "Alice Adams", "city": "Springfield", "state": "IL",
     "specialty": "Family Practice", "claims": 500, "cost": 50000, "opioidRate": 45.0, "riskLevel": "high",
     "anomalyScore": 0.9},
    {"npi": "1000000009", "name": "Ivy Irwin", "city": "Houston", "state": "TX", "specialty": "Internal Medicine",
     "claims": 300, "cost": 30000, "opioidRate": 20.0, "riskLevel": "high", "anomalyScore": 0.7},
]

STATS = {
    "providers": 6, "claims": 2800, "cost": 535000, "opioidProv": 4, "highOpioid": 1, "excluded": 2,
    "totalSpecialties": 5, "riskCounts": {"high": 2, "elevated": 1, "moderate": 1, "low": 2},
    "brandCost": 3.5e5, "genericCost": 1.85e5, "brandPct": 65.4,
}

YEARLY_TRENDS = [
    {"year": 2022, "cost": 2.1e11, "claims": 1.4e9, "providers": 1000000},
    {"year": 2023, "cost": 2.2e11, "claims": 1.5e9, "providers": 1010000},
]

ML_SCORES = {"1000000001": 0.91, "1000000003": 0.4}

ML_PREDICTIONS = {
    "model": {"type": "GradientBoosting", "trees": 200, "features": 24, "fraudLabels": 350, "threshold": 0.8},
    "cv": {"precision": 0.71, "recall": 0.64, "f1": 0.67},
    "recall": 0.64, "totalScored": 1000000, "totalFlagged": 5,
    "predictions": [
        {"npi": "1000000001", "name": "Alice Adams", "city": "Springfield", "state": "IL",
         "specialty": "Family Practice", "mlScore": 0.97, "claims": 500, "cost": 50000, "opioidRate": 45.0,
         "brandPct": 20.0, "costPerBene": 500.0},
        {"npi": "1000000006", "name": "Frank Fisher", "city": "Boston", "state": "MA",
         "specialty": "Internal Medicine", "mlScore": 0.95, "claims": 1000, "cost": 250000, "opioidRate": 10.0,
         "brandPct": 20.0, "costPerBene": 2500.0},
        {"npi": "1000000009", "name": "Ivy Irwin", "city": "Houston", "state": "TX",
         "specialty": "Internal Medicine", "mlScore": 0.9, "claims": 300, "cost": 30000, "opioidRate": 20.0,
         "brandPct": 15.0, "costPerBene": 300.0},
        {"npi": "1000000004", "name": "Dan Davis", "city": "Austin", "state": "TX",
         "specialty": "Family Practice", "mlScore": 0.85, "claims": 150, "cost": 20000, "opioidRate": 30.0,
         "brandPct": 10.0, "costPerBene": 333.3},
        {"npi": "1000000010", "name": "Jo Jones", "city": "", "state": "",
         "specialty": "Family Practice", "mlScore": 0.82, "claims": 90, "cost": 9000, "opioidRate": 5.0,
         "brandPct": 40.0, "costPerBene": 150.0},
    ],
}

TOP_COST = [
    {"npi": "1000000006", "name": "Frank Fisher", "city": "Boston", "state": "MA",
     "specialty": "Internal Medicine", "cost": 250000, "claims": 1000, "brandPct": 20.0, "costPerBene": 2500.0},
    {"npi": "1000000002", "name": "Bob Brown", "city": "Springfield", "state": "MO",
     "specialty": "Internal Medicine", "cost": 120000, "claims": 300, "brandPct": 35.0, "costPerBene": 1200.0},
    {"npi": "1000000003", "name": "carol Clark", "city": "Chicago", "state": "IL",
     "specialty": "Cardiology", "cost": 90000, "claims": 800, "brandPct": 30.0, "costPerBene": 450.0},
]

PROVIDER_DETAILS = {
    "1000000001": {
        "npi": "1000000001", "name": "Alice Adams", "credentials": "MD", "entityCode": "I",
        "city": "Springfield", "state": "IL", "zip5": "62701", "specialty": "Family Practice",
        "claims": 500, "cost": 50000, "benes": 100, "costPerBene": 500.0, "opioidRate": 45.0,
        "brandPct": 20.0, "riskScore": 72, "riskLevel": "high",
        "riskFlags": ["opioid_benzo_coprescriber", "high_opioid"], "isExcluded": False,
    },
    "1000000003": {
        "npi": "1000000003", "name": "carol Clark", "credentials": "DO", "city": "Chicago", "state": "IL",
        "specialty": "Cardiology", "claims": 800, "cost": 90000, "benes": 200, "costPerBene": 450.0,
        "opioidRate": 5.0, "brandPct": 30.0, "riskScore": 35, "riskLevel": "elevated",
        "riskFlags": ["extreme_cost_outlier"], "isExcluded": False,
    },
    "1000000006": {
        "npi": "1000000006", "name": "Frank Fisher", "credentials": "MD", "city": "Boston", "state": "MA",
        "specialty": "Internal Medicine", "claims": 1000, "cost": 250000, "benes": 100, "costPerBene": 2500.0,
        "opioidRate": 10.0, "brandPct": 20.0, "riskScore": 55, "riskLevel": "high",
        "riskFlags": ["leie_excluded"], "isExcluded": True,
        "exclusionInfo": {"type": "1128a1", "date": "2019-05-20", "state": "MA"},
    },
}

DATA_FILES = {
    "provider-index.json": PROVIDER_INDEX,
    "high-risk.json": HIGH_RISK,
    "top-opioid.json": TOP_OPIOID,
    "opioid-by-state.json": OPIOID_BY_STATE,
    "states.json": STATES,
    "state-yearly.json": STATE_YEARLY,
    "specialties.json": SPECIALTIES,
    "specialty-stats.json": SPECIALTY_STATS,
    "drugs.json": DRUGS,
    "drugs-full.json": DRUGS_FULL,
    "excluded.json": EXCLUDED,
    "drug-combos.json": DRUG_COMBOS,
    "stats.json": STATS,
    "yearly-trends.json": YEARLY_TRENDS,
    "ml-scores.json": ML_SCORES,
    "ml-predictions.json": ML_PREDICTIONS,
    "top-cost.json": TOP_COST,
}


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)


@pytest.fixture
def data_dir(tmp_path):
    """Data directory holding every synthetic data file"""
    directory = tmp_path / "data"
    for filename, data in DATA_FILES.items():
        write_json(directory / filename, data)
    for npi, record in PROVIDER_DETAILS.items():
        write_json(directory / "providers" / f"{npi}.json", record)
    return directory


@pytest.fixture
def loader(data_dir):
    return JsonDataLoader(data_dir)


@pytest.fixture
def queries(loader):
    from webapp.utils.data_queries import PrescriberDataQueries
    return PrescriberDataQueries(loader)


@pytest.fixture
def client(queries, monkeypatch):
    """TestClient whose routes read the synthetic data directory"""
    from fastapi.testclient import TestClient

    import webapp.utils.data_queries as data_queries
    from webapp.backend.main import app

    monkeypatch.setattr(data_queries, "_data_queries", queries)
    return TestClient(app)
