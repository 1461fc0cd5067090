"""
FastAPI Backend for OpenPrescriber
Provides REST API endpoints over the precomputed Medicare Part D data
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

sys.path.append(str(Path(__file__).parent.parent.parent))
from config.settings import DATA_YEAR, APIConfig, LoggingConfig, PageConfig
from src.transformers.comparisons import ProviderNotFound
from src.transformers.risk_calculator import calculate_risk_score
from webapp.utils.data_queries import get_data_queries

# Configure logging
logging.basicConfig(level=LoggingConfig.LEVEL, format=LoggingConfig.FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="OpenPrescriber API",
    description=f"API for browsing {DATA_YEAR} Medicare Part D prescribing data",
    version="1.0.0"
)

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def api_error(e: Exception, action: str) -> HTTPException:
    """Map a query-layer exception to an HTTP error"""
    if isinstance(e, (FileNotFoundError, json.JSONDecodeError)):
        logger.error(f"{action} failed, data file problem: {e}")
        return HTTPException(status_code=500, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ProviderNotFound):
        return HTTPException(status_code=404, detail=str(e))
    logger.error(f"{action} failed: {e}")
    return HTTPException(status_code=500, detail=str(e))


def not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=404, detail=detail)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"message": "OpenPrescriber API is running"}

@app.get("/api/health")
async def health_check():
    """Detailed health check with data availability"""
    try:
        return get_data_queries().get_health()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {"status": "error", "message": str(e)}

@app.get("/api/stats")
async def get_overview():
    """Headline statistics and the 5-year trend"""
    try:
        return get_data_queries().get_overview()
    except Exception as e:
        raise api_error(e, "Overview")

@app.get("/api/ml-fraud-detection")
async def get_ml_fraud_detection():
    """ML model summary, score tiers and the top-scored providers"""
    try:
        result = get_data_queries().get_ml_fraud_detection()
        if result is None:
            raise not_found("ML predictions are not available")
        return result
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "ML fraud detection")

@app.get("/api/brand-vs-generic")
async def get_brand_vs_generic():
    """Brand/generic spending split, specialties by brand share and top-cost prescribers"""
    try:
        return get_data_queries().get_brand_vs_generic()
    except Exception as e:
        raise api_error(e, "Brand vs generic")

# =============================================================================
# PROVIDERS
# =============================================================================

@app.get("/api/providers")
async def list_providers(
    search: Optional[str] = Query(None, description="Name, city or NPI"),
    risk: str = Query("all", description="Risk level tab: all, high, elevated, moderate, low"),
    sort: Optional[str] = Query(None, description="Sort key: riskLevel, name, claims, cost"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    """Provider directory"""
    try:
        return get_data_queries().get_providers(search, risk, sort, direction, show)
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "Provider list")

@app.get("/api/providers/{npi}")
async def get_provider(npi: str):
    """Full provider profile"""
    try:
        provider = get_data_queries().get_provider(npi)
        if provider is None:
            raise not_found(f"Provider {npi} not found")
        return provider
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "Provider detail")

@app.get("/api/search")
async def search(q: str = Query("", description="Name, city, specialty, state or NPI")):
    """Site-wide provider search"""
    try:
        return get_data_queries().search_providers(q)
    except Exception as e:
        raise api_error(e, "Search")

# =============================================================================
# OPIOIDS AND RISK
# =============================================================================

@app.get("/api/opioids/states")
async def opioid_states(
    search: Optional[str] = Query(None, description="State name or code"),
    sort: Optional[str] = Query(None, description="avgOpioidRate, name, providers, opioidProv, opioidPct, highOpioid"),
    direction: Optional[str] = Query(None, description="asc or desc")
):
    try:
        return get_data_queries().get_opioid_states(search, sort, direction)
    except Exception as e:
        raise api_error(e, "Opioid states")

@app.get("/api/opioids/prescribers")
async def opioid_prescribers(
    search: Optional[str] = Query(None, description="Name, state or city"),
    state: Optional[str] = Query(None, description="State code filter"),
    sort: Optional[str] = Query(None, description="opioidRate, name, opioidClaims, claims"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    """Top opioid prescribers with 100+ claims"""
    try:
        return get_data_queries().get_opioid_prescribers(search, state, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Opioid prescribers")

@app.get("/api/flagged")
async def flagged_providers(
    tab: str = Query("all", description="all, high, excluded or opioid_benzo"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    """Flagged providers, highest risk score first"""
    try:
        return get_data_queries().get_flagged(tab, show)
    except Exception as e:
        raise api_error(e, "Flagged providers")

@app.get("/api/risk-explorer")
async def risk_explorer(
    min_score: int = Query(PageConfig.RISK_EXPLORER_MIN_SCORE, ge=0, le=100, description="Minimum risk score"),
    state: Optional[str] = Query(None, description="State code"),
    specialty: Optional[str] = Query(None, description="Specialty name"),
    flag: Optional[str] = Query(None, description="Required risk flag"),
    sort: Optional[str] = Query(None, description="riskScore, opioidRate, cost, claims")
):
    try:
        return get_data_queries().get_risk_explorer(min_score, state, specialty, flag, sort)
    except Exception as e:
        raise api_error(e, "Risk explorer")

@app.get("/api/excluded")
async def excluded_providers(
    search: Optional[str] = Query(None, description="Name, city, state or specialty"),
    sort: Optional[str] = Query(None, description="riskScore, name, claims, cost"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    """OIG-excluded providers still prescribing"""
    try:
        return get_data_queries().get_excluded(search, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Excluded providers")

@app.get("/api/dangerous-combinations")
async def dangerous_combinations(
    search: Optional[str] = Query(None, description="Name, city, state or specialty"),
    risk: str = Query("all", description="Risk level filter"),
    sort: Optional[str] = Query(None, description="anomalyScore, name, opioidRate, claims, cost"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    """Opioid + benzodiazepine co-prescribers"""
    try:
        return get_data_queries().get_dangerous_combinations(search, risk, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Dangerous combinations")

# =============================================================================
# DRUGS
# =============================================================================

@app.get("/api/drugs")
async def list_drugs(
    search: Optional[str] = Query(None, description="Generic or brand name"),
    sort: Optional[str] = Query(None, description="cost, name, claims, providers, costPerClaim"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    try:
        return get_data_queries().get_drugs(search, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Drug list")

@app.get("/api/drugs/{slug}")
async def get_drug(slug: str):
    try:
        drug = get_data_queries().get_drug(slug)
        if drug is None:
            raise not_found(f"Drug {slug} not found")
        return drug
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "Drug detail")

@app.get("/api/drug-costs")
async def drug_costs(
    search: Optional[str] = Query(None, description="Generic or brand name"),
    sort: Optional[str] = Query(None, description="cost, brand, generic, claims, benes, costPerClaim"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    try:
        return get_data_queries().get_drug_costs(search, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Drug costs")

# =============================================================================
# STATES AND SPECIALTIES
# =============================================================================

@app.get("/api/states")
async def list_states(
    search: Optional[str] = Query(None, description="State name or code"),
    sort: Optional[str] = Query(None, description="cost, name, providers, claims, costPerBene, avgOpioidRate, highOpioid"),
    direction: Optional[str] = Query(None, description="asc or desc")
):
    try:
        return get_data_queries().get_states(search, sort, direction)
    except Exception as e:
        raise api_error(e, "State list")

@app.get("/api/states/{state}")
async def get_state(state: str):
    try:
        record = get_data_queries().get_state(state)
        if record is None:
            raise not_found(f"State {state.upper()} not found")
        return record
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "State detail")

@app.get("/api/specialties")
async def list_specialties(
    search: Optional[str] = Query(None, description="Specialty name"),
    sort: Optional[str] = Query(None, description="providers, name, claims, cost, avgOpioidRate, avgBrandPct, costPerProvider"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    try:
        return get_data_queries().get_specialties(search, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Specialty list")

@app.get("/api/specialties/{slug}")
async def get_specialty(slug: str):
    try:
        record = get_data_queries().get_specialty(slug)
        if record is None:
            raise not_found(f"Specialty {slug} not found")
        return record
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "Specialty detail")

@app.get("/api/specialty-profiles")
async def specialty_profiles(
    category: str = Query("opioid", description="opioid, cost or brand"),
    search: Optional[str] = Query(None, description="Specialty name"),
    sort: Optional[str] = Query(None, description="value, specialty, p90, providers"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    try:
        return get_data_queries().get_specialty_profiles(category, search, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Specialty profiles")

@app.get("/api/peer-comparison")
async def peer_comparison(
    search: Optional[str] = Query(None, description="Specialty name"),
    sort: Optional[str] = Query(None, description="n, name, opioidMean, costMean, brandMean, opioidP95"),
    direction: Optional[str] = Query(None, description="asc or desc"),
    show: Optional[int] = Query(None, ge=1, description="Number of rows to show")
):
    try:
        return get_data_queries().get_peer_comparison(search, sort, direction, show)
    except Exception as e:
        raise api_error(e, "Peer comparison")

# =============================================================================
# TOOLS
# =============================================================================

@app.get("/api/tools/risk-calculator")
async def risk_calculator(
    opioid_rate: Optional[str] = Query(None, description="Opioid prescribing rate, %"),
    cost_per_bene: Optional[str] = Query(None, description="Cost per beneficiary, $"),
    brand_pct: Optional[str] = Query(None, description="Brand-name share, %"),
    is_excluded: bool = Query(False, description="On the OIG exclusion list"),
    opioid_benzo_combo: bool = Query(False, description="Co-prescribes opioids and benzodiazepines"),
    low_drug_diversity: bool = Query(False, description="Very low drug diversity"),
    elderly_antipsychotics: bool = Query(False, description="High antipsychotic use in patients 65+")
):
    """Estimate a risk score from entered metrics"""
    try:
        return calculate_risk_score(opioid_rate, cost_per_bene, brand_pct, is_excluded,
                                    opioid_benzo_combo, low_drug_diversity, elderly_antipsychotics)
    except Exception as e:
        raise api_error(e, "Risk calculator")

@app.get("/api/tools/peer-lookup")
async def peer_lookup_options():
    """Specialties available for peer lookup"""
    try:
        return {"specialties": get_data_queries().get_peer_options()}
    except Exception as e:
        raise api_error(e, "Peer lookup options")

@app.get("/api/tools/peer-lookup/{specialty:path}")
async def peer_lookup(specialty: str):
    try:
        result = get_data_queries().get_peer_lookup(specialty)
        if result is None:
            raise not_found(f"Specialty {specialty} not found")
        return result
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "Peer lookup")

@app.get("/api/tools/compare")
async def compare_providers(
    npi1: Optional[str] = Query(None, description="First NPI"),
    npi2: Optional[str] = Query(None, description="Second NPI")
):
    """Side-by-side comparison of two providers"""
    try:
        return get_data_queries().compare(npi1, npi2)
    except Exception as e:
        raise api_error(e, "Provider compare")

@app.get("/api/tools/state-report-card")
async def state_report_card(state: Optional[str] = Query(None, description="State code")):
    try:
        result = get_data_queries().get_state_report_card(state)
        if result is None:
            raise not_found(f"No report card for state {state.upper()}")
        return result
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "State report card")

@app.get("/api/tools/specialty-comparison")
async def specialty_comparison(
    specialty: List[str] = Query([], description="Up to 3 specialty names")
):
    try:
        return get_data_queries().compare_specialties(specialty)
    except Exception as e:
        raise api_error(e, "Specialty comparison")

@app.get("/api/tools/savings-calculator")
async def savings_calculator(state: Optional[str] = Query(None, description="State code")):
    """Estimated savings from generic substitution"""
    try:
        result = get_data_queries().get_savings(state)
        if result is None:
            raise not_found(f"State {state.upper()} not found")
        return result
    except HTTPException:
        raise
    except Exception as e:
        raise api_error(e, "Savings calculator")

@app.get("/api/tools/city-lookup/suggestions")
async def city_suggestions(q: str = Query("", description="Partial city name")):
    try:
        return {"query": q, "suggestions": get_data_queries().city_suggestions(q)}
    except Exception as e:
        raise api_error(e, "City suggestions")

@app.get("/api/tools/city-lookup")
async def city_lookup(
    city: str = Query(..., description="City, optionally as \"City, ST\""),
    sort: Optional[str] = Query(None, description="cost, name, specialty, claims, riskLevel"),
    direction: Optional[str] = Query(None, description="asc or desc")
):
    """Providers in a city, grouped by state"""
    try:
        return get_data_queries().get_city_providers(city, sort, direction)
    except Exception as e:
        raise api_error(e, "City lookup")

@app.get("/api/tools/drug-lookup")
async def drug_lookup(q: str = Query("", description="Brand or generic name")):
    try:
        return get_data_queries().drug_lookup(q)
    except Exception as e:
        raise api_error(e, "Drug lookup")

# =============================================================================
# DOWNLOADS
# =============================================================================

@app.get("/api/downloads")
async def list_downloads():
    """Downloadable datasets by category"""
    try:
        return {"categories": get_data_queries().get_downloads()}
    except Exception as e:
        raise api_error(e, "Download catalog")

@app.get("/api/downloads/{filename}")
async def download_file(filename: str):
    path = get_data_queries().get_download_path(filename)
    if path is None:
        raise not_found(f"Dataset {filename} not found")
    return FileResponse(path, media_type="application/json", filename=filename)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=APIConfig.HOST, port=APIConfig.PORT)
