"""
Streamlit Dashboard for OpenPrescriber
Interactive browsing of the Medicare Part D prescribing data
"""

import sys
from pathlib import Path
from urllib.parse import quote

import pandas as pd
import requests
import streamlit as st

sys.path.append(str(Path(__file__).parent.parent.parent))
from config.settings import DATA_YEAR, APIConfig
from src.utils.formatting import RISK_LEVELS, fmt, fmt_money, risk_badge, title_case
from src.utils.list_view import DESC
from webapp.utils.data_queries import DRUGS_VIEW, PROVIDERS_VIEW, SPECIALTIES_VIEW, STATES_VIEW

# Page configuration
st.set_page_config(
    page_title="OpenPrescriber",
    page_icon="💊",
    layout="wide",
    initial_sidebar_state="expanded"
)

# API Configuration
API_BASE_URL = APIConfig.API_BASE_URL

SECTIONS = [
    "Overview", "Providers", "Flagged", "Risk Explorer", "Drugs",
    "States", "Specialties", "ML Fraud Detection", "Brand vs Generic", "Risk Calculator", "Compare",
]

# Helper functions
@st.cache_data(ttl=APIConfig.CACHE_TTL)  # Cache for 5 minutes
def fetch_data(endpoint, params=None):
    """Fetch data from API with caching"""
    try:
        response = requests.get(f"{API_BASE_URL}{endpoint}", params=params, timeout=APIConfig.REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        detail = None
        if e.response is not None and e.response.headers.get("content-type", "").startswith("application/json"):
            detail = e.response.json().get("detail")
        st.error(detail or f"Error fetching data: {e}")
        return None
    except requests.exceptions.RequestException as e:
        st.error(f"Error fetching data: {e}")
        return None

def show_count(key, page_size, inputs=()):
    """Rows currently shown for a list view, grown by its "show more" button

    The count drops back to one page whenever the view's inputs change.
    """
    state_key, inputs_key = f"show_{key}", f"inputs_{key}"
    if state_key not in st.session_state or st.session_state.get(inputs_key) != inputs:
        st.session_state[state_key] = page_size
        st.session_state[inputs_key] = inputs
    return st.session_state[state_key]

def show_more_button(key, result):
    if result and result.get("has_more"):
        page_size = result.get("page_size") or 50
        label = f"Show more ({fmt(result['remaining'])} remaining)"
        if st.button(label, key=f"more_{key}"):
            st.session_state[f"show_{key}"] = result["showing"] + page_size
            st.rerun()

def sort_controls(key, view):
    """Column-header sort buttons; clicking the active key flips its direction"""
    sort_key, dir_key = f"sort_{key}", f"dir_{key}"
    if sort_key not in st.session_state:
        st.session_state[sort_key], st.session_state[dir_key] = view.resolve_sort(None, None)
    current, direction = st.session_state[sort_key], st.session_state[dir_key]

    options = list(view.sort_keys)
    for col, option in zip(st.columns(len(options)), options):
        arrow = (" ▼" if direction == DESC else " ▲") if option == current else ""
        if col.button(f"{option}{arrow}", key=f"header_{key}_{option}"):
            st.session_state[sort_key], st.session_state[dir_key] = view.next_sort(current, direction, option)
            st.rerun()
    return current, direction

def render_table(rows, columns, money=()):
    """Render rows as a pandas table with money columns formatted"""
    if not rows:
        return
    df = pd.DataFrame(rows)
    columns = [c for c in columns if c in df.columns]
    df = df[columns].copy()
    for column in money:
        if column in df.columns:
            df[column] = df[column].apply(fmt_money)
    if "riskLevel" in df.columns:
        df["riskLevel"] = df["riskLevel"].apply(risk_badge)
    st.dataframe(df, use_container_width=True, hide_index=True)

def render_list(result, columns, money=(), key=None):
    if not result:
        return
    if result["total"] == 0:
        st.info(result.get("empty_message", "No results."))
        return
    st.caption(f"Showing {fmt(result['showing'])} of {fmt(result['total'])}")
    render_table(result["rows"], columns, money)
    if key:
        show_more_button(key, result)

# Sections
def overview_section():
    data = fetch_data("/api/stats")
    if not data:
        return
    stats = data["stats"]
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Providers", fmt(stats.get("providers")))
    col2.metric("Claims", fmt(stats.get("claims")))
    col3.metric("Total Cost", fmt_money(stats.get("cost")))
    col4.metric("OIG Excluded", fmt(stats.get("excluded")))

    risk_counts = stats.get("riskCounts") or {}
    cols = st.columns(len(RISK_LEVELS))
    for col, level in zip(cols, RISK_LEVELS):
        col.metric(risk_badge(level), fmt(risk_counts.get(level)))

    st.subheader("📈 5-Year Trend")
    render_table(data.get("yearly_trends") or [], ["year", "providers", "claims", "cost"], money=["cost"])

def providers_section():
    search = st.text_input("Search by name, city or NPI", key="provider_search")
    risk = st.radio("Risk level", ["all"] + RISK_LEVELS, horizontal=True, format_func=title_case)
    sort, direction = sort_controls("providers", PROVIDERS_VIEW)
    show = show_count("providers", PROVIDERS_VIEW.page_size, (search, risk, sort, direction))
    result = fetch_data("/api/providers", {
        "search": search or None, "risk": risk, "sort": sort, "direction": direction, "show": show,
    })
    if result:
        counts = result["risk_counts"]
        st.caption(" · ".join(f"{title_case(k)}: {fmt(v)}" for k, v in counts.items()))
    render_list(result, ["npi", "name", "city", "state", "specialty", "claims", "cost", "riskLevel"],
                money=["cost"], key="providers")

    st.markdown("---")
    st.subheader("🔎 Provider Detail")
    npi = st.text_input("NPI", key="provider_npi")
    if npi:
        provider = fetch_data(f"/api/providers/{npi.strip()}")
        if provider:
            st.markdown(f"### {provider.get('name')} {provider.get('credentials') or ''}")
            st.write(f"{provider.get('specialty')} · {provider.get('city')}, {provider.get('state')}")
            st.write(provider["risk_badge"])
            if provider.get("isExcluded"):
                st.error("🚫 This provider is on the OIG exclusion list")
            if provider.get("ml_alert"):
                st.warning(f"🤖 ML fraud model score: {provider['ml_score']:.2f}")
            col1, col2, col3, col4 = st.columns(4)
            col1.metric("Claims", fmt(provider.get("claims")))
            col2.metric("Cost", fmt_money(provider.get("cost")))
            col3.metric("Opioid Rate", f"{provider.get('opioidRate') or 0:.1f}%")
            col4.metric("Risk Score", fmt(provider.get("riskScore")))
            for flag in provider["flag_labels"]:
                st.write(f"⚠️ {flag['label']}")

def flagged_section():
    tab = st.radio("Show", ["all", "high", "excluded", "opioid_benzo"], horizontal=True,
                   format_func=lambda t: {"all": "All", "high": "High Risk (50+)",
                                          "excluded": "OIG Excluded", "opioid_benzo": "Opioid+Benzo"}[t])
    result = fetch_data("/api/flagged", {"tab": tab, "show": show_count("flagged", 50, (tab,))})
    if result:
        counts = result["tab_counts"]
        st.caption(f"{fmt(counts['all'])} flagged · {fmt(counts['high'])} high · "
                   f"{fmt(result['elevated_count'])} elevated")
    render_list(result, ["npi", "name", "city", "state", "specialty", "riskScore", "riskLevel", "cost"],
                money=["cost"], key="flagged")

def risk_explorer_section():
    options = (fetch_data("/api/risk-explorer") or {}).get("options", {})
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        min_score = st.slider("Min Risk Score", 15, 70, 30)
    with col2:
        state = st.selectbox("State", [""] + options.get("states", []), format_func=lambda s: s or "All States")
    with col3:
        specialty = st.selectbox("Specialty", [""] + options.get("specialties", []),
                                 format_func=lambda s: s or "All Specialties")
    with col4:
        flags = {f["value"]: f["label"] for f in options.get("flags", [])}
        flag = st.selectbox("Required flag", [""] + list(flags), format_func=lambda f: flags.get(f, "Any flag"))
    sort = st.radio("Sort by", ["riskScore", "opioidRate", "cost", "claims"], horizontal=True)

    result = fetch_data("/api/risk-explorer", {
        "min_score": min_score, "state": state or None, "specialty": specialty or None,
        "flag": flag or None, "sort": sort,
    })
    if result:
        st.caption(f"{fmt(result['total_filtered'])} providers match (showing top {result['showing']})")
    render_list(result, ["npi", "name", "state", "specialty", "riskScore", "opioidRate", "cost", "claims"],
                money=["cost"])

def drugs_section():
    search = st.text_input("Search generic or brand name", key="drug_search")
    sort, direction = sort_controls("drugs", DRUGS_VIEW)
    show = show_count("drugs", DRUGS_VIEW.page_size, (search, sort, direction))
    result = fetch_data("/api/drugs", {"search": search or None, "sort": sort, "direction": direction, "show": show})
    render_list(result, ["generic", "brand", "cost", "claims", "providers", "costPerClaim"],
                money=["cost", "costPerClaim"], key="drugs")

    st.markdown("---")
    st.subheader("💊 Drug Lookup")
    q = st.text_input("Drug name (2+ characters)", key="drug_lookup")
    lookup = fetch_data("/api/tools/drug-lookup", {"q": q}) if q else None
    if lookup and lookup["results"]:
        st.metric("Total Medicare cost of matches", lookup["total_cost_display"])
        render_table(lookup["results"], ["brand", "generic", "cost", "claims", "slug"], money=["cost"])

def states_section():
    search = st.text_input("Search states", key="state_search")
    sort, direction = sort_controls("states", STATES_VIEW)
    result = fetch_data("/api/states", {"search": search or None, "sort": sort, "direction": direction})
    render_list(result, ["state", "stateName", "providers", "claims", "cost", "costPerBene", "avgOpioidRate"],
                money=["cost", "costPerBene"])

    st.markdown("---")
    st.subheader("📋 State Report Card")
    card_options = (fetch_data("/api/tools/state-report-card") or {}).get("states", [])
    names = {s["state"]: s["name"] for s in card_options}
    abbr = st.selectbox("State", [""] + list(names), format_func=lambda s: names.get(s, "Select a state"))
    if abbr:
        card = fetch_data("/api/tools/state-report-card", {"state": abbr})
        if card and card["report"]:
            report = card["report"]
            total = report["total_states"]
            col1, col2, col3, col4 = st.columns(4)
            col1.metric("Grade", report["grade"])
            col2.metric("Cost rank", f"#{report['ranks']['cost']} of {total}")
            col3.metric("Opioid rank", f"#{report['ranks']['avgOpioidRate']} of {total}")
            col4.metric("Cost/patient rank", f"#{report['ranks']['costPerBene']} of {total}")
        savings = fetch_data("/api/tools/savings-calculator", {"state": abbr})
        if savings and savings["selected"]:
            st.metric("Potential generic savings", savings["selected"]["savings_display"])

def specialties_section():
    search = st.text_input("Search specialties", key="specialty_search")
    sort, direction = sort_controls("specialties", SPECIALTIES_VIEW)
    show = show_count("specialties", SPECIALTIES_VIEW.page_size, (search, sort, direction))
    result = fetch_data("/api/specialties", {
        "search": search or None, "sort": sort, "direction": direction, "show": show,
    })
    render_list(result, ["specialty", "providers", "claims", "cost", "avgOpioidRate", "avgBrandPct",
                         "costPerProvider"], money=["cost", "costPerProvider"], key="specialties")

    st.markdown("---")
    st.subheader("👥 Peer Lookup")
    options = (fetch_data("/api/tools/peer-lookup") or {}).get("specialties", [])
    choice = st.selectbox("Specialty", [""] + [o["specialty"] for o in options],
                          format_func=lambda s: s or "Select a specialty")
    if choice:
        lookup = fetch_data(f"/api/tools/peer-lookup/{quote(choice, safe='')}")
        if lookup:
            st.caption(f"{fmt(lookup['n'])} providers · outliers are {lookup['outlier_sigma']}σ above the mean")
            render_table(lookup["metrics"], ["label", "mean_display", "median_display", "outlier_threshold_display"])

    st.subheader("⚖️ Specialty Comparison")
    comparison = fetch_data("/api/tools/specialty-comparison") or {}
    picked = st.multiselect("Specialties (up to 3)", comparison.get("options", []), max_selections=3)
    if len(picked) >= 2:
        result = fetch_data("/api/tools/specialty-comparison", {"specialty": picked})
        if result and result["ready"]:
            rows = [dict(zip(["metric"] + result["selected"], [m["metric"]] + m["values"]))
                    for m in result["metrics"]]
            render_table(rows, ["metric"] + result["selected"])
    else:
        st.caption("Popular: " + " · ".join(" vs ".join(p) for p in comparison.get("popular", [])))

def ml_fraud_detection_section():
    data = fetch_data("/api/ml-fraud-detection")
    if not data:
        return
    model, cv = data["model"], data["cv"]
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Providers Scored", fmt(data.get("total_scored")))
    col2.metric("Flagged by Model", fmt(data.get("total_flagged")))
    col3.metric("CV Precision", f"{(cv.get('precision') or 0):.0%}")
    col4.metric("CV Recall", f"{(cv.get('recall') or 0):.0%}")
    st.caption(f"{model.get('type', 'Model')} · {fmt(model.get('trees'))} trees · "
               f"{fmt(model.get('features'))} features · trained on {fmt(model.get('fraudLabels'))} "
               f"confirmed fraud labels")

    cols = st.columns(len(data["tiers"]))
    for col, tier in zip(cols, data["tiers"]):
        col.metric(f"{tier['label']} (≥{tier['min_score']:.2f})", fmt(tier["count"]))

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Top Specialties")
        render_table(data["top_specialties"], ["name", "count"])
    with col2:
        st.subheader("Top States")
        render_table(data["top_states"], ["name", "stateName", "count"])

    st.subheader(f"🤖 Top {len(data['predictions'])} Predictions")
    render_table(data["predictions"], ["npi", "name", "city", "state", "specialty", "mlScore", "claims", "cost",
                                       "opioidRate", "brandPct", "costPerBene"], money=["cost", "costPerBene"])

def brand_vs_generic_section():
    data = fetch_data("/api/brand-vs-generic")
    if not data:
        return
    col1, col2, col3 = st.columns(3)
    col1.metric("Brand Spending", data["brand_cost_display"])
    col2.metric("Generic Spending", data["generic_cost_display"])
    col3.metric("Brand Share", f"{data['brand_pct'] or 0:.1f}%")

    st.subheader("🏷️ Specialties by Brand Share")
    rows = [{**s, "note": "small sample" if s.get("smallSample") else ""} for s in data["specialties"]]
    render_table(rows, ["specialty", "providers", "avgBrandPct", "note"])

    st.subheader("💰 Top Prescribers by Cost")
    render_table(data["top_cost"], ["npi", "name", "city", "state", "specialty", "cost", "claims", "brandPct",
                                    "costPerBene"], money=["cost", "costPerBene"])

def risk_calculator_section():
    col1, col2, col3 = st.columns(3)
    with col1:
        opioid_rate = st.text_input("Opioid rate (%)", "")
    with col2:
        cost_per_bene = st.text_input("Cost per beneficiary ($)", "")
    with col3:
        brand_pct = st.text_input("Brand name (%)", "")
    is_excluded = st.checkbox("OIG Excluded")
    opioid_benzo_combo = st.checkbox("Opioid + Benzo combo")
    low_drug_diversity = st.checkbox("Low drug diversity")
    elderly_antipsychotics = st.checkbox("Elderly antipsychotics")

    result = fetch_data("/api/tools/risk-calculator", {
        "opioid_rate": opioid_rate, "cost_per_bene": cost_per_bene, "brand_pct": brand_pct,
        "is_excluded": is_excluded, "opioid_benzo_combo": opioid_benzo_combo,
        "low_drug_diversity": low_drug_diversity, "elderly_antipsychotics": elderly_antipsychotics,
    })
    if result:
        st.metric("Estimated Risk Score", f"{result['score']} / 100", result["label"])
        render_table(result["breakdown"], ["label", "pts"])

def compare_rows(result):
    """Metric rows keyed by position; two providers can share a name"""
    return [
        {
            "Metric": m["label"],
            "Provider 1": m["provider1_display"] + (" ✓" if m["winner"] == 1 else ""),
            "Provider 2": m["provider2_display"] + (" ✓" if m["winner"] == 2 else ""),
        }
        for m in result["metrics"]
    ]

def compare_section():
    col1, col2 = st.columns(2)
    with col1:
        npi1 = st.text_input("NPI 1")
    with col2:
        npi2 = st.text_input("NPI 2")
    if not st.button("Compare"):
        return
    result = fetch_data("/api/tools/compare", {"npi1": npi1, "npi2": npi2})
    if not result:
        return
    p1, p2 = result["provider1"], result["provider2"]
    st.caption(f"Provider 1: {p1['name']} ({p1['npi']}) · Provider 2: {p2['name']} ({p2['npi']})")
    render_table(compare_rows(result), ["Metric", "Provider 1", "Provider 2"])

# Main dashboard
def main():
    st.title("💊 OpenPrescriber")
    st.markdown(f"Medicare Part D prescribing patterns, {DATA_YEAR}")

    health_data = fetch_data("/api/health")
    if not health_data:
        st.error("❌ Cannot connect to API. Please ensure the backend is running.")
        st.stop()
    if health_data.get("status") != "healthy":
        st.warning(f"⚠️ Some data files are missing: {', '.join(health_data.get('missing', []))}")

    section = st.sidebar.radio("Section", SECTIONS)
    st.header(section)
    {
        "Overview": overview_section,
        "Providers": providers_section,
        "Flagged": flagged_section,
        "Risk Explorer": risk_explorer_section,
        "Drugs": drugs_section,
        "States": states_section,
        "Specialties": specialties_section,
        "ML Fraud Detection": ml_fraud_detection_section,
        "Brand vs Generic": brand_vs_generic_section,
        "Risk Calculator": risk_calculator_section,
        "Compare": compare_section,
    }[section]()

    st.sidebar.markdown("---")
    st.sidebar.caption(f"API: {API_BASE_URL}")

if __name__ == "__main__":
    main()
