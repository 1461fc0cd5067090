"""
Data Query Utilities for the OpenPrescriber webapp
List views, lookups and tools over the precomputed JSON files
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import duckdb
import polars as pl

from config.settings import DOWNLOAD_CATALOG, DataFiles, PageConfig, RiskConfig
from src.loaders.json_loader import JsonDataLoader
from src.transformers.comparisons import (ProviderNotFound, compare_providers,
                                          compare_specialties, not_found_message,
                                          validate_npis)
from src.transformers.peer_benchmarks import (PROFILE_CATEGORIES, build_peer_rows,
                                              build_profile_rows, peer_highlights,
                                              peer_lookup, specialty_options)
from src.transformers.state_report import (report_card_states, savings_estimate,
                                           state_report_card)
from src.utils.formatting import (EXPLORER_FLAGS, RISK_LEVELS, RISK_SEVERITY,
                                  flag_label, fmt_money, risk_badge, slugify,
                                  state_name)
from src.utils.list_view import DESC, ListView, as_text, risk_key, state_name_column, text_key

logger = logging.getLogger(__name__)

ALL = "all"
FLAGGED_TABS = [ALL, "high", "excluded", "opioid_benzo"]
OPIOID_BENZO_FLAG = "opioid_benzo_coprescriber"


def _profile_view(category: str) -> ListView:
    mean_field, p90_field = PROFILE_CATEGORIES[category]
    return ListView(
        f"specialty_profiles_{category}",
        sort_keys={
            "value": pl.col("value"),
            "specialty": text_key("specialty"),
            "p90": pl.col("p90"),
            "providers": pl.col("n"),
        },
        default_sort="value",
        search_fields=["specialty"],
        derived_columns=[pl.col(mean_field).alias("value"), pl.col(p90_field).alias("p90")],
        ascending_keys=["specialty"],
        empty_message="No specialties match your search.",
    )


# List view definitions
PROVIDERS_VIEW = ListView(
    "providers",
    sort_keys={
        "riskLevel": risk_key(),
        "name": text_key("name"),
        "claims": pl.col("claims"),
        "cost": pl.col("cost"),
    },
    default_sort="riskLevel",
    search_fields=["name", "city"],
    raw_search_fields=["npi"],
    empty_message="No providers match your search.",
)

OPIOID_STATES_VIEW = ListView(
    "opioid_states",
    sort_keys={
        "avgOpioidRate": pl.col("avgOpioidRate"),
        "name": text_key("stateName"),
        "providers": pl.col("providers"),
        "opioidProv": pl.col("opioidProv"),
        "opioidPct": pl.col("opioidPct"),
        "highOpioid": pl.col("highOpioid"),
    },
    default_sort="avgOpioidRate",
    search_fields=["stateName", "state"],
    derived_columns=[state_name_column()],
    page_size=None,
    empty_message="No states match your search.",
)

OPIOID_PRESCRIBERS_VIEW = ListView(
    "opioid_prescribers",
    sort_keys={
        "opioidRate": pl.col("opioidRate"),
        "name": text_key("name"),
        "opioidClaims": pl.col("opioidClaims"),
        "claims": pl.col("claims"),
    },
    default_sort="opioidRate",
    search_fields=["name", "state", "city"],
    empty_message="No prescribers match your search.",
)

FLAGGED_VIEW = ListView(
    "flagged",
    sort_keys={"riskScore": pl.col("riskScore")},
    default_sort="riskScore",
    empty_message="No flagged providers in this category.",
)

RISK_EXPLORER_VIEW = ListView(
    "risk_explorer",
    sort_keys={
        "riskScore": pl.col("riskScore"),
        "opioidRate": pl.col("opioidRate"),
        "cost": pl.col("cost"),
        "claims": pl.col("claims"),
    },
    default_sort="riskScore",
    ascending_keys=[],
    page_size=PageConfig.RISK_EXPLORER_LIMIT,
    empty_message="No providers match these filters. Try lowering the minimum score.",
)

SPECIALTY_PROFILE_VIEWS = {category: _profile_view(category) for category in PROFILE_CATEGORIES}

EXCLUDED_VIEW = ListView(
    "excluded",
    sort_keys={
        "riskScore": pl.col("riskScore"),
        "name": text_key("name"),
        "claims": pl.col("claims"),
        "cost": pl.col("cost"),
    },
    default_sort="riskScore",
    search_fields=["name", "city", "state", "specialty"],
    page_size=PageConfig.EXCLUDED_PAGE_SIZE,
    empty_message="No excluded providers match your search.",
)

DANGEROUS_COMBOS_VIEW = ListView(
    "dangerous_combinations",
    sort_keys={
        "anomalyScore": pl.col("anomalyScore"),
        "name": text_key("name"),
        "opioidRate": pl.col("opioidRate"),
        "claims": pl.col("claims"),
        "cost": pl.col("cost"),
    },
    default_sort="anomalyScore",
    search_fields=["name", "city", "state", "specialty"],
    empty_message="No co-prescribers match your search.",
)

DRUGS_VIEW = ListView(
    "drugs",
    sort_keys={
        "cost": pl.col("cost"),
        "name": text_key("generic"),
        "claims": pl.col("claims"),
        "providers": pl.col("providers"),
        "costPerClaim": pl.col("costPerClaim"),
    },
    default_sort="cost",
    search_fields=["generic", "brand"],
    empty_message="No drugs match your search.",
)

DRUG_COSTS_VIEW = ListView(
    "drug_costs",
    sort_keys={
        "cost": pl.col("cost"),
        "brand": text_key("brand"),
        "generic": text_key("generic"),
        "claims": pl.col("claims"),
        "benes": pl.col("benes"),
        "costPerClaim": pl.col("costPerClaim"),
    },
    default_sort="cost",
    search_fields=["generic", "brand"],
    ascending_keys=["brand", "generic"],
    page_size=PageConfig.DRUG_COSTS_PAGE_SIZE,
    empty_message="No drugs match your search.",
)

STATES_VIEW = ListView(
    "states",
    sort_keys={
        "cost": pl.col("cost"),
        "name": text_key("stateName"),
        "providers": pl.col("providers"),
        "claims": pl.col("claims"),
        "costPerBene": pl.col("costPerBene"),
        "avgOpioidRate": pl.col("avgOpioidRate"),
        "highOpioid": pl.col("highOpioid"),
    },
    default_sort="cost",
    search_fields=["stateName", "state"],
    derived_columns=[state_name_column()],
    page_size=None,
    empty_message="No states match your search.",
)

SPECIALTIES_VIEW = ListView(
    "specialties",
    sort_keys={
        "providers": pl.col("providers"),
        "name": text_key("specialty"),
        "claims": pl.col("claims"),
        "cost": pl.col("cost"),
        "avgOpioidRate": pl.col("avgOpioidRate"),
        "avgBrandPct": pl.col("avgBrandPct"),
        "costPerProvider": pl.col("costPerProvider"),
    },
    default_sort="providers",
    search_fields=["specialty"],
    empty_message="No specialties match your search.",
)

PEER_COMPARISON_VIEW = ListView(
    "peer_comparison",
    sort_keys={
        "n": pl.col("n"),
        "name": text_key("name"),
        "opioidMean": pl.col("opioidMean"),
        "costMean": pl.col("costMean"),
        "brandMean": pl.col("brandMean"),
        "opioidP95": pl.col("opioidP95"),
    },
    default_sort="n",
    search_fields=["name"],
    empty_message="No specialties match your search.",
)

CITY_PROVIDERS_VIEW = ListView(
    "city_providers",
    sort_keys={
        "cost": pl.col("cost"),
        "name": text_key("name"),
        "specialty": text_key("specialty"),
        "claims": pl.col("claims"),
        "riskLevel": risk_key(),
    },
    default_sort="cost",
    ascending_keys=["name", "specialty"],
    page_size=None,
    empty_message="No providers found in this city.",
)

# Site-wide provider search; only its search condition is used
SEARCH_VIEW = ListView(
    "search",
    sort_keys={"name": text_key("name")},
    default_sort="name",
    search_fields=["name", "city", "specialty"],
    raw_search_fields=["npi"],
    exact_search_fields=["state"],
)


class PrescriberDataQueries:
    """Main class for prescriber data queries"""

    def __init__(self, loader: Optional[JsonDataLoader] = None):
        self.loader = loader or JsonDataLoader()
        self.conn = duckdb.connect()

    def __del__(self):
        if hasattr(self, 'conn'):
            self.conn.close()

    def _json_source(self, filename: str) -> str:
        return f"read_json_auto('{self.loader.path_for(filename).as_posix()}', format='array')"

    # ------------------------------------------------------------------
    # List views
    # ------------------------------------------------------------------

    def get_providers(self, search: Optional[str] = None, risk: str = ALL,
                      sort: Optional[str] = None, direction: Optional[str] = None,
                      show: Optional[int] = None) -> Dict[str, Any]:
        """Provider directory with a risk-level tab"""
        if risk != ALL and risk not in RISK_LEVELS:
            raise ValueError(f"Unknown risk level: {risk}")
        df = self.loader.load_frame(DataFiles.PROVIDER_INDEX)
        filters = [] if risk == ALL else [pl.col("riskLevel") == risk]
        result = PROVIDERS_VIEW.apply(df, search, sort, direction, show, filters)
        result["risk"] = risk
        result["risk_counts"] = self.get_risk_counts()
        return result

    def get_risk_counts(self) -> Dict[str, int]:
        """Provider counts per risk level over the whole index"""
        counts = {ALL: 0, **{level: 0 for level in RISK_LEVELS}}
        if self.loader.load_frame(DataFiles.PROVIDER_INDEX).is_empty():
            return counts

        query = f"""
        SELECT riskLevel, COUNT(*) as n
        FROM {self._json_source(DataFiles.PROVIDER_INDEX)}
        GROUP BY riskLevel
        """
        for level, n in self.conn.execute(query).fetchall():
            counts[ALL] += n
            if level in counts:
                counts[level] = n
        return counts

    def get_opioid_states(self, search: Optional[str] = None, sort: Optional[str] = None,
                          direction: Optional[str] = None) -> Dict[str, Any]:
        df = self.loader.load_frame(DataFiles.OPIOID_BY_STATE)
        return OPIOID_STATES_VIEW.apply(df, search, sort, direction,
                                        filters=[pl.col("opioidProv") > 0])

    def get_opioid_prescribers(self, search: Optional[str] = None, state: Optional[str] = None,
                               sort: Optional[str] = None, direction: Optional[str] = None,
                               show: Optional[int] = None) -> Dict[str, Any]:
        """Top opioid prescribers with enough volume to be meaningful"""
        df = self.loader.load_frame(DataFiles.TOP_OPIOID)
        if not df.is_empty():
            df = df.filter(pl.col("claims") >= PageConfig.OPIOID_MIN_CLAIMS)
        filters = [pl.col("state") == state.upper()] if state else []
        result = OPIOID_PRESCRIBERS_VIEW.apply(df, search, sort, direction, show, filters)
        result["state"] = state.upper() if state else None
        result["states"] = sorted(df["state"].unique().to_list()) if not df.is_empty() else []
        return result

    def get_flagged(self, tab: str = ALL, show: Optional[int] = None) -> Dict[str, Any]:
        """Flagged providers by tab, always highest score first"""
        tab_filters = {
            ALL: [],
            "high": [pl.col("riskScore") >= RiskConfig.HIGH_SCORE],
            "excluded": [pl.col("isExcluded").fill_null(False)],
            "opioid_benzo": [pl.col("riskFlags").list.contains(OPIOID_BENZO_FLAG).fill_null(False)],
        }
        if tab not in tab_filters:
            raise ValueError(f"Unknown flagged tab: {tab} (expected one of {', '.join(FLAGGED_TABS)})")

        df = self.loader.load_frame(DataFiles.HIGH_RISK)
        result = FLAGGED_VIEW.apply(df, show=show, filters=tab_filters[tab])
        result["tab"] = tab
        result.update(self._flagged_counts(df))
        return result

    def _flagged_counts(self, df: pl.DataFrame) -> Dict[str, Any]:
        if df.is_empty():
            return {"tab_counts": {tab: 0 for tab in FLAGGED_TABS}, "elevated_count": 0}
        score = pl.col("riskScore")
        counts = df.select(
            pl.len().alias(ALL),
            (score >= RiskConfig.HIGH_SCORE).sum().alias("high"),
            pl.col("isExcluded").fill_null(False).sum().alias("excluded"),
            pl.col("riskFlags").list.contains(OPIOID_BENZO_FLAG).fill_null(False).sum().alias("opioid_benzo"),
            ((score >= RiskConfig.ELEVATED_SCORE) & (score < RiskConfig.HIGH_SCORE)).sum().alias("elevated"),
        ).row(0, named=True)
        elevated = counts.pop("elevated")
        return {"tab_counts": counts, "elevated_count": elevated}

    def get_risk_explorer(self, min_score: int = PageConfig.RISK_EXPLORER_MIN_SCORE,
                          state: Optional[str] = None, specialty: Optional[str] = None,
                          flag: Optional[str] = None, sort: Optional[str] = None) -> Dict[str, Any]:
        """Multi-filter explorer over the flagged providers, capped at 100 rows"""
        if flag and flag not in EXPLORER_FLAGS:
            raise ValueError(f"Unknown risk flag: {flag}")
        df = self.loader.load_frame(DataFiles.HIGH_RISK)

        filters = [pl.col("riskScore") >= min_score]
        if state:
            filters.append(pl.col("state") == state)
        if specialty:
            filters.append(pl.col("specialty") == specialty)
        if flag:
            filters.append(pl.col("riskFlags").list.contains(flag).fill_null(False))

        result = RISK_EXPLORER_VIEW.apply(df, sort=sort, direction=DESC, filters=filters)
        result["total_filtered"] = result["total"]
        result["filters"] = {"min_score": min_score, "state": state, "specialty": specialty, "flag": flag}
        result["options"] = {
            "states": sorted(df["state"].unique().to_list()) if not df.is_empty() else [],
            "specialties": sorted(df["specialty"].unique().to_list()) if not df.is_empty() else [],
            "flags": [{"value": f, "label": flag_label(f)} for f in EXPLORER_FLAGS],
        }
        return result

    def get_specialty_profiles(self, category: str = "opioid", search: Optional[str] = None,
                               sort: Optional[str] = None, direction: Optional[str] = None,
                               show: Optional[int] = None) -> Dict[str, Any]:
        """Specialty distributions for one category tab"""
        view = SPECIALTY_PROFILE_VIEWS.get(category)
        if view is None:
            raise ValueError(f"Unknown profile category: {category} "
                             f"(expected one of {', '.join(PROFILE_CATEGORIES)})")
        rows = build_profile_rows(self.loader.load_records(DataFiles.SPECIALTIES),
                                  self.loader.load_records(DataFiles.SPECIALTY_STATS))
        df = pl.from_dicts(rows, infer_schema_length=None) if rows else pl.DataFrame()
        result = view.apply(df, search, sort, direction, show)
        result["category"] = category
        return result

    def get_excluded(self, search: Optional[str] = None, sort: Optional[str] = None,
                     direction: Optional[str] = None, show: Optional[int] = None) -> Dict[str, Any]:
        df = self.loader.load_frame(DataFiles.EXCLUDED)
        return EXCLUDED_VIEW.apply(df, search, sort, direction, show)

    def get_dangerous_combinations(self, search: Optional[str] = None, risk: str = ALL,
                                   sort: Optional[str] = None, direction: Optional[str] = None,
                                   show: Optional[int] = None) -> Dict[str, Any]:
        """Opioid + benzodiazepine co-prescribers with a summary of the whole list"""
        if risk != ALL and risk not in RISK_LEVELS:
            raise ValueError(f"Unknown risk level: {risk}")
        df = self.loader.load_frame(DataFiles.DRUG_COMBOS)
        filters = [] if risk == ALL else [pl.col("riskLevel") == risk]
        result = DANGEROUS_COMBOS_VIEW.apply(df, search, sort, direction, show, filters)
        result["risk"] = risk
        result["summary"] = self.get_combo_summary()
        return result

    def get_combo_summary(self) -> Dict[str, Any]:
        summary = {"total_cost": 0, "total_cost_display": fmt_money(0), "high_risk_count": 0,
                   "risk_levels": [], "top_states": [], "top_specialties": []}
        if self.loader.load_frame(DataFiles.DRUG_COMBOS).is_empty():
            return summary

        source = self._json_source(DataFiles.DRUG_COMBOS)
        total_cost, high_count = self.conn.execute(f"""
        SELECT COALESCE(SUM(cost), 0), COUNT(*) FILTER (WHERE riskLevel = ?)
        FROM {source}
        """, ["high"]).fetchone()

        levels = [row[0] for row in self.conn.execute(f"""
        SELECT DISTINCT riskLevel FROM {source} WHERE riskLevel IS NOT NULL
        """).fetchall()]

        def top_groups(field: str) -> List[Dict[str, Any]]:
            rows = self.conn.execute(f"""
            SELECT {field}, COUNT(*) as n
            FROM {source}
            WHERE {field} IS NOT NULL
            GROUP BY {field}
            ORDER BY n DESC, {field}
            LIMIT {PageConfig.TOP_GROUP_LIMIT}
            """).fetchall()
            return [{"name": row[0], "count": row[1]} for row in rows]

        summary.update({
            "total_cost": total_cost,
            "total_cost_display": fmt_money(total_cost),
            "high_risk_count": high_count,
            "risk_levels": sorted(levels, key=lambda l: RISK_SEVERITY.get(l, -1), reverse=True),
            "top_states": top_groups("state"),
            "top_specialties": top_groups("specialty"),
        })
        return summary

    def get_drugs(self, search: Optional[str] = None, sort: Optional[str] = None,
                  direction: Optional[str] = None, show: Optional[int] = None) -> Dict[str, Any]:
        df = self.loader.load_frame(DataFiles.DRUGS)
        return DRUGS_VIEW.apply(df, search, sort, direction, show)

    def get_drug_costs(self, search: Optional[str] = None, sort: Optional[str] = None,
                       direction: Optional[str] = None, show: Optional[int] = None) -> Dict[str, Any]:
        """Drug cost table plus the yearly national spend series"""
        df = self.loader.load_frame(DataFiles.DRUGS)
        result = DRUG_COSTS_VIEW.apply(df, search, sort, direction, show)
        result["yearly_trends"] = self.loader.load_records(DataFiles.YEARLY_TRENDS)
        return result

    def get_states(self, search: Optional[str] = None, sort: Optional[str] = None,
                   direction: Optional[str] = None) -> Dict[str, Any]:
        df = self.loader.load_frame(DataFiles.STATES)
        return STATES_VIEW.apply(df, search, sort, direction)

    def get_specialties(self, search: Optional[str] = None, sort: Optional[str] = None,
                        direction: Optional[str] = None, show: Optional[int] = None) -> Dict[str, Any]:
        df = self.loader.load_frame(DataFiles.SPECIALTIES)
        return SPECIALTIES_VIEW.apply(df, search, sort, direction, show)

    def get_peer_comparison(self, search: Optional[str] = None, sort: Optional[str] = None,
                            direction: Optional[str] = None, show: Optional[int] = None) -> Dict[str, Any]:
        """Specialty benchmark table with headline specialties"""
        rows = build_peer_rows(self.loader.load_records(DataFiles.SPECIALTY_STATS))
        df = pl.from_dicts(rows, infer_schema_length=None) if rows else pl.DataFrame()
        result = PEER_COMPARISON_VIEW.apply(df, search, sort, direction, show)
        result["highlights"] = peer_highlights(rows)
        return result

    # ------------------------------------------------------------------
    # Lookups and detail records
    # ------------------------------------------------------------------

    def search_providers(self, query: Optional[str]) -> Dict[str, Any]:
        """Site-wide provider search by name, city, specialty, state or NPI"""
        q = (query or "").strip()
        if len(q) < PageConfig.SEARCH_MIN_CHARS:
            return {"query": q, "total": 0, "results": []}

        df = self.loader.load_frame(DataFiles.PROVIDER_INDEX)
        if df.is_empty():
            return {"query": q, "total": 0, "results": []}
        matches = df.filter(SEARCH_VIEW.search_condition(df, q))
        results = matches.head(PageConfig.SEARCH_LIMIT).to_dicts()
        return {"query": q, "total": matches.height, "results": results}

    def get_cities(self) -> List[str]:
        """Sorted unique "City, ST" labels of the provider index"""
        df = self.loader.load_frame(DataFiles.PROVIDER_INDEX)
        if df.is_empty():
            return []
        labels = (
            df.filter(pl.col("city").is_not_null() & pl.col("state").is_not_null())
            .select(pl.concat_str([pl.col("city"), pl.col("state")], separator=", ").alias("label"))
            .unique()
            .sort("label")
        )
        return labels["label"].to_list()

    def city_suggestions(self, query: Optional[str]) -> List[str]:
        q = (query or "").strip().lower()
        if len(q) < PageConfig.SEARCH_MIN_CHARS:
            return []
        return [c for c in self.get_cities() if q in c.lower()][:PageConfig.CITY_SUGGESTION_LIMIT]

    def get_city_providers(self, city: str, sort: Optional[str] = None,
                           direction: Optional[str] = None) -> Dict[str, Any]:
        """Providers in a city, grouped by state"""
        city_name = city.split(",")[0].strip()
        df = self.loader.load_frame(DataFiles.PROVIDER_INDEX)
        filters = [as_text("city").str.to_lowercase() == city_name.lower()]
        result = CITY_PROVIDERS_VIEW.apply(df, sort=sort, direction=direction, filters=filters)

        groups: Dict[str, List[Dict[str, Any]]] = {}
        for row in result["rows"]:
            groups.setdefault(row.get("state") or "", []).append(row)
        result["city"] = city_name
        result["groups"] = [
            {"state": abbr, "stateName": state_name(abbr), "providers": groups[abbr]}
            for abbr in sorted(groups)
        ]
        return result

    def drug_lookup(self, query: Optional[str]) -> Dict[str, Any]:
        """Brand or generic name lookup over the full drug table"""
        q = (query or "").strip()
        if len(q) < PageConfig.SEARCH_MIN_CHARS:
            return {"query": q, "results": [], "total_cost": 0, "total_cost_display": fmt_money(0)}

        df = self.loader.load_drug_frame()
        if df.is_empty():
            results = []
        else:
            needle = q.lower()
            condition = pl.any_horizontal([
                as_text(field).str.to_lowercase().str.contains(needle, literal=True).fill_null(False)
                for field in ("generic", "brand") if field in df.columns
            ])
            results = df.filter(condition).head(PageConfig.DRUG_LOOKUP_LIMIT).to_dicts()

        for drug in results:
            drug["slug"] = slugify(drug.get("generic") or "")
        total_cost = sum(d.get("cost") or 0 for d in results)
        return {
            "query": q,
            "results": results,
            "total_cost": total_cost,
            "total_cost_display": fmt_money(total_cost),
        }

    def get_provider(self, npi: str) -> Optional[Dict[str, Any]]:
        """Full provider record with flag labels, badge and ML score"""
        provider = self.loader.load_provider(npi)
        if provider is None:
            return None

        provider["flag_labels"] = [
            {"flag": f, "label": flag_label(f)} for f in provider.get("riskFlags") or []
        ]
        provider["risk_badge"] = risk_badge(provider.get("riskLevel"))

        ml_scores = self.loader.load_optional(DataFiles.ML_SCORES, {})
        ml_score = ml_scores.get(npi)
        provider["ml_score"] = ml_score
        provider["ml_alert"] = ml_score is not None and ml_score >= RiskConfig.ML_ALERT_SCORE
        return provider

    def get_drug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Drug whose generic name slugifies to `slug`, with its cost rank"""
        df = self.loader.load_drug_frame()
        if df.is_empty():
            return None
        ranked = df.sort("cost", descending=True, nulls_last=True, maintain_order=True)
        for rank, drug in enumerate(ranked.iter_rows(named=True), start=1):
            if slugify(drug.get("generic") or "") == slug:
                return {**drug, "slug": slug, "rank": rank, "total_drugs": ranked.height}
        return None

    def get_specialty(self, slug: str) -> Optional[Dict[str, Any]]:
        specialty = next(
            (s for s in self.loader.load_records(DataFiles.SPECIALTIES)
             if slugify(s.get("specialty") or "") == slug),
            None,
        )
        if specialty is None:
            return None
        name = specialty["specialty"]

        providers = self.loader.load_frame(DataFiles.PROVIDER_INDEX)
        flagged = self.loader.load_frame(DataFiles.HIGH_RISK)
        return {
            **specialty,
            "slug": slug,
            "peer_stats": self.loader.load_records(DataFiles.SPECIALTY_STATS).get(name),
            "providers_list": _rows_where(providers, "specialty", name, PageConfig.DETAIL_PROVIDER_LIMIT),
            "flagged": _rows_where(flagged, "specialty", name),
        }

    def get_state(self, state: str) -> Optional[Dict[str, Any]]:
        """State summary with its providers, top opioid prescribers and trend"""
        abbr = state.upper()
        record = next((s for s in self.loader.load_records(DataFiles.STATES) if s.get("state") == abbr), None)
        if record is None:
            return None

        yearly = self.loader.load_optional(DataFiles.STATE_YEARLY, {})
        return {
            **record,
            "name": state_name(abbr),
            "providers_list": _rows_where(self.loader.load_frame(DataFiles.PROVIDER_INDEX), "state", abbr,
                                          PageConfig.DETAIL_PROVIDER_LIMIT),
            "top_opioid": _rows_where(self.loader.load_frame(DataFiles.TOP_OPIOID), "state", abbr,
                                      PageConfig.DETAIL_OPIOID_LIMIT),
            "flagged": _rows_where(self.loader.load_frame(DataFiles.HIGH_RISK), "state", abbr),
            "yearly": yearly.get(abbr, []),
        }

    def get_overview(self) -> Dict[str, Any]:
        return {
            "stats": self.loader.load_records(DataFiles.STATS),
            "yearly_trends": self.loader.load_records(DataFiles.YEARLY_TRENDS),
        }

    def get_ml_fraud_detection(self) -> Optional[Dict[str, Any]]:
        """Model summary, score tiers and top-scored providers; None when no model output is shipped"""
        data = self.loader.load_optional(DataFiles.ML_PREDICTIONS)
        if data is None:
            return None
        predictions = data.get("predictions") or []
        result = {
            "model": data.get("model") or {},
            "cv": data.get("cv") or {},
            "recall": data.get("recall"),
            "total_scored": data.get("totalScored"),
            "total_flagged": data.get("totalFlagged", len(predictions)),
            "tiers": [],
            "top_specialties": [],
            "top_states": [],
            "predictions": predictions[:PageConfig.ML_TOP_PREDICTIONS],
        }

        counts = {tier: 0 for tier, *_ in RiskConfig.ML_SCORE_TIERS}
        if predictions:
            path = self.loader.path_for(DataFiles.ML_PREDICTIONS).as_posix()
            source = f"(SELECT unnest(predictions) AS p FROM read_json_auto('{path}'))"
            for tier, _, low, high in RiskConfig.ML_SCORE_TIERS:
                condition, params = "p.mlScore >= ?", [low]
                if high is not None:
                    condition += " AND p.mlScore < ?"
                    params.append(high)
                counts[tier] = self.conn.execute(
                    f"SELECT COUNT(*) FROM {source} WHERE {condition}", params
                ).fetchone()[0]

            def top_groups(field: str, limit: int) -> List[Dict[str, Any]]:
                rows = self.conn.execute(f"""
                SELECT p.{field} AS label, COUNT(*) as n
                FROM {source}
                WHERE p.{field} IS NOT NULL AND p.{field} <> ''
                GROUP BY label
                ORDER BY n DESC, label
                LIMIT {limit}
                """).fetchall()
                return [{"name": row[0], "count": row[1]} for row in rows]

            result["top_specialties"] = top_groups("specialty", PageConfig.ML_TOP_SPECIALTIES)
            result["top_states"] = [
                {**group, "stateName": state_name(group["name"])}
                for group in top_groups("state", PageConfig.ML_TOP_STATES)
            ]

        result["tiers"] = [
            {"tier": tier, "label": label, "min_score": low, "max_score": high, "count": counts[tier]}
            for tier, label, low, high in RiskConfig.ML_SCORE_TIERS
        ]
        return result

    def get_brand_vs_generic(self) -> Dict[str, Any]:
        """National brand/generic split, specialties ranked by brand share and the top-cost prescribers"""
        stats = self.loader.load_records(DataFiles.STATS)
        specialties = self.loader.load_frame(DataFiles.SPECIALTIES)
        ranked: List[Dict[str, Any]] = []
        if not specialties.is_empty() and "avgBrandPct" in specialties.columns:
            ranked = (
                specialties
                .sort("avgBrandPct", descending=True, nulls_last=True, maintain_order=True)
                .head(PageConfig.BRAND_SPECIALTY_LIMIT)
                .with_columns(
                    (pl.col("providers").fill_null(0) < PageConfig.SMALL_SAMPLE_PROVIDERS).alias("smallSample")
                )
                .to_dicts()
            )
        top_cost = self.loader.load_optional(DataFiles.TOP_COST, [])
        return {
            "brand_cost": stats.get("brandCost"),
            "brand_cost_display": fmt_money(stats.get("brandCost")),
            "generic_cost": stats.get("genericCost"),
            "generic_cost_display": fmt_money(stats.get("genericCost")),
            "brand_pct": stats.get("brandPct"),
            "specialties": ranked,
            "top_cost": top_cost[:PageConfig.TOP_COST_LIMIT],
        }

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    def get_peer_options(self) -> List[Dict[str, Any]]:
        return specialty_options(self.loader.load_records(DataFiles.SPECIALTY_STATS))

    def get_peer_lookup(self, specialty: str) -> Optional[Dict[str, Any]]:
        return peer_lookup(self.loader.load_records(DataFiles.SPECIALTY_STATS), specialty)

    def compare(self, npi1: Optional[str], npi2: Optional[str]) -> Dict[str, Any]:
        """Compare two providers; raises on bad input or unknown NPIs"""
        npi1, npi2 = validate_npis(npi1, npi2)
        p1 = self.get_provider(npi1)
        p2 = self.get_provider(npi2)
        if p1 is None or p2 is None:
            raise ProviderNotFound(not_found_message(npi1, npi2, p1, p2))
        return compare_providers(p1, p2)

    def get_state_report_card(self, state: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Graded state list, plus one state's report card when requested"""
        states = self.loader.load_records(DataFiles.STATES)
        result = {
            "states": [{"state": s["state"], "name": state_name(s["state"])} for s in report_card_states(states)],
            "report": None,
        }
        if state:
            report = state_report_card(states, state)
            if report is None:
                return None
            result["report"] = report
        return result

    def compare_specialties(self, names: List[str]) -> Dict[str, Any]:
        return compare_specialties(self.loader.load_records(DataFiles.SPECIALTIES), names)

    def get_savings(self, state: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return savings_estimate(self.loader.load_records(DataFiles.STATES), state)

    # ------------------------------------------------------------------
    # Downloads and health
    # ------------------------------------------------------------------

    def get_downloads(self) -> List[Dict[str, Any]]:
        """Download catalog grouped by category"""
        categories: Dict[str, List[Dict[str, Any]]] = {}
        for category, filename, description in DOWNLOAD_CATALOG:
            path = self.loader.path_for(filename)
            categories.setdefault(category, []).append({
                "file": filename,
                "description": description,
                "available": path.exists(),
                "size_bytes": path.stat().st_size if path.exists() else None,
                "url": f"/api/downloads/{filename}",
            })
        return [{"category": name, "files": files} for name, files in categories.items()]

    def get_download_path(self, filename: str) -> Optional[Path]:
        """Path of a catalog file, None for unknown or missing files"""
        if filename not in {entry[1] for entry in DOWNLOAD_CATALOG}:
            return None
        path = self.loader.path_for(filename)
        return path if path.exists() else None

    def get_health(self) -> Dict[str, Any]:
        files = self.loader.file_status(DataFiles.REQUIRED)
        missing = [name for name, present in files.items() if not present]
        return {
            "status": "healthy" if not missing else "degraded",
            "data_dir": str(self.loader.data_dir),
            "files": files,
            "missing": missing,
        }


def _rows_where(df: pl.DataFrame, column: str, value: Any, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    if df.is_empty() or column not in df.columns:
        return []
    matches = df.filter(pl.col(column) == value)
    if limit is not None:
        matches = matches.head(limit)
    return matches.to_dicts()


# Shared instance for the API process
_data_queries = None


def get_data_queries() -> PrescriberDataQueries:
    """Get or create the shared PrescriberDataQueries instance"""
    global _data_queries
    if _data_queries is None:
        _data_queries = PrescriberDataQueries()
    return _data_queries
