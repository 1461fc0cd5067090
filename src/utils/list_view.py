"""
In-memory list views over precomputed records
Search, filter, sort and "show more" pagination on polars frames
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import polars as pl

from config.settings import PageConfig
from src.utils.formatting import RISK_SEVERITY, STATE_NAMES

logger = logging.getLogger(__name__)

ASC = "asc"
DESC = "desc"
DIRECTIONS = (ASC, DESC)


def as_text(column: str) -> pl.Expr:
    """String view of a column; all-null columns load with the Null dtype"""
    return pl.col(column).cast(pl.Utf8)


def text_key(column: str) -> pl.Expr:
    """Case-insensitive sort key for a string column"""
    return as_text(column).str.to_lowercase()


def risk_key(column: str = "riskLevel") -> pl.Expr:
    """Sort key ranking risk levels by severity (high > elevated > moderate > low)

    Unknown levels map to null so they sort last in either direction.
    """
    return as_text(column).replace_strict(RISK_SEVERITY, default=None, return_dtype=pl.Int8)


def state_name_column(column: str = "state") -> pl.Expr:
    return as_text(column).replace(STATE_NAMES).alias("stateName")


def paginate(df: pl.DataFrame, show: Optional[int]) -> Dict[str, Any]:
    """Slice the first `show` rows; None shows everything"""
    total = df.height
    visible = df if show is None else df.head(show)
    rows = visible.to_dicts()
    return {
        "total": total,
        "showing": len(rows),
        "remaining": total - len(rows),
        "has_more": len(rows) < total,
        "rows": rows,
    }


class ListView:
    """A searchable, sortable, paginated table of records"""

    def __init__(self, name: str,
                 sort_keys: Dict[str, pl.Expr],
                 default_sort: str,
                 default_direction: str = DESC,
                 search_fields: Sequence[str] = (),
                 raw_search_fields: Sequence[str] = (),
                 exact_search_fields: Sequence[str] = (),
                 derived_columns: Sequence[pl.Expr] = (),
                 ascending_keys: Sequence[str] = ("name",),
                 page_size: Optional[int] = PageConfig.DEFAULT_PAGE_SIZE,
                 empty_message: str = "No results match your search."):
        if default_sort not in sort_keys:
            raise ValueError(f"Default sort {default_sort!r} is not a sort key of {name}")
        self.name = name
        self.sort_keys = sort_keys
        self.default_sort = default_sort
        self.default_direction = default_direction
        self.search_fields = list(search_fields)
        self.raw_search_fields = list(raw_search_fields)
        self.exact_search_fields = list(exact_search_fields)
        self.derived_columns = list(derived_columns)
        self.ascending_keys = set(ascending_keys)
        self.page_size = page_size
        self.empty_message = empty_message

    def resolve_sort(self, sort: Optional[str], direction: Optional[str]) -> Tuple[str, str]:
        """Validate a requested sort, falling back to the view's defaults"""
        if sort is None:
            sort = self.default_sort
            direction = direction or self.default_direction
        if sort not in self.sort_keys:
            raise ValueError(
                f"Unknown sort key for {self.name}: {sort} "
                f"(expected one of {', '.join(self.sort_keys)})"
            )
        if direction is None:
            direction = ASC if sort in self.ascending_keys else DESC
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {direction} (expected asc or desc)")
        return sort, direction

    def next_sort(self, current: str, direction: str, clicked: str) -> Tuple[str, str]:
        """Column-header click: flip the active key, or switch to a new key at its default direction"""
        if clicked == current:
            return clicked, ASC if direction == DESC else DESC
        return self.resolve_sort(clicked, None)

    def search_condition(self, df: pl.DataFrame, search: Optional[str]) -> Optional[pl.Expr]:
        query = (search or "").strip()
        if not query:
            return None
        needle = query.lower()

        conditions: List[pl.Expr] = []
        for field in self.search_fields:
            if field in df.columns:
                conditions.append(as_text(field).str.to_lowercase().str.contains(needle, literal=True))
        for field in self.raw_search_fields:
            if field in df.columns:
                conditions.append(as_text(field).str.contains(needle, literal=True))
        for field in self.exact_search_fields:
            if field in df.columns:
                conditions.append(as_text(field).str.to_lowercase() == needle)

        if not conditions:
            return pl.lit(False)
        return pl.any_horizontal([c.fill_null(False) for c in conditions])

    def sort(self, df: pl.DataFrame, sort: str, direction: str) -> Tuple[pl.DataFrame, bool]:
        """Sort by a named key; returns the frame and whether the sort was applied"""
        expr = self.sort_keys[sort]
        missing = [c for c in expr.meta.root_names() if c not in df.columns]
        if missing:
            logger.warning(f"{self.name}: cannot sort by {sort}, missing columns {missing}")
            return df, False
        return df.sort(expr, descending=direction == DESC, nulls_last=True, maintain_order=True), True

    def prepare(self, df: pl.DataFrame) -> pl.DataFrame:
        if self.derived_columns and not df.is_empty():
            df = df.with_columns(self.derived_columns)
        return df

    def apply(self, df: pl.DataFrame,
              search: Optional[str] = None,
              sort: Optional[str] = None,
              direction: Optional[str] = None,
              show: Optional[int] = None,
              filters: Optional[Sequence[pl.Expr]] = None) -> Dict[str, Any]:
        """Filter, search, sort and paginate a frame into a response payload"""
        sort, direction = self.resolve_sort(sort, direction)
        if show is None:
            show = self.page_size

        if not df.is_empty():
            df = self.prepare(df)
            for condition in filters or []:
                df = df.filter(condition)
            condition = self.search_condition(df, search)
            if condition is not None:
                df = df.filter(condition)
            df, sorted_ok = self.sort(df, sort, direction)
            if not sorted_ok:
                # Rows stay in file order
                sort, direction = None, None

        result = {
            "view": self.name,
            "search": (search or "").strip(),
            "sort": sort,
            "direction": direction,
            "page_size": self.page_size,
        }
        result.update(paginate(df, show))
        if result["total"] == 0:
            result["empty_message"] = self.empty_message
        return result
