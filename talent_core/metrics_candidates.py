from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from talent_core.data import candidate_profile
from talent_core.facets import FACETS_BY_NAME, strip_facet_columns
from talent_core.filters import DEFAULT_PAGE_SIZE, DashboardFilters
from talent_core.normalize import is_missing, normalize_simple


PAGE_WINDOW = 5


def page_window(current: int, total_pages: int, width: int = PAGE_WINDOW) -> List[int]:
    """Page buttons to show: up to ``width`` numbers around ``current``, clamped to the ends."""
    if total_pages <= 0:
        return []
    if total_pages <= width:
        return list(range(1, total_pages + 1))
    start = max(1, current - width // 2)
    start = min(start, total_pages - width + 1)
    return list(range(start, start + width))


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    out = strip_facet_columns(df).astype(object).where(lambda d: d.notna(), None)
    return [{"row_id": int(idx), **rec} for idx, rec in zip(out.index, out.to_dict(orient="records"))]


def search_rows(df: pd.DataFrame, q: str) -> pd.DataFrame:
    query = (q or "").strip().lower()
    if not query or df.empty:
        return df
    raw = strip_facet_columns(df)
    mask = pd.Series(False, index=df.index)
    for col in raw.columns:
        mask |= raw[col].map(lambda v: not is_missing(v) and query in str(v).lower()).astype(bool)
    return df[mask]


def compute_candidate_table(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    q: str = "",
) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered_candidates", pd.DataFrame())
    rows = search_rows(filtered, q)

    page_size = max(1, int(page_size))
    total = int(len(rows))
    total_pages = math.ceil(total / page_size) if total else 0
    page = min(max(1, int(page)), max(1, total_pages))
    start = (page - 1) * page_size
    page_rows = rows.iloc[start : start + page_size]

    return {
        "filters": asdict(filters),
        "q": (q or "").strip(),
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": total_pages,
        "showing": {"start": start + 1 if total else 0, "end": min(start + page_size, total), "of": total},
        "pages": page_window(page, total_pages),
        "columns": [str(c) for c in strip_facet_columns(rows).columns],
        "rows": _records(page_rows),
    }


def compute_client_details(client: str, ctx: Dict[str, Any]) -> Dict[str, Any]:
    candidates: pd.DataFrame = ctx.get("candidates", pd.DataFrame())
    client_name = normalize_simple(client)
    facet = FACETS_BY_NAME["client"]
    if candidates.empty or facet.token_column not in candidates.columns:
        matches = candidates.iloc[0:0]
    else:
        matches = candidates[candidates[facet.token_column] == client_name]
    return {"client": client_name, "count": int(len(matches)), "candidates": _records(matches)}


def compute_candidate_profile(index: int, ctx: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    candidates: pd.DataFrame = ctx.get("candidates", pd.DataFrame())
    if index not in candidates.index:
        return None
    return candidate_profile(candidates.loc[index].to_dict())
