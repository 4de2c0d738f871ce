from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from talent_core.facets import FACETS, FACETS_BY_NAME
from talent_core.filters import DashboardFilters
from talent_core.normalize import UNKNOWN


def _location_merges(candidates: pd.DataFrame, source: str, limit: int = 20) -> List[Dict[str, Any]]:
    """Canonical locations reached from more than one raw spelling."""
    facet = FACETS_BY_NAME["location"]
    pairs = candidates[[source, facet.token_column]].dropna(subset=[source]).copy()
    pairs[source] = pairs[source].astype(str).str.strip()
    pairs = pairs[pairs[facet.token_column] != UNKNOWN]
    if pairs.empty:
        return []
    grouped = (
        pairs.groupby(facet.token_column, sort=False)[source]
        .apply(lambda s: sorted(s.unique().tolist()))
        .reset_index()
        .rename(columns={facet.token_column: "canonical", source: "raw_values"})
    )
    grouped = grouped[grouped["raw_values"].map(len) > 1]
    return grouped.head(limit).to_dict(orient="records")


def compute_debug(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    candidates: pd.DataFrame = ctx.get("candidates", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_candidates", pd.DataFrame())
    sources: Dict[str, Any] = ctx.get("source_columns", {}) or {}

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "files": ctx.get("files", []),
        "row_counts": {"candidates": int(len(candidates)), "filtered_candidates": int(len(filtered))},
        "source_columns": sources,
        "missing_columns": [f.name for f in FACETS if not sources.get(f.name)],
        "unknown_counts": {},
        "empty_skill_rows": 0,
        "location_merges": [],
    }
    if candidates.empty:
        return payload

    for facet in FACETS:
        if facet.multi_valued or facet.token_column not in candidates.columns:
            continue
        payload["unknown_counts"][facet.name] = int((candidates[facet.token_column] == UNKNOWN).sum())

    skills = FACETS_BY_NAME["skills"]
    if skills.token_column in candidates.columns:
        payload["empty_skill_rows"] = int(candidates[skills.token_column].map(lambda t: not t).sum())

    loc_source = sources.get("location")
    if loc_source and loc_source in candidates.columns:
        payload["location_merges"] = _location_merges(candidates, loc_source)
    return payload
