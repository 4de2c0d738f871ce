from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from talent_core.normalize import UNKNOWN, normalize_location, normalize_simple, normalize_skills


FrequencyTable = List[Dict[str, Any]]
TOKEN_PREFIX = "_facet_"


@dataclass(frozen=True)
class Facet:
    name: str
    label: str
    filter_field: str
    columns: Tuple[str, ...]
    normalizer: Callable[[object], Union[str, List[str]]]
    multi_valued: bool = False
    drop_unknown: bool = False

    @property
    def token_column(self) -> str:
        return f"{TOKEN_PREFIX}{self.name}"


FACETS: Tuple[Facet, ...] = (
    Facet(
        "location",
        "Location",
        "selected_locations",
        ("Location", "location", "candidate_city", "City", "city"),
        normalize_location,
        drop_unknown=True,
    ),
    Facet(
        "skills",
        "Skills",
        "selected_skills",
        ("skills", "Skills", "skill", "Skill"),
        normalize_skills,
        multi_valued=True,
    ),
    Facet("client", "Client", "selected_clients", ("client", "Client", "company_name", "client_name"), normalize_simple),
    Facet("role", "Role", "selected_roles", ("roleDesignation", "designation", "Designation", "Role", "role"), normalize_simple),
    Facet("vertical", "Industry", "selected_verticals", ("vertical", "Vertical", "industry", "Industry"), normalize_simple),
    Facet("domain", "Domain", "selected_domains", ("department type", "Domain", "domain", "Department Type"), normalize_simple),
    Facet("it_type", "IT / Non-IT", "selected_it_types", ("IT/Non IT", "IT/Non-IT", "IT / Non IT", "it_type"), normalize_simple),
)

FACET_NAMES: Tuple[str, ...] = tuple(f.name for f in FACETS)
FACETS_BY_NAME: Dict[str, Facet] = {f.name: f for f in FACETS}

FACET_NAME_ALIASES = {
    "locations": "location",
    "city": "location",
    "skill": "skills",
    "clients": "client",
    "company": "client",
    "roles": "role",
    "designation": "role",
    "roledesignation": "role",
    "industry": "vertical",
    "verticals": "vertical",
    "department type": "domain",
    "department": "domain",
    "domains": "domain",
    "it/non it": "it_type",
    "it/non-it": "it_type",
    "it": "it_type",
}


def resolve_facet(name: object) -> Optional[Facet]:
    """Look a facet up by name, label or common alias (case-insensitive)."""
    if name is None:
        return None
    key = str(name).strip().lower()
    key = FACET_NAME_ALIASES.get(key, key)
    if key in FACETS_BY_NAME:
        return FACETS_BY_NAME[key]
    for facet in FACETS:
        if facet.label.lower() == key:
            return facet
    return None


def resolve_source_columns(columns: Iterable[object]) -> Dict[str, Optional[str]]:
    present = [str(c) for c in columns]
    out: Dict[str, Optional[str]] = {}
    for facet in FACETS:
        out[facet.name] = next((c for c in facet.columns if c in present), None)
    return out


def has_facet_columns(df: pd.DataFrame) -> bool:
    return all(f.token_column in df.columns for f in FACETS)


def attach_facet_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Add one canonical-token column per facet; the raw columns are left untouched."""
    if has_facet_columns(df):
        return df
    out = df.copy()
    sources = resolve_source_columns(out.columns)
    for facet in FACETS:
        src = sources[facet.name]
        raw = out[src] if src is not None else pd.Series([None] * len(out), index=out.index, dtype=object)
        if isinstance(raw, pd.DataFrame):
            raw = raw.iloc[:, 0]
        out[facet.token_column] = raw.map(facet.normalizer).astype(object)
    return out


def strip_facet_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.drop(columns=[c for c in df.columns if str(c).startswith(TOKEN_PREFIX)], errors="ignore")


def count_tokens(tokens: Iterable[Union[str, Sequence[str]]]) -> FrequencyTable:
    """Frequency table: count descending, equal counts in first-seen order."""
    flat = pd.Series(list(tokens), dtype=object).explode().dropna()
    if flat.empty:
        return []
    counts = flat.groupby(flat, sort=False).size().sort_values(ascending=False, kind="stable")
    return [{"name": str(name), "count": int(count)} for name, count in counts.items()]


def _iter_records(rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> Iterable[Mapping[str, Any]]:
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict(orient="records")
    return rows


def aggregate(
    rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]],
    extract: Callable[[Mapping[str, Any]], Union[str, Sequence[str]]],
) -> FrequencyTable:
    return count_tokens(extract(row) for row in _iter_records(rows))


def facet_table(df: pd.DataFrame, facet: Facet) -> FrequencyTable:
    if df.empty:
        return []
    tokens = attach_facet_columns(df)[facet.token_column]
    if facet.drop_unknown:
        tokens = tokens[tokens != UNKNOWN]
    return count_tokens(tokens)


def facet_tables(df: pd.DataFrame) -> Dict[str, FrequencyTable]:
    df = attach_facet_columns(df)
    return {facet.name: facet_table(df, facet) for facet in FACETS}


def build_catalog(df: pd.DataFrame) -> Dict[str, FrequencyTable]:
    """Picker options with global counts, computed once per loaded dataset."""
    return facet_tables(df)


def search_options(catalog: Mapping[str, FrequencyTable], facet: str, query: str = "") -> FrequencyTable:
    resolved = resolve_facet(facet)
    if resolved is None:
        return []
    options = catalog.get(resolved.name, []) or []
    q = (query or "").strip().lower()
    if not q:
        return list(options)
    return [e for e in options if q in str(e["name"]).lower()]
