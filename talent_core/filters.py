from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import pandas as pd

from talent_core.facets import FACETS, FACET_NAMES, Facet, FrequencyTable, attach_facet_columns, resolve_facet


logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class DashboardFilters:
    selected_locations: List[str] = field(default_factory=list)
    selected_skills: List[str] = field(default_factory=list)
    selected_clients: List[str] = field(default_factory=list)
    selected_roles: List[str] = field(default_factory=list)
    selected_verticals: List[str] = field(default_factory=list)
    selected_domains: List[str] = field(default_factory=list)
    selected_it_types: List[str] = field(default_factory=list)
    top_n: int = DEFAULT_TOP_N

    def selection(self, facet: str) -> List[str]:
        resolved = resolve_facet(facet)
        if resolved is None:
            return []
        return list(getattr(self, resolved.filter_field))

    @property
    def selections(self) -> Dict[str, List[str]]:
        return {f.name: list(getattr(self, f.filter_field)) for f in FACETS}

    @property
    def is_active(self) -> bool:
        return any(self.selections.values())


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    out: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        if s and s not in out:
            out.append(s)
    return out


def normalize_filters(raw: Optional[Mapping[str, object]] = None, *, top_n_default: int = DEFAULT_TOP_N) -> DashboardFilters:
    raw = raw or {}
    kwargs: Dict[str, object] = {}
    for facet in FACETS:
        values = raw.get(facet.filter_field)
        if values is None:
            values = raw.get(facet.name)
        kwargs[facet.filter_field] = _as_str_list(values)

    top_n = raw.get("top_n", top_n_default)
    try:
        top_n = int(top_n)
    except Exception:
        top_n = top_n_default
    kwargs["top_n"] = max(1, min(50, top_n))
    return DashboardFilters(**kwargs)


def _row_matches_any(selected: FrozenSet[str]):
    def _match(tokens: object) -> bool:
        return any(t in selected for t in (tokens or []))

    return _match


def apply_filters(df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    """Rows satisfying every facet with a selection; skills match on any selected skill."""
    if df.empty:
        return df
    df = attach_facet_columns(df)
    mask = pd.Series(True, index=df.index)
    for facet in FACETS:
        selected = frozenset(filters.selection(facet.name))
        if not selected:
            continue
        tokens = df[facet.token_column]
        if facet.multi_valued:
            mask &= tokens.map(_row_matches_any(selected)).astype(bool)
        else:
            mask &= tokens.isin(list(selected))
    return df[mask]


def display_entries(table: FrequencyTable, selected: Iterable[str], top_n: int = DEFAULT_TOP_N) -> FrequencyTable:
    """Chart series for one facet: top N when nothing is selected, else exactly the selection."""
    chosen = list(selected or [])
    if not chosen:
        return [dict(e) for e in table[:top_n]]
    wanted = set(chosen)
    out = [dict(e) for e in table if e["name"] in wanted]
    present = {e["name"] for e in out}
    out.extend({"name": name, "count": 0} for name in chosen if name not in present)
    return out


def _frozen_map(values: Mapping[str, Iterable[str]]) -> Dict[str, FrozenSet[str]]:
    return {k: frozenset(v) for k, v in values.items()}


@dataclass(frozen=True)
class FilterEngine:
    """Applied selections per facet plus the drafts of any open pickers.

    Every transition returns a new engine, so the caller decides when to
    recompute: only ``submit_facet``, ``clear_facet`` and ``clear_all`` change
    the applied selections.
    """

    applied: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: {name: frozenset() for name in FACET_NAMES})
    drafts: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    def _facet(self, name: str, action: str) -> Optional[Facet]:
        facet = resolve_facet(name)
        if facet is None:
            logger.warning("%s ignored: unknown facet %r", action, name)
        return facet

    def selected(self, name: str) -> FrozenSet[str]:
        facet = resolve_facet(name)
        return self.applied.get(facet.name, frozenset()) if facet else frozenset()

    def draft(self, name: str) -> Optional[FrozenSet[str]]:
        facet = resolve_facet(name)
        return self.drafts.get(facet.name) if facet else None

    def is_open(self, name: str) -> bool:
        return self.draft(name) is not None

    def open_facet(self, name: str) -> "FilterEngine":
        facet = self._facet(name, "open_facet")
        if facet is None:
            return self
        drafts = dict(self.drafts)
        drafts[facet.name] = self.applied.get(facet.name, frozenset())
        return replace(self, drafts=drafts)

    def toggle_draft_value(self, name: str, value: str) -> "FilterEngine":
        facet = self._facet(name, "toggle_draft_value")
        if facet is None:
            return self
        current = self.drafts.get(facet.name)
        if current is None:
            current = self.applied.get(facet.name, frozenset())
        updated = current - {value} if value in current else current | {value}
        drafts = dict(self.drafts)
        drafts[facet.name] = frozenset(updated)
        return replace(self, drafts=drafts)

    def submit_facet(self, name: str) -> "FilterEngine":
        facet = self._facet(name, "submit_facet")
        if facet is None or facet.name not in self.drafts:
            return self
        drafts = dict(self.drafts)
        applied = dict(self.applied)
        applied[facet.name] = drafts.pop(facet.name)
        return replace(self, applied=applied, drafts=drafts)

    def cancel_facet(self, name: str) -> "FilterEngine":
        facet = self._facet(name, "cancel_facet")
        if facet is None or facet.name not in self.drafts:
            return self
        drafts = dict(self.drafts)
        drafts.pop(facet.name)
        return replace(self, drafts=drafts)

    def clear_facet(self, name: str) -> "FilterEngine":
        facet = self._facet(name, "clear_facet")
        if facet is None:
            return self
        applied = dict(self.applied)
        applied[facet.name] = frozenset()
        drafts = dict(self.drafts)
        if facet.name in drafts:
            drafts[facet.name] = frozenset()
        return replace(self, applied=applied, drafts=drafts)

    def clear_all(self) -> "FilterEngine":
        drafts = {name: frozenset() for name in self.drafts}
        return replace(self, applied={name: frozenset() for name in FACET_NAMES}, drafts=drafts)

    def to_filters(self, *, top_n: int = DEFAULT_TOP_N, order: Optional[Mapping[str, FrequencyTable]] = None) -> DashboardFilters:
        """Freeze the applied selections, ordered like ``order`` (a catalog) when given."""
        kwargs: Dict[str, object] = {"top_n": top_n}
        for facet in FACETS:
            chosen = self.applied.get(facet.name, frozenset())
            if order and facet.name in order:
                ranked = [e["name"] for e in order[facet.name] if e["name"] in chosen]
                ranked.extend(sorted(chosen - set(ranked)))
            else:
                ranked = sorted(chosen)
            kwargs[facet.filter_field] = ranked
        return DashboardFilters(**kwargs)

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        return apply_filters(df, self.to_filters())

    @classmethod
    def from_filters(cls, filters: DashboardFilters) -> "FilterEngine":
        return cls(applied=_frozen_map(filters.selections))
