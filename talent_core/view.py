from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd

from talent_core.facets import FrequencyTable, facet_tables, resolve_facet
from talent_core.filters import DashboardFilters, apply_filters, display_entries


@dataclass(frozen=True)
class FilteredView:
    tables: Dict[str, FrequencyTable] = field(default_factory=dict)
    total_rows: int = 0

    def unique_count(self, facet: str) -> int:
        resolved = resolve_facet(facet)
        if resolved is None:
            return 0
        return len(self.tables.get(resolved.name, []))

    def displayed(self, facet: str, filters: DashboardFilters) -> FrequencyTable:
        resolved = resolve_facet(facet)
        if resolved is None:
            return []
        return display_entries(self.tables.get(resolved.name, []), filters.selection(resolved.name), filters.top_n)


def recompute(df: pd.DataFrame, filters: Optional[DashboardFilters] = None, *, filtered: Optional[pd.DataFrame] = None) -> FilteredView:
    """Aggregate every facet over the filtered subset of ``df``.

    Pass ``filtered`` when the subset has already been computed to skip a
    second filter pass.
    """
    if filtered is None:
        filtered = apply_filters(df, filters or DashboardFilters())
    return FilteredView(tables=facet_tables(filtered), total_rows=int(len(filtered)))
