from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from talent_core.charts import facet_bar_chart, facet_donut_chart, to_vega_spec
from talent_core.facets import FACETS
from talent_core.filters import DashboardFilters
from talent_core.view import FilteredView


DONUT_FACETS = {"domain"}


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    view: FilteredView = ctx.get("view") or FilteredView()

    kpis: Dict[str, Any] = {"total_candidates": view.total_rows}
    for facet in FACETS:
        kpis[f"unique_{facet.name}"] = view.unique_count(facet.name)

    facets: Dict[str, Any] = {}
    charts: Dict[str, Any] = {}
    for facet in FACETS:
        selected = filters.selection(facet.name)
        entries = view.displayed(facet.name, filters)
        facets[facet.name] = {
            "label": facet.label,
            "mode": "selected" if selected else "top",
            "badge": f"{len(selected)} Selected" if selected else f"Top {filters.top_n} (Default)",
            "selected": selected,
            "entries": entries,
            "unique": view.unique_count(facet.name),
        }
        if facet.name in DONUT_FACETS:
            chart = facet_donut_chart(entries, f"{facet.label} Distribution")
        else:
            chart = facet_bar_chart(entries, f"Top {facet.label}")
        charts[facet.name] = to_vega_spec(chart)

    return {
        "filters": asdict(filters),
        "kpis": kpis,
        "facets": facets,
        "charts": charts,
    }
