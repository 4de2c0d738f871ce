from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

COLORS = ["#60a5fa", "#a78bfa", "#34d399", "#f472b6", "#fbbf24", "#f87171"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _entries_frame(entries: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(list(entries), columns=["name", "count"])
    df["count"] = pd.to_numeric(df["count"], errors="coerce").fillna(0).astype(int)
    return df


def facet_bar_chart(entries: Sequence[Mapping[str, Any]], title: str, *, height: int = 240) -> alt.Chart:
    df = _entries_frame(entries)
    order: List[str] = df["name"].astype(str).tolist()
    return (
        alt.Chart(df)
        .mark_bar(cornerRadiusEnd=4)
        .encode(
            x=alt.X("count:Q", title="Candidates", axis=alt.Axis(format="d", tickMinStep=1)),
            y=alt.Y("name:N", sort=order, title=None),
            color=alt.Color("name:N", sort=order, scale=alt.Scale(range=COLORS), legend=None),
            tooltip=[alt.Tooltip("name:N", title=title), alt.Tooltip("count:Q", title="Candidates", format=",")],
        )
        .properties(title=title, height=height)
    )


def facet_donut_chart(entries: Sequence[Mapping[str, Any]], title: str, *, height: int = 260) -> alt.Chart:
    df = _entries_frame(entries)
    order: List[str] = df["name"].astype(str).tolist()
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=60)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("name:N", sort=order, scale=alt.Scale(range=COLORS), title=title),
            tooltip=[alt.Tooltip("name:N", title=title), alt.Tooltip("count:Q", title="Candidates", format=",")],
        )
        .properties(title=title, height=height)
    )


def sentiment_area_chart(series: Sequence[Mapping[str, Any]], *, height: int = 160) -> alt.Chart:
    df = pd.DataFrame(list(series), columns=["name", "value"])
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    order: List[str] = df["name"].astype(str).tolist()
    return (
        alt.Chart(df)
        .mark_area(line=True, opacity=0.4, color="#8b5cf6")
        .encode(
            x=alt.X("name:N", sort=order, title=None),
            y=alt.Y("value:Q", title="Sentiment"),
            tooltip=["name", "value"],
        )
        .properties(height=height)
    )
