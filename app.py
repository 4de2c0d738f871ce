import time
from contextlib import contextmanager
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from talent_core.charts import sentiment_area_chart, to_vega_spec
from talent_core.chat import GREETING, GeminiQueryService, QueryServiceError, QuotaExceededError, answer_question
from talent_core.config import PAGE_SIZE, TOP_N, configure_logging
from talent_core.data import DataLoadError, load_dashboard_data, prepare_context
from talent_core.facets import FACETS, Facet, search_options
from talent_core.filters import FilterEngine
from talent_core.metrics_candidates import compute_candidate_profile, compute_candidate_table, compute_client_details
from talent_core.metrics_debug import compute_debug
from talent_core.metrics_overview import compute_overview

configure_logging()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body


def format_filter_summary(engine: FilterEngine) -> str:
    chips = []
    for facet in FACETS:
        chosen = engine.selected(facet.name)
        text = f"{facet.label}: All" if not chosen else f"{facet.label}: {len(chosen)} selected"
        chips.append(f"<span class='chip'>{text}</span>")
    return "".join(chips)


def render_page_header(title: str, breadcrumb: str, engine: FilterEngine):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        st.button(
            "Clear all filters",
            key="clear_all",
            disabled=not any(engine.applied.values()),
            on_click=_clear_all_filters,
        )
    st.markdown(f"<div class='chip-row'>{format_filter_summary(engine)}</div>", unsafe_allow_html=True)


# ---------- Filter engine state ----------
def get_engine() -> FilterEngine:
    if "filter_engine" not in st.session_state:
        st.session_state["filter_engine"] = FilterEngine()
    return st.session_state["filter_engine"]


def set_engine(engine: FilterEngine):
    st.session_state["filter_engine"] = engine


def _reset_picker_widgets(facet_name: str):
    prefix = f"pick:{facet_name}:"
    for key in [k for k in st.session_state.keys() if str(k).startswith(prefix)]:
        del st.session_state[key]


def _clear_all_filters():
    set_engine(get_engine().clear_all())
    for facet in FACETS:
        _reset_picker_widgets(facet.name)


def _picker_action(facet_name: str, action: str, value: Optional[str] = None):
    engine = get_engine()
    if action == "toggle":
        set_engine(engine.toggle_draft_value(facet_name, value))
        return
    transition = {
        "open": engine.open_facet,
        "submit": engine.submit_facet,
        "cancel": engine.cancel_facet,
        "clear": engine.clear_facet,
    }[action]
    set_engine(transition(facet_name))
    _reset_picker_widgets(facet_name)


def render_facet_picker(facet: Facet, catalog: Dict[str, List[Dict]]):
    engine = get_engine()
    chosen = engine.selected(facet.name)
    badge = f"Top {TOP_N} (Default)" if not chosen else f"{len(chosen)} Selected"
    with st.expander(f"{facet.label} · {badge}", expanded=engine.is_open(facet.name)):
        if not engine.is_open(facet.name):
            st.button("Edit selection", key=f"open:{facet.name}", on_click=_picker_action, args=(facet.name, "open"))
            return
        draft = engine.draft(facet.name) or frozenset()
        query = st.text_input(f"Search {facet.label}...", key=f"search:{facet.name}")
        for entry in search_options(catalog, facet.name, query)[:200]:
            st.checkbox(
                f"{entry['name']} ({entry['count']})",
                value=entry["name"] in draft,
                key=f"pick:{facet.name}:{entry['name']}",
                on_change=_picker_action,
                args=(facet.name, "toggle", entry["name"]),
            )
        b1, b2, b3 = st.columns(3)
        b1.button("Submit", key=f"submit:{facet.name}", on_click=_picker_action, args=(facet.name, "submit"))
        b2.button("Cancel", key=f"cancel:{facet.name}", on_click=_picker_action, args=(facet.name, "cancel"))
        b3.button("Clear", key=f"clear:{facet.name}", on_click=_picker_action, args=(facet.name, "clear"))


# ---------- UI setup ----------
st.set_page_config(page_title="Candidate Dashboard", layout="wide")
inject_base_styles()
st.title("Candidate Dashboard")
st.caption("Talent distribution by location, skill, client, role, industry and domain.")

try:
    data_ctx = load_dashboard_data()
except DataLoadError as exc:
    st.error(f"Error Loading Data: {exc}")
    st.stop()

if not data_ctx.get("files"):
    st.error("No candidate workbook found. Place an .xlsx file in TALENT_DATA_DIR.")
    st.stop()

catalog = data_ctx["catalog"]

with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Dashboard", "Candidate Details", "Data Quality"], index=0)
    st.markdown("---")
    st.markdown("### Filters")
    for facet in FACETS:
        render_facet_picker(facet, catalog)

engine = get_engine()
filters = engine.to_filters(top_n=TOP_N, order=catalog)
ctx = prepare_context(filters, data_ctx)


# ----- Page renderers -----
def render_kpis(kpis: Dict):
    cols = st.columns(4)
    cols[0].metric("Total Candidates", f"{kpis['total_candidates']:,}")
    cols[1].metric("Unique Locations", kpis["unique_location"])
    cols[2].metric("Unique Skills", kpis["unique_skills"])
    cols[3].metric("Unique Clients", kpis["unique_client"])


def render_dashboard_page():
    render_page_header("Dashboard", "Home / Dashboard", engine)
    overview = compute_overview(filters, ctx)
    with card("Key Metrics"):
        render_kpis(overview["kpis"])

    names = [f.name for f in FACETS]
    for left, right in zip(names[0::2], names[1::2] + [None]):
        cols = st.columns(2)
        for col, name in zip(cols, [left, right]):
            if name is None:
                continue
            info = overview["facets"][name]
            with col:
                with card(f"{info['label']} · {info['badge']}"):
                    if not info["entries"]:
                        st.info("No data for the selected filters.")
                    else:
                        st.vega_lite_chart(overview["charts"][name], width="stretch")

    with card("Client drill-down"):
        client_names = [e["name"] for e in ctx["view"].tables.get("client", [])]
        picked = st.selectbox("Client", options=[""] + client_names, index=0)
        if picked:
            details = compute_client_details(picked, ctx)
            st.caption(f"Found {details['count']} candidates")
            st.dataframe(pd.DataFrame(details["candidates"]), hide_index=True, width="stretch")

    render_chat_panel()


def render_details_page():
    render_page_header("Candidate Details", "Home / Candidate Details", engine)
    q = st.text_input("Search candidates", "")
    page = int(st.session_state.get("details_page", 1))
    table = compute_candidate_table(filters, ctx, page=page, page_size=PAGE_SIZE, q=q)
    st.session_state["details_page"] = table["page"]

    rows = pd.DataFrame(table["rows"])
    st.dataframe(rows, hide_index=True, width="stretch")
    showing = table["showing"]
    st.caption(f"Showing {showing['start']} to {showing['end']} of {showing['of']} entries")

    nav = st.columns(len(table["pages"]) + 2 if table["pages"] else 2)
    if nav[0].button("Previous", disabled=table["page"] <= 1):
        st.session_state["details_page"] = table["page"] - 1
        st.rerun()
    for col, num in zip(nav[1:-1], table["pages"]):
        if col.button(str(num), key=f"page:{num}", type="primary" if num == table["page"] else "secondary"):
            st.session_state["details_page"] = num
            st.rerun()
    if nav[-1].button("Next", disabled=table["page"] >= table["total_pages"]):
        st.session_state["details_page"] = table["page"] + 1
        st.rerun()

    if table["rows"]:
        row_ids = [r["row_id"] for r in table["rows"]]
        picked = st.selectbox("Candidate profile", options=row_ids, format_func=lambda rid: _row_label(rid, table["rows"]))
        profile = compute_candidate_profile(int(picked), ctx)
        if profile:
            st.json(profile)


def _row_label(row_id: int, rows: List[Dict]) -> str:
    row = next((r for r in rows if r["row_id"] == row_id), {})
    name = row.get("Candidate Name") or row.get("full_name") or f"Row {row_id}"
    return str(name)


def render_chat_panel():
    with card("AI Talent Analyst"):
        if "query_service" not in st.session_state:
            st.session_state["query_service"] = GeminiQueryService()
        service: GeminiQueryService = st.session_state["query_service"]
        messages = st.session_state.setdefault("chat_messages", [{"sender": "bot", "text": GREETING}])
        for msg in messages:
            with st.chat_message("user" if msg["sender"] == "user" else "assistant"):
                st.markdown(msg["text"])
                if msg.get("series"):
                    st.vega_lite_chart(to_vega_spec(sentiment_area_chart(msg["series"])), width="stretch")

        if not service.configured:
            st.info("Set GEMINI_API_KEY to enable the assistant.")
            return
        remaining = int(st.session_state.get("chat_cooldown_until", 0) - time.time())
        if remaining > 0:
            st.warning(f"Running hot! Recharging AI capacity. Available in {remaining}s...")
        question = st.chat_input("Ask about the candidate data", disabled=remaining > 0)
        if not question:
            return
        messages.append({"sender": "user", "text": question})
        try:
            with st.spinner("Analyzing..."):
                answer = answer_question(data_ctx["candidates"], question, service)
            messages.append({"sender": "bot", "text": answer.text, "kind": answer.kind, "series": answer.series})
        except QuotaExceededError as exc:
            st.session_state["chat_cooldown_until"] = time.time() + exc.retry_after
            messages.append({"sender": "bot", "text": f"Running hot! Recharging AI capacity. Available in {exc.retry_after}s...", "is_error": True})
        except QueryServiceError as exc:
            messages.append({"sender": "bot", "text": str(exc), "is_error": True})
        st.rerun()


def render_debug_page():
    render_page_header("Data Quality", "Home / Data Quality", engine)
    payload = compute_debug(filters, ctx)
    cols = st.columns(2)
    cols[0].metric("Rows loaded", payload["row_counts"]["candidates"])
    cols[1].metric("Rows after filters", payload["row_counts"]["filtered_candidates"])
    st.subheader("Source columns")
    st.json(payload["source_columns"])
    if payload["missing_columns"]:
        st.warning(f"Columns not found: {', '.join(payload['missing_columns'])}")
    st.subheader("Unknown values per facet")
    st.dataframe(pd.DataFrame([payload["unknown_counts"]]), hide_index=True, width="stretch")
    st.caption(f"Rows without any skills: {payload['empty_skill_rows']}")
    if payload["location_merges"]:
        st.subheader("Merged location spellings")
        st.dataframe(pd.DataFrame(payload["location_merges"]), hide_index=True, width="stretch")


if nav_choice == "Dashboard":
    render_dashboard_page()
elif nav_choice == "Candidate Details":
    render_details_page()
else:
    render_debug_page()
