from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talent_api.schemas import ChatRequest, DashboardFiltersModel
from talent_core.chat import GeminiQueryService, QueryServiceError, QuotaExceededError, answer_question
from talent_core.config import PAGE_SIZE, configure_logging
from talent_core.data import load_dashboard_data, prepare_context
from talent_core.facets import FACETS, resolve_facet, search_options
from talent_core.filters import DashboardFilters, normalize_filters
from talent_core.metrics_candidates import compute_candidate_profile, compute_candidate_table, compute_client_details
from talent_core.metrics_debug import compute_debug
from talent_core.metrics_overview import compute_overview


configure_logging()
app = FastAPI(title="Candidate Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_query_service: Optional[GeminiQueryService] = None


def get_query_service() -> GeminiQueryService:
    global _query_service
    if _query_service is None:
        _query_service = GeminiQueryService()
    return _query_service


def _filters_from_model(model: Optional[DashboardFiltersModel]) -> DashboardFilters:
    raw = model.model_dump() if model is not None else {}
    return normalize_filters(raw)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/facets")
def meta_facets():
    try:
        data_ctx = load_dashboard_data()
        catalog = data_ctx.get("catalog", {}) or {}
        return _json(
            {
                "files": data_ctx.get("files", []),
                "facets": {f.name: catalog.get(f.name, []) for f in FACETS},
                "labels": {f.name: f.label for f in FACETS},
            }
        )
    except Exception as exc:
        logger.exception("meta_facets failed")
        return _error(exc)


@app.get("/meta/facets/{facet}")
def meta_facet_options(facet: str, q: str = Query(default="")):
    resolved = resolve_facet(facet)
    if resolved is None:
        logger.warning("meta_facet_options: unknown facet %r", facet)
        return JSONResponse(status_code=404, content={"error": f"Unknown facet: {facet}", "type": "KeyError"})
    try:
        data_ctx = load_dashboard_data()
        options = search_options(data_ctx.get("catalog", {}) or {}, resolved.name, q)
        return _json({"facet": resolved.name, "options": options})
    except Exception as exc:
        logger.exception("meta_facet_options failed")
        return _error(exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, load_dashboard_data())
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/candidates")
def candidates(
    filters: DashboardFiltersModel,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=PAGE_SIZE, ge=1, le=200),
    q: str = Query(default=""),
):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, load_dashboard_data())
        return _json(compute_candidate_table(f, ctx, page=page, page_size=page_size, q=q))
    except Exception as exc:
        logger.exception("candidates failed")
        return _error(exc)


@app.get("/candidates/{row_id}")
def candidate_profile(row_id: int):
    try:
        ctx = prepare_context(None, load_dashboard_data())
        profile = compute_candidate_profile(row_id, ctx)
        if profile is None:
            return JSONResponse(status_code=404, content={"error": f"No candidate row {row_id}", "type": "KeyError"})
        return _json(profile)
    except Exception as exc:
        logger.exception("candidate_profile failed")
        return _error(exc)


@app.get("/clients/{client}")
def client_details(client: str):
    try:
        ctx = prepare_context(None, load_dashboard_data())
        return _json(compute_client_details(client, ctx))
    except Exception as exc:
        logger.exception("client_details failed")
        return _error(exc)


@app.post("/debug")
def debug(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, load_dashboard_data())
        return _json(compute_debug(f, ctx))
    except Exception as exc:
        logger.exception("debug failed")
        return _error(exc)


@app.post("/chat")
def chat(request: ChatRequest):
    try:
        data_ctx = load_dashboard_data()
        answer = answer_question(data_ctx.get("candidates", pd.DataFrame()), request.question, get_query_service())
        return _json(asdict(answer) | {"retry_after": None})
    except QuotaExceededError as exc:
        logger.warning("chat rate limited, retry after %ss", exc.retry_after)
        return _json(
            {
                "text": f"Running hot! Recharging AI capacity. Available in {exc.retry_after}s...",
                "kind": "text",
                "series": [],
                "retry_after": exc.retry_after,
            },
            status_code=429,
        )
    except QueryServiceError as exc:
        logger.warning("chat unavailable: %s", exc)
        return _error(exc, status_code=503)
    except Exception as exc:
        logger.exception("chat failed")
        return _error(exc)
