from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from talent_core import config
from talent_core.facets import (
    FACETS,
    TOKEN_PREFIX,
    attach_facet_columns,
    build_catalog,
    resolve_source_columns,
    strip_facet_columns,
)
from talent_core.filters import DashboardFilters, normalize_filters, apply_filters
from talent_core.normalize import is_missing, normalize_skills
from talent_core.view import recompute


logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xls"}

IDENTITY_COLUMNS = {
    "employee_id": ("Employee ID", "employee_id", "EmployeeID", "emp_id"),
    "name": ("Candidate Name", "full_name", "Name", "name"),
    "experience_years": ("experienceYears", "experience_years", "Experience"),
}


class DataLoadError(RuntimeError):
    pass


def get_source_files(data_dir: Optional[Path] = None, pattern: Optional[str] = None) -> List[Path]:
    """Workbooks matching the pattern, oldest first; Office lock files are skipped."""
    data_dir = data_dir or config.DATA_DIR
    files = [
        f
        for f in Path(data_dir).glob(pattern or config.DATA_GLOB)
        if f.is_file() and f.suffix.lower() in EXCEL_SUFFIXES and not f.name.startswith("~$")
    ]
    return sorted(files, key=lambda f: (f.stat().st_mtime, f.name))


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def clean_headers(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    df = drop_duplicate_columns(df)
    blank = [c for c in df.columns if c.startswith("Unnamed:") and df[c].isna().all()]
    return df.drop(columns=blank)


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = df[col].map(lambda v: str(v).strip() if isinstance(v, str) else v)
    return df


def read_candidate_sheet(path: Path) -> pd.DataFrame:
    """First sheet of a workbook as raw candidate rows, one per non-empty line."""
    try:
        df = pd.read_excel(path, sheet_name=0, dtype=object)
    except Exception as exc:
        raise DataLoadError(f"Could not read {path.name}: {exc}") from exc
    df = clean_headers(df)
    df = df.dropna(how="all").reset_index(drop=True)
    df = coerce_str_safe(df, [c for c in df.columns if df[c].dtype == object])
    logger.info("Loaded %d candidate rows from %s", len(df), path.name)
    return df


def build_dashboard_data(candidates: pd.DataFrame, *, files: Optional[List[str]] = None) -> Dict[str, Any]:
    """Dataset context: token columns attached and the facet catalog computed once."""
    raw = strip_facet_columns(candidates).reset_index(drop=True)
    prepared = attach_facet_columns(raw)
    return {
        "files": list(files or []),
        "candidates": prepared,
        "raw_columns": [str(c) for c in raw.columns],
        "source_columns": resolve_source_columns(raw.columns),
        "catalog": build_catalog(prepared),
    }


def empty_dashboard_data() -> Dict[str, Any]:
    return build_dashboard_data(pd.DataFrame())


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, Any]:
    latest = Path(files_sig[-1][0])
    candidates = read_candidate_sheet(latest)
    return build_dashboard_data(candidates, files=[latest.name])


def load_dashboard_data() -> Dict[str, Any]:
    files = get_source_files()
    if not files:
        logger.warning("No candidate workbooks matching %s in %s", config.DATA_GLOB, config.DATA_DIR)
        return empty_dashboard_data()
    return _load_dashboard_data_cached(file_signature(files))


def prepare_context(filters: Optional[Mapping[str, Any] | DashboardFilters], data_ctx: Dict[str, Any]) -> Dict[str, Any]:
    candidates: pd.DataFrame = data_ctx.get("candidates", pd.DataFrame())
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters or {})

    filtered_candidates = apply_filters(candidates, filt)
    view = recompute(candidates, filt, filtered=filtered_candidates)

    return {
        "filters": filt,
        "files": data_ctx.get("files", []),
        "candidates": candidates,
        "filtered_candidates": filtered_candidates,
        "raw_columns": data_ctx.get("raw_columns", [str(c) for c in strip_facet_columns(candidates).columns]),
        "source_columns": data_ctx.get("source_columns", resolve_source_columns(candidates.columns)),
        "catalog": data_ctx.get("catalog") or build_catalog(candidates),
        "view": view,
    }


# ---------------- Candidate records ----------------
@dataclass(frozen=True)
class CandidateRecord:
    employee_id: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    skills: Optional[str] = None
    client: Optional[str] = None
    role: Optional[str] = None
    vertical: Optional[str] = None
    domain: Optional[str] = None
    it_type: Optional[str] = None
    experience_years: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CandidateRecord":
        row = {str(k): v for k, v in row.items() if not str(k).startswith(TOKEN_PREFIX)}
        aliases: Dict[str, Tuple[str, ...]] = dict(IDENTITY_COLUMNS)
        aliases.update({f.name: f.columns for f in FACETS})
        known: Dict[str, Optional[str]] = {}
        used = set()
        for attr, cols in aliases.items():
            col = next((c for c in cols if c in row), None)
            if col is None:
                known[attr] = None
                continue
            used.add(col)
            value = row[col]
            known[attr] = None if is_missing(value) else str(value).strip()
        extra = {k: v for k, v in row.items() if k not in used}
        return cls(extra=extra, **known)


def _display(value: Any) -> str:
    return "N/A" if is_missing(value) else str(value)


def candidate_profile(row: Mapping[str, Any]) -> Dict[str, Any]:
    record = CandidateRecord.from_row(row)
    return {
        "employee_id": _display(record.employee_id),
        "name": _display(record.name),
        "location": _display(record.location),
        "role": _display(record.role),
        "client": _display(record.client),
        "vertical": _display(record.vertical),
        "domain": _display(record.domain),
        "it_type": _display(record.it_type),
        "experience_years": _display(record.experience_years),
        "skills": normalize_skills(record.skills),
        "extra": {k: _display(v) for k, v in record.extra.items()},
    }
