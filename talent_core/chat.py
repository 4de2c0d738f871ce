from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import google.generativeai as genai
import pandas as pd
from google.api_core import exceptions as google_exceptions

from talent_core import config
from talent_core.facets import strip_facet_columns


logger = logging.getLogger(__name__)

EXCLUDED_FIELDS = (
    "HRBP Name",
    "aadhaar",
    "assignmentRating",
    "dreamProject",
    "feedback",
    "hiringManagerEmail",
    "hiringManagerName",
    "j2wEmail",
    "j2wId",
    "j2wRating",
    "nativePlace",
    "opportunities",
    "recentAssignments",
    "reportingManagerEmail",
)

ANSWER_KINDS = ("text", "analysis", "sentiment")
GREETING = "Hi! I'm your AI Talent Analyst. I can answer complex questions about your data."
ERROR_TEXT = "I encountered an error analyzing the data. Please check your API key or try again."
DEFAULT_RETRY_AFTER = 60

PROMPT_TEMPLATE = """
You are a Data Analyst Assistant for a Recruitment Dashboard.

Here is the current dashboard data:
{context}

USER QUESTION: "{question}"

INSTRUCTIONS:
1. Answer the user's question based strictly on the provided data.
2. If the user asks for a count, list, or specific detail, provide it clearly.
3. If the user asks about "sentiment", "trend", or "analysis", also return a series of
   6 monthly points (Jan-Jun, value 0-100) describing the trend.
4. Your response must be a JSON object with this structure:
{{
    "text": "Your natural language answer here...",
    "type": "text" | "analysis" | "sentiment",
    "series": [ {{ "name": "Jan", "value": 65 }}, ... ] (only if type is 'sentiment')
}}
5. Keep the "text" concise and professional.
6. If the data doesn't contain the answer, say "I couldn't find that information in the current dataset."

RESPONSE (JSON only):
"""


class QueryServiceError(RuntimeError):
    pass


class QuotaExceededError(QueryServiceError):
    def __init__(self, message: str, retry_after: int = DEFAULT_RETRY_AFTER):
        super().__init__(message)
        self.retry_after = retry_after


@dataclass(frozen=True)
class ChatAnswer:
    text: str
    kind: str = "text"
    series: List[Dict[str, Any]] = field(default_factory=list)


def context_frame(df: pd.DataFrame, excluded: Sequence[str] = EXCLUDED_FIELDS) -> pd.DataFrame:
    raw = strip_facet_columns(df)
    return raw[[c for c in raw.columns if str(c) not in set(excluded)]]


def to_csv_text(df: pd.DataFrame) -> str:
    """CSV rows; values holding a comma, quote or newline are quoted with inner quotes doubled."""
    return df.to_csv(index=False, lineterminator="\n").rstrip("\n")


def build_chat_context(df: pd.DataFrame, excluded: Sequence[str] = EXCLUDED_FIELDS) -> str:
    """Serialize the full, unfiltered dataset for the model prompt."""
    if df.empty:
        return "No data available."
    frame = context_frame(df, excluded)
    headers = [str(c) for c in frame.columns]
    return "\n".join(
        [
            "Dataset Description: Candidate data (CSV).",
            f"Columns: {', '.join(headers)}",
            f"Total Records: {len(frame)}",
            "",
            "CSV DATA:",
            to_csv_text(frame),
        ]
    )


def _series_point(item: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(item, dict) or "name" not in item:
        return None
    value = item.get("value", item.get("sentiment"))
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return {"name": str(item["name"]), "value": value}


def parse_answer(raw_text: str) -> ChatAnswer:
    """Pull the JSON object out of a model reply; anything else is a plain text answer."""
    text = raw_text or ""
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        return ChatAnswer(text=text.strip())
    try:
        payload = json.loads(match.group(0))
    except ValueError:
        return ChatAnswer(text=text.strip())
    if not isinstance(payload, dict):
        return ChatAnswer(text=text.strip())

    kind = str(payload.get("type") or payload.get("kind") or "text")
    if kind not in ANSWER_KINDS:
        kind = "text"
    points = payload.get("series") or payload.get("chartData") or []
    series: List[Dict[str, Any]] = []
    if isinstance(points, list):
        series = [p for p in map(_series_point, points) if p is not None]
    return ChatAnswer(text=str(payload.get("text") or "").strip(), kind=kind, series=series)


def is_quota_error(exc: BaseException) -> bool:
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return True
    message = str(exc)
    return "429" in message or "Quota exceeded" in message or getattr(exc, "status", None) == 429


def retry_delay_seconds(message: str, default: int = DEFAULT_RETRY_AFTER) -> int:
    match = re.search(r"retry in (\d+(?:\.\d+)?)s", message or "")
    if not match:
        return default
    return max(1, math.ceil(float(match.group(1))))


def _gemini_model(api_key: str, model_name: str) -> Any:
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(model_name)


class GeminiQueryService:
    """Gemini client that rotates through API keys when one runs out of quota."""

    def __init__(
        self,
        api_keys: Optional[Sequence[str]] = None,
        model_name: str = config.GEMINI_MODEL,
        model_factory: Optional[Callable[[str, str], Any]] = None,
    ):
        self.api_keys: List[str] = list(api_keys) if api_keys is not None else config.gemini_api_keys()
        self.model_name = model_name
        self.key_index = 0
        self._model_factory = model_factory or _gemini_model
        self._model: Any = None

    @property
    def configured(self) -> bool:
        return bool(self.api_keys)

    def _ensure_model(self) -> Any:
        if self._model is None:
            self._model = self._model_factory(self.api_keys[self.key_index], self.model_name)
            logger.info("Gemini model %s initialized with key index %d", self.model_name, self.key_index)
        return self._model

    def rotate_key(self) -> bool:
        if len(self.api_keys) <= 1:
            return False
        nxt = (self.key_index + 1) % len(self.api_keys)
        logger.warning("Rotating Gemini API key (index %d -> %d)", self.key_index, nxt)
        self.key_index = nxt
        self._model = None
        return True

    def ask(self, context: str, question: str) -> ChatAnswer:
        if not self.configured:
            raise QueryServiceError("Gemini is not configured. Set GEMINI_API_KEY.")
        prompt = PROMPT_TEMPLATE.format(context=context, question=question)
        max_attempts = max(1, len(self.api_keys))
        attempt = 0
        while True:
            try:
                response = self._ensure_model().generate_content(prompt)
                return parse_answer(response.text)
            except Exception as exc:
                logger.error("Gemini call failed (attempt %d/%d): %s", attempt + 1, max_attempts, exc)
                if not is_quota_error(exc):
                    return ChatAnswer(text=ERROR_TEXT)
                if attempt < max_attempts - 1 and self.rotate_key():
                    attempt += 1
                    continue
                raise QuotaExceededError(str(exc), retry_after=retry_delay_seconds(str(exc))) from exc


def answer_question(df: pd.DataFrame, question: str, service: GeminiQueryService) -> ChatAnswer:
    question = (question or "").strip()
    if not question:
        return ChatAnswer(text="Please ask a question about the candidate data.")
    return service.ask(build_chat_context(df), question)
