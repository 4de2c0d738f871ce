from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv


load_dotenv()

ROOT_DIR = Path(__file__).resolve().parents[1]

DATA_DIR = Path(os.getenv("TALENT_DATA_DIR", str(ROOT_DIR)))
DATA_GLOB = os.getenv("TALENT_DATA_GLOB", "*.xlsx")

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

TOP_N = int(os.getenv("TALENT_TOP_N", "5"))
PAGE_SIZE = int(os.getenv("TALENT_PAGE_SIZE", "10"))


def split_api_keys(raw: str) -> List[str]:
    return [k.strip() for k in (raw or "").split(",") if k.strip()]


def gemini_api_keys() -> List[str]:
    return split_api_keys(os.getenv("GEMINI_API_KEY", ""))


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
