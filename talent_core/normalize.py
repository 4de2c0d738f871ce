from __future__ import annotations

import re
from typing import List, Optional

import pandas as pd


UNKNOWN = "Unknown"
MISSING_MARKERS = {"nan", "null"}

LOCATION_DELIMITERS = re.compile(r"[,/\-–()]")
NON_LETTERS = re.compile(r"[^A-Za-z\s]")
SKILL_DELIMITERS = re.compile(r"[,;]")
WHITESPACE = re.compile(r"\s+")

LOCATION_SYNONYMS = {
    "bengaluru": "bangalore",
    "bengalooru": "bangalore",
    "blr": "bangalore",
    "gurugram": "gurgaon",
    "bombay": "mumbai",
    "calcutta": "kolkata",
    "madras": "chennai",
    "new delhi": "delhi",
    "delhi ncr": "delhi",
    "ncr": "delhi",
    "poona": "pune",
    "trivandrum": "thiruvananthapuram",
    "cochin": "kochi",
    "mysuru": "mysore",
    "secunderabad": "hyderabad",
}

SKILL_SYNONYMS = {
    "react": "React.js",
    "reactjs": "React.js",
    "react js": "React.js",
    "react.js": "React.js",
    "react. js": "React.js",
    "react . js": "React.js",
    "node": "Node.js",
    "nodejs": "Node.js",
    "node js": "Node.js",
    "node.js": "Node.js",
    "angularjs": "Angular",
    "angular js": "Angular",
    "angular": "Angular",
    "js": "JavaScript",
    "javascript": "JavaScript",
    "java script": "JavaScript",
    "ts": "TypeScript",
    "typescript": "TypeScript",
    "java": "Java",
    "python": "Python",
    "sql": "SQL",
    "ms sql": "SQL Server",
    "mssql": "SQL Server",
    "sql server": "SQL Server",
    "aws": "AWS",
    "amazon web services": "AWS",
    "gcp": "GCP",
    "google cloud": "GCP",
    "azure": "Azure",
    "ms azure": "Azure",
    "c#": "C#",
    "c sharp": "C#",
    ".net": ".NET",
    "dotnet": ".NET",
    "dot net": ".NET",
    "k8s": "Kubernetes",
    "kubernetes": "Kubernetes",
    "docker": "Docker",
    "ml": "Machine Learning",
    "machine learning": "Machine Learning",
}


def is_missing(value: object) -> bool:
    """True for None/NaN, blank strings and the literal "nan"/"null" markers."""
    if value is None:
        return True
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        return False
    s = str(value).strip()
    return not s or s.lower() in MISSING_MARKERS


def _as_text(value: object) -> Optional[str]:
    if is_missing(value):
        return None
    return str(value).strip()


def normalize_location(raw: object) -> str:
    """Canonical city name for a free-text location, or ``"Unknown"``.

    "bengaluru, Karnataka", "BENGALURU-560001" and "Bengaluru" all become
    "Bangalore"; "N/A" collapses to a single letter and becomes "Unknown".
    """
    text = _as_text(raw)
    if text is None:
        return UNKNOWN
    first = LOCATION_DELIMITERS.split(text, maxsplit=1)[0]
    cleaned = NON_LETTERS.sub("", first).strip()
    key = WHITESPACE.sub(" ", cleaned).lower()
    key = LOCATION_SYNONYMS.get(key, key)
    if len(key) < 2:
        return UNKNOWN
    return " ".join(word.capitalize() for word in key.split(" "))


def skill_key(skill: str) -> str:
    return WHITESPACE.sub(" ", skill.strip()).lower()


def normalize_skill(raw: object) -> Optional[str]:
    text = _as_text(raw)
    if text is None:
        return None
    return SKILL_SYNONYMS.get(skill_key(text), text)


def normalize_skills(raw: object) -> List[str]:
    """Split a delimited skills field into canonical skills, first occurrence wins."""
    text = _as_text(raw)
    if text is None:
        return []
    out: List[str] = []
    for piece in SKILL_DELIMITERS.split(text):
        skill = normalize_skill(piece)
        if skill and skill not in out:
            out.append(skill)
    return out


def normalize_simple(raw: object) -> str:
    text = _as_text(raw)
    return text if text is not None else UNKNOWN
