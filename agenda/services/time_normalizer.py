"""Canonical forms for slot times.

Requested times arrive as ``HH:MM``, ``HH:MM:SS`` or full ISO date-times
(``2024-01-01T10:00:00+00:00``); slot rows come back from the database as
``datetime.time`` values that may carry an offset. Everything is compared as
``HH:MM`` and stored as ``HH:MM:SS``.

These helpers never raise: input that matches no known shape degrades to its
first five characters, which simply fails to match any slot later on.
"""
import re
from datetime import date, datetime

_HHMM = re.compile(r"^\d{2}:\d{2}$")
_HHMMSS = re.compile(r"^\d{2}:\d{2}:\d{2}")
_OFFSET = re.compile(r"[+\-Zz]")


def _as_text(value: object) -> str:
    if value is None:
        return ""
    try:
        return str(value).strip()
    except Exception:
        return ""


def _time_part(value: object) -> str:
    """Strip any date prefix and trailing timezone offset."""
    text = _as_text(value)
    if "T" in text:
        text = text.split("T", 1)[1]
    return _OFFSET.split(text, 1)[0]


def normalize_time(value: object) -> str:
    """Comparison form: ``HH:MM``."""
    text = _time_part(value)
    if _HHMMSS.match(text):
        return text[:5]
    if _HHMM.match(text):
        return text
    parts = text.split(":")
    if len(parts) >= 2 and parts[0].isdigit() and parts[1][:2].isdigit():
        return f"{parts[0].zfill(2)}:{parts[1][:2].zfill(2)}"[:5]
    return text[:5]


def storage_time(value: object) -> str:
    """Storage form: ``HH:MM:SS`` with seconds zero-padded."""
    hhmm = normalize_time(value)
    parts = _time_part(value).split(":")
    seconds = "00"
    if len(parts) >= 3 and parts[2][:2].isdigit():
        seconds = parts[2][:2].zfill(2)
    return f"{hhmm}:{seconds}"


def clean_date(value: object) -> str:
    """``2024-03-15T10:00:00Z`` -> ``2024-03-15``."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _as_text(value).split("T", 1)[0]


def parse_date(value: object) -> date | None:
    try:
        return date.fromisoformat(clean_date(value))
    except ValueError:
        return None
