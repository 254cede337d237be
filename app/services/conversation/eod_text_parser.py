# app/services/conversation/eod_text_parser.py
"""Regex extraction for free-text end-of-day replies."""

import re

from pydantic import BaseModel

MAX_HOURS = 24.0

BLOCKER_PATTERNS = [
    re.compile(r"blockers?:?\s*(.+?)(?:\n|$)", re.IGNORECASE),
    re.compile(r"blocked\s+(?:by|on):?\s*(.+?)(?:\n|$)", re.IGNORECASE),
    re.compile(r"waiting\s+(?:for|on):?\s*(.+?)(?:\n|$)", re.IGNORECASE),
]

TOMORROW_PATTERNS = [
    re.compile(r"tomorrow(?:'s)?\s+(?:priority|focus|plan):?\s*(.+?)(?:\n|$)", re.IGNORECASE),
    re.compile(r"(?:next|tomorrow)\s*:\s*(.+?)(?:\n|$)", re.IGNORECASE),
]

HOURS_PATTERNS = [
    re.compile(r"hours?\s*(?:worked|today)?\s*:?\s*(\d+\.?\d*)", re.IGNORECASE),
    re.compile(r"(\d+\.?\d*)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE),
    re.compile(r"worked\s+(\d+\.?\d*)\s*(?:hours?|hrs?|h)?", re.IGNORECASE),
    re.compile(r"^\s*(\d+\.?\d*)\s*$", re.MULTILINE),
]

BARE_NUMBER = re.compile(r"^\s*(\d+\.?\d*)\s*$")

NO_BLOCKER_VALUES = {"none", "no", "n/a", "na", "nothing", "-"}


class ParsedEodReport(BaseModel):
    tasks_completed: str
    blockers: str | None = None
    tomorrow_priority: str | None = None
    hours_worked: float | None = None


def parse_bare_hours(text: str) -> float | None:
    """A message that is only a number; returns the number, or None."""
    match = BARE_NUMBER.match(text or "")
    return float(match.group(1)) if match else None


def _first_match(patterns: list[re.Pattern], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_hours(text: str) -> float | None:
    """First plausible hours figure (0-24) in the text."""
    for pattern in HOURS_PATTERNS:
        for match in pattern.finditer(text):
            value = float(match.group(1))
            if 0 <= value <= MAX_HOURS:
                return value
    return None


def extract_blockers(text: str) -> str | None:
    blocker = _first_match(BLOCKER_PATTERNS, text)
    if blocker and blocker.lower().strip(" .") in NO_BLOCKER_VALUES:
        return None
    return blocker


def parse_eod_text(text: str) -> ParsedEodReport:
    text = (text or "").strip()
    return ParsedEodReport(
        tasks_completed=text,
        blockers=extract_blockers(text),
        tomorrow_priority=_first_match(TOMORROW_PATTERNS, text),
        hours_worked=extract_hours(text),
    )
