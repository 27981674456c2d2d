# src/aura_tasks/tasks/response_parser.py

"""
Extract task candidates from raw AI output.

Tiers, first one that yields a result wins (no merging across tiers):
1. the first `[...]` fragment that decodes to a JSON array of objects and is
   not a field of a titled object,
2. the first `{...}` fragment that decodes to a JSON object,
3. a lexical fallback: "task/meeting/appointment <title> at <time>"
   (a keyword directly followed by the time becomes the title),
4. nothing -> None.

Each tier is a standalone function so it can be tested on its own.
Any exception inside a tier counts as "this tier failed".
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from .task_models import TaskCandidate, parse_instant

logger = logging.getLogger(__name__)

_DECODER = json.JSONDecoder()

TITLE_REGEX = re.compile(
    r"\b(?:task|meeting|appointment)\b(?:[ \t]+is)?[ \t]*:?[ \t]*"
    r"(?!\s*(?:(?:at|on)\b|time:))(.+?)(?=\s+(?:at|on)\b|\s*time:|$)",
    re.IGNORECASE | re.MULTILINE,
)
# "Meeting at 3pm": the keyword is directly followed by the time phrase.
BARE_KEYWORD_REGEX = re.compile(
    r"\b(task|meeting|appointment)\b(?:[ \t]+is)?[ \t]*:?[ \t]*(?=(?:at|on)\b|time:)",
    re.IGNORECASE,
)
TIME_PHRASE_REGEX = re.compile(
    r"(?:\b(?:at|on)\b|\btime:)\s*(\d{1,2}(?::\d{2})?\s*(?:am|pm)?)(?![\w:])",
    re.IGNORECASE,
)
CLOCK_REGEX = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\s*$", re.IGNORECASE)


# ---- time helpers ----


def default_time(now: datetime | None = None) -> datetime:
    """One hour from now, on the hour."""
    now = now or datetime.now()
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def normalize_time_string(raw: str, now: datetime | None = None) -> datetime:
    """
    Turn `H[:MM][am|pm]` into today's date at that wall-clock time.

    Without a meridiem the hour is read as 24-hour. `pm` adds 12 below noon,
    `12am` is midnight. Raises ValueError for anything else (including hour 25).
    """
    m = CLOCK_REGEX.match(raw or "")
    if not m:
        raise ValueError(f"Not a clock time: {raw!r}")

    hours = int(m.group(1))
    minutes = int(m.group(2)) if m.group(2) else 0
    period = (m.group(3) or "").lower()

    if period == "pm" and hours < 12:
        hours += 12
    if period == "am" and hours == 12:
        hours = 0

    now = now or datetime.now()
    return now.replace(hour=hours, minute=minutes, second=0, microsecond=0)


# ---- tiers ----


def _iter_json_fragments(text: str, opener: str):
    """Yield (start, end, value) for every value that decodes cleanly at an `opener` character."""
    pos = text.find(opener)
    while pos != -1:
        try:
            value, end = _DECODER.raw_decode(text, pos)
        except ValueError:
            pass
        else:
            yield pos, end, value
        pos = text.find(opener, pos + 1)


def _task_object_spans(text: str) -> list[tuple[int, int]]:
    return [
        (start, end)
        for start, end, value in _iter_json_fragments(text, "{")
        if isinstance(value, dict) and "title" in value
    ]


def parse_array_tier(text: str, now: datetime | None = None) -> list[TaskCandidate] | None:
    task_spans: list[tuple[int, int]] | None = None
    for start, _end, value in _iter_json_fragments(text, "["):
        if not (isinstance(value, list) and all(isinstance(item, dict) for item in value)):
            continue
        if task_spans is None:
            task_spans = _task_object_spans(text)
        # An array inside a titled object is one of its fields, not a task list.
        if any(s < start < e for s, e in task_spans):
            continue
        return [TaskCandidate.from_mapping(item) for item in value]
    return None


def parse_object_tier(text: str, now: datetime | None = None) -> list[TaskCandidate] | None:
    for _start, _end, value in _iter_json_fragments(text, "{"):
        if isinstance(value, dict):
            return [TaskCandidate.from_mapping(value)]
    return None


def _match_title(text: str) -> tuple[str, int] | None:
    """(title, offset) of the first task phrase; a bare keyword becomes the title."""
    title_match = TITLE_REGEX.search(text)
    bare_match = BARE_KEYWORD_REGEX.search(text)

    if bare_match and (title_match is None or bare_match.start() <= title_match.start()):
        return bare_match.group(1).capitalize(), bare_match.start()
    if title_match:
        return title_match.group(1).strip().rstrip(".,;"), title_match.start()
    return None


def parse_lexical_tier(text: str, now: datetime | None = None) -> list[TaskCandidate] | None:
    found = _match_title(text)
    if not found or not found[0]:
        return None
    title, offset = found

    time_match = TIME_PHRASE_REGEX.search(text, offset)
    when = normalize_time_string(time_match.group(1), now) if time_match else default_time(now)

    return [TaskCandidate(title=title, time=when.isoformat())]


TIERS: list[tuple[str, Callable[[str, datetime | None], list[TaskCandidate] | None]]] = [
    ("array", parse_array_tier),
    ("object", parse_object_tier),
    ("lexical", parse_lexical_tier),
]


def parse(raw_text: str, now: datetime | None = None) -> list[TaskCandidate] | None:
    """
    Return the candidates found in `raw_text`, or None when no tier matched.

    An empty list is a valid result (the model answered with `[]`).
    """
    text = raw_text or ""
    for name, tier in TIERS:
        try:
            result = tier(text, now)
        except Exception:
            logger.debug("Parser tier %s failed", name, exc_info=True)
            continue
        if result is not None:
            logger.debug("Parser tier %s produced %d candidate(s)", name, len(result))
            return result

    logger.info("No task could be extracted from AI response (%d chars)", len(text))
    return None


def resolve_candidate_time(raw: Any, now: datetime | None = None) -> datetime:
    """
    Candidate time policy: ISO-8601 string, else `H[:MM][am|pm]`, else default time.
    """
    if isinstance(raw, str) and raw.strip():
        try:
            return parse_instant(raw)
        except ValueError:
            pass
        try:
            return normalize_time_string(raw, now)
        except ValueError:
            logger.debug("Unrecognized candidate time %r; using default", raw)
    return default_time(now)
