from __future__ import annotations

from datetime import date, datetime, time, timedelta
import re
import uuid

from .doc import Doc
from .errors import ParseError

_TIME_FORMATS = ("%H:%M:%S", "%H:%M")
_DURATION_RE = re.compile(
    r"^\s*(?:(?P<hours>\d+)\s*h)?\s*(?:(?P<minutes>\d+)\s*m)?\s*(?:(?P<seconds>\d+)\s*s)?\s*$",
    re.IGNORECASE | re.ASCII,
)


def parse_time(value: str) -> time:
    raw = (value or "").strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ParseError(f"couldn't parse time: {value!r} (use HH:MM or HH:MM:SS)")


def parse_date(value: str, *, today: date | None = None) -> date:
    raw = (value or "").strip().lower()
    today = today or date.today()
    if raw == "today":
        return today
    if raw == "yesterday":
        return today - timedelta(days=1)
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise ParseError(f"couldn't parse date: {value!r} (use YYYY-MM-DD)") from None


def parse_duration(value: str) -> timedelta:
    """Parse `1h30m`, `45m`, `90s`, or a bare number of minutes."""

    raw = (value or "").strip()
    minutes = _natural(raw)
    if minutes is not None:
        return timedelta(minutes=minutes)
    match = _DURATION_RE.match(raw)
    if not raw or match is None or not any(match.groupdict().values()):
        raise ParseError(f"couldn't parse duration: {value!r} (try 1h30m)")
    parts = {key: int(amount) for key, amount in match.groupdict().items() if amount}
    return timedelta(**parts)


def parse_ordinal(value: str) -> int:
    ordinal = _natural((value or "").strip())
    if ordinal is None:
        raise ParseError(f"couldn't parse index: {value!r}")
    return ordinal


def resolve_task_path(doc: Doc, text: str, start: uuid.UUID | None = None) -> uuid.UUID:
    """Resolve a `/`-separated task path.

    Segments are `..`, 1-based ordinals, task ids, or title prefixes. A
    leading `/` starts from the root, otherwise from `start`.
    """

    raw = (text or "").strip()
    current = doc.root if raw.startswith("/") or start is None else start
    for segment in (part.strip() for part in raw.split("/")):
        if not segment or segment == ".":
            continue
        if segment == "..":
            current = doc.find_parent(current) or current
            continue
        found: uuid.UUID | None
        ordinal = _natural(segment)
        if ordinal is not None:
            found = doc.task_child(current, ordinal)
        else:
            found = _maybe_uuid(segment)
            if found is not None and found not in doc.tasks:
                found = None
            if found is None:
                found = doc.task_child_prefix(current, segment)
        if found is None:
            raise ParseError(f"no task matches {segment!r} in path {text!r}")
        current = found
    return current


def split_command(line: str) -> tuple[str, list[str]]:
    parts = (line or "").strip().split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def _natural(value: str) -> int | None:
    # str.isdigit also accepts superscripts and other digits int() rejects
    if not value.isascii() or not value.isdigit():
        return None
    return int(value)


def _maybe_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None
