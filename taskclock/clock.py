from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Any
import uuid

from .errors import DeserializationError
from .tasks import parse_uuid


def local_now() -> datetime:
    return datetime.now().astimezone()


def as_local(value: datetime) -> datetime:
    """Attach (or convert to) the local UTC offset."""

    return value.astimezone()


def local_day(value: datetime) -> date:
    return value.astimezone().date()


def with_time(value: datetime, at: time) -> datetime:
    """Same local calendar day, new wall-clock time; the offset is recomputed."""

    return datetime.combine(local_day(value), at).astimezone()


def with_date(value: datetime, day: date) -> datetime:
    return datetime.combine(day, value.astimezone().time()).astimezone()


@dataclass(frozen=True)
class Clock:
    id: uuid.UUID
    start: datetime
    end: datetime | None = None
    comment: str | None = None
    task_id: uuid.UUID | None = None

    # Clocks order by start only; equality still compares every field.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Clock):
            return NotImplemented
        return self.start < other.start

    @staticmethod
    def new(start: datetime | None = None) -> "Clock":
        return Clock(id=uuid.uuid4(), start=as_local(start) if start is not None else local_now())

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration(self, now: datetime | None = None) -> timedelta:
        end = self.end if self.end is not None else (now or local_now())
        return end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end is not None else None,
            "comment": self.comment,
            "task_id": str(self.task_id) if self.task_id is not None else None,
        }

    @staticmethod
    def from_mapping(value: object) -> "Clock":
        if not isinstance(value, dict):
            raise DeserializationError("clock record is not an object")
        comment = value.get("comment")
        if comment is not None and not isinstance(comment, str):
            raise DeserializationError("clock comment must be a string or null")
        task_raw = value.get("task_id")
        end_raw = value.get("end")
        return Clock(
            id=parse_uuid(value.get("id"), what="clock id"),
            start=_parse_timestamp(value.get("start"), what="clock start"),
            end=_parse_timestamp(end_raw, what="clock end") if end_raw is not None else None,
            comment=comment,
            task_id=parse_uuid(task_raw, what="clock task id") if task_raw is not None else None,
        )


class ClockEditor:
    """Chainable copy-on-write handle over a clock snapshot."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock

    @property
    def snapshot(self) -> Clock:
        return self._clock

    @property
    def start(self) -> datetime:
        return self._clock.start

    @property
    def end(self) -> datetime | None:
        return self._clock.end

    def set_start(self, start: datetime) -> "ClockEditor":
        self._clock = replace(self._clock, start=as_local(start))
        return self

    def set_end(self, end: datetime) -> "ClockEditor":
        self._clock = replace(self._clock, end=as_local(end))
        return self

    def set_comment(self, comment: str) -> "ClockEditor":
        self._clock = replace(self._clock, comment=comment)
        return self

    def set_task_id(self, task_id: uuid.UUID) -> "ClockEditor":
        self._clock = replace(self._clock, task_id=task_id)
        return self


def total_duration(clocks: list[Clock], *, now: datetime | None = None) -> timedelta:
    total = timedelta()
    for clock in clocks:
        total += clock.duration(now)
    return total


def _parse_timestamp(value: object, *, what: str) -> datetime:
    if not isinstance(value, str):
        raise DeserializationError(f"{what} must be an ISO-8601 string")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise DeserializationError(f"invalid {what}: {value!r}") from exc
    return as_local(parsed)
