from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from enum import Enum
import uuid

from .clock import Clock, ClockEditor, with_date, with_time
from .doc import Doc
from .errors import ClockOutOfIndex, SessionClosed


class EditOutcome(str, Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    APPLIED = "applied"


class ClockEditSession:
    """Isolated batch edit over one day's clocks.

    Entries are addressed 1-based in start order. Nothing reaches the
    document until `commit`, which overwrites each clock by id.
    """

    def __init__(self, doc: Doc, day: date, clocks: list[Clock]) -> None:
        self.doc = doc
        self.day = day
        self.clocks = sorted(clocks)
        self.outcome = EditOutcome.PENDING

    @classmethod
    def open(cls, doc: Doc, day: date) -> "ClockEditSession":
        return cls(doc, day, doc.day_clocks(day))

    def __enter__(self) -> "ClockEditSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.outcome is EditOutcome.PENDING:
            self.cancel()

    def __len__(self) -> int:
        return len(self.clocks)

    @property
    def closed(self) -> bool:
        return self.outcome is not EditOutcome.PENDING

    def get(self, index: int) -> Clock:
        return self.clocks[self._position(index)]

    def modify(self, index: int, fn: Callable[[ClockEditor], object]) -> Clock:
        self._require_open()
        position = self._position(index)
        editor = ClockEditor(self.clocks[position])
        fn(editor)
        self.clocks[position] = editor.snapshot
        return editor.snapshot

    def set_start(self, index: int, start: datetime) -> Clock:
        return self.modify(index, lambda clock: clock.set_start(start))

    def set_start_time(self, index: int, at: time) -> Clock:
        return self.modify(index, lambda clock: clock.set_start(with_time(clock.start, at)))

    def set_end(self, index: int, end: datetime) -> Clock:
        return self.modify(index, lambda clock: clock.set_end(end))

    def set_end_time(self, index: int, at: time) -> Clock:
        def _edit(clock: ClockEditor) -> None:
            if clock.end is None:
                return
            clock.set_end(with_time(clock.end, at))

        return self.modify(index, _edit)

    def set_end_date(self, index: int, day: date) -> Clock:
        def _edit(clock: ClockEditor) -> None:
            if clock.end is None:
                return
            clock.set_end(with_date(clock.end, day))

        return self.modify(index, _edit)

    def set_duration(self, index: int, duration: timedelta) -> Clock:
        return self.modify(index, lambda clock: clock.set_end(clock.start + duration))

    def commit(self) -> list[uuid.UUID]:
        self._require_open()
        for clock in self.clocks:
            self.doc.upsert_clock(clock)
        self.outcome = EditOutcome.APPLIED
        ids = [clock.id for clock in self.clocks]
        self.doc._emit(
            "clockedit.applied",
            f"applied {len(ids)} clock edits for {self.day.isoformat()}",
            metadata={"day": self.day.isoformat(), "clocks": [str(item) for item in ids]},
        )
        return ids

    def cancel(self) -> None:
        self._require_open()
        self.outcome = EditOutcome.CANCELLED
        self.doc._emit(
            "clockedit.cancelled",
            f"discarded clock edits for {self.day.isoformat()}",
            metadata={"day": self.day.isoformat()},
        )

    def _position(self, index: int) -> int:
        if index < 1 or index > len(self.clocks):
            raise ClockOutOfIndex(index, len(self.clocks))
        return index - 1

    def _require_open(self) -> None:
        if self.closed:
            raise SessionClosed(f"clock edit session already {self.outcome.value}")
