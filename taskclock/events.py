from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
import contextlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import secrets
import time
from pathlib import Path
from typing import Any

RECENT_LIMIT = 200


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()


def new_event_id() -> str:
    stamp = int(time.time() * 1000)
    token = secrets.token_hex(4)
    return f"evt-{stamp}-{token}"


@dataclass(frozen=True)
class Event:
    """One document change: `task.added`, `clock.started`, `doc.saved`, ..."""

    type: str
    message: str
    severity: str = "info"
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_event_id)
    ts: str = field(default_factory=utc_now_iso)

    @property
    def topic(self) -> str:
        """Leading part of the type: `task`, `clock`, `clockedit` or `doc`."""

        return self.type.partition(".")[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ts": self.ts,
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Event":
        metadata = payload.get("metadata")
        return cls(
            type=str(payload.get("type") or "doc.event"),
            message=str(payload.get("message") or ""),
            severity=str(payload.get("severity") or "info").lower(),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
            id=str(payload.get("id") or new_event_id()),
            ts=str(payload.get("ts") or utc_now_iso()),
        )


EventHandler = Callable[[Event], Any]


class EventBus:
    """Synchronous pub/sub for document events with an optional JSONL log."""

    def __init__(self, log_path: Path | None = None, *, keep: int = RECENT_LIMIT) -> None:
        self.log_path = log_path
        self._recent: deque[Event] = deque(maxlen=max(1, keep))
        self._handlers: list[EventHandler] = []

    @property
    def recent(self) -> list[Event]:
        return list(self._recent)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.remove(handler)

        return _unsubscribe

    def publish_event(
        self,
        event_type: str,
        message: str,
        *,
        severity: str = "info",
        metadata: dict[str, Any] | None = None,
    ) -> Event:
        event = Event(
            type=str(event_type or "doc.event"),
            message=str(message or ""),
            severity=str(severity or "info").lower(),
            metadata=dict(metadata or {}),
        )
        self._recent.append(event)
        if self.log_path is not None:
            self._append(event)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                continue
        return event

    def read_events(self, *, limit: int | None = None, topic: str | None = None) -> list[Event]:
        """Events from the log file, or from memory when no log is configured.

        Lines that are not JSON objects are skipped.
        """

        if self.log_path is None:
            events = list(self._recent)
        elif not self.log_path.exists():
            events = []
        else:
            events = []
            for raw in self.log_path.read_text(encoding="utf-8").splitlines():
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    payload = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if isinstance(payload, dict):
                    events.append(Event.from_mapping(payload))
        if topic:
            events = [event for event in events if event.topic == topic]
        if limit is not None and limit > 0:
            return events[-limit:]
        return events

    def _append(self, event: Event) -> None:
        assert self.log_path is not None
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with self.log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=True))
            handle.write("\n")
