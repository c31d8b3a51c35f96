"""The document: task tree, clocks and the active-clock register.

A `Doc` composes a `TaskStore` and a `ClockStore` around a root task id and
owns the JSON persistence of both. Typical use:

    doc = Doc()
    doc.modify_task(doc.root, lambda task: task.set_title("Inbox"))
    child = Task.new("Write report")
    doc.add_subtask(child, doc.root)
    doc.clock_new()
    doc.clock_assign(child.id)
    doc.clock_out()
    doc.save(path)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any
import uuid

from .clock import Clock, local_now
from .errors import CycleDetected, DeserializationError, DocumentIOError
from .events import EventBus
from .store import ClockStore, TaskEdit, TaskStore
from .tasks import Task, parse_uuid

if TYPE_CHECKING:
    from .clockedit import ClockEditSession


class Doc:
    def __init__(
        self,
        *,
        tasks: TaskStore | None = None,
        clocks: list[Clock] | None = None,
        current_clock: uuid.UUID | None = None,
        root: uuid.UUID | None = None,
        events: EventBus | None = None,
        now: Callable[[], datetime] = local_now,
    ) -> None:
        if (tasks is None) != (root is None):
            raise ValueError("tasks and root must be given together")
        if tasks is None or root is None:
            root_task = Task.new()
            tasks = TaskStore([root_task])
            root = root_task.id
        self.tasks = tasks
        self.root = root
        self.events = events
        self.now = now
        self.clocks = ClockStore(
            clocks or (),
            current=current_clock,
            hierarchy=self.tasks.is_in_hierarchy_of,
            now=now,
        )
        self.tasks.get(self.root)

    @classmethod
    def new(cls, *, events: EventBus | None = None, now: Callable[[], datetime] = local_now) -> "Doc":
        return cls(events=events, now=now)

    @property
    def current_clock(self) -> uuid.UUID | None:
        return self.clocks.current

    # persistence

    @classmethod
    def load(
        cls,
        path: Path,
        *,
        events: EventBus | None = None,
        now: Callable[[], datetime] = local_now,
    ) -> "Doc":
        """Load a document; raises DocumentIOError or DeserializationError."""

        try:
            text = Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise DeserializationError(f"document {path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise DocumentIOError(f"cannot read {path}: {exc}") from exc
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeserializationError(f"malformed document {path}: {exc}") from exc
        doc = cls.from_dict(payload, events=events, now=now)
        doc._emit("doc.loaded", f"loaded {path}", metadata={"path": str(path), "tasks": len(doc.tasks)})
        return doc

    def save(self, path: Path) -> None:
        payload = json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=True) + "\n"
        try:
            Path(path).write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise DocumentIOError(f"cannot write {path}: {exc}") from exc
        self._emit("doc.saved", f"saved {path}", metadata={"path": str(path), "tasks": len(self.tasks)})

    def to_dict(self) -> dict[str, Any]:
        return {
            "map": {str(task.id): task.to_dict() for task in self.tasks},
            "clocks": {str(clock.id): clock.to_dict() for clock in self.clocks},
            "current_clock": str(self.current_clock) if self.current_clock is not None else None,
            "root": str(self.root),
        }

    @classmethod
    def from_dict(
        cls,
        payload: object,
        *,
        events: EventBus | None = None,
        now: Callable[[], datetime] = local_now,
    ) -> "Doc":
        if not isinstance(payload, dict):
            raise DeserializationError("document is not an object")
        records = payload.get("map")
        if not isinstance(records, dict):
            raise DeserializationError("document has no task map")
        clock_records = payload.get("clocks") or {}
        if not isinstance(clock_records, dict):
            raise DeserializationError("document clocks must be an object")

        root = parse_uuid(payload.get("root"), what="root id")
        tasks = TaskStore(Task.from_mapping(record) for record in records.values())
        if root not in tasks:
            raise DeserializationError(f"root task {root} missing from task map")
        clocks = [Clock.from_mapping(record) for record in clock_records.values()]
        current_raw = payload.get("current_clock")
        current = parse_uuid(current_raw, what="current clock id") if current_raw is not None else None
        if current is not None and current not in {clock.id for clock in clocks}:
            raise DeserializationError(f"current clock {current} missing from clocks")
        return cls(tasks=tasks, clocks=clocks, current_clock=current, root=root, events=events, now=now)

    # tasks

    def get(self, task_id: uuid.UUID) -> Task:
        return self.tasks.get(task_id)

    def get_root(self) -> Task:
        return self.tasks.get(self.root)

    def upsert(self, task: Task) -> None:
        self.tasks.upsert(task)

    def modify_task(self, task_id: uuid.UUID, fn: TaskEdit) -> Task:
        return self.tasks.modify(task_id, fn)

    def add_subtask(self, task: Task, parent_id: uuid.UUID) -> None:
        self.tasks.add_child(parent_id, task)
        self._emit("task.added", f"added {task.title or task.id}", metadata={"task": str(task.id), "parent": str(parent_id)})

    def find_parent(self, task_id: uuid.UUID) -> uuid.UUID | None:
        return self.tasks.find_parent(task_id)

    def path_to_root(self, task_id: uuid.UUID) -> list[uuid.UUID]:
        return self.tasks.path_to_root(task_id)

    def is_in_hierarchy_of(self, candidate: uuid.UUID, ancestor: uuid.UUID) -> bool:
        return self.tasks.is_in_hierarchy_of(candidate, ancestor)

    def task_child(self, parent_id: uuid.UUID, ordinal: int) -> uuid.UUID | None:
        return self.tasks.child_by_ordinal(parent_id, ordinal)

    def task_child_prefix(self, parent_id: uuid.UUID, prefix: str) -> uuid.UUID | None:
        return self.tasks.child_by_title_prefix(parent_id, prefix)

    def remove_child(self, parent_id: uuid.UUID, child_id: uuid.UUID) -> Task:
        return self.tasks.remove_child(parent_id, child_id)

    def insert_child(self, parent_id: uuid.UUID, child_id: uuid.UUID, index: int) -> Task:
        return self.tasks.insert_child(parent_id, child_id, index)

    def reorder_child(self, parent_id: uuid.UUID, from_ordinal: int, to_ordinal: int) -> Task:
        child_id = self.tasks.child_index(parent_id, from_ordinal)
        return self.tasks.insert_child(parent_id, child_id, to_ordinal - 1)

    def move_task(self, task_id: uuid.UUID, new_parent_id: uuid.UUID, index: int | None = None) -> None:
        if task_id == self.root:
            raise CycleDetected(task_id, new_parent_id)
        self.tasks.move(task_id, new_parent_id, index)
        self._emit("task.moved", f"moved {task_id}", metadata={"task": str(task_id), "parent": str(new_parent_id)})

    def progress_summary(self, task_id: uuid.UUID) -> tuple[int, int]:
        done = 0
        total = 0
        for child_id in self.tasks.get(task_id).children:
            if child_id not in self.tasks:
                continue
            progress = self.tasks.get(child_id).progress
            if progress is None:
                continue
            total += 1
            if progress.done:
                done += 1
        return done, total

    # clocks

    def clock(self, clock_id: uuid.UUID) -> Clock:
        return self.clocks.get(clock_id)

    def upsert_clock(self, clock: Clock) -> None:
        self.clocks.upsert(clock)

    def clock_new(self) -> Clock:
        previous = self.current_clock
        clock = self.clocks.clock_new()
        if previous is not None:
            self._emit("clock.stopped", "clock closed by new clock", metadata={"clock": str(previous)})
        self._emit("clock.started", "clock started", metadata={"clock": str(clock.id)})
        return clock

    def clock_out(self) -> bool:
        current = self.current_clock
        stopped = self.clocks.clock_out()
        if stopped:
            self._emit("clock.stopped", "clock stopped", metadata={"clock": str(current)})
        return stopped

    def clock_assign(self, task_id: uuid.UUID) -> None:
        clock = self.clocks.clock_assign(task_id)
        if clock is not None:
            self._emit("clock.assigned", "clock assigned", metadata={"clock": str(clock.id), "task": str(task_id)})

    def clock_comment(self, comment: object) -> None:
        clock = self.clocks.clock_comment(comment)
        if clock is not None:
            self._emit("clock.commented", "clock commented", metadata={"clock": str(clock.id)})

    def task_clocks(self, task_id: uuid.UUID) -> list[Clock]:
        return self.clocks.by_task(task_id)

    def day_clocks(self, day: date, scope: uuid.UUID | None = None) -> list[Clock]:
        return self.clocks.by_day(day, scope)

    def range_clocks(self, start_day: date, end_day: date, scope: uuid.UUID | None = None) -> list[Clock]:
        return self.clocks.by_range(start_day, end_day, scope)

    def open_clock_edit(self, day: date) -> "ClockEditSession":
        from .clockedit import ClockEditSession

        return ClockEditSession.open(self, day)

    def _emit(self, event_type: str, message: str, *, metadata: dict[str, Any] | None = None) -> None:
        if self.events is None:
            return
        self.events.publish_event(event_type, message, metadata=metadata)
