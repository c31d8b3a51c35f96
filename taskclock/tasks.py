from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
import uuid

from .errors import DeserializationError


class Progress(str, Enum):
    TODO = "Todo"
    WORK = "Work"
    DONE = "Done"

    @property
    def done(self) -> bool:
        return self is Progress.DONE

    @property
    def label(self) -> str:
        return self.value.upper()


@dataclass(frozen=True)
class Task:
    id: uuid.UUID
    title: str = ""
    body: str = ""
    children: tuple[uuid.UUID, ...] = field(default_factory=tuple)
    progress: Progress | None = None

    @staticmethod
    def new(title: str = "", body: str = "") -> "Task":
        return Task(id=uuid.uuid4(), title=title, body=body)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "body": self.body,
            "children": [str(child) for child in self.children],
            "progress": self.progress.value if self.progress is not None else None,
        }

    @staticmethod
    def from_mapping(value: object) -> "Task":
        if not isinstance(value, dict):
            raise DeserializationError("task record is not an object")
        children_raw = value.get("children", [])
        if not isinstance(children_raw, list):
            raise DeserializationError("task children must be a list")
        progress_raw = value.get("progress")
        try:
            progress = Progress(progress_raw) if progress_raw is not None else None
        except ValueError as exc:
            raise DeserializationError(f"unknown task progress: {progress_raw!r}") from exc
        return Task(
            id=parse_uuid(value.get("id"), what="task id"),
            title=_as_text(value.get("title"), what="task title"),
            body=_as_text(value.get("body"), what="task body"),
            children=tuple(parse_uuid(child, what="child id") for child in children_raw),
            progress=progress,
        )


class TaskEditor:
    """Chainable copy-on-write handle over a task snapshot.

    The wrapped snapshot is never mutated; each setter swaps in a new frozen
    value which the owning store picks up from `snapshot` once editing ends.
    """

    def __init__(self, task: Task) -> None:
        self._task = task

    @property
    def snapshot(self) -> Task:
        return self._task

    @property
    def id(self) -> uuid.UUID:
        return self._task.id

    @property
    def children(self) -> tuple[uuid.UUID, ...]:
        return self._task.children

    def set_title(self, title: object) -> "TaskEditor":
        self._task = replace(self._task, title=str(title))
        return self

    def set_body(self, body: object) -> "TaskEditor":
        self._task = replace(self._task, body=str(body))
        return self

    def set_children(self, children: list[uuid.UUID] | tuple[uuid.UUID, ...]) -> "TaskEditor":
        self._task = replace(self._task, children=tuple(children))
        return self

    def add_child(self, child: uuid.UUID) -> "TaskEditor":
        return self.set_children((*self._task.children, child))

    def insert_child(self, child: uuid.UUID, index: int) -> "TaskEditor":
        children = list(self._task.children)
        children.insert(index, child)
        return self.set_children(children)

    def remove_child(self, child: uuid.UUID) -> "TaskEditor":
        return self.set_children([item for item in self._task.children if item != child])

    def set_progress(self, progress: Progress | None) -> "TaskEditor":
        self._task = replace(self._task, progress=progress)
        return self


def parse_uuid(value: object, *, what: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise DeserializationError(f"{what} must be a uuid string, got {type(value).__name__}")
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise DeserializationError(f"invalid {what}: {value!r}") from exc


def _as_text(value: object, *, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DeserializationError(f"{what} must be a string")
    return value
