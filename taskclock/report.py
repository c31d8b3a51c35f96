from __future__ import annotations

from datetime import datetime, timedelta
import uuid

from .clock import Clock, total_duration
from .doc import Doc
from .errors import TaskNotFound

NONE_LABEL = "(none)"


def format_duration(value: timedelta) -> str:
    seconds = int(value.total_seconds())
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    days, seconds = divmod(seconds, 86_400)
    hours, seconds = divmod(seconds, 3_600)
    minutes, seconds = divmod(seconds, 60)
    return f"{sign}{days}d {hours}h {minutes}m {seconds}s"


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return NONE_LABEL
    return value.strftime("%Y-%m-%d %H:%M:%S %z")


def breadcrumb(doc: Doc, task_id: uuid.UUID, *, sep: str = " -> ") -> str:
    titles: list[str] = []
    for item in reversed(doc.path_to_root(task_id)):
        try:
            titles.append(doc.get(item).title)
        except TaskNotFound:
            continue
    return sep.join(titles)


def task_listing(doc: Doc, task_id: uuid.UUID) -> list[str]:
    task = doc.get(task_id)
    done, total = doc.progress_summary(task_id)
    lines = [f"{breadcrumb(doc, task_id)}  [{done}/{total}]", ""]
    if task.body:
        lines.extend(task.body.splitlines())
    lines.append("--- Children: ")
    for ordinal, child_id in enumerate(task.children, start=1):
        child = doc.get(child_id)
        label = child.progress.label if child.progress is not None else ""
        lines.append(f"{ordinal}: {label} {child.title}")
    return lines


def outline(doc: Doc, task_id: uuid.UUID, *, max_depth: int = 1000) -> list[str]:
    lines: list[str] = []
    seen: set[uuid.UUID] = set()

    def _walk(current: uuid.UUID, level: int) -> None:
        if level >= max_depth or current in seen:
            return
        seen.add(current)
        task = doc.get(current)
        lines.append(f"{' ' * level}* {task.id} {task.title}")
        for child_id in task.children:
            _walk(child_id, level + 1)

    _walk(task_id, 0)
    return lines


def clock_report(clocks: list[Clock], *, now: datetime | None = None) -> list[str]:
    ordered = sorted(clocks)
    lines = [
        f"{format_timestamp(clock.start)} - {format_timestamp(clock.end)}: {clock.comment or NONE_LABEL}"
        for clock in ordered
    ]
    lines.append(format_duration(total_duration(ordered, now=now)))
    return lines


def clock_task_label(doc: Doc, clock: Clock) -> str:
    if clock.task_id is None:
        return NONE_LABEL
    if clock.task_id not in doc.tasks:
        return str(clock.task_id)
    return breadcrumb(doc, clock.task_id)


def clock_edit_listing(doc: Doc, clocks: list[Clock]) -> list[str]:
    lines: list[str] = []
    for ordinal, clock in enumerate(clocks, start=1):
        lines.append(f"{ordinal}: {format_timestamp(clock.start)} - {format_timestamp(clock.end)}:")
        lines.append(f" Task: {clock_task_label(doc, clock)}")
        lines.append(f" Comment: {clock.comment or NONE_LABEL}")
    return lines
