from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
import shlex
import subprocess

from .errors import DocumentIOError
from .tasks import Task


@dataclass(frozen=True)
class EditResult:
    ok: bool
    task: Task
    error: str = ""


def render_task_text(task: Task) -> str:
    return f"{task.title}\n\n{task.body}"


def parse_task_text(content: str) -> tuple[str, str]:
    """First line is the title; everything after it (trimmed) is the body."""

    lines = content.splitlines()
    if not lines:
        return "", ""
    title = lines[0].strip()
    body = "\n".join(lines[1:]).strip()
    return title, body


def edit_task(task: Task, *, command: str, scratch_path: Path) -> EditResult:
    """Round-trip the task's title and body through an external editor.

    Blocks until the editor exits. The returned task is a new snapshot; the
    caller stores it.
    """

    try:
        scratch_path.parent.mkdir(parents=True, exist_ok=True)
        scratch_path.write_text(render_task_text(task), encoding="utf-8")
    except OSError as exc:
        raise DocumentIOError(f"cannot write scratch file {scratch_path}: {exc}") from exc

    argv = [*shlex.split(command or "vi"), str(scratch_path)]
    try:
        proc = subprocess.run(argv, check=False)
    except OSError as exc:
        return EditResult(False, task, f"failed to start editor {argv[0]!r}: {exc}")
    if proc.returncode != 0:
        return EditResult(False, task, f"editor exited with status {proc.returncode}")

    try:
        content = scratch_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentIOError(f"cannot read scratch file {scratch_path}: {exc}") from exc

    title, body = parse_task_text(content)
    return EditResult(True, replace(task, title=title, body=body))
