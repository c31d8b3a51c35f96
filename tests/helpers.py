from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from taskclock.config import DocumentConfig, LoggingConfig, TaskclockConfig
from taskclock.doc import Doc
from taskclock.tasks import Progress, Task


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second).astimezone()


@dataclass
class Ticker:
    """Deterministic clock source: each call advances by `step`."""

    current: datetime
    step: timedelta = timedelta(minutes=30)
    calls: list[datetime] = field(default_factory=list)

    def __call__(self) -> datetime:
        value = self.current
        self.calls.append(value)
        self.current = self.current + self.step
        return value


@dataclass(frozen=True)
class SampleTree:
    doc: Doc
    project: Task
    design: Task
    build: Task
    tests: Task


def sample_tree(doc: Doc | None = None) -> SampleTree:
    """root -> Project -> (Design, Build -> Unit tests)."""

    doc = doc or Doc()
    project = Task.new("Project")
    design = Task.new("Design docs")
    build = Task.new("Build")
    tests = Task.new("Unit tests")
    doc.add_subtask(project, doc.root)
    doc.add_subtask(design, project.id)
    doc.add_subtask(build, project.id)
    doc.add_subtask(tests, build.id)
    doc.modify_task(design.id, lambda task: task.set_progress(Progress.DONE))
    doc.modify_task(build.id, lambda task: task.set_progress(Progress.WORK))
    return SampleTree(
        doc=doc,
        project=doc.get(project.id),
        design=doc.get(design.id),
        build=doc.get(build.id),
        tests=doc.get(tests.id),
    )


def quiet_config(**document) -> TaskclockConfig:
    return TaskclockConfig(
        document=DocumentConfig(**{"autosave": False, **document}),
        logging=LoggingConfig(enabled=False),
    )
