"""Hierarchical task tracker with integrated time clocking."""

from __future__ import annotations

__version__ = "0.3.0"

from .clock import Clock
from .clockedit import ClockEditSession, EditOutcome
from .doc import Doc
from .errors import TaskclockError
from .tasks import Progress, Task

__all__ = [
    "Clock",
    "ClockEditSession",
    "Doc",
    "EditOutcome",
    "Progress",
    "Task",
    "TaskclockError",
    "__version__",
]
