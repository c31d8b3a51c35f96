from __future__ import annotations


class TaskclockError(RuntimeError):
    """Base class for every failure raised by the taskclock core."""


class NotFound(TaskclockError):
    pass


class TaskNotFound(NotFound):
    def __init__(self, task_id: object) -> None:
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class ClockNotFound(NotFound):
    def __init__(self, clock_id: object) -> None:
        super().__init__(f"clock not found: {clock_id}")
        self.clock_id = clock_id


class IndexOutOfRange(TaskclockError):
    pass


class ChildOutOfIndex(IndexOutOfRange):
    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"child index {index} out of range (children: {size})")
        self.index = index
        self.size = size


class ClockOutOfIndex(IndexOutOfRange):
    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"clock entry {index} out of range (entries: {size})")
        self.index = index
        self.size = size


class CycleDetected(TaskclockError):
    def __init__(self, task_id: object, new_parent_id: object) -> None:
        super().__init__(f"cannot move {task_id} below its own descendant {new_parent_id}")
        self.task_id = task_id
        self.new_parent_id = new_parent_id


class DocumentIOError(TaskclockError):
    pass


class DeserializationError(TaskclockError):
    pass


class ParseError(TaskclockError):
    pass


class SessionClosed(TaskclockError):
    pass


class UnknownCommand(TaskclockError):
    def __init__(self, command: str) -> None:
        super().__init__(f"command not found: {command}")
        self.command = command
