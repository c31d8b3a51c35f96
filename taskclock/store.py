from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from datetime import date, datetime
import uuid

from .clock import Clock, ClockEditor, local_day, local_now
from .errors import ChildOutOfIndex, ClockNotFound, CycleDetected, TaskNotFound
from .tasks import Task, TaskEditor


MAX_HIERARCHY_HOPS = 200

TaskEdit = Callable[[TaskEditor], object]
ClockEdit = Callable[[ClockEditor], object]
HierarchyTest = Callable[[uuid.UUID, uuid.UUID], bool]


def normalize_title(value: str) -> str:
    return value.lower().replace(" ", "_")


class TaskStore:
    """Arena of task snapshots keyed by id, with a child -> parent index.

    The index maps each child id to every parent listing it, in attach order,
    so `find_parent` never scans the arena.
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[uuid.UUID, Task] = {}
        self._parents: dict[uuid.UUID, dict[uuid.UUID, None]] = {}
        for task in tasks:
            self.upsert(task)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))

    def ids(self) -> list[uuid.UUID]:
        return list(self._tasks)

    def get(self, task_id: uuid.UUID) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskNotFound(task_id) from None

    def upsert(self, task: Task) -> None:
        previous = self._tasks.get(task.id)
        if previous is not None:
            for child in previous.children:
                self._unlink(child, task.id)
        self._tasks[task.id] = task
        for child in task.children:
            self._parents.setdefault(child, {})[task.id] = None

    def modify(self, task_id: uuid.UUID, fn: TaskEdit) -> Task:
        editor = TaskEditor(self.get(task_id))
        fn(editor)
        updated = editor.snapshot
        self.upsert(updated)
        return updated

    def add_child(self, parent_id: uuid.UUID, task: Task) -> None:
        self.modify(parent_id, lambda parent: parent.add_child(task.id))
        self.upsert(task)

    def remove_child(self, parent_id: uuid.UUID, child_id: uuid.UUID) -> Task:
        return self.modify(parent_id, lambda parent: parent.remove_child(child_id))

    def insert_child(self, parent_id: uuid.UUID, child_id: uuid.UUID, index: int) -> Task:
        def _insert(parent: TaskEditor) -> None:
            parent.remove_child(child_id)
            size = len(parent.children)
            if index < 0 or index > size:
                raise ChildOutOfIndex(index, size)
            parent.insert_child(child_id, index)

        return self.modify(parent_id, _insert)

    def find_parent(self, task_id: uuid.UUID) -> uuid.UUID | None:
        parents = self._parents.get(task_id)
        if not parents:
            return None
        return next(iter(parents))

    def path_to_root(self, task_id: uuid.UUID) -> list[uuid.UUID]:
        path = [task_id]
        seen = {task_id}
        parent = self.find_parent(task_id)
        while parent is not None and parent not in seen:
            path.append(parent)
            seen.add(parent)
            parent = self.find_parent(parent)
        return path

    def is_in_hierarchy_of(self, candidate: uuid.UUID, ancestor: uuid.UUID) -> bool:
        current: uuid.UUID | None = candidate
        for _ in range(MAX_HIERARCHY_HOPS):
            if current is None:
                return False
            if current == ancestor:
                return True
            current = self.find_parent(current)
        return False

    def is_descendant(self, candidate: uuid.UUID, ancestor: uuid.UUID) -> bool:
        """True when `candidate` sits strictly below `ancestor`; cycle safe."""

        seen: set[uuid.UUID] = {candidate}
        current = self.find_parent(candidate)
        while current is not None and current not in seen:
            if current == ancestor:
                return True
            seen.add(current)
            current = self.find_parent(current)
        return False

    def move(self, task_id: uuid.UUID, new_parent_id: uuid.UUID, index: int | None = None) -> None:
        self.get(task_id)
        target = self.get(new_parent_id)
        if task_id == new_parent_id or self.is_descendant(new_parent_id, task_id):
            raise CycleDetected(task_id, new_parent_id)
        if index is not None:
            size = len([child for child in target.children if child != task_id])
            if index < 0 or index > size:
                raise ChildOutOfIndex(index, size)
        for parent_id in list(self._parents.get(task_id, {})):
            if parent_id != new_parent_id:
                self.remove_child(parent_id, task_id)
        if index is None:
            self.modify(new_parent_id, lambda parent: parent.remove_child(task_id).add_child(task_id))
        else:
            self.insert_child(new_parent_id, task_id, index)

    def child_by_ordinal(self, parent_id: uuid.UUID, ordinal: int) -> uuid.UUID | None:
        if parent_id not in self._tasks or ordinal < 1:
            return None
        children = self._tasks[parent_id].children
        if ordinal > len(children):
            return None
        return children[ordinal - 1]

    def child_index(self, parent_id: uuid.UUID, ordinal: int) -> uuid.UUID:
        child = self.child_by_ordinal(parent_id, ordinal)
        if child is None:
            raise ChildOutOfIndex(ordinal, len(self.get(parent_id).children))
        return child

    def child_by_title_prefix(self, parent_id: uuid.UUID, prefix: str) -> uuid.UUID | None:
        if parent_id not in self._tasks:
            return None
        wanted = normalize_title(prefix)
        for child_id in self._tasks[parent_id].children:
            child = self._tasks.get(child_id)
            if child is None:
                continue
            if normalize_title(child.title).startswith(wanted):
                return child_id
        return None

    def _unlink(self, child_id: uuid.UUID, parent_id: uuid.UUID) -> None:
        parents = self._parents.get(child_id)
        if parents is None:
            return
        parents.pop(parent_id, None)
        if not parents:
            del self._parents[child_id]


class ClockStore:
    """Clock snapshots keyed by id plus the active-clock register."""

    def __init__(
        self,
        clocks: Iterable[Clock] = (),
        *,
        current: uuid.UUID | None = None,
        hierarchy: HierarchyTest | None = None,
        now: Callable[[], datetime] = local_now,
    ) -> None:
        self._clocks: dict[uuid.UUID, Clock] = {clock.id: clock for clock in clocks}
        self.current = current
        self._hierarchy = hierarchy
        self._now = now

    def __contains__(self, clock_id: object) -> bool:
        return clock_id in self._clocks

    def __len__(self) -> int:
        return len(self._clocks)

    def __iter__(self) -> Iterator[Clock]:
        return iter(list(self._clocks.values()))

    def get(self, clock_id: uuid.UUID) -> Clock:
        try:
            return self._clocks[clock_id]
        except KeyError:
            raise ClockNotFound(clock_id) from None

    def upsert(self, clock: Clock) -> None:
        self._clocks[clock.id] = clock

    def modify(self, clock_id: uuid.UUID, fn: ClockEdit) -> Clock:
        editor = ClockEditor(self.get(clock_id))
        fn(editor)
        updated = editor.snapshot
        self.upsert(updated)
        return updated

    def active(self) -> Clock | None:
        if self.current is None:
            return None
        return self.get(self.current)

    def clock_out(self) -> bool:
        if self.current is None:
            return False
        stamp = self._now()
        self.modify(self.current, lambda clock: clock.set_end(stamp))
        self.current = None
        return True

    def clock_new(self) -> Clock:
        self.clock_out()
        clock = Clock.new(self._now())
        self.upsert(clock)
        self.current = clock.id
        return clock

    def clock_assign(self, task_id: uuid.UUID) -> Clock | None:
        if self.current is None:
            return None
        return self.modify(self.current, lambda clock: clock.set_task_id(task_id))

    def clock_comment(self, comment: object) -> Clock | None:
        if self.current is None:
            return None
        text = str(comment)
        return self.modify(self.current, lambda clock: clock.set_comment(text))

    def by_task(self, task_id: uuid.UUID) -> list[Clock]:
        return [clock for clock in self._clocks.values() if clock.task_id == task_id]

    def by_day(self, day: date, scope: uuid.UUID | None = None) -> list[Clock]:
        return self.by_range(day, day, scope)

    def by_range(self, start_day: date, end_day: date, scope: uuid.UUID | None = None) -> list[Clock]:
        matches: list[Clock] = []
        for clock in self._clocks.values():
            started = local_day(clock.start)
            if started < start_day or started > end_day:
                continue
            if not self._in_scope(clock, scope):
                continue
            matches.append(clock)
        return matches

    def _in_scope(self, clock: Clock, scope: uuid.UUID | None) -> bool:
        if scope is None or clock.task_id is None:
            return True
        if self._hierarchy is None:
            return clock.task_id == scope
        return self._hierarchy(clock.task_id, scope)
