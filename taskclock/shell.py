"""Line-oriented command dispatcher over a `Doc`.

The shell holds the working task (`wt`), a stack of visited parents and an
optional clock edit session. While a session is open, input goes to the
clock edit command table until `apply` or `cancel`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
import uuid

from .clockedit import ClockEditSession
from .config import TaskclockConfig
from .doc import Doc
from .editor import EditResult, edit_task
from .errors import ParseError, SessionClosed, TaskclockError, UnknownCommand
from .parsing import (
    parse_date,
    parse_duration,
    parse_ordinal,
    parse_time,
    resolve_task_path,
    split_command,
)
from .report import clock_edit_listing, clock_report, outline, task_listing
from .tasks import Progress, Task

Editor = Callable[[Task], EditResult]
Handler = Callable[[list[str]], list[str]]

PROMPT = "> "
CLOCKEDIT_PROMPT = "clockedit> "


@dataclass(frozen=True)
class CommandSpec:
    name: str
    usage: str
    help: str
    mutates: bool = False


MAIN_COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("help", "help", "Show command reference"),
    CommandSpec("exit", "exit", "Leave the shell"),
    CommandSpec("ls", "ls", "Show the working task and its children"),
    CommandSpec("cd", "cd [path|..]", "Change the working task (no path: root)"),
    CommandSpec("add", "add [title]", "Add a child task (no title: open the editor)", True),
    CommandSpec("ed", "ed", "Edit title and body in the editor", True),
    CommandSpec("title", "title <text>", "Set the working task's title", True),
    CommandSpec("body", "body <text>", "Set the working task's body", True),
    CommandSpec("todo", "todo", "Mark the working task TODO", True),
    CommandSpec("work", "work", "Mark the working task WORK", True),
    CommandSpec("done", "done", "Mark the working task DONE", True),
    CommandSpec("untrack", "untrack", "Clear the working task's progress", True),
    CommandSpec("id", "id", "Print the working task id"),
    CommandSpec("parent", "parent", "Print the parent task id"),
    CommandSpec("rm", "rm <n>", "Detach the n-th child", True),
    CommandSpec("mv", "mv <task> <dest>", "Move a task below another task", True),
    CommandSpec("reorder", "reorder <from> <to>", "Move a child to another position", True),
    CommandSpec("outline", "outline [depth]", "Print the subtree"),
    CommandSpec("save", "save [path]", "Save the document"),
    CommandSpec("load", "load [path]", "Load a document"),
    CommandSpec("cli", "cli", "Clock in on the working task", True),
    CommandSpec("clo", "clo", "Clock out", True),
    CommandSpec("clc", "clc <comment>", "Comment the active clock", True),
    CommandSpec("taskclock", "taskclock", "Clocks of the working task"),
    CommandSpec("dayclock", "dayclock [date]", "Clocks of a day within the working task"),
    CommandSpec("rangeclock", "rangeclock <from> <to>", "Clocks of a date range within the working task"),
    CommandSpec("clockedit", "clockedit [date]", "Edit a day's clocks"),
)

CLOCKEDIT_COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("help", "help", "Show clock edit commands"),
    CommandSpec("ls", "ls", "List the clocks being edited"),
    CommandSpec("start", "start <n> <HH:MM>", "Change the start time"),
    CommandSpec("end", "end <n> <HH:MM>", "Change the end time"),
    CommandSpec("enddate", "enddate <n> <YYYY-MM-DD>", "Change the end date"),
    CommandSpec("duration", "duration <n> <1h30m>", "Set the end from start + duration"),
    CommandSpec("apply", "apply", "Write the edits back and leave"),
    CommandSpec("cancel", "cancel", "Discard the edits and leave"),
)


class Shell:
    def __init__(
        self,
        doc: Doc,
        *,
        config: TaskclockConfig | None = None,
        doc_path: Path | None = None,
        editor: Editor | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.config = config or TaskclockConfig()
        self.doc = doc
        self.doc_path = doc_path if doc_path is not None else self.config.paths().document
        self.wt: uuid.UUID = doc.root
        self.parents: list[uuid.UUID] = []
        self.session: ClockEditSession | None = None
        self.exited = False
        self._editor = editor or self._external_editor
        self._today = today
        self._main: dict[str, Handler] = {
            "help": self._cmd_help,
            "exit": self._cmd_exit,
            "quit": self._cmd_exit,
            "ls": self._cmd_ls,
            "cd": self._cmd_cd,
            "add": self._cmd_add,
            "ed": self._cmd_ed,
            "title": self._cmd_title,
            "body": self._cmd_body,
            "todo": lambda args: self._set_progress(Progress.TODO),
            "work": lambda args: self._set_progress(Progress.WORK),
            "done": lambda args: self._set_progress(Progress.DONE),
            "untrack": lambda args: self._set_progress(None),
            "id": lambda args: [f"Task ID: {self.wt}"],
            "parent": self._cmd_parent,
            "rm": self._cmd_rm,
            "mv": self._cmd_mv,
            "reorder": self._cmd_reorder,
            "outline": self._cmd_outline,
            "save": self._cmd_save,
            "load": self._cmd_load,
            "cli": self._cmd_clock_in,
            "clo": self._cmd_clock_out,
            "clc": self._cmd_clock_comment,
            "taskclock": self._cmd_taskclock,
            "dayclock": self._cmd_dayclock,
            "rangeclock": self._cmd_rangeclock,
            "clockedit": self._cmd_clockedit,
        }
        self._clockedit: dict[str, Handler] = {
            "help": self._cmd_clockedit_help,
            "ls": self._cmd_edit_ls,
            "start": self._cmd_edit_start,
            "end": self._cmd_edit_end,
            "enddate": self._cmd_edit_enddate,
            "duration": self._cmd_edit_duration,
            "apply": self._cmd_edit_apply,
            "cancel": self._cmd_edit_cancel,
        }
        self._mutating = {spec.name for spec in MAIN_COMMANDS if spec.mutates} | {"apply"}

    def set_editor(self, editor: Editor) -> None:
        self._editor = editor

    @property
    def prompt(self) -> str:
        return CLOCKEDIT_PROMPT if self.session is not None else PROMPT

    def run(self, line: str) -> list[str]:
        """Execute one input line; failures come back as `Error: ...` lines."""

        command, args = split_command(line)
        if not command:
            return []
        table = self._clockedit if self.session is not None else self._main
        try:
            handler = table.get(command)
            if handler is None:
                raise UnknownCommand(command)
            output = handler(args)
            if command in self._mutating:
                output = output + self._autosave()
        except TaskclockError as exc:
            return [f"Error: {exc}"]
        return output

    # main commands

    def _cmd_help(self, args: list[str]) -> list[str]:
        return [f"{spec.usage:<26} {spec.help}" for spec in MAIN_COMMANDS]

    def _cmd_exit(self, args: list[str]) -> list[str]:
        self.exited = True
        return []

    def _cmd_ls(self, args: list[str]) -> list[str]:
        return task_listing(self.doc, self.wt)

    def _cmd_cd(self, args: list[str]) -> list[str]:
        if not args:
            self.wt = self.doc.root
            self.parents = []
            return []
        target = args[0]
        if target == "..":
            if self.parents:
                self.wt = self.parents.pop()
            else:
                self.wt = self.doc.find_parent(self.wt) or self.wt
            return []
        resolved = resolve_task_path(self.doc, " ".join(args), self.wt)
        self.parents.append(self.wt)
        self.wt = resolved
        return []

    def _cmd_add(self, args: list[str]) -> list[str]:
        task = Task.new(" ".join(args))
        if not args:
            result = self._editor(task)
            if not result.ok:
                return [f"Error: {result.error}"]
            task = result.task
        self.doc.add_subtask(task, self.wt)
        return [f"added: {task.id} {task.title}"]

    def _cmd_ed(self, args: list[str]) -> list[str]:
        result = self._editor(self.doc.get(self.wt))
        if not result.ok:
            return [f"Error: {result.error}"]
        self.doc.upsert(result.task)
        return []

    def _cmd_title(self, args: list[str]) -> list[str]:
        text = " ".join(args)
        self.doc.modify_task(self.wt, lambda task: task.set_title(text))
        return []

    def _cmd_body(self, args: list[str]) -> list[str]:
        text = " ".join(args)
        self.doc.modify_task(self.wt, lambda task: task.set_body(text))
        return []

    def _set_progress(self, progress: Progress | None) -> list[str]:
        self.doc.modify_task(self.wt, lambda task: task.set_progress(progress))
        return []

    def _cmd_parent(self, args: list[str]) -> list[str]:
        parent = self.doc.find_parent(self.wt)
        if parent is None:
            return ["Parent not found"]
        return [f"Parent Task ID: {parent}"]

    def _cmd_rm(self, args: list[str]) -> list[str]:
        ordinal = parse_ordinal(self._arg(args, 0, "rm <n>"))
        child_id = self.doc.tasks.child_index(self.wt, ordinal)
        self.doc.remove_child(self.wt, child_id)
        return []

    def _cmd_mv(self, args: list[str]) -> list[str]:
        task_id = resolve_task_path(self.doc, self._arg(args, 0, "mv <task> <dest>"), self.wt)
        dest_id = resolve_task_path(self.doc, self._arg(args, 1, "mv <task> <dest>"), self.wt)
        self.doc.move_task(task_id, dest_id)
        return []

    def _cmd_reorder(self, args: list[str]) -> list[str]:
        from_ordinal = parse_ordinal(self._arg(args, 0, "reorder <from> <to>"))
        to_ordinal = parse_ordinal(self._arg(args, 1, "reorder <from> <to>"))
        self.doc.reorder_child(self.wt, from_ordinal, to_ordinal)
        return []

    def _cmd_outline(self, args: list[str]) -> list[str]:
        depth = self.config.report.max_outline_depth
        if args:
            depth = parse_ordinal(args[0])
        return outline(self.doc, self.wt, max_depth=depth)

    def _cmd_save(self, args: list[str]) -> list[str]:
        path = Path(args[0]).expanduser() if args else self.doc_path
        self.doc.save(path)
        return [f"saved: {path}"]

    def _cmd_load(self, args: list[str]) -> list[str]:
        path = Path(args[0]).expanduser() if args else self.doc_path
        self.doc = Doc.load(path, events=self.doc.events, now=self.doc.now)
        self.wt = self.doc.root
        self.parents = []
        self.session = None
        return [f"loaded: {path}"]

    def _cmd_clock_in(self, args: list[str]) -> list[str]:
        clock = self.doc.clock_new()
        self.doc.clock_assign(self.wt)
        return [f"clocked in: {clock.id}"]

    def _cmd_clock_out(self, args: list[str]) -> list[str]:
        if self.doc.clock_out():
            return ["clocked out"]
        return ["no active clock"]

    def _cmd_clock_comment(self, args: list[str]) -> list[str]:
        self.doc.clock_comment(" ".join(args))
        return []

    def _cmd_taskclock(self, args: list[str]) -> list[str]:
        return clock_report(self.doc.task_clocks(self.wt))

    def _cmd_dayclock(self, args: list[str]) -> list[str]:
        day = parse_date(args[0], today=self._today()) if args else self._today()
        return clock_report(self.doc.day_clocks(day, self.wt))

    def _cmd_rangeclock(self, args: list[str]) -> list[str]:
        start = parse_date(self._arg(args, 0, "rangeclock <from> <to>"), today=self._today())
        end = parse_date(self._arg(args, 1, "rangeclock <from> <to>"), today=self._today())
        return clock_report(self.doc.range_clocks(start, end, self.wt))

    def _cmd_clockedit(self, args: list[str]) -> list[str]:
        day = parse_date(args[0], today=self._today()) if args else self._today()
        self.session = ClockEditSession.open(self.doc, day)
        return [f"editing {len(self.session)} clocks of {day.isoformat()} (apply/cancel to leave)"]

    # clock edit commands

    def _require_session(self) -> ClockEditSession:
        if self.session is None:
            raise SessionClosed("no clock edit session is open")
        return self.session

    def _cmd_clockedit_help(self, args: list[str]) -> list[str]:
        return [f"{spec.usage:<26} {spec.help}" for spec in CLOCKEDIT_COMMANDS]

    def _cmd_edit_ls(self, args: list[str]) -> list[str]:
        return clock_edit_listing(self.doc, self._require_session().clocks)

    def _cmd_edit_start(self, args: list[str]) -> list[str]:
        index = parse_ordinal(self._arg(args, 0, "start <n> <HH:MM>"))
        at = parse_time(self._arg(args, 1, "start <n> <HH:MM>"))
        self._require_session().set_start_time(index, at)
        return []

    def _cmd_edit_end(self, args: list[str]) -> list[str]:
        index = parse_ordinal(self._arg(args, 0, "end <n> <HH:MM>"))
        at = parse_time(self._arg(args, 1, "end <n> <HH:MM>"))
        self._require_session().set_end_time(index, at)
        return []

    def _cmd_edit_enddate(self, args: list[str]) -> list[str]:
        index = parse_ordinal(self._arg(args, 0, "enddate <n> <YYYY-MM-DD>"))
        day = parse_date(self._arg(args, 1, "enddate <n> <YYYY-MM-DD>"), today=self._today())
        self._require_session().set_end_date(index, day)
        return []

    def _cmd_edit_duration(self, args: list[str]) -> list[str]:
        index = parse_ordinal(self._arg(args, 0, "duration <n> <1h30m>"))
        duration = parse_duration(self._arg(args, 1, "duration <n> <1h30m>"))
        self._require_session().set_duration(index, duration)
        return []

    def _cmd_edit_apply(self, args: list[str]) -> list[str]:
        applied = self._require_session().commit()
        self.session = None
        return [f"applied {len(applied)} clocks"]

    def _cmd_edit_cancel(self, args: list[str]) -> list[str]:
        self._require_session().cancel()
        self.session = None
        return ["clock edits discarded"]

    # helpers

    def _autosave(self) -> list[str]:
        if not self.config.document.autosave:
            return []
        self.doc.save(self.doc_path)
        return []

    def _external_editor(self, task: Task) -> EditResult:
        return edit_task(task, command=self.config.editor.command, scratch_path=self.config.paths().scratch)

    @staticmethod
    def _arg(args: list[str], index: int, usage: str) -> str:
        if index >= len(args):
            raise ParseError(f"not enough input provided (usage: {usage})")
        return args[index]
