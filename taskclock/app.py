from __future__ import annotations

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Input, Static, TextArea

from .clock import local_now
from .editor import EditResult, edit_task
from .errors import TaskclockError
from .report import breadcrumb, format_duration, task_listing
from .shell import Shell
from .tasks import Task

TRANSCRIPT_LOG_MAX = 2000


def _status_line(shell: Shell) -> str:
    mode = "clockedit" if shell.session is not None else "tasks"
    try:
        active = shell.doc.clocks.active()
    except TaskclockError as exc:
        clock = f"clock error: {exc}"
    else:
        if active is None:
            clock = "idle"
        else:
            clock = f"clocked in {format_duration(active.duration(local_now()))}"
    return f"taskclock | mode: {mode} | {clock} | {shell.doc_path}"


def _task_panel_text(shell: Shell) -> str:
    try:
        return "\n".join(task_listing(shell.doc, shell.wt))
    except TaskclockError as exc:
        return f"Error: {exc}"


def _clock_panel_text(shell: Shell) -> str:
    try:
        active = shell.doc.clocks.active()
    except TaskclockError as exc:
        return f"Clock\n\nError: {exc}"
    if active is None:
        return "Clock\n\nno active clock"
    task = breadcrumb(shell.doc, active.task_id) if active.task_id in shell.doc.tasks else "(none)"
    lines = [
        "Clock",
        "",
        f"since: {active.start.strftime('%H:%M')}",
        f"task: {task}",
        f"comment: {active.comment or '(none)'}",
    ]
    return "\n".join(lines)


class TaskclockApp(App[None]):
    CSS = """
    Screen {
        layout: vertical;
    }

    #status-bar {
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    #main {
        height: 1fr;
    }

    #transcript {
        width: 2fr;
        border: solid $accent;
        padding: 0 1;
    }

    #sidebar {
        width: 1fr;
        border: solid $secondary;
        padding: 0 1;
    }

    .panel {
        height: 1fr;
        border: solid $primary;
        margin: 0 0 1 0;
        padding: 0 1;
    }

    #input-box {
        margin: 0;
        border: solid $border-blurred;
    }

    #input-box:focus {
        border: solid $border;
    }
    """

    BINDINGS = [
        ("ctrl+c", "request_quit", "Quit"),
        ("f5", "clock_toggle", "Clock in/out"),
    ]

    def __init__(self, shell: Shell) -> None:
        super().__init__()
        self.shell = shell
        self.transcript: list[str] = []

    def compose(self) -> ComposeResult:
        yield Static("", id="status-bar", markup=False)
        with Horizontal(id="main"):
            yield TextArea(
                "",
                id="transcript",
                read_only=True,
                show_cursor=False,
                highlight_cursor_line=False,
                show_line_numbers=False,
                language=None,
            )
            with Vertical(id="sidebar"):
                yield Static("", id="panel-task", classes="panel", markup=False)
                yield Static("", id="panel-clock", classes="panel", markup=False)
        yield Input(placeholder=self.shell.prompt.strip(), id="input-box")
        yield Footer()

    def on_mount(self) -> None:
        self._write_lines(["taskclock ready. type `help` for commands."])
        self._refresh_panels()
        self.set_interval(1.0, self._refresh_status)
        self.query_one("#input-box", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = " ".join(event.value.split())
        event.input.value = ""
        if not text:
            return
        self._write_lines([f"{self.shell.prompt}{text}"])
        output = self.shell.run(text)
        self._write_lines(output)
        self._refresh_panels()
        if self.shell.exited:
            self.exit()

    def action_request_quit(self) -> None:
        self.exit()

    def action_clock_toggle(self) -> None:
        command = "clo" if self.shell.doc.current_clock is not None else "cli"
        self._write_lines(self.shell.run(command))
        self._refresh_panels()

    def edit_in_terminal(self, task: Task) -> EditResult:
        config = self.shell.config
        with self.suspend():
            return edit_task(task, command=config.editor.command, scratch_path=config.paths().scratch)

    def _write_lines(self, lines: list[str]) -> None:
        if not lines:
            return
        self.transcript.extend(lines)
        if len(self.transcript) > TRANSCRIPT_LOG_MAX:
            self.transcript = self.transcript[-TRANSCRIPT_LOG_MAX:]
        area = self.query_one("#transcript", TextArea)
        area.load_text("\n".join(self.transcript))
        area.scroll_end(animate=False)

    def _refresh_status(self) -> None:
        self.query_one("#status-bar", Static).update(_status_line(self.shell))

    def _refresh_panels(self) -> None:
        self._refresh_status()
        self.query_one("#panel-task", Static).update(_task_panel_text(self.shell))
        self.query_one("#panel-clock", Static).update(_clock_panel_text(self.shell))
        self.query_one("#input-box", Input).placeholder = self.shell.prompt.strip()


def run_terminal_app(shell: Shell) -> int:
    app = TaskclockApp(shell)
    shell.set_editor(app.edit_in_terminal)
    app.run(mouse=False)
    return 0
