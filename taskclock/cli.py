from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from . import __version__
from .config import TaskclockConfig, explain_config, load_config, set_config_value, toml_string
from .doc import Doc
from .errors import TaskclockError
from .events import EventBus
from .parsing import parse_date, resolve_task_path
from .paths import config_path, expand_path
from .report import clock_report, outline, task_listing
from .shell import Shell
from .tasks import Task


@dataclass(frozen=True)
class Session:
    config: TaskclockConfig
    config_file: Path
    doc_path: Path
    doc: Doc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskclock",
        description="taskclock: hierarchical tasks with time clocking",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to taskclock.toml")
    parser.add_argument("--doc", help="Document path (overrides [document].path)")

    sub = parser.add_subparsers(dest="cmd", required=False)

    sub.add_parser("app", help="Start the interactive terminal app.")
    sub.add_parser("shell", help="Start the plain line shell.")

    ls = sub.add_parser("ls", help="Show a task and its children.")
    ls.add_argument("path", nargs="?", default="/", help="Task path (ordinals, ids or title prefixes)")

    add = sub.add_parser("add", help="Add a task.")
    add.add_argument("title", nargs="+", help="Task title")
    add.add_argument("--under", default="/", help="Parent task path")

    out = sub.add_parser("outline", help="Print a subtree.")
    out.add_argument("path", nargs="?", default="/", help="Task path")
    out.add_argument("--depth", type=int, default=None, help="Maximum depth")

    clock = sub.add_parser("clock", help="Clock in, out or comment.")
    clock_sub = clock.add_subparsers(dest="clock_cmd", required=True)
    clock_in = clock_sub.add_parser("in", help="Start a new clock on a task.")
    clock_in.add_argument("path", nargs="?", default=None, help="Task path to assign")
    clock_sub.add_parser("out", help="Stop the active clock.")
    clock_comment = clock_sub.add_parser("comment", help="Comment the active clock.")
    clock_comment.add_argument("text", nargs="+")

    day = sub.add_parser("dayclock", help="Show the clocks of a day.")
    day.add_argument("day", nargs="?", default="today", help="YYYY-MM-DD, today or yesterday")
    day.add_argument("--task", default=None, help="Restrict to a task subtree")

    rng = sub.add_parser("rangeclock", help="Show the clocks of a date range.")
    rng.add_argument("start")
    rng.add_argument("end")
    rng.add_argument("--task", default=None, help="Restrict to a task subtree")

    cfg = sub.add_parser("config", help="Explain or change taskclock.toml.")
    cfg_sub = cfg.add_subparsers(dest="config_cmd", required=False)
    cfg_set = cfg_sub.add_parser("set", help="Set a value, e.g. `document.autosave false`.")
    cfg_set.add_argument("key", help="section.key")
    cfg_set.add_argument("value")

    events = sub.add_parser("events", help="Show recent document events.")
    events.add_argument("--limit", type=int, default=20)
    events.add_argument("--topic", choices=["task", "clock", "clockedit", "doc"], help="Only show one kind of event.")

    return parser


def open_session(args: argparse.Namespace) -> Session:
    config_file = expand_path(args.config) if getattr(args, "config", None) else config_path()
    config, warning = load_config(config_file)
    if warning:
        print(f"warning: {warning}", file=sys.stderr)
    doc_path = expand_path(args.doc) if getattr(args, "doc", None) else config.paths().document
    bus = EventBus(config.paths().events) if config.logging.enabled else None
    if doc_path.exists():
        doc = Doc.load(doc_path, events=bus)
    else:
        doc = Doc.new(events=bus)
    return Session(config=config, config_file=config_file, doc_path=doc_path, doc=doc)


def _run_terminal_app_entry(shell: Shell) -> int:
    from .app import run_terminal_app

    return run_terminal_app(shell)


def cmd_app(args: argparse.Namespace) -> int:
    session = open_session(args)
    shell = Shell(session.doc, config=session.config, doc_path=session.doc_path)
    try:
        return _run_terminal_app_entry(shell)
    except ModuleNotFoundError as exc:
        if exc.name == "textual":
            print("Interactive app requires `textual`; falling back to the line shell.", file=sys.stderr)
            return _shell_loop(shell)
        raise


def _shell_loop(shell: Shell) -> int:
    while not shell.exited:
        try:
            line = input(shell.prompt)
        except EOFError:
            break
        for output in shell.run(line):
            print(output)
    return 0


def cmd_shell(args: argparse.Namespace) -> int:
    session = open_session(args)
    shell = Shell(session.doc, config=session.config, doc_path=session.doc_path)
    return _shell_loop(shell)


def cmd_ls(args: argparse.Namespace) -> int:
    session = open_session(args)
    task_id = resolve_task_path(session.doc, args.path)
    print("\n".join(task_listing(session.doc, task_id)))
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    session = open_session(args)
    parent_id = resolve_task_path(session.doc, args.under)
    task = Task.new(" ".join(args.title))
    session.doc.add_subtask(task, parent_id)
    session.doc.save(session.doc_path)
    print(f"added: {task.id} {task.title}")
    return 0


def cmd_outline(args: argparse.Namespace) -> int:
    session = open_session(args)
    task_id = resolve_task_path(session.doc, args.path)
    depth = args.depth if args.depth is not None else session.config.report.max_outline_depth
    print("\n".join(outline(session.doc, task_id, max_depth=depth)))
    return 0


def cmd_clock(args: argparse.Namespace) -> int:
    session = open_session(args)
    doc = session.doc
    if args.clock_cmd == "in":
        clock = doc.clock_new()
        if args.path:
            doc.clock_assign(resolve_task_path(doc, args.path))
        print(f"clocked in: {clock.id}")
    elif args.clock_cmd == "out":
        if not doc.clock_out():
            print("no active clock")
            return 1
        print("clocked out")
    else:
        if doc.current_clock is None:
            print("no active clock")
            return 1
        doc.clock_comment(" ".join(args.text))
    doc.save(session.doc_path)
    return 0


def cmd_dayclock(args: argparse.Namespace) -> int:
    session = open_session(args)
    day = parse_date(args.day)
    scope = resolve_task_path(session.doc, args.task) if args.task else None
    print("\n".join(clock_report(session.doc.day_clocks(day, scope))))
    return 0


def cmd_rangeclock(args: argparse.Namespace) -> int:
    session = open_session(args)
    start = parse_date(args.start)
    end = parse_date(args.end)
    scope = resolve_task_path(session.doc, args.task) if args.task else None
    print("\n".join(clock_report(session.doc.range_clocks(start, end, scope))))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    config_file = expand_path(args.config) if args.config else config_path()
    config, warning = load_config(config_file)
    if getattr(args, "config_cmd", None) != "set":
        if warning:
            print(f"warning: {warning}", file=sys.stderr)
        print(explain_config(config, path=config_file))
        return 0
    section, _, key = args.key.partition(".")
    if not section or not key:
        print("config key must look like section.key", file=sys.stderr)
        return 2
    ok, summary = set_config_value(config_file, section, key, _toml_literal(args.value))
    print(summary, file=sys.stdout if ok else sys.stderr)
    return 0 if ok else 1


def cmd_events(args: argparse.Namespace) -> int:
    config_file = expand_path(args.config) if args.config else config_path()
    config, _warning = load_config(config_file)
    events = EventBus(config.paths().events).read_events(limit=max(1, args.limit), topic=args.topic)
    if not events:
        print("events: none recorded.")
        return 0
    for event in events:
        print(f"{event.ts} [{event.type}] {event.message}")
    return 0


def _toml_literal(value: str) -> str:
    lowered = value.strip().lower()
    if lowered in {"true", "false"}:
        return lowered
    if value.strip().isascii() and value.strip().isdigit():
        return value.strip()
    return toml_string(value)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    argv = list(argv) if argv is not None else list(sys.argv[1:])
    args = parser.parse_args(argv)
    commands = {
        None: cmd_app,
        "app": cmd_app,
        "shell": cmd_shell,
        "ls": cmd_ls,
        "add": cmd_add,
        "outline": cmd_outline,
        "clock": cmd_clock,
        "dayclock": cmd_dayclock,
        "rangeclock": cmd_rangeclock,
        "config": cmd_config,
        "events": cmd_events,
    }
    try:
        return commands[args.cmd](args)
    except TaskclockError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
