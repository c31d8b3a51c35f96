from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import tomllib

from .paths import DocumentPaths, expand_path


def _as_int(value, *, default: int) -> int:
    try:
        return int(value)
    except Exception:  # noqa: BLE001
        return int(default)


def _as_bool(value, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off"}:
            return False
    return bool(default)


def _as_str(value, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _table(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class DocumentConfig:
    path: str = "~/.tasks.json"
    autosave: bool = True


@dataclass(frozen=True)
class EditorConfig:
    command: str = "vi"
    scratch_path: str = "~/.task.md"


@dataclass(frozen=True)
class LoggingConfig:
    enabled: bool = True
    events_path: str = "~/.taskclock/events.jsonl"


@dataclass(frozen=True)
class ReportConfig:
    max_outline_depth: int = 1000


@dataclass(frozen=True)
class TaskclockConfig:
    document: DocumentConfig = field(default_factory=DocumentConfig)
    editor: EditorConfig = field(default_factory=EditorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    def paths(self) -> DocumentPaths:
        return DocumentPaths(
            document=expand_path(self.document.path),
            scratch=expand_path(self.editor.scratch_path),
            events=expand_path(self.logging.events_path),
        )


def load_config(path: Path) -> tuple[TaskclockConfig, str]:
    """Load settings from taskclock.toml.

    Returns (config, warning). Warning is empty on success.
    """

    if not path.exists():
        return TaskclockConfig(), ""

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        return TaskclockConfig(), f"taskclock.toml parse failed: {exc}"

    document = _table(data, "document")
    editor = _table(data, "editor")
    logging = _table(data, "logging")
    report = _table(data, "report")

    cfg = TaskclockConfig(
        document=DocumentConfig(
            path=_as_str(document.get("path"), default=DocumentConfig.path),
            autosave=_as_bool(document.get("autosave"), default=DocumentConfig.autosave),
        ),
        editor=EditorConfig(
            command=_as_str(editor.get("command"), default=EditorConfig.command),
            scratch_path=_as_str(editor.get("scratch_path"), default=EditorConfig.scratch_path),
        ),
        logging=LoggingConfig(
            enabled=_as_bool(logging.get("enabled"), default=LoggingConfig.enabled),
            events_path=_as_str(logging.get("events_path"), default=LoggingConfig.events_path),
        ),
        report=ReportConfig(
            max_outline_depth=max(1, _as_int(report.get("max_outline_depth"), default=ReportConfig.max_outline_depth)),
        ),
    )
    return cfg, ""


def set_config_value(path: Path, section: str, key: str, literal: str) -> tuple[bool, str]:
    """Write `key = literal` into `[section]`, creating file/section as needed.

    `literal` must already be a TOML value (quoted string, number, boolean).
    """

    line = f"{key} = {literal}"
    header = f"[{section}]"

    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(header + "\n" + line + "\n", encoding="utf-8")
        except Exception as exc:  # noqa: BLE001
            return False, f"failed writing taskclock.toml: {exc}"
        return True, f"{section}.{key} set to {literal} (new file)"

    try:
        text = path.read_text(encoding="utf-8")
    except Exception as exc:  # noqa: BLE001
        return False, f"failed reading taskclock.toml: {exc}"

    lines = text.splitlines()
    section_start = None
    for idx, raw in enumerate(lines):
        if raw.strip() == header:
            section_start = idx
            break

    if section_start is None:
        if lines and lines[-1].strip():
            lines.append("")
        lines.append(header)
        lines.append(line)
    else:
        section_end = len(lines)
        for idx in range(section_start + 1, len(lines)):
            stripped = lines[idx].strip()
            if stripped.startswith("[") and stripped.endswith("]"):
                section_end = idx
                break

        target_idx = None
        for idx in range(section_start + 1, section_end):
            name = lines[idx].split("=", 1)[0].strip()
            if name == key:
                target_idx = idx
                break

        if target_idx is not None:
            lines[target_idx] = line
        else:
            lines.insert(section_start + 1, line)

    updated = "\n".join(lines) + "\n"
    try:
        path.write_text(updated, encoding="utf-8")
    except Exception as exc:  # noqa: BLE001
        return False, f"failed writing taskclock.toml: {exc}"
    return True, f"{section}.{key} set to {literal}"


def toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def explain_config(config: TaskclockConfig, *, path: Path | None = None) -> str:
    location = str(path) if path is not None else "taskclock.toml"
    lines = [
        f"taskclock.toml guide ({location})",
        "",
        "[document]",
        f"- path: JSON document holding tasks and clocks (current: {config.document.path})",
        f"- autosave: save after every mutating command (current: {'true' if config.document.autosave else 'false'})",
        "",
        "[editor]",
        f"- command: editor used for task title/body (current: {config.editor.command})",
        f"- scratch_path: temporary file handed to the editor (current: {config.editor.scratch_path})",
        "",
        "[logging]",
        f"- enabled: append document events as JSONL (current: {'true' if config.logging.enabled else 'false'})",
        f"- events_path: event log location (current: {config.logging.events_path})",
        "",
        "[report]",
        f"- max_outline_depth: default depth for `outline` (current: {config.report.max_outline_depth})",
    ]
    return "\n".join(lines)
