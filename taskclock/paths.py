from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


CONFIG_ENV_VAR = "TASKCLOCK_CONFIG"
CONFIG_FILENAME = "taskclock.toml"


def home_root() -> Path:
    return Path.home()


def expand_path(value: str | Path) -> Path:
    return Path(value).expanduser()


def config_path() -> Path:
    """Location of taskclock.toml.

    `$TASKCLOCK_CONFIG` wins; otherwise `$XDG_CONFIG_HOME/taskclock/` (or
    `~/.config/taskclock/`).
    """

    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return expand_path(override)
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    base = expand_path(xdg) if xdg else home_root() / ".config"
    return base / "taskclock" / CONFIG_FILENAME


@dataclass(frozen=True)
class DocumentPaths:
    document: Path
    scratch: Path
    events: Path
