"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "DeskTodo"


DATA_DIR = get_default_data_dir(APP_NAME)
BACKUP_DIR = DATA_DIR / "backups"
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, BACKUP_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = DATA_DIR / "desktodo.db"
CONFIG_PATH = DATA_DIR / "config.json"
LOG_PATH = LOG_DIR / "desktodo.log"


@dataclass(frozen=True)
class UISettings:
    app_title: str = APP_NAME
    color_scheme_seed: str = "#2563EB"
    window_min_width: int = 720
    window_min_height: int = 480
    snack_duration_ms: int = 3000


UI = UISettings()


@dataclass(frozen=True)
class TaskLimits:
    title_max_length: int = 200
    description_max_length: int = 1000


LIMITS = TaskLimits()


@dataclass(frozen=True)
class UndoSettings:
    capacity: int = 20


UNDO = UndoSettings()


@dataclass(frozen=True)
class BackupSettings:
    enabled: bool = True
    directory: Path = BACKUP_DIR
    keep_files: int = 10
    history_limit: int = 50
    interval_hours: int = 24


BACKUP = BackupSettings()


@dataclass(frozen=True)
class LogSettings:
    path: Path = LOG_PATH
    max_bytes: int = 1_000_000
    backup_count: int = 3


LOGGING = LogSettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "BACKUP_DIR",
    "LOG_DIR",
    "DB_PATH",
    "CONFIG_PATH",
    "LOG_PATH",
    "UI",
    "LIMITS",
    "UNDO",
    "BACKUP",
    "LOGGING",
    "get_default_data_dir",
]
