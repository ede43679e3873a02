"""Application settings record and its table."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now

THEMES = ("light", "dark", "system")
VIEW_MODES = ("list", "grid", "kanban")
SETTINGS_ID = "default"


class SettingsRow(SQLModel, table=True):
    __tablename__ = "settings"

    id: str = Field(default=SETTINGS_ID, primary_key=True)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now)


@dataclass(frozen=True)
class Shortcuts:
    new_task: str = "CmdOrCtrl+N"
    search: str = "CmdOrCtrl+F"
    toggle_complete: str = "Space"
    delete_task: str = "Delete"
    undo: str = "CmdOrCtrl+Z"
    export_data: str = "CmdOrCtrl+Shift+E"
    open_settings: str = "CmdOrCtrl+,"
    clear_selection: str = "Escape"


@dataclass(frozen=True)
class UIPreferences:
    window_size: Tuple[int, int] = (1000, 700)
    window_position: Tuple[int, int] = (-1, -1)
    sidebar_collapsed: bool = False
    task_view_mode: str = "list"
    always_on_top: bool = False


@dataclass(frozen=True)
class AppSettings:
    theme: str = "system"
    shortcuts: Shortcuts = field(default_factory=Shortcuts)
    notifications_enabled: bool = True
    language: str = "en"
    ui_preferences: UIPreferences = field(default_factory=UIPreferences)
    auto_backup: bool = True
    backup_interval: int = 24

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        prefs = data["ui_preferences"]
        width, height = self.ui_preferences.window_size
        x, y = self.ui_preferences.window_position
        prefs["window_size"] = {"width": width, "height": height}
        prefs["window_position"] = {"x": x, "y": y}
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AppSettings":
        """Merge ``data`` onto the defaults; unknown keys and bad values are dropped."""
        return merge_settings(cls(), data or {})


def _pair(value: Any, keys: Tuple[str, str], fallback: Tuple[int, int]) -> Tuple[int, int]:
    try:
        if isinstance(value, Mapping):
            return int(value[keys[0]]), int(value[keys[1]])
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return int(value[0]), int(value[1])
    except (KeyError, TypeError, ValueError):
        pass
    return fallback


def _merge_flat(current, updates: Mapping[str, Any]):
    changes = {}
    for f in fields(current):
        if f.name not in updates:
            continue
        value = updates[f.name]
        default = getattr(current, f.name)
        if isinstance(default, bool):
            if isinstance(value, bool):
                changes[f.name] = value
        elif isinstance(default, int):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                changes[f.name] = int(value)
        elif isinstance(default, str):
            if isinstance(value, str):
                changes[f.name] = value
    return replace(current, **changes)


def merge_settings(current: AppSettings, updates: Mapping[str, Any]) -> AppSettings:
    if not isinstance(updates, Mapping):
        return current
    merged = _merge_flat(current, updates)
    if merged.theme not in THEMES:
        merged = replace(merged, theme=current.theme)
    if merged.backup_interval <= 0:
        merged = replace(merged, backup_interval=current.backup_interval)

    shortcuts = updates.get("shortcuts")
    if isinstance(shortcuts, Mapping):
        merged = replace(merged, shortcuts=_merge_flat(current.shortcuts, shortcuts))

    prefs_update = updates.get("ui_preferences")
    if isinstance(prefs_update, Mapping):
        prefs = _merge_flat(current.ui_preferences, prefs_update)
        if prefs.task_view_mode not in VIEW_MODES:
            prefs = replace(prefs, task_view_mode=current.ui_preferences.task_view_mode)
        prefs = replace(
            prefs,
            window_size=_pair(
                prefs_update.get("window_size"), ("width", "height"), prefs.window_size
            ),
            window_position=_pair(
                prefs_update.get("window_position"), ("x", "y"), prefs.window_position
            ),
        )
        merged = replace(merged, ui_preferences=prefs)
    return merged


__all__ = [
    "AppSettings",
    "SETTINGS_ID",
    "SettingsRow",
    "Shortcuts",
    "THEMES",
    "UIPreferences",
    "VIEW_MODES",
    "merge_settings",
]
