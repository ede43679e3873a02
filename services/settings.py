from __future__ import annotations

import json
from typing import Any, Callable, List, Mapping, Union

from core.errors import TodoError
from core.logs import get_logger
from models.settings import AppSettings, merge_settings
from storage.task_store import TaskStore

logger = get_logger("settings")


class SettingsService:
    """Keeps the single settings record in memory and in the database."""

    def __init__(self, store: TaskStore):
        self.store = store
        self._current = AppSettings()
        self._listeners: List[Callable[[AppSettings], None]] = []

    # ---------- events ----------
    def subscribe(self, callback: Callable[[AppSettings], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[AppSettings], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:
                logger.exception("Settings listener failed")

    # ---------- state ----------
    @property
    def current(self) -> AppSettings:
        return self._current

    def notifications_enabled(self) -> bool:
        return self._current.notifications_enabled

    def load(self) -> AppSettings:
        self._current = self.store.ensure_default_settings()
        return self._current

    def _save(self, settings: AppSettings) -> AppSettings:
        self.store.update_settings(settings)
        self._current = settings
        self._emit()
        return settings

    def update(self, **changes: Any) -> AppSettings:
        return self._save(merge_settings(self._current, changes))

    def update_shortcuts(self, **changes: str) -> AppSettings:
        return self.update(shortcuts=changes)

    def update_ui_preferences(self, **changes: Any) -> AppSettings:
        return self.update(ui_preferences=changes)

    def reset(self) -> AppSettings:
        return self._save(AppSettings())

    # ---------- import / export ----------
    def export_settings(self) -> str:
        return json.dumps(self._current.to_dict(), ensure_ascii=False, indent=2)

    def import_settings(self, payload: Union[str, Mapping[str, Any]]) -> bool:
        """Merge imported settings onto the defaults. Returns ``False`` on bad input."""
        try:
            data = json.loads(payload) if isinstance(payload, str) else payload
        except json.JSONDecodeError:
            logger.warning("Settings import rejected: not JSON")
            return False
        if not isinstance(data, Mapping):
            logger.warning("Settings import rejected: not an object")
            return False
        try:
            self._save(AppSettings.from_dict(data))
        except TodoError as exc:
            logger.error("Settings import failed: %s", exc)
            return False
        return True


__all__ = ["SettingsService"]
