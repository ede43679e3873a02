"""User-visible notifications raised by the engine and the backup service."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from core.logs import get_logger

KINDS = ("success", "warning", "info", "error")
PAST_TENSE = {"import": "Imported", "export": "Exported", "backup": "Backed up", "restore": "Restored"}

logger = get_logger("notifications")


class Notifier:
    """Fire-and-forget emitter. Subclasses implement :meth:`_show`.

    A failing backend never reaches the caller: the failure is logged and the
    notification dropped.
    """

    def __init__(self, is_enabled: Optional[Callable[[], bool]] = None):
        self._is_enabled = is_enabled or (lambda: True)

    def notify(self, title: str, body: str, *, kind: str = "info") -> None:
        if kind not in KINDS:
            kind = "info"
        try:
            if not self._is_enabled():
                return
            self._show(title, body, kind)
        except Exception:
            logger.exception("Notification %r could not be shown", title)

    def _show(self, title: str, body: str, kind: str) -> None:
        raise NotImplementedError

    # ---------- canned messages ----------
    def task_added(self, task_title: str) -> None:
        self.notify("Task added", f'"{task_title}" was added to the list', kind="info")

    def task_completed(self, task_title: str) -> None:
        self.notify("Task completed", f'"{task_title}" is marked as done', kind="success")

    def task_deleted(self, task_title: str) -> None:
        self.notify("Task deleted", f'"{task_title}" was removed from the list', kind="warning")

    def batch_operation(self, operation: str, count: int) -> None:
        self.notify("Batch operation finished", f"{operation} {count} tasks", kind="info")

    def error(self, message: str) -> None:
        self.notify("Operation failed", message, kind="error")

    def undo(self, operation: str) -> None:
        self.notify("Undone", f"{operation} was undone", kind="info")

    def data_operation(self, operation: str, count: Optional[int] = None) -> None:
        done = PAST_TENSE.get(operation, f"{operation.capitalize()} finished:")
        body = f"{done} {count} tasks" if count else f"Data {operation} finished"
        self.notify(f"Data {operation} succeeded", body, kind="success")


class LoggingNotifier(Notifier):
    """Headless backend: notifications go to the application log."""

    def _show(self, title: str, body: str, kind: str) -> None:
        level = {"error": logging.ERROR, "warning": logging.WARNING}.get(kind, logging.INFO)
        logger.log(level, "%s: %s", title, body)


__all__ = ["KINDS", "LoggingNotifier", "Notifier"]
