"""Error kinds raised by the task engine and its storage."""
from __future__ import annotations


class TodoError(Exception):
    """Base class for every failure the engine reports to the UI."""


class ValidationError(TodoError, ValueError):
    """Rejected input: blank title, unknown priority, malformed import document."""


class NotFoundError(TodoError, LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


TaskNotFound = NotFoundError


class StorageError(TodoError):
    """Persistence read/write failure."""


class UndoUnavailable(TodoError):
    """Raised by :meth:`UndoLog.pop` on an empty log; ``TaskEngine.undo`` treats it as a no-op."""


__all__ = [
    "NotFoundError",
    "StorageError",
    "TaskNotFound",
    "TodoError",
    "UndoUnavailable",
    "ValidationError",
]
