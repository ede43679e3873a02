"""Records and ORM models exposed by the DeskTodo application."""
from .task import Note, Task, TaskRow
from .settings import AppSettings, SettingsRow
from .undo import UndoAction, UndoActionType

__all__ = [
    "AppSettings",
    "Note",
    "SettingsRow",
    "Task",
    "TaskRow",
    "UndoAction",
    "UndoActionType",
]
