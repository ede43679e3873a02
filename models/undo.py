"""Undo log entries.

Each payload class carries exactly what its inverse needs, and the action
type is derived from the payload so the two can never disagree.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Tuple, Union

from models.task import Task
from utils.datetime_utils import utc_now


class UndoActionType(str, Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    TOGGLE_COMPLETE = "toggle-complete"
    REORDER = "reorder"
    CLEAR_COMPLETED = "clear-completed"


@dataclass(frozen=True)
class AddUndo:
    kind: ClassVar[UndoActionType] = UndoActionType.ADD
    task_id: str


@dataclass(frozen=True)
class UpdateUndo:
    kind: ClassVar[UndoActionType] = UndoActionType.UPDATE
    original: Task


@dataclass(frozen=True)
class DeleteUndo:
    kind: ClassVar[UndoActionType] = UndoActionType.DELETE
    original: Task


@dataclass(frozen=True)
class ToggleUndo:
    kind: ClassVar[UndoActionType] = UndoActionType.TOGGLE_COMPLETE
    original: Task


@dataclass(frozen=True)
class ReorderUndo:
    kind: ClassVar[UndoActionType] = UndoActionType.REORDER
    originals: Tuple[Task, ...]


@dataclass(frozen=True)
class ClearCompletedUndo:
    kind: ClassVar[UndoActionType] = UndoActionType.CLEAR_COMPLETED
    removed: Tuple[Task, ...]


UndoPayload = Union[AddUndo, UpdateUndo, DeleteUndo, ToggleUndo, ReorderUndo, ClearCompletedUndo]


@dataclass(frozen=True)
class UndoAction:
    description: str
    payload: UndoPayload
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def type(self) -> UndoActionType:
        return self.payload.kind


__all__ = [
    "AddUndo",
    "ClearCompletedUndo",
    "DeleteUndo",
    "ReorderUndo",
    "ToggleUndo",
    "UndoAction",
    "UndoActionType",
    "UndoPayload",
    "UpdateUndo",
]
