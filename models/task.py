# desktodo/models/task.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from core.errors import ValidationError
from core.priorities import DEFAULT_PRIORITY, normalize_priority
from utils.datetime_utils import (
    ensure_utc,
    parse_iso_date,
    parse_rfc3339,
    to_iso_date,
    to_rfc3339_utc,
    utc_now,
)

FILTER_KINDS = ("all", "active", "completed")


class TaskRow(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(primary_key=True)
    title: str
    description: Optional[str] = None
    priority: str = DEFAULT_PRIORITY
    due_date: Optional[date] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    is_completed: bool = Field(default=False, index=True)
    order_index: int = Field(default=0, index=True)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    notes: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


def normalize_tags(tags: Iterable[str] | None) -> Tuple[str, ...]:
    """Strip, drop blanks and duplicates; first spelling wins."""
    if not tags:
        return ()
    if isinstance(tags, str):
        tags = [tags]
    seen: Dict[str, str] = {}
    for tag in tags:
        cleaned = str(tag).strip()
        if cleaned and cleaned not in seen:
            seen[cleaned] = cleaned
    return tuple(seen.values())


def _require_datetime(value: Any, name: str) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    parsed = parse_rfc3339(value) if isinstance(value, str) else None
    if parsed is None:
        raise ValidationError(f"Invalid {name}: {value!r}")
    return parsed


def _optional_datetime(value: Any, name: str) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return _require_datetime(value, name)


def parse_due_date(value: Any) -> Optional[date]:
    """Empty means no due date; anything else must be a date or an ISO string."""
    if value is None or value == "":
        return None
    parsed = parse_iso_date(value) if isinstance(value, (str, date)) else None
    if parsed is None:
        raise ValidationError(f"Invalid due date: {value!r}")
    return parsed


@dataclass(frozen=True)
class Note:
    id: str
    content: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "created_at": to_rfc3339_utc(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Note":
        if not isinstance(data, Mapping):
            raise ValidationError("Note must be an object")
        note_id = data.get("id")
        if not note_id:
            raise ValidationError("Note is missing an id")
        return cls(
            id=str(note_id),
            content=str(data.get("content") or ""),
            created_at=_require_datetime(data.get("created_at"), "note created_at"),
        )


@dataclass(frozen=True)
class Task:
    """Immutable task snapshot held by the engine and the undo log."""

    id: str
    title: str
    priority: str = DEFAULT_PRIORITY
    description: Optional[str] = None
    due_date: Optional[date] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    is_completed: bool = False
    order_index: int = 0
    tags: Tuple[str, ...] = ()
    notes: Tuple[Note, ...] = ()

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, description or any tag."""
        needle = (query or "").strip().lower()
        if not needle:
            return True
        if needle in self.title.lower():
            return True
        if self.description and needle in self.description.lower():
            return True
        return any(needle in tag.lower() for tag in self.tags)

    # ----- rows -----
    @classmethod
    def from_row(cls, row: TaskRow) -> "Task":
        return cls(
            id=row.id,
            title=row.title,
            priority=row.priority or DEFAULT_PRIORITY,
            description=row.description,
            due_date=row.due_date,
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
            completed_at=ensure_utc(row.completed_at),
            is_completed=bool(row.is_completed),
            order_index=int(row.order_index or 0),
            tags=normalize_tags(row.tags),
            notes=tuple(Note.from_dict(item) for item in (row.notes or [])),
        )

    def row_values(self) -> Dict[str, Any]:
        """Column values for a ``TaskRow`` (JSON columns get plain lists)."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["tags"] = list(self.tags)
        values["notes"] = [note.to_dict() for note in self.notes]
        return values

    def to_row(self) -> TaskRow:
        return TaskRow(**self.row_values())

    # ----- documents -----
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "due_date": to_iso_date(self.due_date),
            "created_at": to_rfc3339_utc(self.created_at),
            "updated_at": to_rfc3339_utc(self.updated_at),
            "completed_at": to_rfc3339_utc(self.completed_at),
            "is_completed": self.is_completed,
            "order_index": self.order_index,
            "tags": list(self.tags),
            "notes": [note.to_dict() for note in self.notes],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """Build a task from an exported document entry, validating every field."""
        if not isinstance(data, Mapping):
            raise ValidationError("Task entry must be an object")
        task_id = data.get("id")
        if not task_id:
            raise ValidationError("Task entry is missing an id")
        title = str(data.get("title") or "").strip()
        if not title:
            raise ValidationError(f"Task {task_id} has an empty title")
        try:
            order_index = int(data.get("order_index") or 0)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Task {task_id} has an invalid order_index") from exc
        notes = data.get("notes") or []
        if not isinstance(notes, list):
            raise ValidationError(f"Task {task_id} notes must be a list")
        tags = data.get("tags") or []
        if not isinstance(tags, (list, tuple)):
            raise ValidationError(f"Task {task_id} tags must be a list")

        is_completed = data.get("is_completed")
        if is_completed is None:
            is_completed = False
        if not isinstance(is_completed, bool):
            raise ValidationError(f"Task {task_id} is_completed must be true or false")
        created_at = _require_datetime(data.get("created_at") or utc_now(), "created_at")
        completed_at = _optional_datetime(data.get("completed_at"), "completed_at")
        # Older exports may carry one side of the pair only.
        if is_completed and completed_at is None:
            completed_at = _optional_datetime(data.get("updated_at"), "updated_at") or created_at
        if not is_completed:
            completed_at = None

        description = data.get("description")
        return cls(
            id=str(task_id),
            title=title,
            priority=normalize_priority(data.get("priority")),
            description=str(description) if description else None,
            due_date=parse_due_date(data.get("due_date")),
            created_at=created_at,
            updated_at=_optional_datetime(data.get("updated_at"), "updated_at") or created_at,
            completed_at=completed_at,
            is_completed=is_completed,
            order_index=order_index,
            tags=normalize_tags(tags),
            notes=tuple(Note.from_dict(item) for item in notes),
        )


__all__ = ["FILTER_KINDS", "Note", "Task", "TaskRow", "normalize_tags", "parse_due_date"]
