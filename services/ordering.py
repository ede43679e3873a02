"""Pure ordering and filtering helpers for task lists.

Nothing here touches storage: every function takes a list of immutable
:class:`Task` snapshots and returns a new list.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Collection, Iterable, List, Optional, Sequence, TypeVar

from core.errors import ValidationError
from models.task import FILTER_KINDS, Task

T = TypeVar("T")


def next_order_index(tasks: Iterable[Task]) -> int:
    """One past the current maximum, never below 1."""
    return max([t.order_index for t in tasks] + [0]) + 1


def sort_by_order(tasks: Iterable[Task]) -> List[Task]:
    # sorted() is stable: equal indices keep their insertion order.
    return sorted(tasks, key=lambda t: t.order_index)


def move_item(items: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Single-element list move; ``to_index`` is clamped into the list."""
    if not 0 <= from_index < len(items):
        raise ValidationError(f"Position {from_index} is out of range")
    result = list(items)
    item = result.pop(from_index)
    target = max(0, min(to_index, len(result)))
    result.insert(target, item)
    return result


def renumber(tasks: Iterable[Task], *, updated_at: Optional[datetime] = None) -> List[Task]:
    """Assign ``order_index`` 0, 1, 2, ... following the list order."""
    renumbered = []
    for position, task in enumerate(tasks):
        changes = {"order_index": position}
        if updated_at is not None:
            changes["updated_at"] = updated_at
        renumbered.append(replace(task, **changes))
    return renumbered


def reorder_tasks(
    tasks: Sequence[Task],
    from_index: int,
    to_index: int,
    *,
    visible_ids: Optional[Collection[str]] = None,
    updated_at: Optional[datetime] = None,
) -> List[Task]:
    """Move one task and renumber the whole list.

    With ``visible_ids`` the indices address the visible subset only: the
    subset is rearranged and written back into the slots it occupied, so hidden
    tasks keep their positions.
    """
    if visible_ids is None:
        return renumber(move_item(tasks, from_index, to_index), updated_at=updated_at)

    slots = [i for i, task in enumerate(tasks) if task.id in visible_ids]
    moved = move_item([tasks[i] for i in slots], from_index, to_index)
    arranged = list(tasks)
    for slot, task in zip(slots, moved):
        arranged[slot] = task
    return renumber(arranged, updated_at=updated_at)


def filter_tasks(tasks: Iterable[Task], filter_kind: str = "all", search_query: str = "") -> List[Task]:
    """Status filter, then search; both must hold. Input order is preserved."""
    if filter_kind not in FILTER_KINDS:
        raise ValidationError(f"Unknown filter: {filter_kind!r}")
    result = list(tasks)
    if filter_kind == "active":
        result = [t for t in result if not t.is_completed]
    elif filter_kind == "completed":
        result = [t for t in result if t.is_completed]
    if search_query and search_query.strip():
        result = [t for t in result if t.matches(search_query)]
    return result


__all__ = [
    "filter_tasks",
    "move_item",
    "next_order_index",
    "renumber",
    "reorder_tasks",
    "sort_by_order",
]
