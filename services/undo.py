from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional

from core.errors import UndoUnavailable
from core.settings import UNDO
from models.undo import UndoAction


class UndoLog:
    """Bounded LIFO of inverse operations; the oldest entry falls off past capacity."""

    def __init__(self, capacity: int = UNDO.capacity):
        if capacity <= 0:
            raise ValueError("Undo capacity must be positive")
        self.capacity = capacity
        self._entries: Deque[UndoAction] = deque(maxlen=capacity)

    def record(self, action: UndoAction) -> None:
        self._entries.append(action)

    def pop(self) -> UndoAction:
        if not self._entries:
            raise UndoUnavailable("Nothing to undo")
        return self._entries.pop()

    def restore(self, action: UndoAction) -> None:
        """Put back an entry whose inverse failed, as the most recent one."""
        self._entries.append(action)

    def peek(self) -> Optional[UndoAction]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[UndoAction]:
        return list(self._entries)

    @property
    def can_undo(self) -> bool:
        return bool(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["UndoLog"]
