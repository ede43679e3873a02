# desktodo/services/tasks.py
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from core.errors import NotFoundError, TodoError, UndoUnavailable, ValidationError
from core.logs import get_logger
from core.priorities import normalize_priority
from core.settings import UNDO
from models.settings import AppSettings
from models.task import FILTER_KINDS, Note, Task, normalize_tags, parse_due_date
from models.undo import (
    AddUndo,
    ClearCompletedUndo,
    DeleteUndo,
    ReorderUndo,
    ToggleUndo,
    UndoAction,
    UndoPayload,
    UpdateUndo,
)
from services.data_transfer import ImportDocument, build_document, parse_document
from services.notifications import LoggingNotifier, Notifier
from services.ordering import filter_tasks, next_order_index, reorder_tasks, sort_by_order
from services.settings import SettingsService
from services.undo import UndoLog
from storage.config import load_config, update_config
from storage.task_store import TaskStore
from utils.datetime_utils import utc_now

logger = get_logger("engine")

UPDATABLE_FIELDS = {"title", "description", "priority", "due_date", "tags", "notes", "is_completed"}
KANBAN_COLUMNS = ("todo", "done")


def _new_id() -> str:
    return str(uuid.uuid4())


def _clean_description(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_title(value: Any) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValidationError("Task title cannot be empty")
    return title


def _parse_notes(notes: Optional[Iterable[Union[Note, Mapping[str, Any]]]]) -> Tuple[Note, ...]:
    if not notes:
        return ()
    return tuple(n if isinstance(n, Note) else Note.from_dict(n) for n in notes)


class TaskEngine:
    """Canonical in-memory task list backed by a :class:`TaskStore`.

    Every mutation writes to the store first, then updates memory, then
    appends an undo entry. UI-facing operations never raise: failures land in
    :attr:`error` and the method returns a falsy value. Import raises, since
    its caller needs to react to a rejected document.
    """

    def __init__(
        self,
        store: TaskStore,
        *,
        notifier: Optional[Notifier] = None,
        settings: Optional[SettingsService] = None,
        undo_capacity: int = UNDO.capacity,
        config_path: Optional[Path] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self.settings = settings
        self.notifier = notifier or LoggingNotifier(
            settings.notifications_enabled if settings else None
        )
        self.undo_log = UndoLog(undo_capacity)
        self._config_path = config_path
        self._clock = clock
        self._new_id = id_factory
        self._listeners: List[Callable[["TaskEngine"], None]] = []

        self._tasks: List[Task] = []
        self.filter = "all"
        self.search_query = ""
        self.selected_task_id: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None

    # ---------- events ----------
    def subscribe(self, callback: Callable[["TaskEngine"], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[["TaskEngine"], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Engine listener failed")

    # ---------- state ----------
    @property
    def tasks(self) -> Tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def can_undo(self) -> bool:
        return self.undo_log.can_undo

    @property
    def undo_history(self) -> List[UndoAction]:
        return self.undo_log.entries()

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _find(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def _put_in_memory(self, task: Task) -> None:
        for position, current in enumerate(self._tasks):
            if current.id == task.id:
                self._tasks[position] = task
                return
        self._tasks = sort_by_order([*self._tasks, task])

    def _drop_from_memory(self, task_ids: Iterable[str]) -> None:
        doomed = set(task_ids)
        self._tasks = [t for t in self._tasks if t.id not in doomed]
        if self.selected_task_id in doomed:
            self.selected_task_id = None

    def _begin(self) -> None:
        self.is_loading = True
        self.error = None

    def _finish(self) -> None:
        self.is_loading = False
        self._emit()

    def _fail(self, message: str, exc: TodoError) -> bool:
        logger.error("%s: %s", message, exc)
        self.error = f"{message}: {exc}"
        self.is_loading = False
        self.notifier.error(self.error)
        self._emit()
        return False

    def _record(self, description: str, payload: UndoPayload) -> None:
        self.undo_log.record(UndoAction(description=description, payload=payload, timestamp=self._clock()))

    # ---------- loading & view state ----------
    def load(self) -> bool:
        self._begin()
        try:
            if self.settings is not None:
                self.settings.load()
            tasks = self.store.get_all_tasks()
        except TodoError as exc:
            return self._fail("Could not load tasks", exc)
        self._tasks = sort_by_order(tasks)
        if self._config_path is not None:
            cfg = load_config(self._config_path)
            self.filter = cfg.filter
            self.search_query = cfg.search_query
        logger.info("Loaded %s tasks", len(self._tasks))
        self._finish()
        return True

    def _save_view_state(self) -> None:
        if self._config_path is None:
            return
        try:
            update_config(self._config_path, filter=self.filter, search_query=self.search_query)
        except OSError as exc:
            logger.warning("Could not save view state: %s", exc)

    def set_filter(self, filter_kind: str) -> None:
        if filter_kind not in FILTER_KINDS:
            raise ValidationError(f"Unknown filter: {filter_kind!r}")
        self.filter = filter_kind
        self._save_view_state()
        self._emit()

    def set_search_query(self, query: str) -> None:
        self.search_query = query or ""
        self._save_view_state()
        self._emit()

    def set_selected_task(self, task_id: Optional[str]) -> None:
        self.selected_task_id = task_id
        self._emit()

    @staticmethod
    def filter_tasks(tasks: Iterable[Task], filter_kind: str = "all", search_query: str = "") -> List[Task]:
        return filter_tasks(tasks, filter_kind, search_query)

    def visible_tasks(self) -> List[Task]:
        return filter_tasks(self._tasks, self.filter, self.search_query)

    def stats(self) -> Dict[str, int]:
        completed = sum(1 for t in self._tasks if t.is_completed)
        return {"total": len(self._tasks), "completed": completed, "active": len(self._tasks) - completed}

    # ---------- CRUD ----------
    def create(
        self,
        title: str,
        priority: Optional[str] = None,
        *,
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        notes: Optional[Iterable[Union[Note, Mapping[str, Any]]]] = None,
        due_date: Union[str, date, None] = None,
    ) -> Optional[Task]:
        self._begin()
        now = self._clock()
        try:
            task = Task(
                id=self._new_id(),
                title=_clean_title(title),
                priority=normalize_priority(priority),
                description=_clean_description(description),
                due_date=parse_due_date(due_date),
                created_at=now,
                updated_at=now,
                order_index=next_order_index(self._tasks),
                tags=normalize_tags(tags),
                notes=_parse_notes(notes),
            )
            self.store.add_task(task)
        except TodoError as exc:
            self._fail("Could not add the task", exc)
            return None

        self._put_in_memory(task)
        self._record(f'Add task "{task.title}"', AddUndo(task_id=task.id))
        logger.debug("Task created: %s", task.id)
        self.notifier.task_added(task.title)
        self._finish()
        return task

    def _apply_changes(self, original: Task, changes: Mapping[str, Any], now: datetime) -> Task:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        values: Dict[str, Any] = {"updated_at": now}
        if "title" in changes:
            values["title"] = _clean_title(changes["title"])
        if "description" in changes:
            values["description"] = _clean_description(changes["description"])
        if "priority" in changes:
            values["priority"] = normalize_priority(changes["priority"])
        if "due_date" in changes:
            values["due_date"] = parse_due_date(changes["due_date"])
        if "tags" in changes:
            values["tags"] = normalize_tags(changes["tags"])
        if "notes" in changes:
            values["notes"] = _parse_notes(changes["notes"])
        if "is_completed" in changes:
            done = bool(changes["is_completed"])
            values["is_completed"] = done
            if not done:
                values["completed_at"] = None
            elif not original.is_completed:
                values["completed_at"] = now
        return replace(original, **values)

    def update(self, task_id: str, changes: Optional[Mapping[str, Any]] = None, **fields: Any) -> bool:
        merged = {**(changes or {}), **fields}
        self._begin()
        try:
            original = self._find(task_id)
            updated = self._apply_changes(original, merged, self._clock())
            self.store.put_task(updated)
        except TodoError as exc:
            return self._fail("Could not update the task", exc)

        self._put_in_memory(updated)
        self._record(f'Update task "{original.title}"', UpdateUndo(original=original))
        logger.debug("Task updated: %s (%s)", task_id, ", ".join(sorted(merged)))
        self._finish()
        return True

    def delete(self, task_id: str) -> bool:
        self._begin()
        try:
            original = self._find(task_id)
            if not self.store.delete_task(task_id):
                logger.warning("Task %s was already missing from the store", task_id)
        except TodoError as exc:
            return self._fail("Could not delete the task", exc)

        self._drop_from_memory([task_id])
        self._record(f'Delete task "{original.title}"', DeleteUndo(original=original))
        logger.debug("Task deleted: %s", task_id)
        self.notifier.task_deleted(original.title)
        self._finish()
        return True

    def toggle_complete(self, task_id: str) -> bool:
        self._begin()
        now = self._clock()
        try:
            original = self._find(task_id)
            done = not original.is_completed
            updated = replace(
                original,
                is_completed=done,
                completed_at=now if done else None,
                updated_at=now,
            )
            self.store.update_task(
                task_id,
                {"is_completed": done, "completed_at": updated.completed_at, "updated_at": now},
            )
        except TodoError as exc:
            return self._fail("Could not change the task status", exc)

        self._put_in_memory(updated)
        verb = "Complete" if done else "Reopen"
        self._record(f'{verb} task "{original.title}"', ToggleUndo(original=original))
        if done:
            self.notifier.task_completed(original.title)
        self._finish()
        return True

    def move_to_column(self, task_id: str, column: str) -> bool:
        """Kanban drag between columns; only a status change, never a reorder."""
        if column not in KANBAN_COLUMNS:
            return self._fail("Could not move the task", ValidationError(f"Unknown column: {column!r}"))
        task = self.get_task(task_id)
        if task is None:
            return self._fail("Could not move the task", NotFoundError(task_id))
        if task.is_completed == (column == "done"):
            return True
        return self.toggle_complete(task_id)

    def reorder(self, from_index: int, to_index: int) -> bool:
        """Move a task between positions of the visible list and renumber everything."""
        if from_index == to_index:
            return True
        self._begin()
        originals = tuple(self._tasks)
        visible = self.visible_tasks()
        visible_ids = None if len(visible) == len(originals) else {t.id for t in visible}
        try:
            reordered = reorder_tasks(
                originals,
                from_index,
                to_index,
                visible_ids=visible_ids,
                updated_at=self._clock(),
            )
            self.store.update_many(
                {t.id: {"order_index": t.order_index, "updated_at": t.updated_at} for t in reordered}
            )
        except TodoError as exc:
            return self._fail("Could not reorder tasks", exc)

        self._tasks = reordered
        self._record("Reorder tasks", ReorderUndo(originals=originals))
        logger.debug("Tasks reordered: %s -> %s", from_index, to_index)
        self._finish()
        return True

    def clear_completed(self) -> int:
        completed = tuple(t for t in self._tasks if t.is_completed)
        if not completed:
            return 0
        self._begin()
        try:
            removed = self.store.clear_completed_tasks()
        except TodoError as exc:
            self._fail("Could not clear completed tasks", exc)
            return 0
        if removed != len(completed):
            logger.warning("Store removed %s completed tasks, memory had %s", removed, len(completed))

        self._drop_from_memory(t.id for t in completed)
        self._record(f"Clear {len(completed)} completed tasks", ClearCompletedUndo(removed=completed))
        logger.info("Cleared %s completed tasks", len(completed))
        self.notifier.batch_operation("Cleared", len(completed))
        self._finish()
        return len(completed)

    # ---------- undo ----------
    def undo(self) -> bool:
        """Revert the most recent operation. Returns ``False`` when there was nothing to do."""
        try:
            action = self.undo_log.pop()
        except UndoUnavailable:
            return False
        self._begin()
        try:
            self._apply_inverse(action.payload)
        except TodoError as exc:
            self.undo_log.restore(action)
            return self._fail("Could not undo", exc)
        logger.info("Undone: %s", action.description)
        self.notifier.undo(action.description)
        self._finish()
        return True

    def _apply_inverse(self, payload: UndoPayload) -> None:
        if isinstance(payload, AddUndo):
            self.store.delete_task(payload.task_id)
            self._drop_from_memory([payload.task_id])
        elif isinstance(payload, DeleteUndo):
            self.store.put_task(payload.original)
            self._put_in_memory(payload.original)
        elif isinstance(payload, (UpdateUndo, ToggleUndo)):
            self.store.put_task(payload.original)
            self._put_in_memory(payload.original)
        elif isinstance(payload, ReorderUndo):
            self.store.replace_all(payload.originals)
            self._tasks = list(payload.originals)
        elif isinstance(payload, ClearCompletedUndo):
            self.store.put_tasks(payload.removed)
            restored = {t.id for t in payload.removed}
            kept = [t for t in self._tasks if t.id not in restored]
            self._tasks = sort_by_order([*kept, *payload.removed])
        else:
            raise TypeError(f"Unhandled undo payload: {payload!r}")

    def clear_undo_history(self) -> None:
        self.undo_log.clear()
        self._emit()

    # ---------- export / import ----------
    def _current_settings(self) -> AppSettings:
        return self.settings.current if self.settings is not None else AppSettings()

    def export_all(self) -> Tuple[Tuple[Task, ...], AppSettings]:
        """Snapshot of the last committed state, for backups and manual export."""
        return tuple(self._tasks), self._current_settings()

    def export_document(self, moment: Optional[datetime] = None) -> Dict[str, Any]:
        tasks, settings = self.export_all()
        return build_document(tasks, settings, moment=moment or self._clock())

    def import_document(self, source: Union[str, bytes, Mapping[str, Any]]) -> ImportDocument:
        """Replace every task with the document's tasks.

        Raises :class:`ValidationError` for a malformed document and
        :class:`StorageError` if the replacement could not be written; in both
        cases the current tasks are left untouched. The undo log is cleared.
        """
        document = parse_document(source)
        tasks = sort_by_order(document.tasks)
        self._begin()
        try:
            self.store.replace_all(tasks)
        except TodoError as exc:
            self._fail("Could not import data", exc)
            raise
        if document.settings is not None and self.settings is not None:
            if not self.settings.import_settings(document.settings):
                logger.warning("Imported settings were rejected, keeping current settings")

        self._tasks = tasks
        self.selected_task_id = None
        self.undo_log.clear()
        logger.info("Imported %s tasks", len(tasks))
        self.notifier.data_operation("import", len(tasks))
        self._finish()
        return document


__all__ = ["KANBAN_COLUMNS", "TaskEngine", "UPDATABLE_FIELDS"]
