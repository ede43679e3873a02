"""SQLite-backed store for task and settings records."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.errors import NotFoundError, StorageError
from core.logs import get_logger
from models.settings import SETTINGS_ID, AppSettings, SettingsRow
from models.task import Note, Task, TaskRow
from utils.datetime_utils import utc_now

logger = get_logger("store")


def _row_value(key: str, value: Any) -> Any:
    if key == "tags":
        return list(value or ())
    if key == "notes":
        return [n.to_dict() if isinstance(n, Note) else dict(n) for n in (value or ())]
    return value


class TaskStore:
    """Durable mirror of the engine's task list.

    Every public method runs in its own session; batch methods commit once so a
    failure leaves the database exactly as it was. SQLAlchemy failures are
    re-raised as :class:`StorageError`.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Store %s failed: %s", action, exc)
            raise StorageError(f"Could not {action}") from exc

    # ----- reads -----
    def get_all_tasks(self) -> List[Task]:
        with self._session("load tasks") as session:
            stmt = select(TaskRow).order_by(TaskRow.order_index.asc(), TaskRow.created_at.asc())
            return [Task.from_row(row) for row in session.exec(stmt)]

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._session("load task") as session:
            row = session.get(TaskRow, task_id)
            return Task.from_row(row) if row else None

    def count_tasks(self) -> int:
        with self._session("count tasks") as session:
            return int(session.exec(select(func.count()).select_from(TaskRow)).one())

    def search_tasks(self, query: str) -> List[Task]:
        """Substring search done in Python so tags and non-ASCII text match the same way."""
        return [task for task in self.get_all_tasks() if task.matches(query)]

    # ----- single writes -----
    def add_task(self, task: Task) -> None:
        self.add_tasks([task])

    def update_task(self, task_id: str, changes: Mapping[str, Any]) -> None:
        self.update_many({task_id: changes})

    def put_task(self, task: Task) -> None:
        self.put_tasks([task])

    def delete_task(self, task_id: str) -> bool:
        with self._session("delete task") as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    # ----- batch writes -----
    def add_tasks(self, tasks: Iterable[Task]) -> None:
        with self._session("add tasks") as session:
            for task in tasks:
                session.add(task.to_row())
            session.commit()

    def put_tasks(self, tasks: Iterable[Task]) -> None:
        """Insert or overwrite whole records."""
        with self._session("save tasks") as session:
            for task in tasks:
                row = session.get(TaskRow, task.id)
                if row is None:
                    session.add(task.to_row())
                    continue
                for key, value in task.row_values().items():
                    setattr(row, key, value)
                session.add(row)
            session.commit()

    def update_many(self, changes: Mapping[str, Mapping[str, Any]]) -> None:
        with self._session("update tasks") as session:
            for task_id, fields in changes.items():
                row = session.get(TaskRow, task_id)
                if row is None:
                    raise NotFoundError(task_id)
                for key, value in fields.items():
                    if key == "id" or not hasattr(row, key):
                        continue
                    setattr(row, key, _row_value(key, value))
                session.add(row)
            session.commit()

    def delete_tasks(self, task_ids: Iterable[str]) -> int:
        removed = 0
        with self._session("delete tasks") as session:
            for task_id in task_ids:
                row = session.get(TaskRow, task_id)
                if row is not None:
                    session.delete(row)
                    removed += 1
            session.commit()
        return removed

    def clear_completed_tasks(self) -> int:
        with self._session("clear completed tasks") as session:
            stmt = select(TaskRow).where(TaskRow.is_completed == True)  # noqa: E712
            rows = list(session.exec(stmt))
            for row in rows:
                session.delete(row)
            session.commit()
        return len(rows)

    def replace_all(self, tasks: Iterable[Task]) -> None:
        with self._session("replace tasks") as session:
            for row in session.exec(select(TaskRow)):
                session.delete(row)
            session.flush()
            for task in tasks:
                session.add(task.to_row())
            session.commit()

    # ----- settings -----
    def get_settings(self) -> Optional[AppSettings]:
        with self._session("load settings") as session:
            row = session.get(SettingsRow, SETTINGS_ID)
            return AppSettings.from_dict(row.payload) if row else None

    def update_settings(self, settings: AppSettings) -> None:
        with self._session("save settings") as session:
            row = session.get(SettingsRow, SETTINGS_ID)
            if row is None:
                row = SettingsRow(id=SETTINGS_ID)
            row.payload = settings.to_dict()
            row.updated_at = utc_now()
            session.add(row)
            session.commit()

    def ensure_default_settings(self) -> AppSettings:
        current = self.get_settings()
        if current is not None:
            return current
        defaults = AppSettings()
        self.update_settings(defaults)
        logger.info("Default settings written")
        return defaults

    # ----- snapshots -----
    def export_all(self) -> Tuple[List[Task], AppSettings]:
        return self.get_all_tasks(), self.get_settings() or AppSettings()


__all__ = ["TaskStore"]
