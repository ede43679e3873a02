# desktodo/services/auto_backup.py
from __future__ import annotations

import asyncio
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from core.errors import StorageError, ValidationError
from core.logs import get_logger
from core.settings import BACKUP
from services.data_transfer import ImportDocument, dumps_document, render_export
from services.settings import SettingsService
from services.tasks import TaskEngine
from storage.backup import BackupFile, list_backups, read_backup, write_backup, write_text_atomic
from utils.datetime_utils import utc_now

logger = get_logger("backup")

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class BackupRecord:
    id: str
    timestamp: datetime
    size: int
    task_count: int
    status: str
    error: Optional[str] = None
    path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


class AutoBackupService:
    """Periodic JSON snapshots of the engine's committed state.

    The snapshot is read from the engine, never from the database, so a
    backup always matches what the user sees.
    """

    def __init__(
        self,
        engine: TaskEngine,
        *,
        settings: Optional[SettingsService] = None,
        backup_dir: Union[str, Path] = BACKUP.directory,
        keep_files: int = BACKUP.keep_files,
        history_limit: int = BACKUP.history_limit,
    ):
        self.engine = engine
        self.settings = settings
        self.backup_dir = Path(backup_dir)
        self.keep_files = keep_files
        self._history: Deque[BackupRecord] = deque(maxlen=history_limit)
        self._running = False
        self._task: Any = None

    # ---------- settings ----------
    @property
    def is_running(self) -> bool:
        return self._running

    def is_enabled(self) -> bool:
        if self.settings is None:
            return BACKUP.enabled
        return self.settings.current.auto_backup

    def interval_hours(self) -> float:
        if self.settings is None:
            return BACKUP.interval_hours
        return self.settings.current.backup_interval or BACKUP.interval_hours

    # ---------- backups ----------
    def _record(self, record: BackupRecord) -> BackupRecord:
        self._history.append(record)
        return record

    def perform_backup(self) -> Optional[BackupRecord]:
        """Write one rotated backup; ``None`` when another backup is in progress."""
        if self._running:
            logger.info("Backup already running, skipping")
            return None
        self._running = True
        started = utc_now()
        document = self.engine.export_document(moment=started)
        task_count = len(document["tasks"])
        try:
            path = write_backup(
                dumps_document(document),
                self.backup_dir,
                keep_files=self.keep_files,
                moment=started,
            )
            record = BackupRecord(
                id=f"backup_{uuid.uuid4().hex}",
                timestamp=started,
                size=path.stat().st_size,
                task_count=task_count,
                status=STATUS_SUCCESS,
                path=path,
            )
            logger.info("Backup written: %s (%s tasks)", path.name, task_count)
        except OSError as exc:
            logger.error("Backup failed: %s", exc)
            record = BackupRecord(
                id=f"backup_{uuid.uuid4().hex}",
                timestamp=started,
                size=0,
                task_count=task_count,
                status=STATUS_FAILED,
                error=str(exc),
            )
        finally:
            self._running = False
        return self._record(record)

    def manual_backup(self, path: Union[str, Path], fmt: str = "json") -> BackupRecord:
        """Export to a file the user picked. Failures are recorded and re-raised."""
        started = utc_now()
        tasks, settings = self.engine.export_all()
        destination = Path(path)
        try:
            payload = render_export(fmt, tasks, settings)
            destination.parent.mkdir(parents=True, exist_ok=True)
            write_text_atomic(destination, payload)
        except OSError as exc:
            logger.error("Manual backup to %s failed: %s", destination, exc)
            self._record(
                BackupRecord(
                    id=f"manual_backup_{uuid.uuid4().hex}",
                    timestamp=started,
                    size=0,
                    task_count=len(tasks),
                    status=STATUS_FAILED,
                    error=str(exc),
                )
            )
            raise StorageError(f"Could not write {destination}") from exc

        logger.info("Manual backup written: %s", destination)
        self.engine.notifier.data_operation("export", len(tasks))
        return self._record(
            BackupRecord(
                id=f"manual_backup_{uuid.uuid4().hex}",
                timestamp=started,
                size=destination.stat().st_size,
                task_count=len(tasks),
                status=STATUS_SUCCESS,
                path=destination,
            )
        )

    def restore_from_backup(self, path: Union[str, Path]) -> ImportDocument:
        try:
            payload = read_backup(path)
        except OSError as exc:
            logger.error("Could not read backup %s: %s", path, exc)
            raise StorageError(f"Could not read backup {path}") from exc
        except UnicodeDecodeError as exc:
            logger.error("Backup %s is not UTF-8 text: %s", path, exc)
            raise ValidationError(f"Backup {path} is not a valid export file") from exc
        document = self.engine.import_document(payload)
        logger.info("Restored %s tasks from %s", len(document.tasks), Path(path).name)
        return document

    # ---------- history ----------
    def history(self) -> List[BackupRecord]:
        """Newest first."""
        return list(reversed(self._history))

    def last_backup(self) -> Optional[BackupRecord]:
        return self._history[-1] if self._history else None

    def available_backups(self) -> List[BackupFile]:
        return list_backups(self.backup_dir)

    def stats(self) -> Dict[str, Any]:
        total = len(self._history)
        successful = sum(1 for r in self._history if r.ok)
        last = self.last_backup()
        return {
            "total": total,
            "successful": successful,
            "failed": total - successful,
            "success_rate": round(successful / total * 100) if total else 0,
            "last_backup": last,
        }

    # ---------- scheduling ----------
    async def run(self, interval_hours: Optional[float] = None) -> None:
        """Back up immediately, then every ``interval_hours`` while enabled."""
        while self.is_enabled():
            record = self.perform_backup()
            if record is not None and not record.ok:
                self.engine.notifier.error(f"Automatic backup failed: {record.error}")
            hours = interval_hours or self.interval_hours()
            await asyncio.sleep(hours * 3600)
        logger.info("Automatic backup is disabled")

    def start(self, runner: Callable[..., Any]) -> None:
        """Schedule :meth:`run` with ``runner``, e.g. ``page.run_task``."""
        if self._task is not None or not self.is_enabled():
            return
        self._task = runner(self.run)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = None

    def restart(self, runner: Callable[..., Any]) -> None:
        self.stop()
        self.start(runner)


__all__ = ["AutoBackupService", "BackupRecord", "STATUS_FAILED", "STATUS_SUCCESS"]
