"""Utilities for JSON backup files."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

BACKUP_PREFIX = "desktodo_backup_"
BACKUP_SUFFIX = ".json"
_STAMP_FORMAT = "%Y%m%dT%H%M%S%f"


@dataclass(frozen=True)
class BackupFile:
    path: Path
    created_at: datetime
    size: int


def _parse_backup_time(path: Path, prefix: str = BACKUP_PREFIX) -> datetime | None:
    stem = path.stem
    if not stem.startswith(prefix):
        return None
    stamp = stem[len(prefix) :]
    try:
        return datetime.strptime(stamp, _STAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def backup_filename(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    return f"{BACKUP_PREFIX}{moment.strftime(_STAMP_FORMAT)}{BACKUP_SUFFIX}"


def list_backups(backup_dir: str | Path) -> List[BackupFile]:
    """Return backups newest first; foreign files in the directory are ignored."""

    directory = Path(backup_dir)
    if not directory.exists():
        return []
    found: List[BackupFile] = []
    for file in directory.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
        created = _parse_backup_time(file)
        if created is None:
            continue
        try:
            size = file.stat().st_size
        except OSError:
            continue
        found.append(BackupFile(path=file, created_at=created, size=size))
    found.sort(key=lambda item: item.created_at, reverse=True)
    return found


def rotate_backups(backup_dir: str | Path, *, keep_files: int) -> List[Path]:
    """Delete all but the newest ``keep_files`` backups and return what was removed."""

    if keep_files <= 0:
        return []
    removed: List[Path] = []
    for item in list_backups(backup_dir)[keep_files:]:
        try:
            item.path.unlink()
            removed.append(item.path)
        except OSError:
            pass
    return removed


def write_backup(
    payload: str,
    backup_dir: str | Path,
    *,
    keep_files: int = 10,
    moment: Optional[datetime] = None,
) -> Path:
    """Write ``payload`` as a new timestamped backup and rotate old copies."""

    backups = Path(backup_dir)
    backups.mkdir(parents=True, exist_ok=True)
    destination = backups / backup_filename(moment or datetime.now(timezone.utc))
    write_text_atomic(destination, payload)
    rotate_backups(backups, keep_files=keep_files)
    return destination


def write_text_atomic(destination: Path, payload: str) -> None:
    tmp = destination.with_suffix(".tmp")
    try:
        tmp.write_text(payload, encoding="utf-8")
        os.replace(tmp, destination)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def read_backup(path: str | Path) -> str:
    return Path(path).read_text(encoding="utf-8")


__all__ = [
    "BackupFile",
    "backup_filename",
    "list_backups",
    "read_backup",
    "rotate_backups",
    "write_backup",
    "write_text_atomic",
]
