"""Export/import documents for backups and manual data transfer.

The JSON document is the portable format shared by manual export, automatic
backups and import:

    {
      "version": "1.0.0",
      "timestamp": "...Z",
      "tasks": [...],
      "settings": {...},
      "metadata": {"total_tasks": .., "completed_tasks": .., ...}
    }
"""
from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from core.errors import ValidationError
from core.priorities import priority_mark
from core.settings import APP_NAME
from models.settings import AppSettings
from models.task import Task
from utils.datetime_utils import to_rfc3339_utc, utc_now

EXPORT_VERSION = "1.0.0"
FORMAT_VERSION = "1.0"
EXPORT_FORMATS = ("json", "csv", "txt")
CSV_HEADERS = ("ID", "Title", "Description", "Priority", "Status", "Created", "Due", "Tags")


@dataclass(frozen=True)
class ImportDocument:
    tasks: Tuple[Task, ...]
    settings: Optional[Dict[str, Any]] = None
    version: Optional[str] = None
    timestamp: Optional[str] = None


def build_document(
    tasks: Iterable[Task],
    settings: AppSettings,
    *,
    moment: Optional[datetime] = None,
) -> Dict[str, Any]:
    items = list(tasks)
    return {
        "version": EXPORT_VERSION,
        "timestamp": to_rfc3339_utc(moment or utc_now()),
        "tasks": [task.to_dict() for task in items],
        "settings": settings.to_dict(),
        "metadata": {
            "total_tasks": len(items),
            "completed_tasks": sum(1 for t in items if t.is_completed),
            "export_source": APP_NAME,
            "format_version": FORMAT_VERSION,
        },
    }


def dumps_document(document: Mapping[str, Any]) -> str:
    return json.dumps(document, ensure_ascii=False, indent=2)


def parse_document(source: Union[str, bytes, Mapping[str, Any]]) -> ImportDocument:
    """Validate an export document; nothing is applied here."""
    if isinstance(source, (str, bytes)):
        try:
            data = json.loads(source)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError("Import file is not valid JSON") from exc
    else:
        data = source
    if not isinstance(data, Mapping):
        raise ValidationError("Import document must be a JSON object")
    raw_tasks = data.get("tasks")
    if raw_tasks is None:
        raise ValidationError("Import document has no tasks")
    if not isinstance(raw_tasks, list):
        raise ValidationError("Import document tasks must be a list")

    tasks = tuple(Task.from_dict(item) for item in raw_tasks)
    ids = [t.id for t in tasks]
    if len(set(ids)) != len(ids):
        raise ValidationError("Import document contains duplicate task ids")

    settings = data.get("settings")
    return ImportDocument(
        tasks=tasks,
        settings=dict(settings) if isinstance(settings, Mapping) else None,
        version=str(data["version"]) if data.get("version") is not None else None,
        timestamp=data.get("timestamp") if isinstance(data.get("timestamp"), str) else None,
    )


def tasks_to_csv(tasks: Iterable[Task]) -> str:
    """Spreadsheet export; the BOM lets Excel detect UTF-8."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for task in tasks:
        writer.writerow(
            [
                task.id,
                task.title,
                task.description or "",
                task.priority,
                "done" if task.is_completed else "todo",
                to_rfc3339_utc(task.created_at),
                task.due_date.isoformat() if task.due_date else "",
                ", ".join(task.tags),
            ]
        )
    return "\ufeff" + buffer.getvalue()


def tasks_to_text(tasks: Iterable[Task]) -> str:
    blocks = []
    for task in tasks:
        lines = [f"{'✓' if task.is_completed else '○'} {priority_mark(task.priority)} {task.title}"]
        if task.description:
            lines.append(f"  {task.description}")
        if task.due_date:
            lines.append(f"  Due: {task.due_date.isoformat()}")
        if task.tags:
            lines.append(f"  Tags: {', '.join(task.tags)}")
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def render_export(fmt: str, tasks: Iterable[Task], settings: AppSettings) -> str:
    if fmt == "json":
        return dumps_document(build_document(tasks, settings))
    if fmt == "csv":
        return tasks_to_csv(tasks)
    if fmt == "txt":
        return tasks_to_text(tasks)
    raise ValidationError(f"Unknown export format: {fmt!r}")


def export_filename(fmt: str, moment: Optional[datetime] = None) -> str:
    day = (moment or utc_now()).date().isoformat()
    kind = "data" if fmt == "json" else "tasks"
    return f"desktodo-{kind}-{day}.{fmt}"


__all__ = [
    "EXPORT_FORMATS",
    "EXPORT_VERSION",
    "ImportDocument",
    "build_document",
    "dumps_document",
    "export_filename",
    "parse_document",
    "render_export",
    "tasks_to_csv",
    "tasks_to_text",
]
