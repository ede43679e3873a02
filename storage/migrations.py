"""Ad-hoc database migrations for DeskTodo."""

from __future__ import annotations

from sqlalchemy import text


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_task_columns(conn) -> None:
    columns = {
        "description": "TEXT",
        "due_date": "DATE",
        "completed_at": "DATETIME",
        "tags": "JSON NOT NULL DEFAULT '[]'",
        "notes": "JSON NOT NULL DEFAULT '[]'",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "tasks", name):
            conn.execute(text(f"ALTER TABLE tasks ADD COLUMN {name} {ddl_type}"))


def ensure_completion_consistency(conn) -> None:
    # Rows written before completed_at existed: completed tasks borrow updated_at.
    conn.execute(
        text(
            """
            UPDATE tasks
            SET completed_at = updated_at
            WHERE is_completed = 1 AND completed_at IS NULL
            """
        )
    )
    conn.execute(
        text(
            """
            UPDATE tasks
            SET completed_at = NULL
            WHERE is_completed = 0 AND completed_at IS NOT NULL
            """
        )
    )


def ensure_task_indexes(conn) -> None:
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_order_index ON tasks(order_index)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_is_completed ON tasks(is_completed)"))


def run_all(engine) -> None:
    with engine.begin() as conn:
        ensure_task_columns(conn)
        ensure_completion_consistency(conn)
        ensure_task_indexes(conn)


__all__ = ["run_all"]
