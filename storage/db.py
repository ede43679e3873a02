# desktodo/storage/db.py
from __future__ import annotations

from pathlib import Path
from typing import Callable

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

# Ensure SQLModel metadata is populated
import models.task  # noqa: F401
import models.settings  # noqa: F401
from storage import migrations


def create_db_engine(db_path: str | Path) -> Engine:
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{path.as_posix()}", echo=False)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
    migrations.run_all(engine)


def session_factory(engine: Engine) -> Callable[[], Session]:
    def factory() -> Session:
        return Session(engine)

    return factory


__all__ = ["create_db_engine", "init_db", "session_factory"]
