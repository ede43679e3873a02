from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest
from sqlmodel import Session, SQLModel, create_engine

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import models  # noqa: E402,F401  (registers the tables)
from services.notifications import Notifier  # noqa: E402
from services.settings import SettingsService  # noqa: E402
from services.tasks import TaskEngine  # noqa: E402
from storage.task_store import TaskStore  # noqa: E402


class FakeClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


class RecordingNotifier(Notifier):
    def __init__(self, is_enabled=None):
        super().__init__(is_enabled)
        self.shown = []

    def _show(self, title, body, kind):
        self.shown.append((title, body, kind))

    def kinds(self):
        return [kind for _, _, kind in self.shown]


class SequentialIds:
    def __init__(self):
        self.counter = 0

    def __call__(self):
        self.counter += 1
        return f"task-{self.counter}"


@pytest.fixture()
def session_factory():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    def factory():
        return Session(engine)

    yield factory
    engine.dispose()


@pytest.fixture()
def store(session_factory):
    return TaskStore(session_factory)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def settings_service(store):
    service = SettingsService(store)
    service.load()
    return service


@pytest.fixture()
def engine(store, notifier, clock, tmp_path):
    eng = TaskEngine(
        store,
        notifier=notifier,
        config_path=tmp_path / "config.json",
        clock=clock,
        id_factory=SequentialIds(),
    )
    eng.load()
    return eng


def titles(tasks):
    return [t.title for t in tasks]
