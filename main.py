# desktodo/main.py
import flet as ft

from core.settings import BACKUP, CONFIG_PATH, DB_PATH, UI
from core.logs import get_logger
from services.auto_backup import AutoBackupService
from services.settings import SettingsService
from services.tasks import TaskEngine
from storage.db import create_db_engine, init_db, session_factory
from storage.task_store import TaskStore
from ui.app_shell import AppShell
from ui.notifier import SnackBarNotifier
from ui.pages.settings import theme_mode

logger = get_logger("app")


def build_services(page: ft.Page):
    db_engine = create_db_engine(DB_PATH)
    init_db(db_engine)
    store = TaskStore(session_factory(db_engine))
    settings = SettingsService(store)
    engine = TaskEngine(
        store,
        settings=settings,
        notifier=SnackBarNotifier(page, settings.notifications_enabled),
        config_path=CONFIG_PATH,
    )
    engine.load()
    backup = AutoBackupService(engine, settings=settings, backup_dir=BACKUP.directory)
    return engine, settings, backup


def main(page: ft.Page):
    page.title = UI.app_title
    page.theme = ft.Theme(color_scheme_seed=UI.color_scheme_seed)
    page.appbar = ft.AppBar(title=ft.Text(UI.app_title), center_title=False)
    page.padding = 0
    page.window.min_width = UI.window_min_width
    page.window.min_height = UI.window_min_height

    engine, settings, backup = build_services(page)
    page.theme_mode = theme_mode(settings.current.theme)
    logger.info("Started with %s tasks", len(engine.tasks))

    shell = AppShell(page, engine, backup, settings)
    settings.subscribe(lambda current: backup.restart(page.run_task))
    page.on_disconnect = lambda e: shell.unmount()
    shell.mount()


def run():
    ft.app(target=main)


if __name__ == "__main__":
    run()
