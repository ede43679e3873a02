# desktodo/ui/app_shell.py
from __future__ import annotations

import flet as ft

from core.logs import get_logger
from core.settings import UI
from services.auto_backup import AutoBackupService
from services.settings import SettingsService
from services.tasks import TaskEngine

from .pages.data import DataPage
from .pages.settings import SettingsPage, theme_mode
from .pages.tasks import TasksPage

logger = get_logger("ui")


class AppShell:
    def __init__(
        self,
        page: ft.Page,
        engine: TaskEngine,
        backup: AutoBackupService,
        settings: SettingsService,
    ):
        self.page = page
        self.engine = engine
        self.backup = backup
        self.settings = settings

        self.page.title = UI.app_title
        self.page.horizontal_alignment = ft.CrossAxisAlignment.STRETCH
        self.page.vertical_alignment = ft.MainAxisAlignment.START

        # --- pages ---
        self._tasks = TasksPage(self, engine)
        self._data = DataPage(self, backup)
        self._settings = SettingsPage(self, settings)
        self._pages = [self._tasks, self._data, self._settings]

        self.content = ft.Container(expand=True)

        self.nav = ft.NavigationRail(
            selected_index=0,
            label_type=ft.NavigationRailLabelType.ALL,
            min_width=90,
            group_alignment=-0.9,
            on_change=self.on_nav_change,
            destinations=[
                ft.NavigationRailDestination(
                    icon=ft.Icons.CHECK_CIRCLE_OUTLINE,
                    selected_icon=ft.Icons.CHECK_CIRCLE,
                    label="Tasks",
                ),
                ft.NavigationRailDestination(
                    icon=ft.Icons.BACKUP_OUTLINED,
                    selected_icon=ft.Icons.BACKUP,
                    label="Data",
                ),
                ft.NavigationRailDestination(
                    icon=ft.Icons.SETTINGS_OUTLINED,
                    selected_icon=ft.Icons.SETTINGS,
                    label="Settings",
                ),
            ],
        )

        self.root = ft.Row(
            controls=[
                ft.Container(self.nav, width=88),
                ft.VerticalDivider(width=1),
                self.content,
            ],
            expand=True,
            spacing=0,
        )

        self.engine.subscribe(self._on_engine_change)
        self.settings.subscribe(self._on_settings_change)

    # ---------- mounting ----------
    def mount(self):
        self.page.controls.clear()
        self.page.add(self.root)
        self.content.content = self._tasks.view
        self._tasks.refresh()
        self.page.update()
        self.backup.start(self.page.run_task)

    def unmount(self):
        self.backup.stop()
        self.engine.unsubscribe(self._on_engine_change)
        self.settings.unsubscribe(self._on_settings_change)

    # ---------- navigation ----------
    def on_nav_change(self, e: ft.ControlEvent):
        page = self._pages[int(e.control.selected_index)]
        self.content.content = page.view
        page.refresh()
        self.page.update()

    def _on_engine_change(self, engine: TaskEngine):
        self._tasks.refresh()
        try:
            self.page.update()
        except RuntimeError as exc:
            # page already closed
            logger.debug("Skipping refresh: %s", exc)

    def _on_settings_change(self, current):
        self.page.theme_mode = theme_mode(current.theme)
        try:
            self.page.update()
        except RuntimeError as exc:
            logger.debug("Skipping theme update: %s", exc)
