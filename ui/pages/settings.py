# desktodo/ui/pages/settings.py
from __future__ import annotations

import flet as ft

from core.errors import TodoError
from models.settings import THEMES
from services.settings import SettingsService

THEME_LABELS = {"light": "Light", "dark": "Dark", "system": "System"}
THEME_MODES = {"light": ft.ThemeMode.LIGHT, "dark": ft.ThemeMode.DARK, "system": ft.ThemeMode.SYSTEM}


def theme_mode(name: str) -> ft.ThemeMode:
    return THEME_MODES.get(name, ft.ThemeMode.SYSTEM)


class SettingsPage:
    def __init__(self, app, settings: SettingsService):
        self.app = app
        self.settings = settings

        self.theme_dd = ft.Dropdown(
            label="Theme",
            width=200,
            options=[ft.dropdown.Option(key, THEME_LABELS[key]) for key in THEMES],
            on_change=self.on_theme_change,
        )
        self.notifications_sw = ft.Switch(
            label="Show notifications",
            on_change=self.on_notifications_change,
        )
        self.auto_backup_sw = ft.Switch(
            label="Automatic backups",
            on_change=self.on_auto_backup_change,
        )
        self.interval_tf = ft.TextField(
            label="Backup every (hours)",
            width=200,
            keyboard_type=ft.KeyboardType.NUMBER,
            on_submit=self.on_interval_submit,
            on_blur=self.on_interval_submit,
        )
        self.reset_btn = ft.TextButton(
            "Restore defaults",
            icon=ft.Icons.RESTART_ALT,
            on_click=self.on_reset,
        )
        self.error_text = ft.Text(color=ft.Colors.RED_400, size=12, visible=False)

        content = ft.Column(
            controls=[
                ft.Text("Settings", size=24, weight=ft.FontWeight.BOLD),
                ft.Text("Appearance", size=18, weight=ft.FontWeight.W_600),
                self.theme_dd,
                self.notifications_sw,
                ft.Divider(),
                ft.Text("Backups", size=18, weight=ft.FontWeight.W_600),
                self.auto_backup_sw,
                self.interval_tf,
                self.error_text,
                self.reset_btn,
            ],
            expand=True,
            spacing=16,
        )

        self.view = ft.Container(content=content, expand=True, padding=20)
        self.refresh()

    def refresh(self):
        current = self.settings.current
        self.theme_dd.value = current.theme
        self.notifications_sw.value = current.notifications_enabled
        self.auto_backup_sw.value = current.auto_backup
        self.interval_tf.value = str(current.backup_interval)
        self.interval_tf.disabled = not current.auto_backup
        self.interval_tf.error_text = None

    # ---------- events ----------
    def _apply(self, **changes) -> bool:
        try:
            self.settings.update(**changes)
        except TodoError as exc:
            self.error_text.value = f"Could not save settings: {exc}"
            self.error_text.visible = True
            self.app.page.update()
            return False
        self.error_text.visible = False
        self.refresh()
        self.app.page.update()
        return True

    def on_theme_change(self, e=None):
        self._apply(theme=self.theme_dd.value)

    def on_notifications_change(self, e=None):
        self._apply(notifications_enabled=bool(self.notifications_sw.value))

    def on_auto_backup_change(self, e=None):
        self._apply(auto_backup=bool(self.auto_backup_sw.value))

    def on_interval_submit(self, e=None):
        text = (self.interval_tf.value or "").strip()
        try:
            hours = int(text)
        except ValueError:
            hours = 0
        if hours <= 0:
            self.interval_tf.error_text = "Enter a whole number of hours"
            self.app.page.update()
            return
        if hours != self.settings.current.backup_interval:
            self._apply(backup_interval=hours)

    def on_reset(self, e=None):
        try:
            self.settings.reset()
        except TodoError as exc:
            self.error_text.value = f"Could not reset settings: {exc}"
            self.error_text.visible = True
        else:
            self.error_text.visible = False
        self.refresh()
        self.app.page.update()
