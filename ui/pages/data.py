# desktodo/ui/pages/data.py
from __future__ import annotations

import flet as ft

from core.errors import TodoError
from services.auto_backup import AutoBackupService
from services.data_transfer import EXPORT_FORMATS, export_filename
from storage.backup import BackupFile


def _size_label(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    return f"{size / 1024:.1f} KB"


class DataPage:
    """Export, backups and restore."""

    def __init__(self, app, backup: AutoBackupService):
        self.app = app
        self.backup = backup
        self._export_format = "json"

        self.export_picker = ft.FilePicker(on_result=self._on_export_path)
        if self.export_picker not in self.app.page.overlay:
            self.app.page.overlay.append(self.export_picker)

        self.format_dd = ft.Dropdown(
            label="Format",
            width=140,
            value="json",
            options=[ft.dropdown.Option(fmt, fmt.upper()) for fmt in EXPORT_FORMATS],
        )
        self.stats_text = ft.Text(size=12, color=ft.Colors.BLUE_GREY_400)
        self.backup_list = ft.ListView(expand=True, spacing=6)

        self.view = ft.Container(
            padding=16,
            expand=True,
            content=ft.Column(
                [
                    ft.Text("Export", size=18, weight=ft.FontWeight.W_600),
                    ft.Row(
                        [
                            self.format_dd,
                            ft.FilledButton("Export…", icon=ft.Icons.SAVE_ALT, on_click=self.on_export),
                        ]
                    ),
                    ft.Divider(),
                    ft.Row(
                        [
                            ft.Text("Backups", size=18, weight=ft.FontWeight.W_600),
                            ft.OutlinedButton("Back up now", icon=ft.Icons.BACKUP, on_click=self.on_backup_now),
                        ],
                        alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                    ),
                    self.stats_text,
                    self.backup_list,
                ],
                spacing=12,
                expand=True,
            ),
        )

    # ---------- events ----------
    def on_export(self, e):
        self._export_format = self.format_dd.value or "json"
        self.export_picker.save_file(
            dialog_title="Export tasks",
            file_name=export_filename(self._export_format),
            allowed_extensions=[self._export_format],
        )

    def _on_export_path(self, e: ft.FilePickerResultEvent):
        if not e.path:
            return
        try:
            self.backup.manual_backup(e.path, self._export_format)
        except TodoError as exc:
            self.backup.engine.notifier.error(str(exc))
        self.refresh()

    def on_backup_now(self, e):
        self.backup.perform_backup()
        self.refresh()

    def on_restore(self, item: BackupFile):
        def _confirm(e):
            self.app.page.close(dlg)
            try:
                self.backup.restore_from_backup(item.path)
            except TodoError as exc:
                self.backup.engine.notifier.error(f"Restore failed: {exc}")
            self.refresh()

        dlg = ft.AlertDialog(
            modal=True,
            title=ft.Text("Restore backup?"),
            content=ft.Text("All current tasks will be replaced. This cannot be undone."),
            actions=[
                ft.TextButton("Cancel", on_click=lambda e: self.app.page.close(dlg)),
                ft.FilledButton("Restore", on_click=_confirm),
            ],
        )
        self.app.page.open(dlg)

    # ---------- rendering ----------
    def refresh(self):
        stats = self.backup.stats()
        last = stats["last_backup"]
        last_label = last.timestamp.strftime("%Y-%m-%d %H:%M") if last else "never"
        self.stats_text.value = (
            f"{stats['successful']} of {stats['total']} backups succeeded, last: {last_label}"
        )
        self.backup_list.controls = [
            ft.ListTile(
                leading=ft.Icon(ft.Icons.DESCRIPTION_OUTLINED),
                title=ft.Text(item.created_at.strftime("%Y-%m-%d %H:%M:%S")),
                subtitle=ft.Text(_size_label(item.size)),
                trailing=ft.IconButton(
                    icon=ft.Icons.RESTORE,
                    tooltip="Restore",
                    on_click=lambda e, it=item: self.on_restore(it),
                ),
            )
            for item in self.backup.available_backups()
        ]
        self.app.page.update()
