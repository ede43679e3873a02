# desktodo/ui/notifier.py
from __future__ import annotations

from typing import Callable, Optional

import flet as ft

from core.settings import UI
from services.notifications import Notifier

KIND_COLORS = {
    "success": ft.Colors.GREEN_700,
    "warning": ft.Colors.AMBER_800,
    "error": ft.Colors.RED_700,
    "info": ft.Colors.BLUE_GREY_700,
}


class SnackBarNotifier(Notifier):
    """Shows notifications as a flet ``SnackBar`` on the given page."""

    def __init__(self, page: ft.Page, is_enabled: Optional[Callable[[], bool]] = None):
        super().__init__(is_enabled)
        self.page = page

    def _build(self, title: str, body: str, kind: str) -> ft.SnackBar:
        return ft.SnackBar(
            content=ft.Column(
                [
                    ft.Text(title, weight=ft.FontWeight.W_600, color=ft.Colors.WHITE),
                    ft.Text(body, color=ft.Colors.WHITE),
                ],
                spacing=2,
                tight=True,
            ),
            bgcolor=KIND_COLORS.get(kind, KIND_COLORS["info"]),
            duration=UI.snack_duration_ms,
        )

    def _show(self, title: str, body: str, kind: str) -> None:
        snack = self._build(title, body, kind)
        # page.open() exists from flet 0.25 on; older pages only have snack_bar
        if hasattr(self.page, "open"):
            self.page.open(snack)
            return
        self.page.snack_bar = snack
        self.page.snack_bar.open = True
        self.page.update()


__all__ = ["SnackBarNotifier"]
