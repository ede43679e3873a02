# desktodo/ui/pages/tasks.py
from __future__ import annotations

import flet as ft

from core.priorities import (
    DEFAULT_PRIORITY,
    priority_bgcolor,
    priority_color,
    priority_label,
    priority_options,
)
from core.settings import LIMITS
from models.task import Task
from services.tasks import TaskEngine

FILTER_LABELS = {"all": "All", "active": "Active", "completed": "Completed"}


class TasksPage:
    def __init__(self, app, engine: TaskEngine):
        self.app = app
        self.engine = engine

        # ---------- quick add ----------
        self.title_tf = ft.TextField(
            label="New task",
            hint_text="e.g. Buy milk",
            expand=True,
            max_length=LIMITS.title_max_length,
            prefix=ft.Icon(ft.Icons.TASK_ALT),
            on_submit=self.on_add,
        )
        self.priority_dd = ft.Dropdown(
            label="Priority",
            width=160,
            value=DEFAULT_PRIORITY,
            options=[ft.dropdown.Option(key, label) for key, label in priority_options().items()],
        )
        self.add_btn = ft.FilledButton("Add", icon=ft.Icons.ADD, on_click=self.on_add)

        # ---------- filter & search ----------
        self.filter_dd = ft.Dropdown(
            label="Show",
            width=160,
            value=engine.filter,
            options=[ft.dropdown.Option(key, label) for key, label in FILTER_LABELS.items()],
            on_change=lambda e: self.engine.set_filter(e.control.value),
        )
        self.search_tf = ft.TextField(
            label="Search",
            value=engine.search_query,
            expand=True,
            prefix=ft.Icon(ft.Icons.SEARCH),
            on_change=lambda e: self.engine.set_search_query(e.control.value),
        )

        # ---------- footer ----------
        self.stats_text = ft.Text(size=12, color=ft.Colors.BLUE_GREY_400)
        self.undo_btn = ft.IconButton(
            icon=ft.Icons.UNDO,
            tooltip="Undo",
            on_click=lambda e: self.engine.undo(),
        )
        self.clear_btn = ft.TextButton(
            "Clear completed",
            icon=ft.Icons.CLEANING_SERVICES_OUTLINED,
            on_click=lambda e: self.engine.clear_completed(),
        )
        self.error_text = ft.Text(color=ft.Colors.RED_400, size=12, visible=False)

        self.task_list = ft.ListView(expand=True, spacing=8)

        self.view = ft.Container(
            padding=16,
            expand=True,
            content=ft.Column(
                [
                    ft.Row([self.title_tf, self.priority_dd, self.add_btn],
                           vertical_alignment=ft.CrossAxisAlignment.START),
                    ft.Row([self.filter_dd, self.search_tf]),
                    self.error_text,
                    self.task_list,
                    ft.Row(
                        [self.stats_text, ft.Row([self.clear_btn, self.undo_btn], spacing=4)],
                        alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                    ),
                ],
                spacing=12,
                expand=True,
            ),
        )

    # ---------- events ----------
    def on_add(self, e=None):
        title = (self.title_tf.value or "").strip()
        if not title:
            self.title_tf.error_text = "Enter a title"
            self.app.page.update()
            return
        self.title_tf.error_text = None
        if self.engine.create(title, self.priority_dd.value):
            self.title_tf.value = ""
        self.title_tf.focus()

    def on_delete(self, task_id: str):
        self.engine.delete(task_id)

    def on_move(self, position: int, offset: int):
        self.engine.reorder(position, position + offset)

    # ---------- rendering ----------
    def refresh(self):
        visible = self.engine.visible_tasks()
        self.task_list.controls = [self._task_row(t, i, len(visible)) for i, t in enumerate(visible)]
        if not visible:
            self.task_list.controls = [
                ft.Container(ft.Text("No tasks here", color=ft.Colors.BLUE_GREY_300), padding=24)
            ]
        stats = self.engine.stats()
        self.stats_text.value = f"{stats['active']} active, {stats['completed']} completed"
        self.undo_btn.disabled = not self.engine.can_undo
        self.clear_btn.disabled = stats["completed"] == 0
        self.error_text.value = self.engine.error or ""
        self.error_text.visible = bool(self.engine.error)

    def _task_row(self, t: Task, position: int, count: int) -> ft.Control:
        checkbox = ft.Checkbox(
            value=t.is_completed,
            on_change=lambda e, tid=t.id: self.engine.toggle_complete(tid),
        )
        title = ft.Text(
            t.title,
            size=15,
            expand=True,
            style=ft.TextStyle(
                decoration=ft.TextDecoration.LINE_THROUGH if t.is_completed else ft.TextDecoration.NONE
            ),
            color=ft.Colors.BLUE_GREY_300 if t.is_completed else None,
        )
        meta = [
            ft.Container(
                content=ft.Text(priority_label(t.priority, short=True), size=11, color=priority_color(t.priority)),
                bgcolor=priority_bgcolor(t.priority),
                border_radius=8,
                padding=ft.padding.symmetric(horizontal=6, vertical=2),
            )
        ]
        if t.due_date:
            meta.append(ft.Text(f"Due {t.due_date.isoformat()}", size=12, color=ft.Colors.BLUE_GREY_400))
        if t.tags:
            meta.append(ft.Text(" ".join(f"#{tag}" for tag in t.tags), size=12, color=ft.Colors.BLUE_GREY_400))

        marker = ft.Container(
            width=12,
            height=12,
            border_radius=6,
            bgcolor=priority_color(t.priority),
            tooltip=priority_label(t.priority),
        )
        actions = ft.Row(
            [
                ft.IconButton(
                    icon=ft.Icons.ARROW_UPWARD,
                    tooltip="Move up",
                    disabled=position == 0,
                    on_click=lambda e, p=position: self.on_move(p, -1),
                ),
                ft.IconButton(
                    icon=ft.Icons.ARROW_DOWNWARD,
                    tooltip="Move down",
                    disabled=position >= count - 1,
                    on_click=lambda e, p=position: self.on_move(p, 1),
                ),
                ft.IconButton(
                    icon=ft.Icons.DELETE_OUTLINE,
                    tooltip="Delete",
                    on_click=lambda e, tid=t.id: self.on_delete(tid),
                ),
            ],
            spacing=0,
        )
        return ft.Container(
            content=ft.Row(
                [
                    checkbox,
                    marker,
                    ft.Column([ft.Row([title]), ft.Row(meta, spacing=12)], spacing=4, expand=True),
                    actions,
                ],
                vertical_alignment=ft.CrossAxisAlignment.CENTER,
            ),
            padding=ft.padding.symmetric(horizontal=12, vertical=8),
            border_radius=12,
            bgcolor=ft.Colors.SURFACE,
            border=ft.border.all(1, ft.Colors.with_opacity(0.08, ft.Colors.ON_SURFACE)),
            on_click=lambda e, tid=t.id: self.engine.set_selected_task(tid),
        )
