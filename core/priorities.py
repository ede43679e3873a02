"""Utility helpers for task priorities."""
from __future__ import annotations

from typing import Dict

from core.errors import ValidationError

# Three levels only; the task list shows one coloured dot per task.
PRIORITY_META: Dict[str, Dict[str, str]] = {
    "low": {
        "label": "Low priority",
        "short": "Low",
        "color": "#22C55E",    # green-500
        "bgcolor": "#DCFCE7",  # green-100
        "mark": "🟢",
    },
    "medium": {
        "label": "Medium priority",
        "short": "Medium",
        "color": "#EAB308",    # yellow-500
        "bgcolor": "#FEF9C3",  # yellow-100
        "mark": "🟡",
    },
    "high": {
        "label": "High priority",
        "short": "High",
        "color": "#EF4444",    # red-500
        "bgcolor": "#FEE2E2",  # red-100
        "mark": "🔴",
    },
}

PRIORITIES = tuple(PRIORITY_META.keys())
DEFAULT_PRIORITY = "medium"


def normalize_priority(value: str | None) -> str:
    """Return a canonical priority name or raise for unknown values."""
    if value is None:
        return DEFAULT_PRIORITY
    key = str(value).strip().lower()
    if not key:
        return DEFAULT_PRIORITY
    if key not in PRIORITY_META:
        raise ValidationError(f"Unknown priority: {value!r}")
    return key


def priority_label(value: str, *, short: bool = False) -> str:
    meta = PRIORITY_META.get(value, PRIORITY_META[DEFAULT_PRIORITY])
    return meta["short" if short else "label"]


def priority_color(value: str) -> str:
    meta = PRIORITY_META.get(value, PRIORITY_META[DEFAULT_PRIORITY])
    return meta["color"]


def priority_bgcolor(value: str) -> str:
    meta = PRIORITY_META.get(value, PRIORITY_META[DEFAULT_PRIORITY])
    return meta["bgcolor"]


def priority_mark(value: str) -> str:
    meta = PRIORITY_META.get(value, PRIORITY_META[DEFAULT_PRIORITY])
    return meta["mark"]


def priority_options() -> Dict[str, str]:
    """Return mapping of dropdown values -> labels."""
    return {level: meta["label"] for level, meta in PRIORITY_META.items()}
