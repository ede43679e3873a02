"""Simple JSON-backed configuration store."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.settings import CONFIG_PATH
from models.task import FILTER_KINDS


@dataclass
class AppConfig:
    """View state restored on the next start, persisted to ``config.json``."""

    filter: str = "all"
    search_query: str = ""


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[Path] = None) -> AppConfig:
    target = path or CONFIG_PATH
    data = _load_raw(target)
    filter_kind = data.get("filter")
    query = data.get("search_query")
    return AppConfig(
        filter=filter_kind if filter_kind in FILTER_KINDS else "all",
        search_query=query if isinstance(query, str) else "",
    )


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    target = path or CONFIG_PATH
    _ensure_parent(target)
    payload = json.dumps(asdict(config), ensure_ascii=False, indent=2, sort_keys=True)
    tmp = target.with_suffix(".tmp")
    try:
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(target)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def update_config(path: Optional[Path] = None, **changes: Any) -> AppConfig:
    target = path or CONFIG_PATH
    cfg = load_config(target)
    for key, value in changes.items():
        if hasattr(cfg, key):
            setattr(cfg, key, value)
    save_config(cfg, target)
    return cfg


__all__ = ["AppConfig", "load_config", "save_config", "update_config"]
