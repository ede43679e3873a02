"""Application log setup: one rotating file shared by every module."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from core.settings import LOGGING

ROOT_LOGGER = "desktodo"


def _ensure_root_logger() -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        LOGGING.path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            LOGGING.path,
            maxBytes=LOGGING.max_bytes,
            backupCount=LOGGING.backup_count,
            encoding="utf-8",
        )
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``desktodo.<name>``, attaching the file handler on first use."""
    _ensure_root_logger()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


__all__ = ["get_logger", "ROOT_LOGGER"]
