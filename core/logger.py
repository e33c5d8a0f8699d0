"""Centralized logging helpers for the consolidation signal service."""

from __future__ import annotations

import logging
from logging import Logger
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from config.settings import SETTINGS


_LOGGER_CACHE: Dict[str, Logger] = {}

_LOG_LEVELS = {
    "system": logging.INFO,
    "signals": logging.INFO,
    "errors": logging.ERROR,
}


def _build_handler(path: Path, level: int) -> TimedRotatingFileHandler:
    """Create a rotating file handler for the given log file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(path, when="midnight", backupCount=7, utc=True, delay=True)
    handler.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(logs_dir: Optional[Path] = None) -> None:
    """Configure the named loggers, or point them at ``logs_dir`` when given."""

    if _LOGGER_CACHE and logs_dir is None:
        return

    target = logs_dir or SETTINGS.logs_dir
    for name, level in _LOG_LEVELS.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False
        # Avoid duplicate handlers when reloading
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.addHandler(_build_handler(target / f"{name}.log", level))
        _LOGGER_CACHE[name] = logger


def get_logger(name: str) -> Logger:
    """Return a configured logger, ensuring configuration happens once."""

    if not _LOGGER_CACHE:
        configure_logging()
    if name not in _LOGGER_CACHE:
        # unknown names write into system.log
        logger = logging.getLogger(f"system.{name}")
        logger.setLevel(logging.INFO)
        _LOGGER_CACHE[name] = logger
    return _LOGGER_CACHE[name]


__all__ = ["configure_logging", "get_logger"]
