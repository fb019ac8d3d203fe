"""Logging for the ``hybridrag`` namespace; the level comes from ``LOG_LEVEL``."""

from __future__ import annotations

import logging
import sys

from hybrid_rag.core.config import settings

ROOT_LOGGER_NAME = "hybridrag"
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def resolve_level(name: str | None) -> int:
    """Level number for a name such as ``"debug"``; unknown names mean INFO."""
    level = logging.getLevelName((name or "").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: int | None = None) -> logging.Logger:
    """Attach the stderr handler once and (re)apply the level."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(resolve_level(settings.log_level) if level is None else level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        setup_logging()
    return logging.getLogger(name)
