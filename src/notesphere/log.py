"""Loguru sink configuration.

Library modules only ever do ``from loguru import logger``; applications call
:func:`configure_logging` once at startup to replace loguru's default sink.

Environment variables (direct kwargs take precedence):
    NOTESPHERE_LOG_LEVEL  – minimum level for both sinks (default: ``INFO``)
    NOTESPHERE_LOG_FILE   – optional path of a rotating log file
"""

from __future__ import annotations

import os
import sys

from loguru import logger

_FORMAT = (
    "<c>{time:YYYY-MM-DD HH:mm:ss.SSS}</c> | <level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - {message}"
)


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Route loguru output to stderr and, optionally, a rotating file."""
    level = (level or os.getenv("NOTESPHERE_LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("NOTESPHERE_LOG_FILE") or None

    logger.remove()
    logger.add(sys.stderr, format=_FORMAT, level=level, colorize=True, backtrace=True, diagnose=False)
    if log_file:
        logger.add(
            log_file,
            format=_FORMAT,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )
