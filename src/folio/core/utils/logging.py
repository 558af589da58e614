"""
Logging configuration using loguru.

Every folio module logs through ``from loguru import logger``. Hosts call
setup_logging() once at startup to pick level and sinks; library code never
adds sinks on its own.
"""

from __future__ import annotations

import sys
from typing import Any

from loguru import logger

DEFAULT_FORMAT = "<level>[{level.name}]</level> {extra[component]}: {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = DEFAULT_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure loguru with console and optional file output.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. If None, only logs to stderr.
        fmt: Loguru format string.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.configure(extra={"component": "folio"})
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[component]} | {message}",
            rotation=rotation,
            retention=retention,
        )


def get_logger(component: str, **extra: Any):
    """Return the shared logger bound to a component name (e.g. a plugin)."""
    return logger.bind(component=component, **extra)
