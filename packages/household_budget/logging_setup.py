"""Logging setup shared by the ``household_budget`` CLI and library modules.

Entrypoints call :func:`configure_logging` once; it installs one
``StreamHandler`` on the ``"household_budget"`` logger and stops propagation
to the root logger. Library modules only ever call
``get_logger("household_budget.<module>")`` and never attach handlers.

The level comes from the explicit argument, else the
``HOUSEHOLD_BUDGET_LOG_LEVEL`` environment variable, else ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "household_budget"
LOG_LEVEL_ENV = "HOUSEHOLD_BUDGET_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None) -> int:
    """Translate ``level`` (int, digit string or level name) into a logging level."""

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    # getLevelName() returns "Level X" for unknown names
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Attach the package handler (first call only) and return the package logger.

    Later calls only adjust the level, so a CLI ``--log-level`` flag can
    override an earlier default.
    """

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    numeric = resolve_level(level)

    if _handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        _handler = logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(_handler)
        logger.propagate = False

    _handler.setLevel(numeric)
    logger.setLevel(numeric)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, silencing the package until configured."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
