"""Logging for the ``office_bu`` package.

The CLI calls ``configure_logging`` once from its callback; ``--verbose``
turns on DEBUG, otherwise ``OFFICE_BU_LOG_LEVEL`` or WARNING applies.
Modules only ever call ``get_logger(__name__)``.
"""

from __future__ import annotations

import logging
import os

PACKAGE_LOGGER = "office_bu"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv("OFFICE_BU_LOG_LEVEL")
    if env_val:
        return _parse_level(env_val)
    return logging.WARNING


def configure_logging(level: int | str | None = None) -> None:
    """Send package logs to stderr at the given level. Later calls are no-ops."""
    global _configured
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_parse_level(level))
    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Module logger; stays silent until the CLI configures output"""
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
