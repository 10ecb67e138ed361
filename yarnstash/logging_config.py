"""Logging configuration helpers for Yarnstash."""

from __future__ import annotations

import logging
import os
from typing import Final


_DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_ACCESS_FORMAT: Final[str] = "%(asctime)s %(message)s"
_DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

APP_LOGGER: Final[str] = "yarnstash"
ACCESS_LOGGER: Final[str] = "yarnstash.access"


def _resolve_level(level_name: str) -> int:
    """Translate a log level string or number into a logging level."""

    value = level_name.strip()
    if value.isdigit():
        return int(value)

    numeric = getattr(logging, value.upper(), None)
    if isinstance(numeric, int):
        return numeric

    return logging.INFO


def _attach_console(logger: logging.Logger, fmt: str) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt, _DEFAULT_DATEFMT))
    logger.addHandler(handler)


def configure_logging(*, debug: bool = False) -> None:
    """Stream application, access and (in debug) SQL logs to the console.

    ``LOG_LEVEL`` takes precedence over the ``debug`` flag. The access
    logger never drops below INFO, otherwise request lines would vanish
    whenever the application is tuned down to WARNING.
    """

    env_level = os.getenv("LOG_LEVEL")
    level = _resolve_level(env_level or ("DEBUG" if debug else "INFO"))

    app_logger = logging.getLogger(APP_LOGGER)
    _attach_console(app_logger, _DEFAULT_FORMAT)
    app_logger.setLevel(level)
    app_logger.propagate = False

    # Child of the app logger; gets its own format and must not double-log.
    access_logger = logging.getLogger(ACCESS_LOGGER)
    _attach_console(access_logger, _ACCESS_FORMAT)
    access_logger.setLevel(min(level, logging.INFO))
    access_logger.propagate = False

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if debug else logging.WARNING
    )
