"""Logging setup for greenlight.

Everything logs under the ``greenlight`` logger; modules use
``logging.getLogger(__name__)`` and inherit its handlers. Handlers are
attached once per logger name.
"""

import logging
import logging.handlers
import os
from typing import List

from greenlight.core.config import Settings


LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
ISO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ROTATE_AT_BYTES = 10 * 1024 * 1024
ROTATED_FILES_KEPT = 5


def _parse_level(level: str) -> int:
    name = level.upper()
    if name not in LEVELS:
        raise ValueError(f"Unknown log level {level!r}; use one of {', '.join(LEVELS)}")
    return getattr(logging, name)


def _build_handlers(name: str, log_dir: str, to_file: bool, to_console: bool) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if to_file:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=ROTATE_AT_BYTES,
            backupCount=ROTATED_FILES_KEPT,
        ))
    if to_console:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logger(
    name: str,
    log_dir: str = "./logs",
    level: str = "INFO",
    file_logging: bool = True,
    console_logging: bool = True,
) -> logging.Logger:
    """Return the named logger with its level set.

    The first call for a name also attaches a rotating file handler under
    ``log_dir`` and/or a console handler. Later calls only change the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=ISO_DATE_FORMAT)
    for handler in _build_handlers(name, log_dir, file_logging, console_logging):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the package logger from application settings."""
    return setup_logger(
        "greenlight",
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.log_to_file,
    )
