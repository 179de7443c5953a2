"""
Centralized logging configuration.

All loggers hang under the ``layout_translator`` logger, which owns the
handlers: console at INFO, rotating file at DEBUG. Modules log through
get_logger(__name__); the application calls configure_logging() once with
its settings.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

from .constants import (
    LOG_LEVEL, LOG_FORMAT, LOG_FILE,
    LOG_MAX_SIZE_MB, LOG_BACKUP_COUNT
)

ROOT_LOGGER = "layout_translator"


def configure_logging(
    level: str = LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = LOG_FILE,
) -> logging.Logger:
    """
    (Re)configure the application's handlers.

    Args:
        level: Level name for the application loggers (e.g. "DEBUG")
        log_file: Rotating log file; None disables file logging

    Returns:
        The application root logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a module, under the application root logger.

    Usage:
        from config.logging_config import get_logger
        logger = get_logger(__name__)
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        configure_logging()
    if not name or name == ROOT_LOGGER:
        return root
    return root.getChild(name)


# Usage: from config.logging_config import logger
logger = get_logger()
