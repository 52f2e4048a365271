"""
catalog/core/logger.py

Logging setup shared by every catalog module:

    from catalog.core.logger import get_logger
    logger = get_logger(__name__)

The root logger is configured once, on first import. When something else
already owns it (pytest, ``uvicorn --log-config``) the existing handlers win.
"""

import logging
import sys
from typing import Dict

from catalog.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty at INFO; SQL echo is switched on through settings.database_echo instead.
_QUIET_LOGGERS: Dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def configure_logging(force: bool = False) -> bool:
    """
    Send records to stdout at DEBUG (``settings.debug``) or INFO.

    Returns:
        True if the root logger was (re)configured, False if it was left alone.
    """
    root = logging.getLogger()
    if root.handlers and not force:
        return False

    level = logging.DEBUG if settings.debug else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root.handlers = [handler]
    root.setLevel(level)
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    return True


configure_logging()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
