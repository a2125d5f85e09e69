"""
Centralized logging configuration.

All modules should use `get_logger(__name__)` to obtain a logger instance.
The level is applied by `configure_logging`, which the application factory
calls with the configured LOG_LEVEL.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ROOT_LOGGER = "todo_api"
_initialized = False


def _init_logging() -> None:
    """Attach the stdout handler to the package logger once."""
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(logging.INFO)
    root.addHandler(handler)
    _initialized = True


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """Set the package log level, e.g. 'DEBUG' or 'WARNING'. Unknown names fall back to INFO."""
    _init_logging()
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.getLogger(_ROOT_LOGGER).setLevel(resolved)


# PUBLIC_INTERFACE
def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)
