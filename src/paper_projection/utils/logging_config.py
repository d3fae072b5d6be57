"""
Logging setup shared by the package.

Modules obtain their logger with ``get_logger(__name__)``; applications call
``setup_logging()`` once at startup.
"""

import logging
import os
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER_NAME = "paper_projection"


def setup_logging(level: Optional[str] = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configure the package root logger.

    Args:
        level: Level name (e.g. "INFO"). Falls back to the
            PAPER_PROJECTION_LOG_LEVEL environment variable, then WARNING.
        fmt: Log record format string

    Returns:
        The configured package root logger
    """
    level_name = (level or os.getenv("PAPER_PROJECTION_LOG_LEVEL") or "WARNING").upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(numeric_level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name* (normally the calling module's ``__name__``)."""
    return logging.getLogger(name)
