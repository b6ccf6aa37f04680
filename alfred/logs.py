"""Logging setup shared by the API, MCP server and CLI entry points."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


# Custom handler that flushes immediately
class FlushFileHandler(logging.FileHandler):
    def emit(self, record):
        super().emit(record)
        self.flush()


def configure_logging(log_path: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """Attach console + file handlers to the ``alfred`` logger.

    Safe to call more than once; handlers are only installed the first time.
    """
    logger = logging.getLogger("alfred")
    logger.setLevel((level or settings.log_level).upper())
    logger.propagate = False  # Don't propagate to root logger

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler to see logs in terminal too
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    path = Path(log_path or settings.log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # File handler that flushes after every write
    file_handler = FlushFileHandler(path, mode="a")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.info("Alfred logger initialized (file=%s)", path)
    return logger
