"""Logging helpers shared by the server entry points."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE_NAME = "chat_bridge.log"


def setup_logging(log_dir: str, level: int = logging.INFO) -> Path:
    """Configure console and rotating file logging under ``log_dir``.

    Calling this more than once does not add duplicate handlers.
    """
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    log_file = path / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    has_file = any(
        isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file.resolve() for h in root.handlers
    )
    if not has_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    has_console = any(type(h) is logging.StreamHandler for h in root.handlers)
    if not has_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    logging.getLogger(__name__).debug("Logging configured at %s", log_file)
    return log_file
