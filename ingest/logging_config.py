"""Logging setup for the ingestion pipeline.

Console output goes through rich on stderr, so `ingest process` can print its
JSON result on stdout untouched. A rotating log file (10MB, 5 backups) is
added only when `[logging] file` is configured.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


FILE_FORMAT = "%(asctime)s - %(levelname)-8s - %(name)s - %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every plugin check at DEBUG
QUIET_LOGGERS = ("PIL", "rarfile")

_logging_initialized = False


def _console_handler(level: int) -> logging.Handler:
    console = Console(theme=Theme({"logging.level.info": "bold magenta"}), stderr=True)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    handler.setLevel(level)
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Install the console handler and, if `log_file` is given, the file handler.

    Safe to call more than once; only the first call has an effect.

    Args:
        log_level: Console level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Rotating log destination, or None for console only
    """
    global _logging_initialized

    if _logging_initialized:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.addHandler(_console_handler(level))
    if log_file is not None:
        root_logger.addHandler(_file_handler(log_file))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger for module `name` (pass __name__)."""
    return logging.getLogger(name)
