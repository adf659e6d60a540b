"""
ScriptScope Logging Configuration

All loggers hang off the "scriptscope" root. Handlers write to stderr so the
command line's progress lines on stdout stay readable, and a run can also be
mirrored into its own log file.
"""

import logging
import re
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, TextIO


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


ROOT_LOGGER_NAME = "scriptscope"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s:%(lineno)d %(funcName)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# httpx logs every request at INFO
NOISY_LIBRARY_LOGGERS = ("httpx", "httpcore")

_loggers: Dict[str, logging.Logger] = {}
_initialized: bool = False


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False,
    stream: Optional[TextIO] = None
) -> None:
    """
    Configure the scriptscope root logger.

    Args:
        level: Minimum level for console and file output
        log_file: Also write records to this file (always at DEBUG detail)
        verbose: Include line numbers and function names on the console
        stream: Console stream, stderr by default
    """
    global _initialized

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if log_file else level.value)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(level.value)
    console.setFormatter(logging.Formatter(DEBUG_FORMAT if verbose else CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DEBUG_FORMAT, datefmt=FILE_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    library_level = logging.DEBUG if level is LogLevel.DEBUG else logging.WARNING
    for name in NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    _initialized = True
    root_logger.debug(f"Logging initialized - Level: {level.name}, file: {log_file or 'none'}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a namespaced logger, e.g. get_logger("pipelines.analysis_run").

    Logging is set up at WARNING on first use if nothing configured it yet.
    """
    if not _initialized:
        setup_logging(level=LogLevel.WARNING)

    full_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)
    return _loggers[full_name]


def run_log_path(log_dir: Path, document_name: str, now: Optional[datetime] = None) -> Path:
    """Timestamped log file path for one analysis run of a document."""
    stem = re.sub(r"[^A-Za-z0-9_-]+", "_", Path(document_name).stem).strip("_") or "document"
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return Path(log_dir) / f"{stem}_{timestamp}.log"
