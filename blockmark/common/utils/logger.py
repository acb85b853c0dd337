"""Package logging.

Everything hangs off the ``blockmark`` logger. The root logger and other
libraries' loggers belong to the host application and are never touched.
Records at NOTICE and above go to a coloured stderr handler. A DEBUG log file
is written only when ``BLOCKMARK_LOG_DIR`` names a directory.
"""

import logging
import os
import sys
from typing import Any

NOTICE_LEVEL = 25
logging.addLevelName(NOTICE_LEVEL, "NOTICE")

LOGGER_PREFIX = "blockmark"
LOG_DIR_ENV = "BLOCKMARK_LOG_DIR"
LOG_FILE_NAME = "app.log"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

RESET = "\033[0m"
COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "NOTICE": "\033[38;5;33m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;41m",
}


class ColorFormatter(logging.Formatter):
    """Paints the level name. Formats a copy so other handlers see the plain record."""

    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)
        color = COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname:<7}{RESET}"
        return super().format(record)


class NoticeLogger(logging.Logger):
    """Key handling chatters at DEBUG, so ``info()`` is raised to NOTICE."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(NOTICE_LEVEL):
            self._log(NOTICE_LEVEL, msg, args, **kwargs)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``name`` as a logger under the ``blockmark`` namespace."""
    if not name:
        name = LOGGER_PREFIX
    elif not name.startswith(LOGGER_PREFIX):
        name = f"{LOGGER_PREFIX}.{name}"
    # only blockmark's own loggers get the NOTICE class
    previous = logging.getLoggerClass()
    logging.setLoggerClass(NoticeLogger)
    try:
        return logging.getLogger(name)
    finally:
        logging.setLoggerClass(previous)


def _owned(handler: logging.Handler) -> bool:
    return getattr(handler, "blockmark_owned", False)


def _attach(logger: logging.Logger, handler: logging.Handler) -> logging.Handler:
    handler.blockmark_owned = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return handler


def add_file_handler(log_dir: str) -> logging.Handler:
    """Log everything under ``blockmark`` at DEBUG into ``log_dir/app.log``."""
    os.makedirs(log_dir, exist_ok=True)
    handler = logging.FileHandler(os.path.join(log_dir, LOG_FILE_NAME), encoding="utf-8", delay=True)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    package_logger = get_logger()
    package_logger.setLevel(logging.DEBUG)
    return _attach(package_logger, handler)


def configure_logging() -> logging.Logger:
    """Install the package handlers. Calling it again replaces them rather than stacking."""
    package_logger = get_logger()
    for handler in [h for h in package_logger.handlers if _owned(h)]:
        package_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(NOTICE_LEVEL)
    console.setFormatter(ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    _attach(package_logger, console)
    package_logger.setLevel(NOTICE_LEVEL)

    log_dir = os.environ.get(LOG_DIR_ENV)
    if log_dir:
        add_file_handler(log_dir)
    return package_logger


logger = configure_logging()
logger.debug("Logger initialized successfully.")
