"""
Logging setup: stdout plus an optional rotating log file.

uvicorn's own loggers are routed through the same handlers so that HTTP and
scale session lines share one format and one file.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from scale_gateway.config.models import LoggingConfig


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _file_handler(path: str, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        handler = RotatingFileHandler(
            path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
    except OSError as e:
        logging.getLogger(__name__).error(f"Failed to create log file {path}: {e}")
        return None
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger for the gateway.

    Args:
        config: Logging configuration (level and optional file path).
    """
    root = logging.getLogger()
    root.setLevel(config.level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if config.file:
        handler = _file_handler(config.file, formatter)
        if handler is not None:
            root.addHandler(handler)
            root.info(f"Logging to file: {config.file}")

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    root.info(f"Logging initialized at level: {config.level}")
