"""Centralized logging configuration for taskboard.

This module provides a standardized logging setup with:
- File-based logging with rotation
- Configurable log levels via environment variable
- Optional rich console output for the command line
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


# Log file configuration
LOG_DIR = Path.home() / ".taskboard" / "logs"
LOG_FILE = LOG_DIR / "taskboard.log"

# Log format configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotation configuration
MAX_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5


def setup_logging(
    log_level: Optional[str] = None,
    use_console_handler: bool = False
) -> None:
    """Initialize application logging.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                  If None, reads from TASKBOARD_LOG_LEVEL environment variable.
                  Defaults to INFO if not specified.
        use_console_handler: If True, log to the terminal through rich
                             instead of the rotating log file.

    Example:
        >>> setup_logging()  # Uses default INFO level
        >>> setup_logging(log_level="DEBUG")
        >>> setup_logging(use_console_handler=True)  # CLI verbose mode
    """
    if log_level is None:
        log_level = os.getenv("TASKBOARD_LOG_LEVEL", "INFO")
    log_level = log_level.upper()

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if use_console_handler:
        from rich.logging import RichHandler

        console_handler = RichHandler(show_path=False, rich_tracebacks=True)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
        root_logger.addHandler(console_handler)
    else:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8"
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging initialized: level={log_level}, "
        f"file={LOG_FILE}, "
        f"console_handler={use_console_handler}"
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Module name, typically __name__

    Returns:
        Logger instance configured with the module name
    """
    return logging.getLogger(name)
