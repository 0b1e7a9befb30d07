"""Structured logging configuration for the recall feed."""

import logging
import sys
from pathlib import Path
from typing import Optional


DEFAULT_LOG_DIR = Path("logs")
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "recall_feed"


def setup_logging(
    log_file: Optional[Path] = None,
    level: int = logging.INFO,
    console: bool = True,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """Configure logging for the recall feed package.

    Args:
        log_file: Optional log file; relative paths land under logs/
        level: Logging level (default: INFO)
        console: Whether to also log to stderr (default: True)
        format_string: Custom log format string

    Returns:
        The package root logger
    """
    fmt = format_string or DEFAULT_FORMAT
    formatter = logging.Formatter(fmt, datefmt=DEFAULT_DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_file is not None:
        if not log_file.is_absolute():
            log_file = DEFAULT_LOG_DIR / log_file
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.propagate = False

    if log_file is not None:
        logger.info("Logging initialized: %s", log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger instance under the recall_feed namespace
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
