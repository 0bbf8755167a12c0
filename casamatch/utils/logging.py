"""
Logging Configuration

One "casamatch" logger tree for the engine and the CLI. Console output
goes to stderr so JSON written to stdout stays parseable; the format and
an optional rotating log file come from the ``logging`` config section.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from logging.handlers import RotatingFileHandler

from casamatch.utils.config import get_log_level

LOGGER_NAME = "casamatch"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 5,
    log_format: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT
) -> logging.Logger:
    """
    Configure the casamatch logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (optional)
        max_size_mb: Max log file size before rotation
        backup_count: Number of backup files to keep
        log_format: ``logging.Formatter`` format string
        datefmt: Timestamp format

    Returns:
        Configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Reconfiguring replaces, never stacks
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(log_format, datefmt=datefmt)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: Dict[str, Any], level: Optional[str] = None) -> logging.Logger:
    """
    Configure logging from a loaded config's ``logging`` section.

    ``level`` (e.g. a ``--log-level`` flag) wins over the configured level.
    """
    section = config.get("logging") or {}
    return setup_logging(
        level=level or get_log_level(config),
        log_file=section.get("file"),
        max_size_mb=section.get("max_size_mb", 10),
        backup_count=section.get("backup_count", 5),
        log_format=section.get("format") or DEFAULT_FORMAT,
        datefmt=section.get("datefmt") or DEFAULT_DATEFMT,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a specific module."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
