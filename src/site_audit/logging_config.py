"""Logging configuration for the site auditor."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

PACKAGE_LOGGER = "site_audit"

CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# HTTP client request lines would drown out per-page crawl progress
QUIET_LOGGERS = ('httpx', 'httpcore', 'asyncio')


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> logging.Logger:
    """Configure logging for a crawl run.

    The console gets a compact format; the optional log file also records
    the emitting module and is always written as UTF-8, since crawl
    progress lines carry status emoji.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        format_string: Optional format for both handlers
        quiet_loggers: Third-party loggers capped at WARNING

    Returns:
        The package logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(format_string or CONSOLE_FORMAT))
    handlers = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(format_string or FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger(PACKAGE_LOGGER)


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the package namespace.

    Args:
        name: Module name, either ``__name__`` or a short suffix like ``"cli"``

    Returns:
        Logger named ``site_audit.<suffix>``
    """
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
