"""
Logger setup shared by the whole backend.

Call setup_logger() once at startup; modules use get_logger(__name__).
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER_NAME = "excel_chart_studio"

_logger_instance: Optional[logging.Logger] = None


def setup_logger(level: str = "INFO", log_file_path: Optional[str] = None, force_recreate: bool = False) -> logging.Logger:
    """
    Configure the application root logger.

    Args:
        level: level name, e.g. "DEBUG" or "INFO".
        log_file_path: optional file to log into next to the console.
        force_recreate: drop existing handlers and configure again (tests).
    """
    global _logger_instance

    if _logger_instance is not None and not force_recreate:
        return _logger_instance

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _logger_instance = logger
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child of the application logger, e.g. excel_chart_studio.services.auth_service."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
