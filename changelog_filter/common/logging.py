"""
Logging configuration for changelog-filter.
Provides a centralized logger that can be used across all modules.

Log records go to stderr: stdout is reserved for the filtered changelog.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = "changelog-filter"


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to log levels."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        if record.levelname in self.COLORS:
            original_levelname = record.levelname
            record.levelname = f"{self.COLORS[original_levelname]}{original_levelname}{self.RESET}"
            formatted = super().format(record)
            record.levelname = original_levelname  # Restore original
            return formatted
        return super().format(record)


class StderrHandler(logging.StreamHandler):
    """Stream handler that always writes to the current sys.stderr."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr


def setup_logger(name: str = LOGGER_NAME, level: int = logging.WARNING) -> logging.Logger:
    """
    Set up the application logger.

    Args:
        name: Logger name
        level: Logging level (default: WARNING)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Calling again only adjusts the level of the existing handler
    if logger.handlers:
        set_log_level(level, name)
        return logger

    logger.setLevel(level)

    handler = StderrHandler(level)
    handler.setFormatter(ColoredFormatter(fmt='%(levelname)-8s %(name)s: %(message)s'))

    logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional logger name. If None, uses the root changelog-filter logger.

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def set_log_level(level: int, name: str = LOGGER_NAME):
    """Update the level of the application logger and its handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
