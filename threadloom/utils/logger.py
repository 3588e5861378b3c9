"""
Centralized logging configuration for Threadloom

The engines log through module-level loggers obtained from get_logger().
Nothing is configured on import; the embedding application calls
setup_logging() once at start-up.

Usage:
    from threadloom.utils.logger import get_logger, setup_logging

    setup_logging(level="DEBUG")
    logger = get_logger(__name__)
    logger.info("[Sync] Turn 4 started")
"""

import logging
import sys
from pathlib import Path
from typing import Literal, Optional

# Color codes for terminal output
COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Libraries that are chatty at INFO while a provider call is in flight
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "openai", "langchain")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level and logger name for terminals"""

    def format(self, record):
        record = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname
        if levelname in COLORS:
            record.levelname = f"{COLORS[levelname]}{levelname}{COLORS['RESET']}"
        record.name = f"\033[94m{record.name}\033[0m"
        return super().format(record)


def setup_logging(
    level: LogLevel = "INFO",
    log_file: Optional[str] = None,
    enable_colors: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Setup logging configuration for the application

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file, written without colors
        enable_colors: Whether to color console output when attached to a tty
        include_timestamp: Whether to prefix messages with a timestamp
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if include_timestamp:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"
    else:
        fmt = "%(levelname)-8s | %(name)s | %(message)s"
        datefmt = None

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    if enable_colors and sys.stdout.isatty():
        console_handler.setFormatter(ColoredFormatter(fmt, datefmt=datefmt))
    else:
        console_handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized at {level} level")
    if log_file:
        root_logger.info(f"Logging to file: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module (typically __name__)"""
    return logging.getLogger(name)


class LogLevelContext:
    """Context manager to temporarily change the root logging level"""

    def __init__(self, level: LogLevel):
        self.level = getattr(logging, level.upper())
        self.old_level = None

    def __enter__(self):
        self.old_level = logging.getLogger().level
        logging.getLogger().setLevel(self.level)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.getLogger().setLevel(self.old_level)


def set_module_level(module_name: str, level: LogLevel) -> None:
    """
    Set logging level for a specific module

    Args:
        module_name: Name of the module (e.g., 'threadloom.engine.temporal')
        level: Logging level to set
    """
    logging.getLogger(module_name).setLevel(getattr(logging, level.upper()))
