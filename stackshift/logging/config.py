"""
Logging setup for stackshift.

Console output goes to stdout with colored level names. When a log directory
is configured, everything down to DEBUG is also written to a rotating
``stackshift.log`` file.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

_DEBUG_MODE = False

# Loggers whose name contains the key are pinned to the level
_QUIET_COMPONENTS = {
    "monitoring.service_telemetry": logging.WARNING,
}

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_LOG_FILE = "stackshift.log"
_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5

_RESET = "\033[0m"
_LEVEL_COLORS = {
    "DEBUG": "\033[94m",
    "INFO": "\033[92m",
    "WARNING": "\033[93m",
    "ERROR": "\033[91m",
    "CRITICAL": "\033[1;91m",
}


class ColorFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    def format(self, record):
        color = _LEVEL_COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # Copy so file handlers still see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{_RESET}"
        return super().format(colored)


def get_logger(name: str) -> logging.Logger:
    """Return the named logger, applying any pinned component level."""
    logger = logging.getLogger(name)
    for component, level in _QUIET_COMPONENTS.items():
        if component in name:
            logger.setLevel(level)
            break
    return logger


def set_debug_mode(enabled: bool) -> None:
    """Switch the ``stackshift`` logger between DEBUG and INFO."""
    global _DEBUG_MODE
    changed = enabled != _DEBUG_MODE
    _DEBUG_MODE = enabled

    package_logger = logging.getLogger("stackshift")
    package_logger.setLevel(logging.DEBUG if enabled else logging.INFO)
    if changed:
        package_logger.info(f"Debug mode {'enabled' if enabled else 'disabled'}")


def is_debug_mode() -> bool:
    return _DEBUG_MODE


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    console_level: Union[int, str] = logging.INFO,
    file_level: Union[int, str] = logging.DEBUG,
) -> None:
    """
    Install the console handler and, when log_dir is set, the file handler.

    Calling it again replaces the handlers installed before.

    Args:
        log_dir: Directory for the rotating log file; None logs to console only
        console_level: Level name or number for console output
        file_level: Level name or number for the log file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColorFormatter(_CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path / _LOG_FILE,
            maxBytes=_LOG_FILE_MAX_BYTES,
            backupCount=_LOG_FILE_BACKUPS,
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        root_logger.addHandler(file_handler)

    set_debug_mode(_DEBUG_MODE)
    logging.getLogger("stackshift").debug(
        f"Logging configured (console: {logging.getLevelName(console_handler.level)}, "
        f"log dir: {log_dir or 'none'})"
    )
