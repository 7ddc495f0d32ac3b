"""
stackshift - conversion job orchestration engine.

Schedules, retries, and tracks the tasks of a technology-stack conversion plan
against an external transformation provider.
"""

from dotenv import load_dotenv

from stackshift.logging import (
    configure_logging,
    get_logger,
    is_debug_mode,
    log_entry_exit,
    log_error,
    set_debug_mode,
)
from stackshift.version import __version__

# Load environment variables from .env file
load_dotenv()

from stackshift.config.settings import get_logging_settings  # noqa: E402

_logging_settings = get_logging_settings()
configure_logging(
    log_dir=_logging_settings.log_dir,
    console_level=_logging_settings.level,
)

__all__ = [
    "__version__",
    "configure_logging",
    "get_logger",
    "is_debug_mode",
    "log_entry_exit",
    "log_error",
    "set_debug_mode",
]
