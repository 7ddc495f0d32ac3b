"""
Logging system for stackshift.

Centralized logging configuration with console and rotating file outputs,
pinned component levels, and helpers for common logging patterns.
"""

from stackshift.logging.config import (
    configure_logging,
    get_logger,
    is_debug_mode,
    set_debug_mode,
)
from stackshift.logging.helpers import log_entry_exit, log_error

__all__ = [
    # Configuration
    "configure_logging",
    "get_logger",
    "set_debug_mode",
    "is_debug_mode",
    # Helper methods
    "log_entry_exit",
    "log_error",
]
