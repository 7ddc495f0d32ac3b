"""
Configuration for stackshift.

Runtime settings live in `stackshift.config.settings`; conversion plans are
loaded from files with `stackshift.config.plan_loader`.
"""

from stackshift.config.settings import (
    LoggingSettings,
    OrchestratorSettings,
    clear_settings_cache,
    get_logging_settings,
    get_orchestrator_settings,
)

__all__ = [
    "LoggingSettings",
    "OrchestratorSettings",
    "clear_settings_cache",
    "get_logging_settings",
    "get_orchestrator_settings",
]
