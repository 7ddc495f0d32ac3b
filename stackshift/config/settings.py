"""
stackshift Settings Manager - runtime configuration management.

Settings are read from the environment (and a `.env` file loaded at package
import) through pydantic-settings, and cached per process.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DependencyFailurePolicy = Literal["run", "skip"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class OrchestratorSettings(BaseSettings):
    """Conversion orchestrator settings.

    Environment variables use the STACKSHIFT_ORCHESTRATOR_ prefix, e.g.
    STACKSHIFT_ORCHESTRATOR_MAX_CONCURRENT_FILES=3.
    """

    max_concurrent_files: int = Field(
        default=5, gt=0, description="Maximum tasks dispatched concurrently per batch"
    )
    preserve_context: bool = Field(
        default=True,
        description="Expose shared conversion state to the provider for each task",
    )
    validate_results: bool = Field(
        default=True, description="Run the validation pass over converted files"
    )
    enable_retry: bool = Field(
        default=True, description="Wrap task execution in the retry manager"
    )
    max_retries: int = Field(default=3, ge=0, description="Retries per task")
    retry_base_delay: float = Field(
        default=1.0, ge=0.0, description="Base retry delay in seconds"
    )
    retry_max_delay: Optional[float] = Field(
        default=30.0, ge=0.0, description="Upper bound for a single retry delay"
    )
    retry_exponential_backoff: bool = Field(default=True)
    retry_jitter: bool = Field(default=True)
    on_dependency_failure: DependencyFailurePolicy = Field(
        default="run",
        description="'run' dispatches dependents of failed tasks anyway, "
        "'skip' records them as skipped without dispatching",
    )
    fail_job_on_task_error: bool = Field(
        default=True,
        description="Mark the job FAILED when any task ends in error",
    )
    project_load_retries: int = Field(
        default=2, ge=0, description="Retries when loading the project snapshot"
    )

    model_config = SettingsConfigDict(env_prefix="STACKSHIFT_ORCHESTRATOR_")

    @model_validator(mode="after")
    def _check_delays(self) -> "OrchestratorSettings":
        if (
            self.retry_max_delay is not None
            and self.retry_max_delay < self.retry_base_delay
        ):
            raise ValueError("retry_max_delay must be >= retry_base_delay")
        return self


class LoggingSettings(BaseSettings):
    """Logging Settings."""

    level: str = Field(default="INFO")
    log_dir: Optional[str] = Field(
        default=None, description="Directory for rotating log files"
    )

    model_config = SettingsConfigDict(env_prefix="STACKSHIFT_LOGGING_")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache
def get_orchestrator_settings() -> OrchestratorSettings:
    """Get orchestrator settings with caching."""
    return OrchestratorSettings()


@lru_cache
def get_logging_settings() -> LoggingSettings:
    """Get logging settings with caching."""
    return LoggingSettings()


def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    get_orchestrator_settings.cache_clear()
    get_logging_settings.cache_clear()


__all__ = [
    "DependencyFailurePolicy",
    "OrchestratorSettings",
    "LoggingSettings",
    "get_orchestrator_settings",
    "get_logging_settings",
    "clear_settings_cache",
]
