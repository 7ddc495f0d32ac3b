"""
Error handling for stackshift.

Exception hierarchy, error taxonomy, classification of raw failures and
retry with backoff.
"""

from stackshift.errors.classifier import ErrorClassifier, RetryPolicy
from stackshift.errors.error_codes import ErrorCodes
from stackshift.errors.exceptions import (
    AppError,
    ConfigurationError,
    DependencyCycleError,
    DuplicateTaskError,
    InvalidStateTransitionError,
    JobError,
    JobNotFoundError,
    MissingDependencyError,
    PlanError,
    PlanInfeasibleError,
    ProviderOutputError,
    StackshiftError,
)
from stackshift.errors.retry import (
    RetryManager,
    RetryOptions,
    RetryResult,
    calculate_delay,
    delay_for_error,
    retry_with_backoff,
)
from stackshift.errors.taxonomy import (
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    RecoveryAction,
)

__all__ = [
    "AppError",
    "ConfigurationError",
    "DependencyCycleError",
    "DuplicateTaskError",
    "ErrorCategory",
    "ErrorClassifier",
    "ErrorCodes",
    "ErrorContext",
    "ErrorSeverity",
    "InvalidStateTransitionError",
    "JobError",
    "JobNotFoundError",
    "MissingDependencyError",
    "PlanError",
    "PlanInfeasibleError",
    "ProviderOutputError",
    "RecoveryAction",
    "RetryManager",
    "RetryOptions",
    "RetryPolicy",
    "RetryResult",
    "StackshiftError",
    "calculate_delay",
    "delay_for_error",
    "retry_with_backoff",
]
