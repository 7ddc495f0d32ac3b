"""
Exception hierarchy for stackshift.

All errors raised by the orchestration engine derive from StackshiftError.
Failures coming out of the provider, validator or other collaborators are
classified into AppError instances by the ErrorClassifier.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from stackshift.errors.error_codes import ErrorCodes
from stackshift.errors.taxonomy import (
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    RecoveryAction,
)


class StackshiftError(Exception):
    """
    Base exception class for all stackshift errors.

    Attributes:
        message: Human-readable error message
        error_code: Optional error code from the ErrorCodes registry
        details: Optional dictionary with additional error details
        suggestion: Optional suggestion text for how to fix the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestion = suggestion
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to a dictionary for API responses and job records."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "suggestion": self.suggestion,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


# --- Classified errors ---


class AppError(StackshiftError):
    """
    A failure classified into the error taxonomy.

    Carries the retry policy the classifier chose for the failure and the
    recovery actions that can be surfaced to an operator.

    Examples:
        >>> error = ErrorClassifier.classify(raw_error, ErrorContext("convert"))
        >>> if error.retryable:
        ...     await asyncio.sleep(error.retry_delay)
    """

    def __init__(
        self,
        category: ErrorCategory,
        severity: ErrorSeverity,
        code: str,
        message: str,
        user_message: str,
        context: ErrorContext,
        recovery_actions: Optional[Sequence[RecoveryAction]] = None,
        retryable: bool = False,
        max_retries: int = 0,
        retry_delay: float = 0.0,
        exponential_backoff: bool = False,
        technical_details: Optional[str] = None,
    ) -> None:
        super().__init__(message, error_code=code, details=context.data)
        self.category = category
        self.severity = severity
        self.code = code
        self.user_message = user_message
        self.context = context
        self.recovery_actions = list(recovery_actions or [])
        self.retryable = retryable
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.exponential_backoff = exponential_backoff
        self.technical_details = technical_details
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "technical_details": self.technical_details,
            "context": self.context.to_dict(),
            "recovery_actions": [a.to_dict() for a in self.recovery_actions],
            "retryable": self.retryable,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "exponential_backoff": self.exponential_backoff,
            "timestamp": self.timestamp.isoformat(),
        }


# --- Plan errors ---


class PlanError(StackshiftError):
    """
    Base class for conversion plans that cannot be executed.

    Plan errors are never retryable: the plan itself must be fixed upstream.
    """

    pass


class DependencyCycleError(PlanError):
    """Raised when the task dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str], unscheduled: Sequence[str] = ()) -> None:
        self.cycle = list(cycle)
        self.unscheduled = sorted(unscheduled)
        super().__init__(
            message=f"Dependency cycle detected: {' -> '.join(self.cycle)}",
            error_code=ErrorCodes.PLAN_DEPENDENCY_CYCLE,
            details={"cycle": self.cycle, "unscheduled_tasks": self.unscheduled},
            suggestion="Remove one of the dependencies on the cycle and re-plan.",
        )


class MissingDependencyError(PlanError):
    """Raised when a task depends on a task id that is not in the plan."""

    def __init__(self, missing: dict[str, list[str]]) -> None:
        self.missing = missing
        pairs = ", ".join(
            f"{task_id} -> {', '.join(deps)}" for task_id, deps in sorted(missing.items())
        )
        super().__init__(
            message=f"Unresolvable task dependencies: {pairs}",
            error_code=ErrorCodes.PLAN_MISSING_DEPENDENCY,
            details={"missing": missing},
            suggestion="Every dependency must reference a task id in the same plan.",
        )


class DuplicateTaskError(PlanError):
    """Raised when two tasks of one plan share an id."""

    def __init__(self, duplicates: Sequence[str]) -> None:
        self.duplicates = sorted(set(duplicates))
        super().__init__(
            message=f"Duplicate task ids in plan: {', '.join(self.duplicates)}",
            error_code=ErrorCodes.PLAN_DUPLICATE_TASK,
            details={"duplicates": self.duplicates},
        )


class PlanInfeasibleError(PlanError):
    """Raised by the orchestrator before executing an infeasible plan."""

    def __init__(self, plan_id: str, cause: Optional[PlanError] = None) -> None:
        self.plan_id = plan_id
        self.cause = cause
        reason = cause.message if cause else "plan is marked infeasible"
        super().__init__(
            message=f"Plan {plan_id} cannot be executed: {reason}",
            error_code=ErrorCodes.PLAN_INFEASIBLE,
            details={
                "plan_id": plan_id,
                "cause": cause.to_dict() if cause else None,
            },
        )


# --- Job errors ---


class JobError(StackshiftError):
    """Base class for job lifecycle errors."""

    pass


class JobNotFoundError(JobError):
    """Raised for operations on an unknown job id."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(
            message=f"Conversion job not found: {job_id}",
            error_code=ErrorCodes.NOT_FOUND,
            details={"job_id": job_id},
        )


class InvalidStateTransitionError(JobError):
    """Raised when an operation is not allowed from the job's current status."""

    def __init__(self, job_id: str, operation: str, current_status: str) -> None:
        self.job_id = job_id
        self.operation = operation
        self.current_status = current_status
        super().__init__(
            message=f"Cannot {operation} job {job_id} with status {current_status}",
            error_code=ErrorCodes.INVALID_STATE_TRANSITION,
            details={
                "job_id": job_id,
                "operation": operation,
                "current_status": current_status,
            },
        )


# --- Provider errors ---


class ProviderOutputError(StackshiftError):
    """Raised when the provider returns output in an invalid format."""

    def __init__(self, task_id: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid provider output format for task {task_id}: {reason}",
            error_code=ErrorCodes.PROVIDER_OUTPUT_INVALID,
            details={"task_id": task_id},
        )


# --- Configuration errors ---


class ConfigurationError(StackshiftError):
    """
    Error in a configuration or plan file.

    The fix typically requires editing a file rather than retrying.

    Attributes:
        context: Where the error occurred (file, section)
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        details: Optional[dict[str, Any]] = None,
        suggestion: str = "",
    ) -> None:
        super().__init__(message, error_code, details, suggestion)
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["context"] = self.context
        return result

    def format_user_message(self) -> str:
        """Format a user-friendly error message with all context."""
        parts = [f"Error: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if "file" in self.context:
            parts.append(f"Location: File: {self.context['file']}")

        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")

        return "\n".join(parts)
