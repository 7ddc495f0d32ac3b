"""
Error classification for stackshift.

Maps raw failures (exceptions raised by the provider, the validator, the
project source, or plain strings) to AppError instances carrying category,
severity, retry policy and recovery actions.
"""

import asyncio
import errno
import socket
import traceback
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from stackshift.errors.error_codes import ErrorCodes
from stackshift.errors.exceptions import (
    AppError,
    ConfigurationError,
    JobError,
    JobNotFoundError,
    PlanError,
    ProviderOutputError,
)
from stackshift.errors.taxonomy import (
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    RecoveryAction,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Default retry policy attached to a category."""

    severity: ErrorSeverity
    retryable: bool
    max_retries: int = 0
    retry_delay: float = 0.0
    exponential_backoff: bool = False


@dataclass(frozen=True)
class _Signals:
    message: str
    status: Optional[int]
    headers: Mapping[str, str]
    os_code: Optional[str]


class ErrorClassifier:
    """
    Classifies raw failures into the stackshift error taxonomy.

    Classification is a pure function of the raw error's shape: message text,
    HTTP status and headers, and OS error codes. The first matching rule wins,
    in the order AUTH, RATE_LIMIT, ACCESS_DENIED/NOT_FOUND, CONTEXT_TOO_LARGE,
    TIMEOUT, STORAGE_CONNECTION, NETWORK, FILESYSTEM, VALIDATION, UNKNOWN.
    """

    POLICIES: dict[str, RetryPolicy] = {
        ErrorCategory.AUTH: RetryPolicy(ErrorSeverity.HIGH, retryable=False),
        ErrorCategory.RATE_LIMIT: RetryPolicy(
            ErrorSeverity.MEDIUM, True, max_retries=5, retry_delay=30.0,
            exponential_backoff=True,
        ),
        ErrorCategory.ACCESS_DENIED: RetryPolicy(ErrorSeverity.HIGH, retryable=False),
        ErrorCategory.NOT_FOUND: RetryPolicy(ErrorSeverity.HIGH, retryable=False),
        ErrorCategory.CONTEXT_TOO_LARGE: RetryPolicy(
            ErrorSeverity.HIGH, True, max_retries=2
        ),
        ErrorCategory.TIMEOUT: RetryPolicy(
            ErrorSeverity.MEDIUM, True, max_retries=3, retry_delay=5.0,
            exponential_backoff=True,
        ),
        ErrorCategory.STORAGE_CONNECTION: RetryPolicy(
            ErrorSeverity.CRITICAL, True, max_retries=5, retry_delay=5.0,
            exponential_backoff=True,
        ),
        ErrorCategory.NETWORK: RetryPolicy(
            ErrorSeverity.MEDIUM, True, max_retries=3, retry_delay=2.0,
            exponential_backoff=True,
        ),
        ErrorCategory.FILESYSTEM: RetryPolicy(
            ErrorSeverity.MEDIUM, True, max_retries=3, retry_delay=1.0
        ),
        ErrorCategory.VALIDATION: RetryPolicy(ErrorSeverity.LOW, retryable=False),
        ErrorCategory.UNKNOWN: RetryPolicy(ErrorSeverity.MEDIUM, retryable=False),
    }

    STORAGE_KEYWORDS = (
        "database",
        "postgres",
        "sql",
        "redis",
        "prisma",
        "storage",
        "mongo",
    )

    NETWORK_OS_CODES = {
        "ECONNREFUSED",
        "ENOTFOUND",
        "ECONNRESET",
        "EHOSTUNREACH",
        "ENETUNREACH",
        "EPIPE",
    }

    NETWORK_PATTERNS = (
        "network",
        "econnrefused",
        "enotfound",
        "econnreset",
        "connection refused",
        "connection reset",
        "fetch failed",
        "name or service not known",
        "temporary failure in name resolution",
    )

    FILESYSTEM_OS_CODES = {
        "ENOENT",
        "EACCES",
        "EPERM",
        "EISDIR",
        "ENOTDIR",
        "EEXIST",
        "ENOSPC",
        "EMFILE",
        "EROFS",
    }

    @classmethod
    def classify(cls, error: Any, context: ErrorContext) -> AppError:
        """
        Classify a raw failure.

        Args:
            error: The raw failure; an exception, a string, or any other object
            context: Where the failure happened

        Returns:
            The classified AppError (the input itself if it already is one)
        """
        if isinstance(error, AppError):
            return error

        if isinstance(error, str):
            return AppError(
                category=ErrorCategory.UNKNOWN,
                severity=ErrorSeverity.MEDIUM,
                code=ErrorCodes.UNKNOWN_STRING_ERROR,
                message=error,
                user_message="An unexpected error occurred. Please try again.",
                context=context,
                recovery_actions=[
                    RecoveryAction("retry", "Retry the operation", automated=True)
                ],
                retryable=True,
                max_retries=3,
                retry_delay=1.0,
                exponential_backoff=True,
            )

        if not isinstance(error, BaseException):
            return AppError(
                category=ErrorCategory.UNKNOWN,
                severity=ErrorSeverity.HIGH,
                code=ErrorCodes.UNKNOWN_ERROR_TYPE,
                message="Unknown error type encountered",
                user_message="An unexpected error occurred. Please contact support if this persists.",
                context=context,
                recovery_actions=[
                    RecoveryAction("manual", "Contact support for assistance")
                ],
                retryable=False,
                technical_details=repr(error),
            )

        typed = cls._classify_domain_error(error, context)
        if typed is not None:
            return typed

        return cls._classify_exception(error, cls._extract_signals(error), context)

    @classmethod
    def _classify_domain_error(
        cls, error: BaseException, context: ErrorContext
    ) -> Optional[AppError]:
        if isinstance(error, JobNotFoundError):
            return cls._build(
                ErrorCategory.NOT_FOUND,
                error.error_code or ErrorCodes.NOT_FOUND,
                error.message,
                "The requested conversion job does not exist.",
                context,
                [RecoveryAction("manual", "Verify the job id")],
                error,
            )
        if isinstance(error, (PlanError, JobError, ProviderOutputError, ConfigurationError)):
            return cls._build(
                ErrorCategory.VALIDATION,
                error.error_code or ErrorCodes.VALIDATION_ERROR,
                error.message,
                "The conversion request is invalid and cannot be processed as is.",
                context,
                [RecoveryAction("manual", "Correct the plan or request and retry")],
                error,
                severity=ErrorSeverity.HIGH,
            )
        return None

    @classmethod
    def _classify_exception(
        cls, error: BaseException, signals: _Signals, context: ErrorContext
    ) -> AppError:
        message = signals.message
        original = str(error) or type(error).__name__

        if signals.status == 401 or "unauthorized" in message or "authentication failed" in message:
            return cls._build(
                ErrorCategory.AUTH,
                ErrorCodes.AUTH_FAILED,
                f"Authentication failed: {original}",
                "Please reconnect your account credentials to continue.",
                context,
                [RecoveryAction("manual", "Reconnect account credentials")],
                error,
            )

        if cls._is_rate_limited(signals):
            retry_after = cls._retry_after(signals.headers)
            return cls._build(
                ErrorCategory.RATE_LIMIT,
                ErrorCodes.RATE_LIMIT_EXCEEDED,
                f"Rate limit exceeded: {original}",
                "The service is temporarily busy. Your request will be retried automatically.",
                context,
                [
                    RecoveryAction(
                        "retry",
                        "Wait for the rate limit to reset and retry",
                        automated=True,
                        estimated_time=retry_after or 60.0,
                    )
                ],
                error,
                retry_delay=retry_after,
            )

        if signals.status == 403:
            return cls._build(
                ErrorCategory.ACCESS_DENIED,
                ErrorCodes.ACCESS_DENIED,
                f"Access denied: {original}",
                "Access to this resource was denied. Check permissions and try again.",
                context,
                [RecoveryAction("manual", "Check resource permissions")],
                error,
            )

        if signals.status == 404:
            return cls._build(
                ErrorCategory.NOT_FOUND,
                ErrorCodes.RESOURCE_NOT_FOUND,
                f"Resource not found: {original}",
                "The requested resource could not be found.",
                context,
                [RecoveryAction("manual", "Verify the resource location")],
                error,
            )

        if any(p in message for p in ("context length", "token limit", "maximum context")):
            return cls._build(
                ErrorCategory.CONTEXT_TOO_LARGE,
                ErrorCodes.CONTEXT_TOO_LARGE,
                f"Input too large for processing: {original}",
                "The file is too large to process at once; it will be split into smaller chunks.",
                context,
                [RecoveryAction("fallback", "Split input into smaller chunks", automated=True)],
                error,
            )

        if cls._is_timeout(error, message):
            return cls._build(
                ErrorCategory.TIMEOUT,
                ErrorCodes.REQUEST_TIMEOUT,
                f"Request timed out: {original}",
                "The service is taking longer than expected. Retrying...",
                context,
                [RecoveryAction("retry", "Retry with a longer timeout", automated=True)],
                error,
            )

        if "connection" in message and any(k in message for k in cls.STORAGE_KEYWORDS):
            return cls._build(
                ErrorCategory.STORAGE_CONNECTION,
                ErrorCodes.STORAGE_CONNECTION_FAILED,
                f"Storage connection failed: {original}",
                "Unable to reach the storage backend. Please try again in a moment.",
                context,
                [RecoveryAction("retry", "Retry storage connection", automated=True)],
                error,
            )

        if cls._is_network(error, signals):
            return cls._build(
                ErrorCategory.NETWORK,
                ErrorCodes.NETWORK_ERROR,
                f"Network error: {original}",
                "Network connection issue. Please check connectivity and try again.",
                context,
                [RecoveryAction("retry", "Retry network request", automated=True)],
                error,
            )

        if isinstance(error, FileNotFoundError) or signals.os_code == "ENOENT" or (
            "enoent" in message or "no such file" in message
        ):
            return cls._build(
                ErrorCategory.FILESYSTEM,
                ErrorCodes.FILE_NOT_FOUND,
                f"File or directory not found: {original}",
                "A required file could not be found. The project may need to be re-imported.",
                context,
                [RecoveryAction("manual", "Re-import the project")],
                error,
                severity=ErrorSeverity.HIGH,
                retryable=False,
            )

        if cls._is_filesystem(error, signals):
            return cls._build(
                ErrorCategory.FILESYSTEM,
                ErrorCodes.FILESYSTEM_ERROR,
                f"File system error: {original}",
                "A file system error occurred. Please try again.",
                context,
                [RecoveryAction("retry", "Retry file operation", automated=True)],
                error,
            )

        if any(p in message for p in ("invalid", "required", "format", "validation")):
            return cls._build(
                ErrorCategory.VALIDATION,
                ErrorCodes.VALIDATION_ERROR,
                f"Validation error: {original}",
                "Please check the input and try again.",
                context,
                [RecoveryAction("manual", "Correct the input and retry")],
                error,
            )

        return cls._build(
            ErrorCategory.UNKNOWN,
            ErrorCodes.UNKNOWN_ERROR,
            original,
            "An unexpected error occurred. Please contact support if this persists.",
            context,
            [RecoveryAction("manual", "Inspect the logs and contact support")],
            error,
        )

    @classmethod
    def _build(
        cls,
        category: ErrorCategory,
        code: str,
        message: str,
        user_message: str,
        context: ErrorContext,
        actions: list[RecoveryAction],
        error: BaseException,
        severity: Optional[ErrorSeverity] = None,
        retryable: Optional[bool] = None,
        retry_delay: Optional[float] = None,
    ) -> AppError:
        policy = cls.POLICIES[category]
        is_retryable = policy.retryable if retryable is None else retryable
        return AppError(
            category=category,
            severity=severity or policy.severity,
            code=code,
            message=message,
            user_message=user_message,
            context=context,
            recovery_actions=actions,
            retryable=is_retryable,
            max_retries=policy.max_retries if is_retryable else 0,
            retry_delay=(
                (retry_delay if retry_delay is not None else policy.retry_delay)
                if is_retryable
                else 0.0
            ),
            exponential_backoff=policy.exponential_backoff and is_retryable,
            technical_details=cls._technical_details(error),
        )

    @classmethod
    def _extract_signals(cls, error: BaseException) -> _Signals:
        response = getattr(error, "response", None)

        status = None
        for source in (error, response):
            if source is None:
                continue
            for attr in ("status_code", "status"):
                value = getattr(source, attr, None)
                if isinstance(value, int) and not isinstance(value, bool):
                    status = value
                    break
            if status is not None:
                break

        raw_headers = getattr(error, "headers", None)
        if raw_headers is None and response is not None:
            raw_headers = getattr(response, "headers", None)
        headers: dict[str, str] = {}
        if raw_headers is not None and hasattr(raw_headers, "items"):
            headers = {str(k).lower(): str(v) for k, v in raw_headers.items()}

        os_code = None
        if isinstance(error, OSError) and error.errno is not None:
            os_code = errno.errorcode.get(error.errno)
        code_attr = getattr(error, "code", None)
        if os_code is None and isinstance(code_attr, str) and code_attr.startswith("E"):
            os_code = code_attr.upper()

        return _Signals(
            message=str(error).lower(),
            status=status,
            headers=headers,
            os_code=os_code,
        )

    @staticmethod
    def _is_rate_limited(signals: _Signals) -> bool:
        if signals.status == 429:
            return True
        header_signal = (
            signals.headers.get("x-ratelimit-remaining") == "0"
            or "retry-after" in signals.headers
        )
        if signals.status == 403 and header_signal:
            return True
        return "rate limit" in signals.message or "too many requests" in signals.message

    @staticmethod
    def _retry_after(headers: Mapping[str, str]) -> Optional[float]:
        value = headers.get("retry-after")
        if value is None:
            return None
        try:
            return max(float(value), 0.0)
        except ValueError:
            return None

    @staticmethod
    def _is_timeout(error: BaseException, message: str) -> bool:
        if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
            return True
        if type(error).__name__ in ("AbortError", "ReadTimeout", "ConnectTimeout"):
            return True
        return any(p in message for p in ("timeout", "timed out", "aborted"))

    @classmethod
    def _is_network(cls, error: BaseException, signals: _Signals) -> bool:
        if isinstance(error, (ConnectionError, socket.gaierror)):
            return True
        if signals.os_code in cls.NETWORK_OS_CODES:
            return True
        return any(p in signals.message for p in cls.NETWORK_PATTERNS)

    @classmethod
    def _is_filesystem(cls, error: BaseException, signals: _Signals) -> bool:
        if isinstance(error, OSError):
            return True
        if signals.os_code in cls.FILESYSTEM_OS_CODES:
            return True
        return "eacces" in signals.message or "permission denied" in signals.message

    @staticmethod
    def _technical_details(error: BaseException) -> str:
        if error.__traceback__ is None:
            return f"{type(error).__name__}: {error}"
        return "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
