"""
Retry mechanism with exponential backoff for stackshift.

This module wraps async operations with bounded retries. Failures are
classified with the ErrorClassifier; only retryable failures are retried.
"""

import asyncio
import functools
import inspect
import random
import time
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Optional,
    TypeVar,
)

from stackshift.errors.classifier import ErrorClassifier
from stackshift.errors.exceptions import AppError
from stackshift.errors.taxonomy import ErrorCategory, ErrorContext
from stackshift.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

OnRetry = Callable[[AppError, int, float], Any]


@dataclass
class RetryOptions:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retries after the initial attempt
        base_delay: Base delay between retries in seconds
        exponential_backoff: Double the delay on every retry
        max_delay: Upper bound for a single delay in seconds
        jitter: Scale each delay by a random factor in [0.5, 1.0]
    """

    max_retries: int = 3
    base_delay: float = 1.0
    exponential_backoff: bool = True
    max_delay: Optional[float] = None
    jitter: bool = False

    @classmethod
    def from_error(cls, error: AppError, max_delay: Optional[float] = None) -> "RetryOptions":
        """Build options from the policy the classifier attached to an error."""
        return cls(
            max_retries=error.max_retries,
            base_delay=error.retry_delay,
            exponential_backoff=error.exponential_backoff,
            max_delay=max_delay,
        )


@dataclass
class RetryResult(Generic[T]):
    """Outcome of execute_with_retry."""

    success: bool
    attempts: int
    total_time: float
    result: Optional[T] = None
    error: Optional[AppError] = None


def calculate_delay(
    attempt: int,
    options: RetryOptions,
    random_source: Callable[[], float] = random.random,
) -> float:
    """
    Calculate the delay before the retry that follows a failed attempt.

    Args:
        attempt: The attempt that just failed (1-based)
        options: Retry configuration
        random_source: Source of uniform values in [0, 1)

    Returns:
        Delay time in seconds
    """
    if options.exponential_backoff:
        delay = options.base_delay * (2 ** (attempt - 1))
    else:
        delay = options.base_delay

    if options.max_delay is not None:
        delay = min(delay, options.max_delay)

    if options.jitter:
        delay = delay * (0.5 + 0.5 * random_source())

    return delay


def delay_for_error(
    error: AppError,
    attempt: int,
    options: RetryOptions,
    random_source: Callable[[], float] = random.random,
) -> float:
    """
    Delay before the next attempt, honoring the policy attached to the error.

    Rate-limit failures never wait less than the server asked for, and
    failures whose policy retries immediately skip the caller's backoff.
    """
    if error.retry_delay == 0 and not error.exponential_backoff:
        return 0.0

    delay = calculate_delay(attempt, options, random_source)
    if error.category == ErrorCategory.RATE_LIMIT:
        delay = max(delay, error.retry_delay)
    return delay


class RetryManager:
    """
    Executes async operations with classified, bounded retries.

    Sleep, clock and randomness are injectable so retry timing can be tested
    without real waiting.
    """

    def __init__(
        self,
        classifier: Optional[type[ErrorClassifier]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        self.classifier = classifier or ErrorClassifier
        self._sleep = sleep
        self._clock = clock
        self._random = random_source

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        options: RetryOptions,
        context: ErrorContext,
        on_retry: Optional[OnRetry] = None,
    ) -> RetryResult[T]:
        """
        Run an operation until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument callable returning an awaitable
            options: Retry configuration
            context: Context attached to classified failures
            on_retry: Optional callback (error, attempt, delay), sync or async,
                called before each retry sleep

        Returns:
            RetryResult with the operation's value or the last classified error
        """
        started = self._clock()
        attempt = 0

        while True:
            attempt += 1
            try:
                value = await operation()
                return RetryResult(
                    success=True,
                    attempts=attempt,
                    total_time=self._clock() - started,
                    result=value,
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = self.classifier.classify(e, context)

            if not error.retryable or attempt > options.max_retries:
                if error.retryable:
                    logger.warning(
                        f"Giving up on {context.operation} after {attempt} attempts: "
                        f"{error.message}"
                    )
                else:
                    logger.debug(
                        f"Non-retryable {error.category.value} failure in "
                        f"{context.operation}: {error.message}"
                    )
                return RetryResult(
                    success=False,
                    attempts=attempt,
                    total_time=self._clock() - started,
                    error=error,
                )

            delay = delay_for_error(error, attempt, options, self._random)
            logger.warning(
                f"Retrying {context.operation} due to {error.category.value}: "
                f"{error.message}. Attempt {attempt}/{options.max_retries} "
                f"failed, waiting {delay:.2f}s"
            )

            if on_retry is not None:
                outcome = on_retry(error, attempt, delay)
                if inspect.isawaitable(outcome):
                    await outcome

            await self._sleep(delay)


def retry_with_backoff(
    options: Optional[RetryOptions] = None,
    operation_name: Optional[str] = None,
    on_retry: Optional[OnRetry] = None,
    manager: Optional[RetryManager] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for retrying async functions with exponential backoff.

    The final classified AppError is raised once retries are exhausted or the
    failure is not retryable.

    Example:
        @retry_with_backoff(RetryOptions(max_retries=2), operation_name="load_project")
        async def load(project_id):
            ...
    """
    retry_options = options or RetryOptions()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = operation_name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            retry_manager = manager or RetryManager()
            result = await retry_manager.execute_with_retry(
                lambda: func(*args, **kwargs),
                retry_options,
                ErrorContext(operation=name),
                on_retry=on_retry,
            )
            if not result.success:
                assert result.error is not None
                raise result.error
            return result.result  # type: ignore[return-value]

        return wrapper

    return decorator
