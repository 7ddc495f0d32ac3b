"""
Tests for ErrorClassifier.

Covers the category precedence, the retry policy attached to each category
and the handling of non-exception failures.
"""

import asyncio
import errno

import pytest

from stackshift.errors import (
    AppError,
    DependencyCycleError,
    ErrorCategory,
    ErrorClassifier,
    ErrorCodes,
    ErrorContext,
    ErrorSeverity,
    JobNotFoundError,
    ProviderOutputError,
)


class HttpError(Exception):
    def __init__(self, message: str, status: int, headers=None) -> None:
        super().__init__(message)
        self.status = status
        self.headers = headers or {}


class FakeResponse:
    def __init__(self, status_code: int, headers=None) -> None:
        self.status_code = status_code
        self.headers = headers or {}


class ResponseError(Exception):
    def __init__(self, message: str, response: FakeResponse) -> None:
        super().__init__(message)
        self.response = response


@pytest.fixture
def context():
    return ErrorContext(operation="convert_task", project_id="proj-1", task_id="A")


def classify(error, context):
    return ErrorClassifier.classify(error, context)


class TestHttpClassification:
    def test_401_is_auth_and_not_retryable(self, context):
        error = classify(HttpError("Request failed", 401), context)

        assert error.category == ErrorCategory.AUTH
        assert error.code == ErrorCodes.AUTH_FAILED
        assert error.retryable is False
        assert error.severity == ErrorSeverity.HIGH

    def test_429_is_rate_limit_and_retryable(self, context):
        error = classify(HttpError("Request failed", 429), context)

        assert error.category == ErrorCategory.RATE_LIMIT
        assert error.retryable is True
        assert error.max_retries == 5
        assert error.retry_delay == 30.0
        assert error.exponential_backoff is True

    def test_403_with_exhausted_quota_header_is_rate_limit(self, context):
        error = classify(
            HttpError("Forbidden", 403, headers={"X-RateLimit-Remaining": "0"}), context
        )

        assert error.category == ErrorCategory.RATE_LIMIT

    def test_retry_after_header_sets_retry_delay(self, context):
        error = classify(HttpError("Forbidden", 403, headers={"Retry-After": "12"}), context)

        assert error.category == ErrorCategory.RATE_LIMIT
        assert error.retry_delay == 12.0

    def test_plain_403_is_access_denied(self, context):
        error = classify(HttpError("Forbidden", 403), context)

        assert error.category == ErrorCategory.ACCESS_DENIED
        assert error.retryable is False

    def test_404_from_response_is_not_found(self, context):
        error = classify(ResponseError("missing", FakeResponse(404)), context)

        assert error.category == ErrorCategory.NOT_FOUND
        assert error.code == ErrorCodes.RESOURCE_NOT_FOUND
        assert error.retryable is False

    def test_auth_takes_precedence_over_rate_limit_text(self, context):
        error = classify(HttpError("rate limit exceeded", 401), context)

        assert error.category == ErrorCategory.AUTH


class TestMessageClassification:
    @pytest.mark.parametrize(
        "message",
        ["This model's maximum context length is 8192 tokens", "token limit reached"],
    )
    def test_context_too_large(self, context, message):
        error = classify(RuntimeError(message), context)

        assert error.category == ErrorCategory.CONTEXT_TOO_LARGE
        assert error.retryable is True
        assert error.max_retries == 2
        assert error.retry_delay == 0.0
        assert [a.type for a in error.recovery_actions] == ["fallback"]

    def test_timeout_error_type(self, context):
        error = classify(asyncio.TimeoutError(), context)

        assert error.category == ErrorCategory.TIMEOUT
        assert error.retryable is True
        assert error.retry_delay == 5.0

    def test_timed_out_message(self, context):
        assert classify(RuntimeError("request timed out"), context).category == ErrorCategory.TIMEOUT

    def test_storage_connection(self, context):
        error = classify(RuntimeError("Connection to postgres refused"), context)

        assert error.category == ErrorCategory.STORAGE_CONNECTION
        assert error.severity == ErrorSeverity.CRITICAL
        assert error.max_retries == 5

    def test_connection_refused_is_network(self, context):
        error = classify(ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"), context)

        assert error.category == ErrorCategory.NETWORK
        assert error.retryable is True
        assert error.retry_delay == 2.0

    def test_node_style_error_code_is_network(self, context):
        raw = RuntimeError("getaddrinfo failed")
        raw.code = "ENOTFOUND"

        assert classify(raw, context).category == ErrorCategory.NETWORK

    def test_missing_file_is_not_retryable(self, context):
        error = classify(FileNotFoundError(errno.ENOENT, "No such file", "src/a.js"), context)

        assert error.category == ErrorCategory.FILESYSTEM
        assert error.code == ErrorCodes.FILE_NOT_FOUND
        assert error.retryable is False

    def test_permission_error_is_retryable_without_backoff(self, context):
        error = classify(PermissionError(errno.EACCES, "Permission denied"), context)

        assert error.category == ErrorCategory.FILESYSTEM
        assert error.retryable is True
        assert error.max_retries == 3
        assert error.exponential_backoff is False

    def test_validation_message(self, context):
        error = classify(ValueError("invalid input: name is required"), context)

        assert error.category == ErrorCategory.VALIDATION
        assert error.retryable is False
        assert error.severity == ErrorSeverity.LOW

    def test_unmatched_exception_is_unknown(self, context):
        error = classify(RuntimeError("something odd happened"), context)

        assert error.category == ErrorCategory.UNKNOWN
        assert error.retryable is False
        assert "RuntimeError" in error.technical_details


class TestNonExceptionInputs:
    def test_app_error_is_returned_unchanged(self, context):
        original = classify(HttpError("slow down", 429), context)

        assert classify(original, context) is original

    def test_plain_string_is_unknown_and_retryable(self, context):
        error = classify("something went wrong", context)

        assert error.category == ErrorCategory.UNKNOWN
        assert error.code == ErrorCodes.UNKNOWN_STRING_ERROR
        assert error.retryable is True
        assert error.message == "something went wrong"

    def test_arbitrary_object_is_unknown_and_not_retryable(self, context):
        error = classify({"weird": True}, context)

        assert error.category == ErrorCategory.UNKNOWN
        assert error.code == ErrorCodes.UNKNOWN_ERROR_TYPE
        assert error.retryable is False
        assert error.severity == ErrorSeverity.HIGH
        assert error.technical_details == "{'weird': True}"


class TestDomainErrors:
    def test_plan_error_is_validation(self, context):
        error = classify(DependencyCycleError(["A", "B", "A"]), context)

        assert error.category == ErrorCategory.VALIDATION
        assert error.code == ErrorCodes.PLAN_DEPENDENCY_CYCLE
        assert error.retryable is False

    def test_job_not_found(self, context):
        error = classify(JobNotFoundError("job-x"), context)

        assert error.category == ErrorCategory.NOT_FOUND
        assert error.code == ErrorCodes.NOT_FOUND

    def test_provider_output_error_is_validation(self, context):
        error = classify(ProviderOutputError("A", "missing 'files' entry"), context)

        assert error.category == ErrorCategory.VALIDATION
        assert error.code == ErrorCodes.PROVIDER_OUTPUT_INVALID


class TestClassifiedErrorShape:
    def test_context_is_attached_and_serialized(self, context):
        error = classify(HttpError("slow down", 429), context)
        data = error.to_dict()

        assert isinstance(error, AppError)
        assert error.context is context
        assert data["category"] == "RATE_LIMIT"
        assert data["context"]["task_id"] == "A"
        assert data["recovery_actions"][0]["automated"] is True

    def test_classification_is_deterministic(self, context):
        first = classify(RuntimeError("fetch failed"), context)
        second = classify(RuntimeError("fetch failed"), context)

        assert (first.category, first.code, first.retryable, first.max_retries) == (
            second.category,
            second.code,
            second.retryable,
            second.max_retries,
        )
