"""
Central registry of error codes for stackshift.

Codes are upper snake case. Classified provider failures use codes named
after their category (e.g. RATE_LIMIT_EXCEEDED); plan and job errors use the
PLAN_ and JOB-level codes below.

Usage:
    from stackshift.errors.error_codes import ErrorCodes

    raise JobNotFoundError(job_id, error_code=ErrorCodes.NOT_FOUND)
"""


class ErrorCodes:
    """Central registry of error codes for consistent error handling."""

    # Plan resolution errors
    PLAN_DEPENDENCY_CYCLE = "PLAN_DEPENDENCY_CYCLE"
    PLAN_MISSING_DEPENDENCY = "PLAN_MISSING_DEPENDENCY"
    PLAN_DUPLICATE_TASK = "PLAN_DUPLICATE_TASK"
    PLAN_INFEASIBLE = "PLAN_INFEASIBLE"

    # Job lifecycle errors
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_JOB = "DUPLICATE_JOB"
    PROJECT_LOAD_FAILED = "PROJECT_LOAD_FAILED"

    # Task execution errors
    DEPENDENCY_FAILED = "DEPENDENCY_FAILED"
    PROVIDER_OUTPUT_INVALID = "PROVIDER_OUTPUT_INVALID"

    # Configuration errors
    CONFIG_LOAD_FAILED = "CONFIG_LOAD_FAILED"
    CONFIG_INVALID_FORMAT = "CONFIG_INVALID_FORMAT"

    # Classified failures
    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    ACCESS_DENIED = "ACCESS_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONTEXT_TOO_LARGE = "CONTEXT_TOO_LARGE"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILESYSTEM_ERROR = "FILESYSTEM_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    UNKNOWN_STRING_ERROR = "UNKNOWN_STRING_ERROR"
    UNKNOWN_ERROR_TYPE = "UNKNOWN_ERROR_TYPE"

    @classmethod
    def get_all_codes(cls) -> dict[str, str]:
        """
        Get all error codes as a dictionary.

        Returns:
            Dictionary mapping constant names to error code strings
        """
        return {
            name: value
            for name, value in vars(cls).items()
            if not name.startswith("_") and isinstance(value, str)
        }

    @classmethod
    def validate_code(cls, code: str) -> bool:
        """Check if an error code exists in the registry."""
        return code in cls.get_all_codes().values()
