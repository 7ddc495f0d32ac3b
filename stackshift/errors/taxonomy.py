"""
Error taxonomy shared by the classifier, the retry manager and AppError.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional


class ErrorCategory(str, Enum):
    """Category of a classified failure."""

    AUTH = "AUTH"
    RATE_LIMIT = "RATE_LIMIT"
    ACCESS_DENIED = "ACCESS_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONTEXT_TOO_LARGE = "CONTEXT_TOO_LARGE"
    TIMEOUT = "TIMEOUT"
    STORAGE_CONNECTION = "STORAGE_CONNECTION"
    NETWORK = "NETWORK"
    FILESYSTEM = "FILESYSTEM"
    VALIDATION = "VALIDATION"
    UNKNOWN = "UNKNOWN"


class ErrorSeverity(str, Enum):
    """Severity of a classified failure."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


RecoveryType = Literal["retry", "manual", "fallback", "skip", "abort"]


@dataclass
class RecoveryAction:
    """A recovery step surfaced to an operator or UI.

    Attributes:
        type: retry, manual, fallback, skip or abort
        description: What the action does
        automated: Whether the system performs it without intervention
        estimated_time: Expected duration in seconds, when known
    """

    type: RecoveryType
    description: str
    automated: bool = False
    estimated_time: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ErrorContext:
    """Where a failure happened."""

    operation: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    project_id: Optional[str] = None
    job_id: Optional[str] = None
    task_id: Optional[str] = None
    file_name: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["timestamp"] = self.timestamp.isoformat()
        return result
