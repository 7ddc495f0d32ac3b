"""
Conversion job models.

A job is one execution of a conversion plan, owned by the JobController.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import Field

from stackshift.models.base import StackshiftModel
from stackshift.models.conversion import ConversionPlan, ConversionResult


class JobStatus(str, Enum):
    """Status of a conversion job."""

    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class Job(StackshiftModel):
    """A conversion job and its progress."""

    id: str
    project_id: str
    plan: ConversionPlan
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(0, ge=0, le=100, description="Progress percentage (0-100)")
    current_task: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    results: list[ConversionResult] = Field(default_factory=list)


class JobProgressEvent(StackshiftModel):
    """Progress notification published to job subscribers."""

    job_id: str
    progress: int = Field(..., ge=0, le=100)
    status: JobStatus
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
