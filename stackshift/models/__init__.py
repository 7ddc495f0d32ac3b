"""Data models for stackshift."""

from stackshift.models.conversion import (
    ConversionHistoryEntry,
    ConversionPlan,
    ConversionResult,
    ConversionTask,
    FileChange,
    FileChangeType,
    FileTree,
    PlanComplexity,
    ProjectSnapshot,
    ResultStatus,
    TaskStatus,
    TaskType,
    TechStack,
)
from stackshift.models.jobs import Job, JobProgressEvent, JobStatus

__all__ = [
    "ConversionHistoryEntry",
    "ConversionPlan",
    "ConversionResult",
    "ConversionTask",
    "FileChange",
    "FileChangeType",
    "FileTree",
    "Job",
    "JobProgressEvent",
    "JobStatus",
    "PlanComplexity",
    "ProjectSnapshot",
    "ResultStatus",
    "TaskStatus",
    "TaskType",
    "TechStack",
]
