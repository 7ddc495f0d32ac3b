"""Conversion job management."""

from stackshift.jobs.controller import JobController
from stackshift.jobs.progress import ProgressCallback, ProgressChannel
from stackshift.jobs.store import InMemoryJobStore, JobStore

__all__ = [
    "InMemoryJobStore",
    "JobController",
    "JobStore",
    "ProgressCallback",
    "ProgressChannel",
]
