"""
Job persistence.

The JobController talks to a JobStore; the in-memory implementation serves
single-process use and tests.
"""

import asyncio
from typing import Optional, Protocol, runtime_checkable

from stackshift.errors.error_codes import ErrorCodes
from stackshift.errors.exceptions import JobError, JobNotFoundError
from stackshift.logging import get_logger
from stackshift.models.jobs import Job

logger = get_logger(__name__)


@runtime_checkable
class JobStore(Protocol):
    """Persistence interface for conversion jobs."""

    async def create(self, job: Job) -> Job: ...

    async def find(self, job_id: str) -> Optional[Job]: ...

    async def update(self, job: Job) -> Job: ...

    async def delete(self, job_id: str) -> bool: ...

    async def list_by_project(self, project_id: str) -> list[Job]: ...


class InMemoryJobStore:
    """Job registry kept in process memory, guarded by an asyncio.Lock."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: Job) -> Job:
        async with self._lock:
            if job.id in self._jobs:
                raise JobError(
                    message=f"Job id already exists: {job.id}",
                    error_code=ErrorCodes.DUPLICATE_JOB,
                    details={"job_id": job.id},
                )
            self._jobs[job.id] = job
            return job

    async def find(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            return self._jobs.get(job_id)

    async def update(self, job: Job) -> Job:
        async with self._lock:
            if job.id not in self._jobs:
                raise JobNotFoundError(job.id)
            self._jobs[job.id] = job
            return job

    async def delete(self, job_id: str) -> bool:
        async with self._lock:
            return self._jobs.pop(job_id, None) is not None

    async def list_by_project(self, project_id: str) -> list[Job]:
        async with self._lock:
            jobs = [job for job in self._jobs.values() if job.project_id == project_id]
        return sorted(jobs, key=lambda job: job.created_at, reverse=True)
