"""Tests for the in-memory job store and the progress channel."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_plan, make_task
from stackshift.errors import ErrorCodes, JobError, JobNotFoundError
from stackshift.jobs.progress import ProgressChannel
from stackshift.jobs.store import InMemoryJobStore, JobStore
from stackshift.models.jobs import Job, JobProgressEvent, JobStatus


def make_job(job_id: str, project_id: str = "proj-1", **overrides) -> Job:
    return Job(id=job_id, project_id=project_id, plan=make_plan(make_task("A")), **overrides)


def make_event(job_id: str = "job-1", progress: int = 10) -> JobProgressEvent:
    return JobProgressEvent(job_id=job_id, progress=progress, status=JobStatus.RUNNING)


class TestInMemoryJobStore:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryJobStore(), JobStore)

    @pytest.mark.asyncio
    async def test_create_find_update_delete(self):
        store = InMemoryJobStore()
        job = make_job("job-1")

        await store.create(job)
        assert await store.find("job-1") is job

        job.status = JobStatus.RUNNING
        await store.update(job)
        assert (await store.find("job-1")).status == JobStatus.RUNNING

        assert await store.delete("job-1") is True
        assert await store.find("job-1") is None
        assert await store.delete("job-1") is False

    @pytest.mark.asyncio
    async def test_duplicate_create_is_rejected(self):
        store = InMemoryJobStore()
        await store.create(make_job("job-1"))

        with pytest.raises(JobError) as exc_info:
            await store.create(make_job("job-1"))

        assert exc_info.value.error_code == ErrorCodes.DUPLICATE_JOB

    @pytest.mark.asyncio
    async def test_update_unknown_job(self):
        with pytest.raises(JobNotFoundError):
            await InMemoryJobStore().update(make_job("job-404"))

    @pytest.mark.asyncio
    async def test_list_by_project_newest_first(self):
        store = InMemoryJobStore()
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        await store.create(make_job("old", created_at=base))
        await store.create(make_job("new", created_at=base + timedelta(minutes=5)))
        await store.create(make_job("other", project_id="proj-2", created_at=base))

        jobs = await store.list_by_project("proj-1")

        assert [j.id for j in jobs] == ["new", "old"]


class TestProgressChannel:
    @pytest.mark.asyncio
    async def test_sync_and_async_subscribers(self):
        channel = ProgressChannel()
        received = []

        async def async_callback(event):
            received.append(("async", event.progress))

        channel.subscribe("job-1", lambda event: received.append(("sync", event.progress)))
        channel.subscribe("job-1", async_callback)

        await channel.publish(make_event(progress=40))

        assert received == [("sync", 40), ("async", 40)]

    @pytest.mark.asyncio
    async def test_events_only_reach_their_job(self):
        channel = ProgressChannel()
        received = []
        channel.subscribe("job-1", received.append)

        await channel.publish(make_event(job_id="job-2"))

        assert received == []

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self):
        channel = ProgressChannel()
        received = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        channel.subscribe("job-1", broken)
        channel.subscribe("job-1", received.append)

        await channel.publish(make_event())

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_all_callbacks(self):
        channel = ProgressChannel()
        received = []
        channel.subscribe("job-1", received.append)
        channel.subscribe("job-1", received.append)
        assert channel.subscriber_count("job-1") == 2

        channel.unsubscribe("job-1")
        await channel.publish(make_event())

        assert channel.subscriber_count("job-1") == 0
        assert received == []
