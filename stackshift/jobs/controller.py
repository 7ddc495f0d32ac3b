"""
Conversion job lifecycle management.

The JobController creates jobs for conversion plans, runs each one as a
background asyncio task against a fresh orchestrator, and owns the job state
machine:

    PENDING -> RUNNING <-> PAUSED
    RUNNING -> COMPLETED
    PENDING/RUNNING/PAUSED -> FAILED
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from stackshift.async_infrastructure.gate import ExecutionGate
from stackshift.config.settings import OrchestratorSettings, get_orchestrator_settings
from stackshift.conversion.capabilities import ProjectSource
from stackshift.conversion.dependency_resolver import DependencyResolver
from stackshift.conversion.orchestrator import ConversionObserver, ConversionOrchestrator
from stackshift.errors.exceptions import (
    AppError,
    InvalidStateTransitionError,
    JobNotFoundError,
    PlanInfeasibleError,
)
from stackshift.errors.retry import RetryManager, RetryOptions, retry_with_backoff
from stackshift.jobs.progress import ProgressCallback, ProgressChannel
from stackshift.jobs.store import InMemoryJobStore, JobStore
from stackshift.logging import get_logger, log_error
from stackshift.models.conversion import (
    ConversionPlan,
    ConversionResult,
    ConversionTask,
    ProjectSnapshot,
)
from stackshift.models.jobs import Job, JobProgressEvent, JobStatus
from stackshift.monitoring.service_telemetry import (
    create_service_span,
    trace_service_method,
)

logger = get_logger(__name__)

OrchestratorFactory = Callable[[], ConversionOrchestrator]


@dataclass
class _JobRun:
    gate: ExecutionGate
    total_tasks: int
    resolved_tasks: int = 0
    task: Optional["asyncio.Task[None]"] = None


class _JobObserver(ConversionObserver):
    """Feeds task outcomes of one run back into its job."""

    def __init__(self, controller: "JobController", job_id: str, run: _JobRun) -> None:
        self.controller = controller
        self.job_id = job_id
        self.run = run

    async def task_started(self, task: ConversionTask) -> None:
        await self.controller._record_task_event(
            self.job_id, self.run, task, f"Started task {task.id}"
        )

    async def task_finished(self, task: ConversionTask, result: ConversionResult) -> None:
        self.run.resolved_tasks += 1
        await self.controller._record_task_event(
            self.job_id, self.run, task, f"Task {task.id} finished: {result.status.value}"
        )


class JobController:
    """
    Owns conversion jobs and their background runs.

    Args:
        orchestrator_factory: Builds a fresh orchestrator for each run
        project_source: Loads the source tree and stacks of a project
        store: Job persistence, in-memory by default
        channel: Progress channel, a private one by default
        settings: Orchestrator settings, process-wide settings by default
        retry_manager: Used to retry project loading
    """

    def __init__(
        self,
        orchestrator_factory: OrchestratorFactory,
        project_source: ProjectSource,
        store: Optional[JobStore] = None,
        channel: Optional[ProgressChannel] = None,
        settings: Optional[OrchestratorSettings] = None,
        retry_manager: Optional[RetryManager] = None,
    ) -> None:
        self.orchestrator_factory = orchestrator_factory
        self.project_source = project_source
        self.store: JobStore = store or InMemoryJobStore()
        self.channel = channel or ProgressChannel()
        self.settings = settings or get_orchestrator_settings()
        self.retry_manager = retry_manager or RetryManager()
        self._runs: dict[str, _JobRun] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def generate_job_id() -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        return f"job_{timestamp}_{uuid.uuid4().hex[:8]}"

    # --- Lifecycle operations ---

    @trace_service_method("job.create")
    async def create(self, plan: ConversionPlan, project_id: Optional[str] = None) -> Job:
        """Create a PENDING job for a plan."""
        job = Job(
            id=self.generate_job_id(),
            project_id=project_id or plan.project_id,
            plan=plan.model_copy(deep=True),
        )
        await self.store.create(job)
        logger.info(f"Created job {job.id} for project {job.project_id} ({len(plan.tasks)} tasks)")
        return job.model_copy(deep=True)

    @trace_service_method("job.start")
    async def start(self, job_id: str) -> Job:
        """Start a PENDING job in the background."""
        async with self._lock:
            job = await self._require(job_id)
            self._check_transition(job, "start", JobStatus.PENDING)

            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(timezone.utc)
            await self.store.update(job)

            run = _JobRun(gate=ExecutionGate(f"job {job_id}"), total_tasks=len(job.plan.tasks))
            self._runs[job_id] = run
            run.task = asyncio.create_task(self._run_job(job_id, run), name=f"job-{job_id}")

        logger.info(f"Started job {job_id}")
        await self._publish(job, "Conversion started")
        return job.model_copy(deep=True)

    @trace_service_method("job.pause")
    async def pause(self, job_id: str) -> Job:
        """Stop dispatching further batches; in-flight tasks finish."""
        async with self._lock:
            job = await self._require(job_id)
            self._check_transition(job, "pause", JobStatus.RUNNING)
            self._runs[job_id].gate.pause()
            job.status = JobStatus.PAUSED
            await self.store.update(job)

        logger.info(f"Paused job {job_id}")
        await self._publish(job, "Conversion paused")
        return job.model_copy(deep=True)

    @trace_service_method("job.resume")
    async def resume(self, job_id: str) -> Job:
        async with self._lock:
            job = await self._require(job_id)
            self._check_transition(job, "resume", JobStatus.PAUSED)
            self._runs[job_id].gate.resume()
            job.status = JobStatus.RUNNING
            await self.store.update(job)

        logger.info(f"Resumed job {job_id}")
        await self._publish(job, "Conversion resumed")
        return job.model_copy(deep=True)

    @trace_service_method("job.cancel")
    async def cancel(self, job_id: str) -> None:
        """
        Cancel a non-terminal job.

        No further batches are dispatched, progress subscribers are removed and
        the job record is deleted. Provider calls already in flight finish in
        the background.
        """
        async with self._lock:
            job = await self._require(job_id)
            if job.status.is_terminal:
                raise InvalidStateTransitionError(job_id, "cancel", job.status.value)

            run = self._runs.pop(job_id, None)
            if run is not None:
                run.gate.cancel(f"Job {job_id} cancelled")
            self.channel.unsubscribe(job_id)
            await self.store.delete(job_id)

        logger.info(f"Cancelled job {job_id}")

    @trace_service_method("job.get_status")
    async def get_status(self, job_id: str) -> Job:
        """
        Return the job.

        A non-terminal job whose background run has already ended is
        reconciled to FAILED.
        """
        job = await self._require(job_id)
        run = self._runs.get(job_id)
        if (
            not job.status.is_terminal
            and run is not None
            and run.task is not None
            and run.task.done()
        ):
            if run.task.cancelled():
                reason = "Job run was cancelled unexpectedly"
            elif run.task.exception() is not None:
                reason = f"Job run crashed: {run.task.exception()}"
            else:
                reason = "Job run ended without reporting a result"
            logger.warning(f"Reconciling job {job_id} to failed: {reason}")
            await self._finish(job, JobStatus.FAILED, reason)
        return job.model_copy(deep=True)

    async def list_by_project(self, project_id: str) -> list[Job]:
        """Jobs of one project, newest first."""
        jobs = await self.store.list_by_project(project_id)
        return [job.model_copy(deep=True) for job in jobs]

    def on_progress(self, job_id: str, callback: ProgressCallback) -> None:
        self.channel.subscribe(job_id, callback)

    def off_progress(self, job_id: str) -> None:
        self.channel.unsubscribe(job_id)

    async def wait(self, job_id: str) -> Optional[Job]:
        """
        Wait for a job's background run to end.

        Returns:
            The final job, or None if the job was cancelled and deleted
        """
        run = self._runs.get(job_id)
        if run is not None and run.task is not None:
            await asyncio.wait({run.task})
        job = await self.store.find(job_id)
        return job.model_copy(deep=True) if job is not None else None

    # --- Background run ---

    async def _run_job(self, job_id: str, run: _JobRun) -> None:
        job = await self.store.find(job_id)
        if job is None:
            return
        plan = job.plan

        try:
            resolution = DependencyResolver().resolve(plan.tasks)
            if not plan.feasible or not resolution.feasible:
                raise PlanInfeasibleError(plan.id, resolution.error)

            snapshot = await self._load_project(job)

            orchestrator = self.orchestrator_factory()
            with create_service_span("job.run", job_id=job_id, project_id=job.project_id):
                results = await orchestrator.execute_conversion(
                    plan,
                    snapshot.source_tree,
                    snapshot.source_stack,
                    snapshot.target_stack,
                    gate=run.gate,
                    observer=_JobObserver(self, job_id, run),
                )
        except PlanInfeasibleError as e:
            logger.error(f"Job {job_id} has an infeasible plan: {e.message}")
            await self._finish_by_id(job_id, run, JobStatus.FAILED, e.message)
            return
        except AppError as e:
            logger.error(f"Job {job_id} could not load project {job.project_id}: {e.message}")
            await self._finish_by_id(
                job_id, run, JobStatus.FAILED,
                f"Failed to load project {job.project_id}: {e.message}",
            )
            return
        except Exception as e:
            log_error(e, logger=logger, extra={"job_id": job_id})
            await self._finish_by_id(job_id, run, JobStatus.FAILED, f"Unexpected error: {e}")
            return

        # A job paused after its last batch was dispatched completes on resume
        if not await run.gate.wait_until_runnable():
            logger.info(f"Job {job_id} run ended after cancellation")
            return

        job = await self.store.find(job_id)
        if job is None:
            return
        job.results = results

        failures = [r for r in results if not r.succeeded]
        if failures and self.settings.fail_job_on_task_error:
            summary = "; ".join(f"{r.task_id}: {r.error}" for r in failures)
            await self._finish(job, JobStatus.FAILED, f"{len(failures)} task(s) failed: {summary}")
        else:
            job.progress = 100
            await self._finish(job, JobStatus.COMPLETED)

    async def _load_project(self, job: Job) -> ProjectSnapshot:
        options = RetryOptions(
            max_retries=self.settings.project_load_retries,
            base_delay=self.settings.retry_base_delay,
            exponential_backoff=True,
            max_delay=self.settings.retry_max_delay,
        )

        @retry_with_backoff(options, operation_name="load_project", manager=self.retry_manager)
        async def load() -> ProjectSnapshot:
            return await self.project_source.load(job.project_id)

        return await load()

    async def _record_task_event(
        self, job_id: str, run: _JobRun, task: ConversionTask, message: str
    ) -> None:
        if run.gate.is_cancelled:
            return
        job = await self.store.find(job_id)
        if job is None or job.status.is_terminal:
            return

        if run.total_tasks:
            progress = min(100, run.resolved_tasks * 100 // run.total_tasks)
            job.progress = max(job.progress, progress)
        job.current_task = task.description or task.id
        await self.store.update(job)
        await self._publish(job, message)

    async def _finish_by_id(
        self, job_id: str, run: _JobRun, status: JobStatus, error_message: str
    ) -> None:
        if run.gate.is_cancelled:
            return
        job = await self.store.find(job_id)
        if job is not None:
            await self._finish(job, status, error_message)

    async def _finish(
        self, job: Job, status: JobStatus, error_message: Optional[str] = None
    ) -> None:
        job.status = status
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error_message
        await self.store.update(job)

        if status == JobStatus.COMPLETED:
            logger.info(f"Job {job.id} completed")
            await self._publish(job, "Conversion completed")
        else:
            logger.error(f"Job {job.id} failed: {error_message}")
            await self._publish(job, error_message or "Conversion failed")
        self.channel.unsubscribe(job.id)
        self._runs.pop(job.id, None)

    # --- Helpers ---

    async def _require(self, job_id: str) -> Job:
        job = await self.store.find(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    @staticmethod
    def _check_transition(job: Job, operation: str, expected: JobStatus) -> None:
        if job.status != expected:
            raise InvalidStateTransitionError(job.id, operation, job.status.value)

    async def _publish(self, job: Job, message: str) -> None:
        await self.channel.publish(
            JobProgressEvent(
                job_id=job.id,
                progress=job.progress,
                status=job.status,
                message=message,
            )
        )
