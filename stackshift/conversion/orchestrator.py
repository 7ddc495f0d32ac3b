"""
Conversion orchestration.

Drives a conversion plan through its phases: context preparation, dependency
resolution, batch execution, validation and integration.
"""

import asyncio
import inspect
from typing import Any, Optional

from stackshift.async_infrastructure.gate import ExecutionGate
from stackshift.config.settings import OrchestratorSettings, get_orchestrator_settings
from stackshift.conversion.capabilities import (
    ConversionProvider,
    ResultIntegrator,
    ResultValidator,
)
from stackshift.conversion.context import ConversionContext, prepare_context
from stackshift.conversion.dependency_resolver import DependencyResolver
from stackshift.conversion.executor import TaskExecutor
from stackshift.errors.classifier import ErrorClassifier
from stackshift.errors.error_codes import ErrorCodes
from stackshift.errors.exceptions import AppError, PlanInfeasibleError
from stackshift.errors.retry import RetryManager, RetryOptions
from stackshift.errors.taxonomy import ErrorCategory, ErrorContext
from stackshift.logging import get_logger
from stackshift.models.conversion import (
    ConversionHistoryEntry,
    ConversionPlan,
    ConversionResult,
    ConversionTask,
    FileTree,
    ResultStatus,
    TaskStatus,
    TechStack,
)
from stackshift.monitoring.service_telemetry import create_service_span

logger = get_logger(__name__)


class ConversionObserver:
    """
    Receives task lifecycle notifications from the orchestrator.

    Methods may be overridden with plain or async functions.
    """

    def task_started(self, task: ConversionTask) -> Any:
        return None

    def task_finished(self, task: ConversionTask, result: ConversionResult) -> Any:
        return None


async def _notify(callback: Any, *args: Any) -> None:
    try:
        outcome = callback(*args)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        logger.error(f"Observer callback {getattr(callback, '__name__', callback)} failed: {e}")


class ConversionOrchestrator:
    """
    Executes a conversion plan against a provider.

    One instance serves one run at a time: converted files and history of the
    most recent run are kept on `context` for metrics.
    """

    def __init__(
        self,
        provider: ConversionProvider,
        validator: Optional[ResultValidator] = None,
        integrator: Optional[ResultIntegrator] = None,
        settings: Optional[OrchestratorSettings] = None,
        retry_manager: Optional[RetryManager] = None,
        resolver: Optional[DependencyResolver] = None,
    ) -> None:
        self.settings = settings or get_orchestrator_settings()
        self.provider = provider
        self.validator = validator
        self.integrator = integrator
        self.retry_manager = retry_manager or RetryManager()
        self.resolver = resolver or DependencyResolver(self.settings.max_concurrent_files)
        self.executor = TaskExecutor(provider, preserve_context=self.settings.preserve_context)
        self.context: Optional[ConversionContext] = None

    async def execute_conversion(
        self,
        plan: ConversionPlan,
        source_tree: FileTree,
        source_stack: TechStack,
        target_stack: TechStack,
        gate: Optional[ExecutionGate] = None,
        observer: Optional[ConversionObserver] = None,
    ) -> list[ConversionResult]:
        """
        Run every task of the plan.

        Args:
            plan: The plan to execute
            source_tree: Immutable source tree of the project
            source_stack: Stack the project is converted from
            target_stack: Stack the project is converted to
            gate: Awaited before each batch; a cancelled gate stops dispatching
            observer: Receives task_started and task_finished notifications

        Returns:
            One result per dispatched task, in batch order

        Raises:
            PlanInfeasibleError: If the plan is infeasible; no task runs
        """
        observer = observer or ConversionObserver()

        if not plan.feasible:
            raise PlanInfeasibleError(plan.id)

        with create_service_span("conversion.resolve", plan_id=plan.id, task_count=len(plan.tasks)):
            resolution = self.resolver.resolve(plan.tasks)
        if not resolution.feasible:
            raise PlanInfeasibleError(plan.id, resolution.error)

        with create_service_span("conversion.prepare_context", plan_id=plan.id):
            context = prepare_context(plan, source_tree, source_stack, target_stack)
        self.context = context

        logger.info(
            f"Executing plan {plan.id}: {resolution.task_count} tasks in "
            f"{len(resolution.batches)} batches"
        )

        results: list[ConversionResult] = []
        failed: set[str] = set()

        for index, batch in enumerate(resolution.batches):
            if gate is not None and not await gate.wait_until_runnable():
                logger.info(f"Plan {plan.id} cancelled before batch {index + 1}")
                return results

            with create_service_span(
                "conversion.batch", plan_id=plan.id, batch_index=index, batch_size=len(batch)
            ):
                batch_results = await asyncio.gather(
                    *(self._run_task(task, context, observer, failed) for task in batch)
                )

            for result in batch_results:
                results.append(result)
                if not result.succeeded:
                    failed.add(result.task_id)

        # A cancelled run never reaches validation or integration
        if gate is not None and gate.is_cancelled:
            logger.info(f"Plan {plan.id} cancelled after {len(results)} task(s)")
            return results

        if self.settings.validate_results and self.validator is not None:
            with create_service_span("conversion.validate", plan_id=plan.id):
                await self._validate_results(plan, results, context)

        if self.integrator is not None:
            with create_service_span("conversion.integrate", plan_id=plan.id):
                await self._integrate(context)

        logger.info(
            f"Plan {plan.id} finished: {len(results) - len(failed)} succeeded, "
            f"{len(failed)} failed"
        )
        return results

    async def _run_task(
        self,
        task: ConversionTask,
        context: ConversionContext,
        observer: ConversionObserver,
        failed: set[str],
    ) -> ConversionResult:
        failed_deps = [dep for dep in task.dependencies if dep in failed]
        if failed_deps:
            if self.settings.on_dependency_failure == "skip":
                task.status = TaskStatus.SKIPPED
                result = ConversionResult(
                    task_id=task.id,
                    status=ResultStatus.ERROR,
                    error=f"Skipped: dependencies failed: {', '.join(failed_deps)}",
                    error_code=ErrorCodes.DEPENDENCY_FAILED,
                    attempts=0,
                )
                logger.warning(f"Skipping task {task.id}: dependencies failed: {failed_deps}")
                await _notify(observer.task_finished, task, result)
                return result
            logger.warning(
                f"Running task {task.id} although dependencies failed: {', '.join(failed_deps)}"
            )

        task.status = TaskStatus.RUNNING
        await _notify(observer.task_started, task)

        if self.settings.enable_retry:
            result = await self._execute_with_retry(task, context)
        else:
            result = await self._execute_once(task, context)

        task.status = TaskStatus.COMPLETED if result.succeeded else TaskStatus.FAILED
        await _notify(observer.task_finished, task, result)
        return result

    def _error_context(self, task: ConversionTask, context: ConversionContext) -> ErrorContext:
        return ErrorContext(
            operation="convert_task",
            project_id=context.project_id,
            task_id=task.id,
            file_name=task.input_files[0] if task.input_files else None,
        )

    async def _execute_once(
        self, task: ConversionTask, context: ConversionContext
    ) -> ConversionResult:
        try:
            return await self.executor.execute(task, context)
        except Exception as e:
            error = ErrorClassifier.classify(e, self._error_context(task, context))
            return self._error_result(task, context, error, attempts=1)

    async def _execute_with_retry(
        self, task: ConversionTask, context: ConversionContext
    ) -> ConversionResult:
        first_input = task.input_files[0] if task.input_files else None
        retry_state: dict[str, Any] = {"attempt": None, "fallback": None}

        async def operation() -> ConversionResult:
            return await self.executor.execute(
                task,
                context,
                attempt=retry_state["attempt"],
                fallback=retry_state["fallback"],
            )

        def on_retry(error: AppError, attempt: int, delay: float) -> None:
            if first_input is not None:
                context.record_error(first_input, error.message)
            retry_state["attempt"] = attempt
            if error.category == ErrorCategory.CONTEXT_TOO_LARGE:
                retry_state["fallback"] = "split"

        options = RetryOptions(
            max_retries=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay,
            exponential_backoff=self.settings.retry_exponential_backoff,
            max_delay=self.settings.retry_max_delay,
            jitter=self.settings.retry_jitter,
        )
        outcome = await self.retry_manager.execute_with_retry(
            operation, options, self._error_context(task, context), on_retry=on_retry
        )

        if outcome.success and outcome.result is not None:
            outcome.result.attempts = outcome.attempts
            return outcome.result

        assert outcome.error is not None
        return self._error_result(task, context, outcome.error, outcome.attempts)

    def _error_result(
        self,
        task: ConversionTask,
        context: ConversionContext,
        error: AppError,
        attempts: int,
    ) -> ConversionResult:
        logger.error(f"Task {task.id} failed after {attempts} attempt(s): {error.message}")
        if task.input_files:
            path = task.input_files[0]
            context.record_error(path, error.message)
            context.history.append(
                ConversionHistoryEntry(
                    file_path=path,
                    original_content=context.original_content(path),
                    conversion_type=task.type.value,
                    success=False,
                    error=error.message,
                )
            )
        return ConversionResult(
            task_id=task.id,
            status=ResultStatus.ERROR,
            error=error.message,
            error_code=error.code,
            error_details=error.to_dict(),
            attempts=attempts,
        )

    async def _validate_results(
        self,
        plan: ConversionPlan,
        results: list[ConversionResult],
        context: ConversionContext,
    ) -> None:
        tasks = plan.task_map()
        for result in results:
            if not result.succeeded or not result.files:
                continue
            agent_context = self.executor.build_agent_context(tasks[result.task_id], context)
            warnings: list[str] = []
            for change in result.files:
                try:
                    outcome = await self.validator.validate(change, agent_context)
                except Exception as e:
                    warnings.append(f"{change.path}: {e}")
                    continue
                if not outcome.success:
                    warnings.append(f"{change.path}: {outcome.error or 'validation failed'}")
            if warnings:
                result.output = f"{result.output} (Validation warnings: {'; '.join(warnings)})"
                logger.warning(f"Validation warnings for task {result.task_id}: {warnings}")

    async def _integrate(self, context: ConversionContext) -> None:
        try:
            outcome = await self.integrator.integrate(
                list(context.converted_files.values()), list(context.history)
            )
        except Exception as e:
            logger.warning(f"Integration failed: {e}")
            return
        if not outcome.success:
            logger.warning(f"Integration reported issues: {outcome.error}")

    def get_conversion_metrics(self) -> dict[str, Any]:
        """Totals, successes, failures, converted file types and duration of the last run."""
        if self.context is None:
            return {
                "total_files": 0,
                "successful_conversions": 0,
                "failed_conversions": 0,
                "converted_file_types": {},
                "conversion_duration": 0.0,
            }

        history = self.context.history
        file_types: dict[str, int] = {}
        for path in self.context.converted_files:
            name = path.rsplit("/", 1)[-1]
            ext = name.rsplit(".", 1)[-1] if "." in name else "unknown"
            file_types[ext] = file_types.get(ext, 0) + 1

        duration = 0.0
        if history:
            duration = (history[-1].timestamp - history[0].timestamp).total_seconds()

        return {
            "total_files": len(history),
            "successful_conversions": sum(1 for h in history if h.success),
            "failed_conversions": sum(1 for h in history if not h.success),
            "converted_file_types": file_types,
            "conversion_duration": duration,
        }
