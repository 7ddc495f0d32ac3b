"""
Dependency resolution for conversion plans.

Turns a flat task list into ordered batches: every task runs in a later batch
than all of its dependencies, and tasks sharing a batch may run concurrently.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from stackshift.errors.exceptions import (
    DependencyCycleError,
    DuplicateTaskError,
    MissingDependencyError,
    PlanError,
)
from stackshift.logging import get_logger
from stackshift.models.conversion import ConversionPlan, ConversionTask

logger = get_logger(__name__)


@dataclass
class ResolutionResult:
    """Batches produced for a plan, or the reason it cannot run."""

    batches: list[list[ConversionTask]] = field(default_factory=list)
    feasible: bool = True
    error: Optional[PlanError] = None

    @property
    def batch_ids(self) -> list[list[str]]:
        return [[task.id for task in batch] for batch in self.batches]

    @property
    def task_count(self) -> int:
        return sum(len(batch) for batch in self.batches)


class DependencyResolver:
    """
    Orders tasks into dependency-respecting, size-bounded batches.

    Args:
        max_batch_size: Maximum number of tasks per batch, None for unbounded
    """

    def __init__(self, max_batch_size: Optional[int] = None) -> None:
        if max_batch_size is not None and max_batch_size < 1:
            raise ValueError("max_batch_size must be positive")
        self.max_batch_size = max_batch_size

    def resolve(self, tasks: Sequence[ConversionTask]) -> ResolutionResult:
        """
        Resolve tasks into batches.

        Returns:
            ResolutionResult; infeasible with an error on duplicate ids, unknown
            dependencies or cycles
        """
        duplicates = [tid for tid, n in Counter(t.id for t in tasks).items() if n > 1]
        if duplicates:
            return self._infeasible(DuplicateTaskError(duplicates))

        arena: dict[str, ConversionTask] = {task.id: task for task in tasks}
        edges: dict[str, list[str]] = {task.id: list(task.dependencies) for task in tasks}

        missing = {
            tid: [dep for dep in deps if dep not in arena]
            for tid, deps in edges.items()
            if any(dep not in arena for dep in deps)
        }
        if missing:
            return self._infeasible(MissingDependencyError(missing))

        batches: list[list[ConversionTask]] = []
        scheduled: set[str] = set()
        remaining = set(arena)

        while remaining:
            level = [
                arena[tid]
                for tid in remaining
                if all(dep in scheduled for dep in edges[tid])
            ]
            if not level:
                cycle = self._find_cycle(edges, remaining)
                return self._infeasible(DependencyCycleError(cycle, remaining))

            level.sort(key=lambda t: (-t.priority, t.id))
            batches.extend(self._split_level(level))

            for task in level:
                scheduled.add(task.id)
                remaining.discard(task.id)

        logger.debug(f"Resolved {len(arena)} tasks into {len(batches)} batches")
        return ResolutionResult(batches=batches)

    def _split_level(self, level: list[ConversionTask]) -> list[list[ConversionTask]]:
        """Split one level into sub-batches of bounded size without output overlap."""
        sub_batches: list[list[ConversionTask]] = []
        pending = list(level)

        while pending:
            batch: list[ConversionTask] = []
            outputs: set[str] = set()
            deferred: list[ConversionTask] = []

            for task in pending:
                full = self.max_batch_size is not None and len(batch) >= self.max_batch_size
                if full or outputs.intersection(task.output_files):
                    deferred.append(task)
                    continue
                batch.append(task)
                outputs.update(task.output_files)

            sub_batches.append(batch)
            pending = deferred

        return sub_batches

    @staticmethod
    def _find_cycle(edges: dict[str, list[str]], candidates: set[str]) -> list[str]:
        """Extract one cycle path among unschedulable tasks with an iterative DFS."""
        done: set[str] = set()

        for start in sorted(candidates):
            if start in done:
                continue
            path: list[str] = []
            on_path: set[str] = set()
            stack: list[tuple[str, int]] = [(start, 0)]

            while stack:
                node, index = stack.pop()
                if index == 0:
                    path.append(node)
                    on_path.add(node)

                deps = [d for d in edges[node] if d in candidates]
                if index < len(deps):
                    stack.append((node, index + 1))
                    dep = deps[index]
                    if dep in on_path:
                        return path[path.index(dep):] + [dep]
                    if dep not in done:
                        stack.append((dep, 0))
                else:
                    path.pop()
                    on_path.discard(node)
                    done.add(node)

        # Unschedulable tasks always sit on or behind a cycle
        return sorted(candidates)

    @staticmethod
    def _infeasible(error: PlanError) -> ResolutionResult:
        logger.warning(f"Plan cannot be resolved: {error.message}")
        return ResolutionResult(batches=[], feasible=False, error=error)


def assess_plan(
    plan: ConversionPlan, max_batch_size: Optional[int] = None
) -> ConversionPlan:
    """Return a copy of the plan with feasibility and warnings from resolution."""
    result = DependencyResolver(max_batch_size).resolve(plan.tasks)
    warnings = list(plan.warnings)
    if result.error is not None and result.error.message not in warnings:
        warnings.append(result.error.message)
    return plan.model_copy(update={"feasible": result.feasible, "warnings": warnings})
