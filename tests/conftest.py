"""
Global test fixtures for stackshift.

Provides plan and task builders, a scriptable fake provider and project
source, and settings tuned so retries never wait on the real clock.
"""

import asyncio
from typing import Any, Optional

import pytest

from stackshift.config.settings import OrchestratorSettings, clear_settings_cache
from stackshift.conversion.capabilities import AgentContext
from stackshift.errors.retry import RetryManager
from stackshift.models.conversion import (
    ConversionPlan,
    ConversionTask,
    FileChange,
    FileChangeType,
    FileTree,
    ProjectSnapshot,
    TaskType,
    TechStack,
)


def make_task(task_id: str, *dependencies: str, **overrides: Any) -> ConversionTask:
    fields: dict[str, Any] = {
        "id": task_id,
        "type": TaskType.CODE_GENERATION,
        "description": f"Convert {task_id}",
        "input_files": [f"src/{task_id.lower()}.js"],
        "output_files": [f"src/{task_id.lower()}.ts"],
        "dependencies": list(dependencies),
    }
    fields.update(overrides)
    return ConversionTask(**fields)


def make_plan(*tasks: ConversionTask, **overrides: Any) -> ConversionPlan:
    fields: dict[str, Any] = {"id": "plan-1", "project_id": "proj-1", "tasks": list(tasks)}
    fields.update(overrides)
    return ConversionPlan(**fields)


class FakeProvider:
    """
    Provider double.

    Failures queued per task id are raised one per call before the task
    succeeds. Tasks listed in `blockers` wait on their event before returning.
    """

    def __init__(
        self,
        failures: Optional[dict[str, list[BaseException]]] = None,
        blockers: Optional[dict[str, asyncio.Event]] = None,
    ) -> None:
        self.failures = failures or {}
        self.blockers = blockers or {}
        self.calls: list[tuple[str, AgentContext]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def call_ids(self) -> list[str]:
        return [task_id for task_id, _ in self.calls]

    async def convert(self, task: ConversionTask, context: AgentContext) -> list[FileChange]:
        self.calls.append((task.id, context))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if task.id in self.blockers:
                await self.blockers[task.id].wait()
            queue = self.failures.get(task.id)
            if queue:
                raise queue.pop(0)
            return [
                FileChange(path=path, type=FileChangeType.CREATE, content=f"// {task.id}\n")
                for path in task.output_files
            ]
        finally:
            self.in_flight -= 1


class FakeProjectSource:
    def __init__(self, snapshot: ProjectSnapshot, failures: Optional[list[BaseException]] = None) -> None:
        self.snapshot = snapshot
        self.failures = failures or []
        self.loads = 0

    async def load(self, project_id: str) -> ProjectSnapshot:
        self.loads += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.snapshot


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays and yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> OrchestratorSettings:
    return OrchestratorSettings(
        max_concurrent_files=2,
        max_retries=2,
        retry_base_delay=1.0,
        retry_max_delay=10.0,
        retry_jitter=False,
        project_load_retries=1,
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_manager(recording_sleep) -> RetryManager:
    return RetryManager(sleep=recording_sleep)


@pytest.fixture
def source_tree() -> FileTree:
    return FileTree(
        name="app",
        type="directory",
        path="",
        children=[
            FileTree(
                name="package.json",
                path="package.json",
                content='{"name": "app", "dependencies": {"express": "^4.18.0"}}',
            ),
            FileTree(
                name="src",
                type="directory",
                path="src",
                children=[
                    FileTree(
                        name="index.js",
                        path="src/index.js",
                        content="import express from 'express';\nimport { a } from './a';\n",
                    ),
                    FileTree(name="a.js", path="src/a.js", content="export default 1;\n"),
                    FileTree(name="b.js", path="src/b.js", content="const a = require('./a');\n"),
                    FileTree(name="c.js", path="src/c.js", content="export const c = 3;\n"),
                ],
            ),
        ],
    )


@pytest.fixture
def source_stack() -> TechStack:
    return TechStack(language="javascript", framework="express", runtime="node")


@pytest.fixture
def target_stack() -> TechStack:
    return TechStack(language="typescript", framework="fastify", runtime="node")


@pytest.fixture
def snapshot(source_tree, source_stack, target_stack) -> ProjectSnapshot:
    return ProjectSnapshot(
        source_tree=source_tree, source_stack=source_stack, target_stack=target_stack
    )
