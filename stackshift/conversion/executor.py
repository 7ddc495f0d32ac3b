"""
Execution of a single conversion task against the provider.
"""

import copy
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Optional

from pydantic import ValidationError

from stackshift.conversion.capabilities import AgentContext, ConversionProvider
from stackshift.conversion.context import ConversionContext
from stackshift.errors.exceptions import ProviderOutputError
from stackshift.logging import get_logger
from stackshift.models.conversion import (
    ConversionHistoryEntry,
    ConversionResult,
    ConversionTask,
    FileChange,
    ResultStatus,
)

logger = get_logger(__name__)


class TaskExecutor:
    """
    Runs one task through the provider and merges its output into the context.

    Shared state is only mutated after the provider call succeeded and its
    output parsed; on failure the raw exception propagates.
    """

    def __init__(self, provider: ConversionProvider, preserve_context: bool = True) -> None:
        self.provider = provider
        self.preserve_context = preserve_context

    def build_agent_context(
        self,
        task: ConversionTask,
        context: ConversionContext,
        attempt: Optional[int] = None,
        fallback: Optional[str] = None,
    ) -> AgentContext:
        # Providers only ever see a private copy of the shared summaries
        shared = (
            MappingProxyType(copy.deepcopy(context.shared))
            if self.preserve_context
            else MappingProxyType({})
        )
        previous: tuple[str, ...] = ()
        if attempt is not None:
            first_input = task.input_files[0] if task.input_files else None
            previous = tuple(context.errors_for(first_input))
        return AgentContext(
            project_id=context.project_id,
            task=task,
            source_tree=context.source_tree,
            source_stack=context.source_stack,
            target_stack=context.target_stack,
            shared=shared,
            converted_files=MappingProxyType(dict(context.converted_files)),
            retry_attempt=attempt,
            previous_errors=previous,
            fallback=fallback if attempt is not None else None,
        )

    async def execute(
        self,
        task: ConversionTask,
        context: ConversionContext,
        attempt: Optional[int] = None,
        fallback: Optional[str] = None,
    ) -> ConversionResult:
        """
        Execute a task.

        Args:
            task: The task to run
            context: Conversion state of the current run
            attempt: Retry attempt number, None for the first attempt
            fallback: Strategy hint for retries (e.g. "split")

        Returns:
            A success ConversionResult

        Raises:
            ProviderOutputError: If the provider output has an invalid format
            Exception: Whatever the provider raised
        """
        agent_context = self.build_agent_context(task, context, attempt, fallback)
        logger.debug(f"Converting task {task.id} (attempt {attempt or 1})")

        raw = await self.provider.convert(task, agent_context)
        files, output = self._parse_output(task, raw)

        now = datetime.now(timezone.utc)
        for change in files:
            original = change.old_content
            if original is None:
                original = context.original_content(change.path)
            context.converted_files[change.path] = change
            context.history.append(
                ConversionHistoryEntry(
                    file_path=change.path,
                    original_content=original,
                    converted_content=change.content or "",
                    conversion_type=task.type.value,
                    timestamp=now,
                    success=True,
                )
            )

        output = output or f"Converted {len(files)} file(s) for task {task.id}"
        context.shared.setdefault("task_results", {})[task.id] = {
            "output": output,
            "files": [change.path for change in files],
            "timestamp": now.isoformat(),
        }

        return ConversionResult(
            task_id=task.id,
            status=ResultStatus.SUCCESS,
            output=output,
            files=files,
        )

    @staticmethod
    def _parse_output(task: ConversionTask, raw: Any) -> tuple[list[FileChange], str]:
        output = ""
        if isinstance(raw, dict):
            if "files" not in raw:
                raise ProviderOutputError(task.id, "missing 'files' entry")
            output = str(raw.get("output") or "")
            items = raw["files"]
        elif isinstance(raw, (list, tuple)):
            items = raw
        elif hasattr(raw, "files"):
            output = str(getattr(raw, "output", "") or "")
            items = raw.files
        else:
            raise ProviderOutputError(task.id, f"unexpected type {type(raw).__name__}")

        if not isinstance(items, (list, tuple)):
            raise ProviderOutputError(task.id, "'files' must be a list")

        files: list[FileChange] = []
        for item in items:
            if isinstance(item, FileChange):
                files.append(item)
                continue
            if not isinstance(item, dict):
                raise ProviderOutputError(task.id, f"unexpected file entry {item!r}")
            try:
                files.append(FileChange.model_validate(item))
            except ValidationError as e:
                raise ProviderOutputError(task.id, str(e)) from e
        return files, output
