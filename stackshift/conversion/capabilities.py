"""
Interfaces to the collaborators of the conversion engine.

The provider, validator, integrator and project source are injected into the
orchestrator and the job controller; any object with matching methods works.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from stackshift.models.conversion import (
    ConversionHistoryEntry,
    ConversionTask,
    FileChange,
    FileTree,
    ProjectSnapshot,
    TechStack,
)


@dataclass(frozen=True)
class AgentContext:
    """Read-only view of the conversion state handed to the provider."""

    project_id: str
    task: ConversionTask
    source_tree: FileTree
    source_stack: TechStack
    target_stack: TechStack
    shared: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    converted_files: Mapping[str, FileChange] = field(
        default_factory=lambda: MappingProxyType({})
    )
    retry_attempt: Optional[int] = None
    previous_errors: tuple[str, ...] = ()
    fallback: Optional[str] = None

    @property
    def is_retry(self) -> bool:
        return self.retry_attempt is not None


@dataclass
class ValidationOutcome:
    success: bool
    error: Optional[str] = None


@runtime_checkable
class ConversionProvider(Protocol):
    """Performs the actual transformation of one task."""

    async def convert(self, task: ConversionTask, context: AgentContext) -> Any:
        """Return a list of FileChange (or dicts), or an object with `files`."""
        ...


@runtime_checkable
class ResultValidator(Protocol):
    async def validate(self, change: FileChange, context: AgentContext) -> ValidationOutcome:
        ...


@runtime_checkable
class ResultIntegrator(Protocol):
    async def integrate(
        self,
        files: Sequence[FileChange],
        history: Sequence[ConversionHistoryEntry],
    ) -> ValidationOutcome:
        ...


@runtime_checkable
class ProjectSource(Protocol):
    """Loads the source tree and stacks of a project."""

    async def load(self, project_id: str) -> ProjectSnapshot:
        ...
