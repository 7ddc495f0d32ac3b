"""
Conversion plan, task and result models.

This module defines the records exchanged between the planning step, the
orchestrator and the transformation provider.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import Field

from stackshift.models.base import StackshiftModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskType(str, Enum):
    """Kind of work a conversion task performs."""

    ANALYSIS = "analysis"
    CODE_GENERATION = "code_generation"
    DEPENDENCY_UPDATE = "dependency_update"
    CONFIG_UPDATE = "config_update"
    VALIDATION = "validation"
    INTEGRATION = "integration"


class TaskStatus(str, Enum):
    """Status of a conversion task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class PlanComplexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConversionTask(StackshiftModel):
    """A single unit of conversion work."""

    id: str = Field(..., min_length=1, description="Task id, unique within a plan")
    type: TaskType = Field(TaskType.CODE_GENERATION, description="Task type")
    description: str = Field("", description="Human-readable description")
    input_files: list[str] = Field(default_factory=list)
    output_files: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(
        default_factory=list, description="Ids of tasks that must run first"
    )
    priority: int = Field(0, description="Higher runs earlier within a batch")
    status: TaskStatus = Field(TaskStatus.PENDING)
    estimated_duration: float = Field(0.0, ge=0.0, description="Seconds")
    agent_type: Optional[str] = Field(None, description="Hint for the provider")
    context: dict[str, Any] = Field(default_factory=dict)


class ConversionPlan(StackshiftModel):
    """An ordered set of conversion tasks for one project."""

    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    tasks: list[ConversionTask] = Field(default_factory=list)
    estimated_duration: float = Field(0.0, ge=0.0, description="Seconds")
    complexity: PlanComplexity = Field(PlanComplexity.MEDIUM)
    warnings: list[str] = Field(default_factory=list)
    feasible: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def task_map(self) -> dict[str, ConversionTask]:
        """Return the plan's tasks keyed by id."""
        return {task.id: task for task in self.tasks}


class FileChangeType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class FileChange(StackshiftModel):
    """A file-level change produced by the provider."""

    path: str = Field(..., min_length=1)
    type: FileChangeType = FileChangeType.UPDATE
    content: Optional[str] = None
    old_content: Optional[str] = None


class ResultStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ConversionResult(StackshiftModel):
    """Outcome of one task."""

    task_id: str
    status: ResultStatus
    output: str = ""
    error: Optional[str] = None
    files: list[FileChange] = Field(default_factory=list)
    error_code: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None
    attempts: int = Field(1, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.status == ResultStatus.SUCCESS


class ConversionHistoryEntry(StackshiftModel):
    """One file conversion recorded during a job run."""

    file_path: str
    original_content: str = ""
    converted_content: str = ""
    conversion_type: str
    timestamp: datetime = Field(default_factory=_utcnow)
    success: bool = True
    error: Optional[str] = None


class TechStack(StackshiftModel):
    """Description of a project's technology stack."""

    language: str
    framework: Optional[str] = None
    database: Optional[str] = None
    runtime: Optional[str] = None
    build_tool: Optional[str] = None
    package_manager: Optional[str] = None
    deployment: Optional[str] = None
    additional: dict[str, Any] = Field(default_factory=dict)


class FileTree(StackshiftModel):
    """A node of a project's source tree."""

    name: str
    type: Literal["file", "directory"] = "file"
    path: str
    content: Optional[str] = None
    children: list["FileTree"] = Field(default_factory=list)

    def iter_files(self):
        """Yield every file node below (and including) this node, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.type == "file":
                yield node
            else:
                stack.extend(reversed(node.children))

    def find(self, path: str) -> Optional["FileTree"]:
        """Return the file node at `path`, if any."""
        for node in self.iter_files():
            if node.path == path:
                return node
        return None


class ProjectSnapshot(StackshiftModel):
    """Everything needed from a project to run a conversion job."""

    source_tree: FileTree
    source_stack: TechStack
    target_stack: TechStack
