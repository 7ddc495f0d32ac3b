"""Conversion engine: dependency resolution, task execution and orchestration."""

from stackshift.conversion.capabilities import (
    AgentContext,
    ConversionProvider,
    ProjectSource,
    ResultIntegrator,
    ResultValidator,
    ValidationOutcome,
)
from stackshift.conversion.context import ConversionContext, prepare_context
from stackshift.conversion.dependency_resolver import (
    DependencyResolver,
    ResolutionResult,
    assess_plan,
)
from stackshift.conversion.executor import TaskExecutor
from stackshift.conversion.orchestrator import ConversionObserver, ConversionOrchestrator

__all__ = [
    "AgentContext",
    "ConversionContext",
    "ConversionObserver",
    "ConversionOrchestrator",
    "ConversionProvider",
    "DependencyResolver",
    "ProjectSource",
    "ResolutionResult",
    "ResultIntegrator",
    "ResultValidator",
    "TaskExecutor",
    "ValidationOutcome",
    "assess_plan",
    "prepare_context",
]
