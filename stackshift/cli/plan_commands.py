"""
Conversion plan commands for the stackshift CLI.

- check: Validate a plan file and report whether it can be executed
- batches: Show the batch schedule a plan resolves to
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from stackshift.config.plan_loader import load_plan
from stackshift.config.settings import get_orchestrator_settings
from stackshift.conversion.dependency_resolver import DependencyResolver
from stackshift.errors.exceptions import ConfigurationError
from stackshift.logging import get_logger
from stackshift.models.conversion import ConversionPlan

logger = get_logger(__name__)
console = Console()
error_console = Console(stderr=True)

plan_app = typer.Typer(
    name="plan",
    help="Conversion plan commands",
    no_args_is_help=True,
)


def _load_or_exit(path: Path) -> ConversionPlan:
    try:
        return load_plan(path)
    except ConfigurationError as e:
        error_console.print(f"[red]❌ {e.format_user_message()}[/red]")
        raise typer.Exit(1) from e


@plan_app.command("check")
def check_plan(
    path: Path = typer.Argument(..., help="Path to a YAML or JSON plan file"),
) -> None:
    """
    Check that a plan can be executed.

    Reports duplicate task ids, unknown dependencies and dependency cycles.
    """
    plan = _load_or_exit(path)
    result = DependencyResolver().resolve(plan.tasks)

    console.print(f"🔍 Plan [blue]{plan.id}[/blue] for project [blue]{plan.project_id}[/blue]")
    console.print(f"   Tasks: {len(plan.tasks)}   Complexity: {plan.complexity.value}")

    for warning in plan.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")

    if not plan.feasible:
        console.print("[red]❌ Plan is marked infeasible[/red]")
        raise typer.Exit(1)

    if not result.feasible:
        assert result.error is not None
        console.print(f"[red]❌ {result.error.message}[/red]")
        if result.error.suggestion:
            console.print(f"   Suggestion: {result.error.suggestion}")
        raise typer.Exit(1)

    console.print(
        f"[green]✅ Plan is executable in {len(result.batches)} dependency level batches[/green]"
    )


@plan_app.command("batches")
def show_batches(
    path: Path = typer.Argument(..., help="Path to a YAML or JSON plan file"),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-c",
        min=1,
        help="Maximum tasks per batch (defaults to the configured max_concurrent_files)",
    ),
) -> None:
    """Show the order in which a plan's tasks would run."""
    plan = _load_or_exit(path)
    cap = concurrency or get_orchestrator_settings().max_concurrent_files
    result = DependencyResolver(cap).resolve(plan.tasks)

    if not result.feasible:
        assert result.error is not None
        error_console.print(f"[red]❌ {result.error.message}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Batches for plan {plan.id} (max {cap} per batch)")
    table.add_column("Batch", justify="right", style="cyan")
    table.add_column("Task", style="bold")
    table.add_column("Type")
    table.add_column("Priority", justify="right")
    table.add_column("Depends on")

    for index, batch in enumerate(result.batches, 1):
        for position, task in enumerate(batch):
            table.add_row(
                str(index) if position == 0 else "",
                task.id,
                task.type.value,
                str(task.priority),
                ", ".join(task.dependencies) or "-",
            )

    console.print(table)
