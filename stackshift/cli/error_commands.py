"""
Error classification commands for the stackshift CLI.
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from stackshift.errors.classifier import ErrorClassifier
from stackshift.errors.taxonomy import ErrorContext

console = Console()

errors_app = typer.Typer(
    name="errors",
    help="Error classification commands",
    no_args_is_help=True,
)


class ReportedError(Exception):
    """An error reconstructed from a message and an optional HTTP status."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


@errors_app.command("classify")
def classify_error(
    message: str = typer.Argument(..., help="Error message to classify"),
    status: Optional[int] = typer.Option(None, "--status", "-s", help="HTTP status code"),
    as_json: bool = typer.Option(False, "--json", help="Print the classification as JSON"),
) -> None:
    """Show how a failure would be classified and retried."""
    error = ErrorClassifier.classify(
        ReportedError(message, status), ErrorContext(operation="cli.classify")
    )

    if as_json:
        data = error.to_dict()
        data.pop("technical_details", None)
        console.print_json(json.dumps(data))
        return

    table = Table(title="Error classification", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Category", error.category.value)
    table.add_row("Severity", error.severity.value)
    table.add_row("Code", error.code)
    table.add_row("Retryable", "[green]yes[/green]" if error.retryable else "[red]no[/red]")
    if error.retryable:
        table.add_row("Max retries", str(error.max_retries))
        table.add_row("Retry delay", f"{error.retry_delay:g}s")
        table.add_row("Backoff", "exponential" if error.exponential_backoff else "linear")
    table.add_row("User message", error.user_message)
    for action in error.recovery_actions:
        mode = "automated" if action.automated else "manual"
        table.add_row("Recovery", f"{action.type}: {action.description} ({mode})")

    console.print(table)
