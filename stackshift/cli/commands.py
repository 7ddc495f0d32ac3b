"""
Main CLI application for stackshift.

Command groups live in dedicated modules and are registered in
`stackshift.cli.__init__` via add_typer():
- plan_commands.py - Conversion plan inspection
- error_commands.py - Error classification
"""

import typer
from rich.console import Console

from stackshift.logging import get_logger, set_debug_mode
from stackshift.version import get_version

cli_app = typer.Typer(
    name="stackshift",
    help="stackshift - conversion job orchestration engine",
    add_completion=False,
)

logger = get_logger(__name__)

console = Console()
error_console = Console(stderr=True)


@cli_app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    if debug:
        set_debug_mode(True)


@cli_app.command("version")
def show_version() -> None:
    """Show the installed stackshift version."""
    console.print(f"stackshift [bold]{get_version()}[/bold]")
