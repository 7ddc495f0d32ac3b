"""
Command Line Interface for stackshift.

Provides commands to inspect conversion plans and to classify errors.
"""

from stackshift.cli.commands import cli_app
from stackshift.cli.error_commands import errors_app
from stackshift.cli.plan_commands import plan_app

cli_app.add_typer(plan_app, name="plan", help="Conversion plan commands")
cli_app.add_typer(errors_app, name="errors", help="Error classification commands")

app = cli_app

__all__ = ["cli_app", "app"]
