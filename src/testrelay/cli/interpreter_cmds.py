# src/testrelay/cli/interpreter_cmds.py

import asyncio
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from testrelay.cli.utils import config_path_option, logging_options, setup_logging_from_context, workspace_option
from testrelay.exceptions import ConfigurationError
from testrelay.interpreters import set_interpreter_path, suggest_interpreters
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.interpreters")


@click.group(name="interpreters")
def interpreters_cli():
    """Commands for finding and selecting the Python interpreter."""
    pass


@interpreters_cli.command(name="list")
@workspace_option
@logging_options
@click.pass_context
def list_interpreters(ctx: click.Context, workspace: Path, **kwargs):
    """Show interpreters found in conda, well-known paths and the workspace."""
    setup_logging_from_context(ctx, kwargs)
    suggestions = asyncio.run(suggest_interpreters(workspace))
    if not suggestions:
        click.echo("No Python interpreters found.")
        return

    table = Table(title="Python interpreters", show_header=True, header_style="bold")
    table.add_column("Label")
    table.add_column("Path")
    table.add_column("Type")
    for suggestion in suggestions:
        table.add_row(suggestion.label, suggestion.path, suggestion.type or "-")
    Console().print(table)


@interpreters_cli.command(name="select")
@click.argument("python_path", type=str)
@config_path_option
@workspace_option
@logging_options
@click.pass_context
def select_interpreter(ctx: click.Context, python_path: str, config_path: Path, workspace: Path, **kwargs):
    """Store PYTHON_PATH as the interpreter used to run tests."""
    setup_logging_from_context(ctx, kwargs)
    try:
        stored = set_interpreter_path(config_path, python_path, workspace)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(f"python_path = {stored}")

# 🔼⚙️
