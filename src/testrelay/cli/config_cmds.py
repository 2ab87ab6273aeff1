# src/testrelay/cli/config_cmds.py

from pathlib import Path

import click
import structlog
from rich.pretty import pretty_repr

from testrelay.cli.utils import config_path_option, logging_options, setup_logging_from_context
from testrelay.config import load_config
from testrelay.exceptions import ConfigurationError
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.config")


@click.group(name="config")
def config_cli():
    """Inspect the testrelay configuration."""
    pass


@config_cli.command(name="show")
@config_path_option
@logging_options
@click.pass_context
def show_config(ctx: click.Context, config_path: Path, **kwargs):
    """Load, validate, and display the configuration."""
    setup_logging_from_context(ctx, kwargs)
    log.info("Executing 'config show' command", config_path=str(config_path), emoji_key="config")

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        log.error("Failed to load or validate configuration", error=str(e))
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(1)

    # Plain echo keeps the output capturable by CliRunner.
    click.echo(pretty_repr(config, expand_all=True))
    if config.config_path is None:
        click.echo(f"(no file at '{config_path}', showing defaults)", err=True)

# 🔼⚙️
