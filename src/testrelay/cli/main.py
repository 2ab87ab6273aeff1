# src/testrelay/cli/main.py

"""
The `testrelay` command group.

Group-level logging options are kept on the click context so subcommands
can fall back to them; options given to a subcommand take precedence.
"""

import click
import structlog

from testrelay import __version__
from testrelay.cli.config_cmds import config_cli
from testrelay.cli.interpreter_cmds import interpreters_cli
from testrelay.cli.run_cmds import run_cli
from testrelay.cli.utils import logging_options, setup_logging_from_context
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.main")

COMMANDS = (config_cli, interpreters_cli, run_cli)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", prog_name="testrelay")
@logging_options
@click.pass_context
def cli(ctx: click.Context, **log_options):
    """
    Testrelay: run a project's unittest suite out of process.

    Tests are discovered and executed by the project's own interpreter; a
    launcher script streams every outcome back over a loopback socket.
    Precedence: command options, then environment variables, then the
    config file, then built-in defaults.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(
        LOG_LEVEL=log_options.get("log_level"),
        LOG_FILE=log_options.get("log_file"),
        JSON_LOGS=bool(log_options.get("json_logs")),
    )
    settings = setup_logging_from_context(ctx)
    log.debug("CLI group initialized", level=settings.level, subcommand=ctx.invoked_subcommand)


for command in COMMANDS:
    cli.add_command(command)

if __name__ == "__main__":
    cli()

# 🖥️⚙️
