# src/testrelay/cli/utils.py

"""
Options and logging setup shared by every testrelay command.
"""

import logging
from pathlib import Path
from typing import Any

import click
import structlog
from attrs import define

from testrelay.config import DEFAULT_CONFIG_FILENAME
from testrelay.telemetry.logger import setup_logging

log = structlog.get_logger("cli.utils")

DEFAULT_CLI_LOG_LEVEL = "WARNING"
LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)

_LOGGING_OPTIONS = (
    click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar="TESTRELAY_LOG_LEVEL",
        help="Set the logging level (overrides config file).",
    ),
    click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar="TESTRELAY_LOG_FILE",
        help="Also write logs to this file, as JSON lines.",
    ),
    click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar="TESTRELAY_JSON_LOGS",
        help="Render console logs as JSON.",
    ),
)

config_path_option = click.option(
    "-c",
    "--config-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(DEFAULT_CONFIG_FILENAME),
    show_default=True,
    envvar="TESTRELAY_CONF",
    show_envvar=True,
    help="Path to the testrelay configuration file.",
)

workspace_option = click.option(
    "-w",
    "--workspace",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Workspace root used for virtualenv lookup and `${workspaceRoot}` paths.",
)


def logging_options(f):
    """Adds --log-level, --log-file and --json-logs to a command."""
    for option in reversed(_LOGGING_OPTIONS):
        f = option(f)
    return f


@define(frozen=True, slots=True)
class LogSettings:
    level: str
    log_file: str | None
    json_logs: bool

    @property
    def numeric_level(self) -> int:
        level = logging.getLevelName(self.level.upper())
        return level if isinstance(level, int) else logging.INFO


def resolve_log_settings(
    ctx: click.Context,
    options: dict[str, Any],
    fallback_level: str = DEFAULT_CLI_LOG_LEVEL,
) -> LogSettings:
    """Command options win over the group's options, which win over `fallback_level`."""
    ctx.ensure_object(dict)
    json_logs = options.get("json_logs")
    return LogSettings(
        level=options.get("log_level") or ctx.obj.get("LOG_LEVEL") or fallback_level,
        log_file=options.get("log_file") or ctx.obj.get("LOG_FILE"),
        json_logs=bool(json_logs if json_logs is not None else ctx.obj.get("JSON_LOGS", False)),
    )


def setup_logging_from_context(
    ctx: click.Context,
    options: dict[str, Any] | None = None,
    fallback_level: str = DEFAULT_CLI_LOG_LEVEL,
) -> LogSettings:
    settings = resolve_log_settings(ctx, options or {}, fallback_level)
    setup_logging(level=settings.numeric_level, json_logs=settings.json_logs, log_file=settings.log_file)
    log.debug(
        "CLI logging initialized",
        level=settings.level,
        file=settings.log_file or "console",
        json=settings.json_logs,
    )
    return settings

# ⚙️🛠️
