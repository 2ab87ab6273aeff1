# src/testrelay/cli/run_cmds.py

import asyncio
import signal
import sys
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from testrelay.cancellation import CancellationToken
from testrelay.cli.utils import config_path_option, logging_options, setup_logging_from_context
from testrelay.config import RelayConfig, load_config
from testrelay.exceptions import ConfigurationError, DiscoveryError, RunCancelledError, SpawnError, TestRelayError
from testrelay.models import Tests, TestStatus
from testrelay.output import ConsoleOutputSink, LogOutputSink, OutputSink
from testrelay.pyunit import UnittestRunner, build_selection, discover_tests
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.run")

EXIT_TESTS_FAILED = 1
EXIT_RUNNER_FAILED = 2
EXIT_CANCELLED = 130

STATUS_STYLES = {
    TestStatus.FAIL: ("FAIL", "bold red"),
    TestStatus.ERROR: ("ERROR", "bold magenta"),
}


async def _run_tests(
    config: RelayConfig,
    root: Path,
    unittest_args: list[str],
    selectors: dict[str, tuple[str, ...]],
    output: OutputSink,
    token: CancellationToken,
) -> Tests:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        log.debug("Signal handlers unavailable, Ctrl+C will abort instead of cancel")

    settings = config.runner_settings(root)
    tests = await discover_tests(settings, root, unittest_args, token=token)

    tests_to_run = None
    if any(selectors.values()):
        tests_to_run, unmatched = build_selection(tests, root, **selectors)
        for name in unmatched:
            output.append_line(f"Selection '{name}' matched no discovered test")

    return await UnittestRunner(settings).run_test(root, tests, unittest_args, tests_to_run, token, output)


def _print_summary(console: Console, tests: Tests) -> None:
    summary = tests.summary
    table = Table(title="Test summary", show_header=True, header_style="bold")
    table.add_column("Outcome")
    table.add_column("Count", justify="right")
    table.add_row("[green]Passed[/]", str(summary.passed))
    table.add_row("[red]Failures[/]", str(summary.failures))
    table.add_row("[magenta]Errors[/]", str(summary.errors))
    table.add_row("[yellow]Skipped[/]", str(summary.skipped))
    console.print(table)

    for flattened in tests.test_functions:
        fn = flattened.test_function
        if fn.status in STATUS_STYLES:
            label, style = STATUS_STYLES[fn.status]
            console.print(f"[{style}]{label}[/] {fn.name_to_run}: {fn.message or ''}", highlight=False)


@click.command(name="run", context_settings={"ignore_unknown_options": True})
@config_path_option
@click.option(
    "-r",
    "--root",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project root; the launcher runs with this as its working directory.",
)
@click.option("--folder", "folders", multiple=True, help="Run the files under this folder.")
@click.option("--file", "files", multiple=True, help="Run a test file (path or module id).")
@click.option("--suite", "suites", multiple=True, help="Run a test class by id.")
@click.option("--function", "functions", multiple=True, help="Run a single test by id.")
@click.option("-q", "--quiet", is_flag=True, help="Do not echo launcher output.")
@click.argument("unittest_args", nargs=-1, type=click.UNPROCESSED)
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    config_path: Path,
    root: Path,
    folders: tuple[str, ...],
    files: tuple[str, ...],
    suites: tuple[str, ...],
    functions: tuple[str, ...],
    quiet: bool,
    unittest_args: tuple[str, ...],
    **kwargs,
):
    """
    Discover and run unittest tests.

    Extra arguments are unittest options such as `-s tests -p "test_*.py" -f -v`;
    they default to the `[unittest] args` config value.
    """
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        setup_logging_from_context(ctx, kwargs)
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(EXIT_RUNNER_FAILED)

    setup_logging_from_context(ctx, kwargs, fallback_level=config.global_config.log_level)
    console = Console()
    args = list(unittest_args) or list(config.unittest.args)
    output: OutputSink = LogOutputSink() if quiet else ConsoleOutputSink(console)
    selectors = {"folders": folders, "files": files, "suites": suites, "functions": functions}
    token = CancellationToken()
    log.info("Executing 'run' command", root=str(root), args=args)

    try:
        tests = asyncio.run(_run_tests(config, root, args, selectors, output, token))
    except RunCancelledError:
        click.echo("Cancelled before tests started.", err=True)
        ctx.exit(EXIT_CANCELLED)
    except (SpawnError, DiscoveryError) as e:
        log.error("Test launcher could not run", error=str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_RUNNER_FAILED)
    except TestRelayError as e:
        log.critical("Test run failed", error=str(e), exc_info=True)
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_RUNNER_FAILED)

    _print_summary(console, tests)
    if token.is_cancellation_requested:
        click.echo("Run cancelled; summary shows partial results.", err=True)
        sys.exit(EXIT_CANCELLED)
    if tests.summary.failures or tests.summary.errors:
        sys.exit(EXIT_TESTS_FAILED)

# 🔼⚙️
