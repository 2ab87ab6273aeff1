# src/testrelay/pyunit/runner.py

"""
Runs unittest tests out of process and folds streamed outcomes into a Tests model.

One run owns one ResultServer. Each invocation unit spawns the launcher
once; the launcher connects back to the server's port and streams start and
result frames while a consumer task applies them to the model in arrival
order.
"""

import asyncio
from pathlib import Path

import structlog

from testrelay.cancellation import CancellationToken
from testrelay.config.models import RunnerSettings
from testrelay.exceptions import RunCancelledError, SpawnError
from testrelay.execution import ProcessRunner, SubprocessRunner
from testrelay.models import Tests, TestStatus, TestsToRun, update_results
from testrelay.output import LogOutputSink, OutputSink
from testrelay.pyunit.arguments import UnittestArguments, build_unittest_arguments
from testrelay.pyunit.selection import InvocationUnit, resolve_invocations
from testrelay.server import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    LogEvent,
    ResultEvent,
    ResultServer,
    ServerEvent,
    StartEvent,
)
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("pyunit.runner")

# outcome keyword -> (status, summary counter)
OUTCOME_MAPPING: dict[str, tuple[TestStatus, str]] = {
    "passed": (TestStatus.PASS, "passed"),
    "failed": (TestStatus.FAIL, "failures"),
    "error": (TestStatus.ERROR, "errors"),
    "skipped": (TestStatus.SKIPPED, "skipped"),
}


def apply_result(tests: Tests, event: ResultEvent, recorded: dict[str, str] | None = None) -> bool:
    """
    Records one outcome on the matching function. Returns False if nothing matched.

    `recorded` maps test ids to the counter already incremented for them in
    the current run. A test reported again (overlapping selections spawn the
    same target twice) moves its count instead of adding a second one.
    """
    flattened = tests.find_function(event.test)
    if flattened is None:
        # Ids from a stale discovery pass are expected; they are not errors.
        log.debug("Ignoring result for unknown test", test=event.test)
        return False

    mapping = OUTCOME_MAPPING.get(event.outcome)
    if mapping is None:
        log.warning("Ignoring result with unknown outcome", test=event.test, outcome=event.outcome)
        return False

    status, counter = mapping
    function = flattened.test_function
    function.status = status
    function.passed = status in (TestStatus.PASS, TestStatus.SKIPPED)
    function.message = event.message or None
    function.traceback = event.traceback or None
    if recorded is not None:
        if (previous := recorded.get(event.test)) is not None:
            tests.summary.decrement(previous)
        recorded[event.test] = counter
    tests.summary.increment(counter)
    log.debug("Recorded test outcome", test=event.test, status=status.name, emoji_key="result")
    return True


class UnittestRunner:
    """Drives launcher invocations for a run and keeps the Tests model current."""

    def __init__(
        self,
        settings: RunnerSettings,
        process_runner: ProcessRunner | None = None,
    ):
        self.settings = settings
        self.process_runner = process_runner or SubprocessRunner(terminate_timeout=settings.terminate_timeout)

    async def run_test(
        self,
        root_directory: Path,
        tests: Tests,
        args: list[str],
        tests_to_run: TestsToRun | None = None,
        token: CancellationToken | None = None,
        output: OutputSink | None = None,
    ) -> Tests:
        """
        Runs the selected tests and returns the same, updated, Tests instance.

        Raises:
            BindError: If the result server cannot listen.
            SpawnError: If the launcher cannot be started. Remaining
                invocations are abandoned.

        Cancellation is not an error: the run stops starting launchers and
        returns whatever results were already recorded.
        """
        sink = output or LogOutputSink()
        run_log = log.bind(root_directory=str(root_directory))

        tests.summary.reset()

        if not self.settings.launcher_path.is_file():
            raise SpawnError(f"Launcher script not found: '{self.settings.launcher_path}'")

        unittest_args = build_unittest_arguments(args)
        units = resolve_invocations(tests, tests_to_run)
        run_log.info("Starting test run", invocations=len(units))

        server = ResultServer()
        port = await server.start()
        consumer = asyncio.create_task(self._consume(server.events, tests, sink, {}))
        try:
            await self._dispatch(server, port, root_directory, unittest_args, units, token, sink)
        finally:
            await server.stop()
            await consumer

        update_results(tests)
        run_log.info(
            "Test run finished",
            passed=tests.summary.passed,
            failures=tests.summary.failures,
            errors=tests.summary.errors,
            skipped=tests.summary.skipped,
        )
        return tests

    async def _dispatch(
        self,
        server: ResultServer,
        port: int,
        root_directory: Path,
        unittest_args: UnittestArguments,
        units: list[InvocationUnit],
        token: CancellationToken | None,
        sink: OutputSink,
    ) -> None:
        for index, unit in enumerate(units):
            if token is not None and token.is_cancellation_requested:
                log.warning("Run cancelled, skipping remaining invocations", remaining=len(units) - index)
                return

            command = self.build_command(port, unittest_args, unit)
            try:
                result = await self.process_runner.run(command, root_directory, token, sink)
                log.debug("Launcher exited", test_id=unit.test_id, exit_code=result.exit_code)
            except RunCancelledError:
                log.warning("Launcher cancelled", test_id=unit.test_id, emoji_key="cancel")
                await self._settle(server)
                return
            await self._settle(server)

    async def _settle(self, server: ResultServer) -> None:
        # Let a pending accept run before checking whether the client is gone.
        await asyncio.sleep(0)
        await server.wait_idle(self.settings.disconnect_timeout)

    def build_command(self, port: int, unittest_args: UnittestArguments, unit: InvocationUnit) -> list[str]:
        command = [
            self.settings.python_path,
            str(self.settings.launcher_path),
            *unittest_args.to_launcher_args(full_run=unit.runs_everything),
            f"--result-port={port}",
        ]
        if unit.test_id:
            command.append(f"-t{unit.test_id.strip()}")
        if unit.test_file:
            command.append(f"--testFile={unit.test_file}")
        return command

    async def _consume(
        self,
        events: asyncio.Queue[ServerEvent | None],
        tests: Tests,
        sink: OutputSink,
        recorded: dict[str, str],
    ) -> None:
        while (event := await events.get()) is not None:
            try:
                self._apply(event, tests, sink, recorded)
            except Exception:
                log.exception("Failed to apply server event", event_kind=event.kind)

    def _apply(self, event: ServerEvent, tests: Tests, sink: OutputSink, recorded: dict[str, str]) -> None:
        if isinstance(event, ResultEvent):
            apply_result(tests, event, recorded)
        elif isinstance(event, StartEvent):
            if flattened := tests.find_function(event.test):
                flattened.test_function.status = TestStatus.RUNNING
        elif isinstance(event, LogEvent):
            log.debug("Launcher log", message=event.message)
            sink.append_line(event.message)
        elif isinstance(event, ErrorEvent):
            log.warning("Launcher reported an error", message=event.message)
            sink.append_line(f"ERROR: {event.message}")
        elif isinstance(event, ConnectEvent | DisconnectEvent):
            log.debug("Launcher connection event", event_kind=event.kind, peer=event.peer, emoji_key="server")


async def run_test(
    root_directory: Path,
    tests: Tests,
    args: list[str],
    tests_to_run: TestsToRun | None = None,
    token: CancellationToken | None = None,
    output: OutputSink | None = None,
    *,
    settings: RunnerSettings,
) -> Tests:
    """Convenience wrapper building a UnittestRunner for a single run."""
    runner = UnittestRunner(settings)
    return await runner.run_test(root_directory, tests, args, tests_to_run, token, output)

# 🔼⚙️
