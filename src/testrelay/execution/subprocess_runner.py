#
# src/testrelay/execution/subprocess_runner.py
#
"""
A cancellable process runner using asyncio.subprocess.
"""
import asyncio
from pathlib import Path

import structlog

from testrelay.cancellation import CancellationToken
from testrelay.exceptions import RunCancelledError, SpawnError
from testrelay.execution.protocols import ProcessResult, ProcessRunner
from testrelay.output import OutputSink

log = structlog.get_logger("execution.runner")

DEFAULT_TERMINATE_TIMEOUT = 5.0


class SubprocessRunner(ProcessRunner):
    """
    Implements the ProcessRunner protocol with asyncio.create_subprocess_exec.

    Output is streamed line by line to the sink while the process runs and is
    also kept for the returned ProcessResult.
    """
    def __init__(self, terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT):
        self.terminate_timeout = terminate_timeout

    async def run(
        self,
        command: list[str],
        working_dir: Path,
        token: CancellationToken | None = None,
        output: OutputSink | None = None,
    ) -> ProcessResult:
        runner_log = log.bind(
            command=" ".join(command),
            working_dir=str(working_dir),
        )
        runner_log.info("Executing command", emoji_key="spawn")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=working_dir,
            )
        except FileNotFoundError as e:
            runner_log.error("Executable or working directory not found", command_executable=command[0])
            raise SpawnError(
                f"Command not found: '{command[0]}'. Is the interpreter path correct?",
                command=command,
                details=e,
            ) from e
        except OSError as e:
            runner_log.error("Failed to start process", error=str(e))
            raise SpawnError(f"Failed to start process: {e}", command=command, details=e) from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        readers = [
            asyncio.create_task(self._pump(process.stdout, stdout_lines, output)),
            asyncio.create_task(self._pump(process.stderr, stderr_lines, output)),
        ]

        wait_task = asyncio.create_task(process.wait())
        cancel_task = asyncio.create_task(token.wait()) if token else None
        try:
            pending = {wait_task} | ({cancel_task} if cancel_task else set())
            done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

            if wait_task not in done:
                runner_log.warning("Cancellation requested, terminating process", pid=process.pid, emoji_key="cancel")
                await self._terminate(process, wait_task)
                raise RunCancelledError(f"Process {process.pid} was cancelled")
        except asyncio.CancelledError:
            runner_log.warning("Runner task cancelled, terminating process", pid=process.pid)
            await self._terminate(process, wait_task)
            raise
        finally:
            if cancel_task:
                cancel_task.cancel()
            await asyncio.gather(*readers, return_exceptions=True)

        exit_code = process.returncode if process.returncode is not None else -1
        success = exit_code == 0
        runner_log.info("Command finished", exit_code=exit_code, success=success)
        runner_log.debug(
            "Command output",
            stdout_lines=len(stdout_lines),
            stderr_lines=len(stderr_lines),
        )

        return ProcessResult(
            success=success,
            exit_code=exit_code,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
        )

    async def _terminate(self, process: asyncio.subprocess.Process, wait_task: asyncio.Task) -> None:
        """Asks the process to stop, killing it if it outlives the grace period."""
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(asyncio.shield(wait_task), timeout=self.terminate_timeout)
        except TimeoutError:
            log.warning("Process ignored terminate, killing it", pid=process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await wait_task

    @staticmethod
    async def _pump(
        stream: asyncio.StreamReader | None,
        lines: list[str],
        output: OutputSink | None,
    ) -> None:
        if stream is None:
            return
        while raw := await stream.readline():
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            lines.append(line)
            if output is not None:
                output.append_line(line)

# 🔼⚙️
