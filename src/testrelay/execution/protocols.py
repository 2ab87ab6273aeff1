#
# src/testrelay/execution/protocols.py
#
"""
Defines protocols and data structures for launching external processes.
"""
from pathlib import Path
from typing import Protocol, runtime_checkable

from attrs import define

from testrelay.cancellation import CancellationToken
from testrelay.output import OutputSink


@define(frozen=True, slots=True)
class ProcessResult:
    """
    Structured result from a finished child process.
    """
    success: bool
    exit_code: int
    stdout: str
    stderr: str


@runtime_checkable
class ProcessRunner(Protocol):
    """
    Protocol for something that can run a command to completion.
    """
    async def run(
        self,
        command: list[str],
        working_dir: Path,
        token: CancellationToken | None = None,
        output: OutputSink | None = None,
    ) -> ProcessResult:
        """
        Runs the command in the specified directory and waits for it to exit.

        Args:
            command: The executable and its arguments.
            working_dir: The directory from which to run the command.
            token: Terminates the process when cancellation is requested.
            output: Receives each stdout/stderr line as it is produced.

        Returns:
            A ProcessResult with the exit code and captured output.

        Raises:
            SpawnError: If the process could not be started.
            RunCancelledError: If the token fired before the process exited.
        """
        ...

# 🔼⚙️
