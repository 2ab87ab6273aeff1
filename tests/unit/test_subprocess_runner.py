# tests/unit/test_subprocess_runner.py

"""Tests for the asyncio subprocess runner."""

import asyncio
import sys
from unittest.mock import MagicMock

import pytest

from testrelay.cancellation import CancellationToken
from testrelay.exceptions import RunCancelledError, SpawnError
from testrelay.execution import ProcessRunner, SubprocessRunner


@pytest.mark.asyncio
class TestSubprocessRunner:
    async def test_captures_output_and_exit_code(self, tmp_path):
        runner = SubprocessRunner()
        sink = MagicMock()

        result = await runner.run(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"],
            tmp_path,
            output=sink,
        )

        assert result.exit_code == 3
        assert result.success is False
        assert result.stdout == "out"
        assert result.stderr == "err"
        lines = sorted(call.args[0] for call in sink.append_line.call_args_list)
        assert lines == ["err", "out"]

    async def test_runs_in_working_directory(self, tmp_path):
        result = await SubprocessRunner().run([sys.executable, "-c", "import os; print(os.getcwd())"], tmp_path)

        assert result.success
        assert result.stdout.strip() == str(tmp_path.resolve())

    async def test_missing_executable_raises_spawn_error(self, tmp_path):
        with pytest.raises(SpawnError, match="Command not found") as exc_info:
            await SubprocessRunner().run([str(tmp_path / "no-such-python"), "-V"], tmp_path)

        assert exc_info.value.command[0].endswith("no-such-python")

    async def test_cancellation_terminates_process(self, tmp_path):
        token = CancellationToken()
        runner = SubprocessRunner(terminate_timeout=2.0)

        async def cancel_soon():
            await asyncio.sleep(0.2)
            token.cancel()

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(RunCancelledError):
            await asyncio.wait_for(
                runner.run([sys.executable, "-c", "import time; time.sleep(30)"], tmp_path, token),
                timeout=10,
            )
        await canceller

    def test_implements_protocol(self):
        assert isinstance(SubprocessRunner(), ProcessRunner)
