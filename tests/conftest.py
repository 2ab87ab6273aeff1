import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from testrelay.config.models import RunnerSettings
from testrelay.execution import ProcessResult
from testrelay.launcher import LAUNCHER_PATH
from testrelay.models import Tests, build_tests
from testrelay.server import encode_frame

Frame = tuple[str, ...]


class ScriptedLauncher:
    """
    ProcessRunner double that connects to the result server like the real
    launcher and plays back canned frames for the targeted test id.

    Frames are looked up by the `-t` test id, or under `None` for a full run.
    """

    def __init__(
        self,
        frames: dict[str | None, list[Frame]] | None = None,
        on_run: Callable[[int, list[str]], None] | None = None,
        exit_code: int = 0,
    ):
        self.frames = frames or {}
        self.on_run = on_run
        self.exit_code = exit_code
        self.commands: list[list[str]] = []
        self.working_dirs: list[Path] = []

    async def run(self, command, working_dir, token=None, output=None) -> ProcessResult:
        self.commands.append(command)
        self.working_dirs.append(working_dir)
        if self.on_run is not None:
            self.on_run(len(self.commands), command)

        port = int(next(arg for arg in command if arg.startswith("--result-port=")).split("=", 1)[1])
        test_id = next((arg[2:] for arg in command if arg.startswith("-t")), None)

        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        for frame in self.frames.get(test_id, []):
            writer.write(encode_frame(*frame))
        await writer.drain()
        writer.write_eof()
        # The server closes its side once every frame has been handled.
        await reader.read()
        writer.close()
        await writer.wait_closed()
        return ProcessResult(success=self.exit_code == 0, exit_code=self.exit_code, stdout="", stderr="")


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path.resolve()
    (root / "pkg").mkdir()
    return root


@pytest.fixture
def sample_tests(project_root: Path) -> Tests:
    """Two files, three suites and five functions, one file in a sub-folder."""
    math_file = str(project_root / "test_math.py")
    io_file = str(project_root / "pkg" / "test_io.py")
    return build_tests(
        [
            ("test_math.TestAdd.test_one", math_file),
            ("test_math.TestAdd.test_two", math_file),
            ("test_math.TestSub.test_one", math_file),
            ("pkg.test_io.TestRead.test_read", io_file),
            ("pkg.test_io.TestRead.test_missing", io_file),
        ],
        project_root,
    )


@pytest.fixture
def runner_settings() -> RunnerSettings:
    return RunnerSettings(
        python_path="python",
        launcher_path=LAUNCHER_PATH,
        disconnect_timeout=2.0,
        terminate_timeout=1.0,
    )


@pytest.fixture
def scripted_launcher() -> type[ScriptedLauncher]:
    return ScriptedLauncher
