# src/testrelay/interpreters/locator.py

"""
Finds candidate Python interpreters on this machine.

Three sources are probed concurrently: conda environments, well-known
install directories and virtual environments inside the workspace. Every
probe treats a failure as "no suggestions" rather than an error.
"""

import asyncio
import json
import re
import sys
from pathlib import Path

import structlog
from attrs import define, field

from testrelay.exceptions import SpawnError
from testrelay.execution import ProcessRunner, SubprocessRunner
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("interpreters.locator")

IS_WINDOWS = sys.platform == "win32"
# Where to find the Python binary within a conda env
CONDA_RELATIVE_PY_PATH = ("python",) if IS_WINDOWS else ("bin", "python")
INTERPRETER_NAME_REGEX = re.compile(r"^python(\d+(\.\d+)?)?\.exe$" if IS_WINDOWS else r"^python(\d+(\.\d+)?)?$")

WINDOWS_SEARCH_PATHS = [
    r"C:\Python27",
    r"C:\Python35",
    r"C:\Python36",
    r"C:\Python37",
    r"C:\Python38",
    r"C:\Python39",
    r"C:\Python310",
    r"C:\Python311",
    r"C:\Python312",
    r"C:\Anaconda",
    r"C:\Anaconda3",
    r"C:\Program Files\Anaconda3",
]
POSIX_SEARCH_PATHS = ["/usr/local/bin", "/usr/bin", "/bin", "/usr/sbin", "/sbin", "/opt/homebrew/bin"]


@define(frozen=True, slots=True)
class InterpreterSuggestion:
    """A candidate interpreter: display label, executable path and source type."""
    label: str = field()
    path: str = field()
    type: str = field(default="")


def is_python_interpreter(file_name: str) -> bool:
    return INTERPRETER_NAME_REGEX.match(file_name) is not None


def known_search_paths() -> list[Path]:
    return [Path(p) for p in (WINDOWS_SEARCH_PATHS if IS_WINDOWS else POSIX_SEARCH_PATHS)]


def _list_interpreters(directory: Path) -> list[Path]:
    try:
        entries = sorted(directory.iterdir())
    except OSError:
        return []
    return [entry for entry in entries if is_python_interpreter(entry.name)]


async def find_interpreters_in_directory(directory: Path) -> list[Path]:
    """Lists interpreter executables directly inside `directory`."""
    return await asyncio.to_thread(_list_interpreters, directory)


async def find_known_path_interpreters(search_paths: list[Path] | None = None) -> list[InterpreterSuggestion]:
    paths = known_search_paths() if search_paths is None else search_paths
    found = await asyncio.gather(*(find_interpreters_in_directory(p) for p in paths))
    return [
        InterpreterSuggestion(label=interpreter.name, path=str(interpreter))
        for interpreters in found
        for interpreter in interpreters
    ]


async def find_virtualenv_interpreters(workspace_root: Path) -> list[InterpreterSuggestion]:
    """Looks for `<workspace>/<env>/bin/python*` (`Scripts` on Windows)."""
    try:
        env_dirs = await asyncio.to_thread(lambda: sorted(p for p in workspace_root.iterdir() if p.is_dir()))
    except OSError:
        return []

    bin_name = "Scripts" if IS_WINDOWS else "bin"
    found = await asyncio.gather(*(find_interpreters_in_directory(env / bin_name) for env in env_dirs))
    return [
        InterpreterSuggestion(label=interpreter.name, path=str(interpreter), type="virtualenv")
        for interpreters in found
        for interpreter in interpreters
    ]


def parse_conda_info(raw: str) -> list[InterpreterSuggestion]:
    """Turns `conda info --json` output into one suggestion per environment."""
    info = json.loads(raw)
    envs = list(info["envs"])
    # The root of the conda installation is itself an interpreter.
    if default_prefix := info.get("default_prefix"):
        envs.append(default_prefix)
    return [
        InterpreterSuggestion(
            label=Path(env).name,
            path=str(Path(env).joinpath(*CONDA_RELATIVE_PY_PATH)),
            type="conda",
        )
        for env in envs
    ]


async def find_conda_interpreters(process_runner: ProcessRunner | None = None) -> list[InterpreterSuggestion]:
    runner = process_runner or SubprocessRunner()
    try:
        result = await runner.run(["conda", "info", "--json"], Path.cwd())
        return parse_conda_info(result.stdout)
    except SpawnError:
        log.debug("conda is not available", emoji_key="interpreter")
    except (ValueError, KeyError, TypeError) as e:
        # Output format changed or conda printed something unexpected.
        log.debug("Could not parse conda environments", error=str(e), emoji_key="interpreter")
    return []


async def suggest_interpreters(
    workspace_root: Path,
    process_runner: ProcessRunner | None = None,
) -> list[InterpreterSuggestion]:
    """Collects suggestions from every source, conda first."""
    conda, known, virtualenvs = await asyncio.gather(
        find_conda_interpreters(process_runner),
        find_known_path_interpreters(),
        find_virtualenv_interpreters(workspace_root),
    )
    suggestions = [*conda, *known, *virtualenvs]
    log.info("Collected interpreter suggestions", count=len(suggestions), emoji_key="interpreter")
    return suggestions

# 🔼⚙️
