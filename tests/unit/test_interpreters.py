# tests/unit/test_interpreters.py

"""Tests for interpreter discovery and the persisted interpreter setting."""

import json
import tomllib
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from testrelay.exceptions import ConfigurationError, SpawnError
from testrelay.execution import ProcessResult
from testrelay.interpreters import (
    is_python_interpreter,
    set_interpreter_path,
    suggest_interpreters,
    to_workspace_relative,
)
from testrelay.interpreters.locator import (
    IS_WINDOWS,
    find_conda_interpreters,
    find_known_path_interpreters,
    find_virtualenv_interpreters,
    parse_conda_info,
)

posix_only = pytest.mark.skipif(IS_WINDOWS, reason="POSIX interpreter names")


@posix_only
@pytest.mark.parametrize(
    "name, expected",
    [("python", True), ("python3", True), ("python3.12", True), ("python3-config", False), ("pip", False)],
)
def test_is_python_interpreter(name, expected):
    assert is_python_interpreter(name) is expected


@posix_only
def test_parse_conda_info_includes_default_prefix():
    raw = json.dumps({"envs": ["/opt/conda/envs/ml"], "default_prefix": "/opt/conda"})

    suggestions = parse_conda_info(raw)

    assert [(s.label, s.path, s.type) for s in suggestions] == [
        ("ml", "/opt/conda/envs/ml/bin/python", "conda"),
        ("conda", "/opt/conda/bin/python", "conda"),
    ]


@pytest.mark.asyncio
class TestLocator:
    async def test_conda_missing_gives_no_suggestions(self):
        process_runner = MagicMock()
        process_runner.run = AsyncMock(side_effect=SpawnError("Command not found", command=["conda"]))

        assert await find_conda_interpreters(process_runner) == []

    async def test_conda_garbage_gives_no_suggestions(self):
        process_runner = MagicMock()
        process_runner.run = AsyncMock(return_value=ProcessResult(True, 0, "not json", ""))

        assert await find_conda_interpreters(process_runner) == []

    @posix_only
    async def test_known_paths_and_virtualenvs(self, tmp_path):
        bin_dir = tmp_path / "usr-bin"
        bin_dir.mkdir()
        for name in ("python3", "python3.11", "perl"):
            (bin_dir / name).touch()
        venv_bin = tmp_path / "workspace" / ".venv" / "bin"
        venv_bin.mkdir(parents=True)
        (venv_bin / "python").touch()

        known = await find_known_path_interpreters([bin_dir, tmp_path / "missing"])
        venvs = await find_virtualenv_interpreters(tmp_path / "workspace")

        assert [s.label for s in known] == ["python3", "python3.11"]
        assert [(s.path, s.type) for s in venvs] == [(str(venv_bin / "python"), "virtualenv")]

    async def test_suggest_interpreters_puts_conda_first(self, tmp_path):
        process_runner = MagicMock()
        raw = json.dumps({"envs": [str(tmp_path / "envs" / "a")]})
        process_runner.run = AsyncMock(return_value=ProcessResult(True, 0, raw, ""))

        suggestions = await suggest_interpreters(tmp_path, process_runner)

        assert suggestions[0].type == "conda"
        assert suggestions[0].label == "a"


class TestInterpreterSetting:
    def test_workspace_paths_become_relative(self, tmp_path):
        root = tmp_path.resolve()
        assert to_workspace_relative(str(root / ".venv" / "bin" / "python"), root) == "${workspaceRoot}/.venv/bin/python"
        assert to_workspace_relative("/usr/bin/python3", root / "elsewhere") == "/usr/bin/python3"
        assert to_workspace_relative("python", root) == "python"

    def test_creates_section_in_new_file(self, tmp_path):
        config_path = tmp_path / "testrelay.toml"

        stored = set_interpreter_path(config_path, "/usr/bin/python3", tmp_path / "ws")

        assert stored == "/usr/bin/python3"
        assert tomllib.loads(config_path.read_text())["interpreter"]["python_path"] == "/usr/bin/python3"

    def test_replaces_existing_value_and_keeps_other_content(self, tmp_path):
        config_path = tmp_path / "testrelay.toml"
        config_path.write_text(
            '# my settings\n[global]\nlog_level = "DEBUG"\n\n[interpreter]\npython_path = "python"\n\n[unittest]\nargs = ["-v"]\n'
        )

        set_interpreter_path(config_path, "C:\\Python312\\python.exe", tmp_path)

        text = config_path.read_text()
        data = tomllib.loads(text)
        assert text.startswith("# my settings\n")
        assert data["interpreter"]["python_path"] == "C:\\Python312\\python.exe"
        assert data["global"]["log_level"] == "DEBUG"
        assert data["unittest"]["args"] == ["-v"]

    def test_inserts_key_into_existing_section(self, tmp_path):
        config_path = tmp_path / "testrelay.toml"
        config_path.write_text("[interpreter]\n\n[unittest]\nargs = []\n")

        set_interpreter_path(config_path, "python3", tmp_path)

        assert tomllib.loads(config_path.read_text())["interpreter"] == {"python_path": "python3"}

    def test_refuses_to_write_invalid_toml(self, tmp_path):
        config_path = tmp_path / "testrelay.toml"
        original = "[interpreter\nbroken"
        config_path.write_text(original)

        with pytest.raises(ConfigurationError, match="invalid TOML"):
            set_interpreter_path(config_path, "python3", tmp_path)

        assert config_path.read_text() == original
