# tests/unit/test_config.py

"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from testrelay.config import RelayConfig, load_config
from testrelay.exceptions import ConfigurationError
from testrelay.launcher import LAUNCHER_PATH


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("TESTRELAY_PYTHON_PATH", raising=False)
    monkeypatch.delenv("TESTRELAY_LOG_LEVEL", raising=False)


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "testrelay.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.toml")

    assert config == RelayConfig()
    assert config.interpreter.python_path == "python"
    assert config.unittest.args == []
    assert config.config_path is None


def test_full_file_is_loaded(tmp_path):
    path = write_config(
        tmp_path,
        """
[global]
log_level = "debug"

[interpreter]
python_path = "${workspaceRoot}/.venv/bin/python"

[unittest]
args = ["-s", "tests", "-v"]
disconnect_timeout = 2.5
""",
    )

    config = load_config(path)

    assert config.global_config.numeric_log_level == 10
    assert config.unittest.args == ["-s", "tests", "-v"]
    assert config.unittest.disconnect_timeout == 2.5
    assert config.config_path == path

    settings = config.runner_settings(Path("/work"))
    assert settings.python_path == f"{Path('/work')}/.venv/bin/python"
    assert settings.launcher_path == LAUNCHER_PATH
    assert settings.disconnect_timeout == 2.5


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = write_config(tmp_path, '[interpreter]\npython_path = "python3"\n')
    monkeypatch.setenv("TESTRELAY_PYTHON_PATH", "/opt/py/bin/python")

    assert load_config(path).interpreter.python_path == "/opt/py/bin/python"


def test_custom_launcher_path(tmp_path):
    path = write_config(tmp_path, '[unittest]\nlauncher = "tools/launcher.py"\n')

    config = load_config(path)

    assert config.runner_settings(tmp_path).launcher_path == Path("tools/launcher.py")


@pytest.mark.parametrize(
    "content, message",
    [
        ("[global\n", "Invalid TOML"),
        ('global = "x"\n', "must be a table"),
        ('[global]\nlog_level = "LOUD"\n', "Invalid log_level"),
        ("[unittest]\ndisconnect_timeout = 0\n", "positive number"),
        ('[unittest]\nargs = "-v"\n', "list of strings"),
        ('[interpreter]\nunknown = 1\n', "Invalid configuration"),
    ],
)
def test_invalid_content_raises_configuration_error(tmp_path, content, message):
    path = write_config(tmp_path, content)

    with pytest.raises(ConfigurationError, match=message):
        load_config(path)
