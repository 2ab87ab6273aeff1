#
# src/testrelay/config/models.py
#
"""
Attrs-based data models for testrelay configuration structure.
"""

import logging
from pathlib import Path
from typing import Any

from attrs import define, field, validators

from testrelay.launcher import LAUNCHER_PATH

WORKSPACE_ROOT_VARIABLE = "${workspaceRoot}"
DEFAULT_PYTHON_PATH = "python"
DEFAULT_DISCONNECT_TIMEOUT = 5.0
DEFAULT_TERMINATE_TIMEOUT = 5.0


# --- Validators ---
def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_number(inst: Any, attr: Any, value: float) -> None:
    """Validator ensures a timeout is a positive number."""
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be a positive number, got {value!r}")


def _validate_string_list(inst: Any, attr: Any, value: list[str]) -> None:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Field '{attr.name}' must be a list of strings, got {value!r}")


@define(frozen=True, slots=True)
class GlobalConfig:
    """Global default settings for testrelay."""
    log_level: str = field(default="WARNING", validator=_validate_log_level)

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


@define(frozen=True, slots=True)
class InterpreterConfig:
    """The interpreter that runs the project's tests."""
    python_path: str = field(default=DEFAULT_PYTHON_PATH, validator=validators.instance_of(str))

    def resolve(self, workspace_root: Path) -> str:
        """Expands `${workspaceRoot}` in the configured path."""
        return self.python_path.replace(WORKSPACE_ROOT_VARIABLE, str(workspace_root))


@define(frozen=True, slots=True)
class UnittestConfig:
    """Settings for unittest discovery and runs."""
    args: list[str] = field(factory=list, validator=_validate_string_list)
    launcher: Path | None = field(default=None, converter=lambda v: Path(v) if v is not None else None)
    disconnect_timeout: float = field(default=DEFAULT_DISCONNECT_TIMEOUT, validator=_validate_positive_number)
    terminate_timeout: float = field(default=DEFAULT_TERMINATE_TIMEOUT, validator=_validate_positive_number)


@define(frozen=True, slots=True)
class RunnerSettings:
    """
    Everything the run orchestrator needs, resolved for one workspace.

    Passed to the orchestrator explicitly instead of being read from a
    process-wide settings object.
    """
    python_path: str
    launcher_path: Path
    disconnect_timeout: float = DEFAULT_DISCONNECT_TIMEOUT
    terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT


@define(frozen=True, slots=True)
class RelayConfig:
    """Root configuration object for the testrelay application."""
    global_config: GlobalConfig = field(factory=GlobalConfig, metadata={"toml_name": "global"})
    interpreter: InterpreterConfig = field(factory=InterpreterConfig)
    unittest: UnittestConfig = field(factory=UnittestConfig)
    config_path: Path | None = field(default=None, repr=False)

    def runner_settings(self, workspace_root: Path) -> RunnerSettings:
        return RunnerSettings(
            python_path=self.interpreter.resolve(workspace_root),
            launcher_path=self.unittest.launcher or LAUNCHER_PATH,
            disconnect_timeout=self.unittest.disconnect_timeout,
            terminate_timeout=self.unittest.terminate_timeout,
        )


# 🔼⚙️
