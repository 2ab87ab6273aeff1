#
# src/testrelay/config/loader.py
#
"""
Loads the TOML configuration file into the attrs config models.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

import structlog

from testrelay.config.models import GlobalConfig, InterpreterConfig, RelayConfig, UnittestConfig
from testrelay.exceptions import ConfigurationError
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.loader")

DEFAULT_CONFIG_FILENAME = "testrelay.toml"
ENV_PYTHON_PATH = "TESTRELAY_PYTHON_PATH"
ENV_LOG_LEVEL = "TESTRELAY_LOG_LEVEL"


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"Section [{name}] must be a table, got {type(section).__name__}")
    return section


def load_config(config_path: Path | None = None) -> RelayConfig:
    """
    Loads, validates and returns the configuration.

    A missing file yields the defaults. Environment variables override the
    interpreter path and the log level.
    """
    path = config_path or Path(DEFAULT_CONFIG_FILENAME)
    load_log = log.bind(config_path=str(path))
    data: dict[str, Any] = {}

    if path.is_file():
        load_log.debug("Reading configuration file", emoji_key="config")
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            load_log.error("Invalid TOML in configuration file", error=str(e))
            raise ConfigurationError(f"Invalid TOML in '{path}': {e}", details=e) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file '{path}': {e}", details=e) from e
    else:
        load_log.info("No configuration file found, using defaults", emoji_key="config")

    global_data = dict(_section(data, "global"))
    interpreter_data = dict(_section(data, "interpreter"))
    unittest_data = dict(_section(data, "unittest"))

    if env_level := os.environ.get(ENV_LOG_LEVEL):
        global_data["log_level"] = env_level
    if env_python := os.environ.get(ENV_PYTHON_PATH):
        interpreter_data["python_path"] = env_python

    try:
        config = RelayConfig(
            global_config=GlobalConfig(**global_data),
            interpreter=InterpreterConfig(**interpreter_data),
            unittest=UnittestConfig(**unittest_data),
            config_path=path if path.is_file() else None,
        )
    except (TypeError, ValueError) as e:
        load_log.error("Configuration validation failed", error=str(e))
        raise ConfigurationError(f"Invalid configuration in '{path}': {e}", details=e) from e

    load_log.debug(
        "Configuration loaded",
        python_path=config.interpreter.python_path,
        log_level=config.global_config.log_level,
    )
    return config


# 🔼⚙️
