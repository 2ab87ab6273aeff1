#
# config/__init__.py
#
"""
Configuration handling sub-package for testrelay.

Exports the loading function and core configuration models.
"""

from .loader import DEFAULT_CONFIG_FILENAME, load_config
from .models import (
    GlobalConfig,
    InterpreterConfig,
    RelayConfig,
    RunnerSettings,
    UnittestConfig,
)

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "GlobalConfig",
    "InterpreterConfig",
    "RelayConfig",
    "RunnerSettings",
    "UnittestConfig",
    "load_config",
]

# 🔼⚙️
