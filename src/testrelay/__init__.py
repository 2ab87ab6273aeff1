# src/testrelay/__init__.py

"""
Testrelay: out-of-process unittest discovery and execution.

Tests are run by a launcher script under the project's own interpreter and
their outcomes stream back over a loopback socket into a `Tests` model.
"""

from importlib.metadata import PackageNotFoundError, version

from testrelay.cancellation import CancellationToken
from testrelay.config import RelayConfig, RunnerSettings, load_config
from testrelay.exceptions import (
    BindError,
    ConfigurationError,
    DiscoveryError,
    ProtocolError,
    RunCancelledError,
    SpawnError,
    TestRelayError,
)
from testrelay.models import Tests, TestStatus, TestsToRun, build_tests
from testrelay.pyunit import UnittestRunner, discover_tests, run_test
from testrelay.server import ResultServer

try:
    __version__ = version("testrelay")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

__all__ = [
    "BindError",
    "CancellationToken",
    "ConfigurationError",
    "DiscoveryError",
    "ProtocolError",
    "RelayConfig",
    "ResultServer",
    "RunCancelledError",
    "RunnerSettings",
    "SpawnError",
    "TestRelayError",
    "TestStatus",
    "Tests",
    "TestsToRun",
    "UnittestRunner",
    "build_tests",
    "discover_tests",
    "load_config",
    "run_test",
]

# 🔼⚙️
