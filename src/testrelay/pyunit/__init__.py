#
# src/testrelay/pyunit/__init__.py
#
"""
Running and discovering unittest tests through the out-of-process launcher.
"""
from .arguments import UnittestArguments, build_unittest_arguments
from .discovery import discover_tests
from .runner import OUTCOME_MAPPING, UnittestRunner, apply_result, run_test
from .selection import InvocationUnit, build_selection, resolve_invocations

__all__ = [
    "OUTCOME_MAPPING",
    "InvocationUnit",
    "UnittestArguments",
    "UnittestRunner",
    "apply_result",
    "build_selection",
    "build_unittest_arguments",
    "discover_tests",
    "resolve_invocations",
    "run_test",
]

# 🔼⚙️
