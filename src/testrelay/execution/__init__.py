#
# src/testrelay/execution/__init__.py
#
"""
Process execution sub-package for testrelay.
"""
from .protocols import ProcessResult, ProcessRunner
from .subprocess_runner import SubprocessRunner

__all__ = [
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
]

# 🔼⚙️
