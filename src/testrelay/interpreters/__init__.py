#
# src/testrelay/interpreters/__init__.py
#
"""
Locating Python interpreters and persisting the selected one.
"""
from .locator import InterpreterSuggestion, is_python_interpreter, suggest_interpreters
from .settings import set_interpreter_path, to_workspace_relative

__all__ = [
    "InterpreterSuggestion",
    "is_python_interpreter",
    "set_interpreter_path",
    "suggest_interpreters",
    "to_workspace_relative",
]

# 🔼⚙️
