#
# src/testrelay/launcher/__init__.py
#
"""
Location of the bundled unittest launcher script.
"""
from pathlib import Path

LAUNCHER_PATH = Path(__file__).with_name("unittest_launcher.py")

__all__ = ["LAUNCHER_PATH"]

# 🔼⚙️
