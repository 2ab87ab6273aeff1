# src/testrelay/interpreters/settings.py

"""
Persists the selected interpreter into the testrelay TOML config file.

The file is edited textually so comments and layout elsewhere survive.
"""

import json
import re
import tomllib
from pathlib import Path

import structlog

from testrelay.config.models import WORKSPACE_ROOT_VARIABLE
from testrelay.exceptions import ConfigurationError
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("interpreters.settings")

SECTION_HEADER_REGEX = re.compile(r"^\s*\[\s*([^\]]+?)\s*\]\s*(#.*)?$")
PYTHON_PATH_REGEX = re.compile(r"^(\s*python_path\s*=\s*)(\S.*)$")


def to_workspace_relative(python_path: str, workspace_root: Path) -> str:
    """Rewrites a path inside the workspace as `${workspaceRoot}/relative/path`."""
    if not Path(python_path).is_absolute():
        return python_path
    try:
        relative = Path(python_path).relative_to(workspace_root.resolve())
    except ValueError:
        return python_path
    return f"{WORKSPACE_ROOT_VARIABLE}/{relative.as_posix()}"


def _render_config(text: str, value: str) -> str:
    lines = text.splitlines()
    assignment = f"python_path = {json.dumps(value)}"

    header_index = next(
        (i for i, line in enumerate(lines) if (m := SECTION_HEADER_REGEX.match(line)) and m.group(1) == "interpreter"),
        None,
    )
    if header_index is None:
        if lines and lines[-1].strip():
            lines.append("")
        lines.extend(["[interpreter]", assignment])
        return "\n".join(lines) + "\n"

    index = header_index + 1
    while index < len(lines) and not SECTION_HEADER_REGEX.match(lines[index]):
        if match := PYTHON_PATH_REGEX.match(lines[index]):
            lines[index] = f"{match.group(1)}{json.dumps(value)}"
            return "\n".join(lines) + "\n"
        index += 1

    lines.insert(header_index + 1, assignment)
    return "\n".join(lines) + "\n"


def set_interpreter_path(config_path: Path, python_path: str, workspace_root: Path) -> str:
    """
    Stores `python_path` under `[interpreter]` and returns the stored value.

    Raises:
        ConfigurationError: If the file cannot be read or written, or the
            edit would produce invalid TOML.
    """
    value = to_workspace_relative(python_path, workspace_root)
    try:
        original = config_path.read_text(encoding="utf-8") if config_path.exists() else ""
    except OSError as e:
        raise ConfigurationError(f"Cannot read '{config_path}': {e}", details=e) from e

    updated = _render_config(original, value)
    try:
        tomllib.loads(updated)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Refusing to write invalid TOML to '{config_path}': {e}", details=e) from e

    try:
        config_path.write_text(updated, encoding="utf-8")
    except OSError as e:
        log.error("Failed to update interpreter path", config_path=str(config_path), error=str(e))
        raise ConfigurationError(f"Failed to set 'python_path' in '{config_path}': {e}", details=e) from e

    log.info("Interpreter path updated", config_path=str(config_path), python_path=value, emoji_key="interpreter")
    return value

# 🔼⚙️
