# src/testrelay/pyunit/arguments.py

"""
Normalises user-supplied unittest arguments into launcher flags.
"""

import structlog
from attrs import define, field

from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("pyunit.arguments")

DEFAULT_START_DIRECTORY = "."
DEFAULT_PATTERN = "test*.py"
DEFAULT_VERBOSITY = 1
VERBOSE_VERBOSITY = 2

START_DIRECTORY_FLAGS = ("-s", "--start-directory")
PATTERN_FLAGS = ("-p", "--pattern")
FAILFAST_FLAGS = ("-f", "--failfast")
# The launcher owns `-t` for test ids and selects by id, so these cannot pass through.
DROPPED_VALUE_FLAGS = ("-t", "--top-level-directory", "-k")


@define(frozen=True, slots=True)
class UnittestArguments:
    start_directory: str = field(default=DEFAULT_START_DIRECTORY)
    pattern: str = field(default=DEFAULT_PATTERN)
    fail_fast: bool = field(default=False)
    verbosity: int = field(default=DEFAULT_VERBOSITY)
    extra_args: tuple[str, ...] = field(default=(), converter=tuple)

    def to_launcher_args(self, full_run: bool = True) -> list[str]:
        """
        Renders the launcher flags.

        The discovery pattern only matters when the launcher discovers the
        whole tree, so it is left out when a single test id is targeted.
        """
        args = [f"--us={self.start_directory}"]
        if full_run:
            args.append(f"--up={self.pattern}")
        args.append(f"--uvInt={self.verbosity}")
        if self.fail_fast:
            args.append("--uf")
        args.extend(self.extra_args)
        return args


def _find_value(args: list[str], flags: tuple[str, str], default: str) -> tuple[str, set[int]]:
    """
    Finds the value of the first token starting with one of `flags`.

    Accepts `-s value`, `--start-directory value`, `--start-directory=value`
    and `-svalue`. Returns the value and the indices of consumed tokens.
    """
    short_flag, long_flag = flags
    for index, token in enumerate(args):
        stripped = token.strip()
        if not (stripped.startswith(short_flag) or stripped.startswith(long_flag)):
            continue

        if stripped in flags:
            if index + 1 < len(args):
                return args[index + 1], {index, index + 1}
            return default, {index}

        prefix = long_flag if stripped.startswith(long_flag) else short_flag
        value = stripped[len(prefix):].strip()
        if value.startswith("="):
            value = value[1:]
        return value, {index}

    return default, set()


def _dropped_span(args: list[str], index: int) -> int:
    """Number of tokens a discovery-only option occupies at `index`, or 0."""
    stripped = args[index].strip()
    if stripped in DROPPED_VALUE_FLAGS:
        return 2 if index + 1 < len(args) else 1
    if stripped.startswith("--top-level-directory=") or (stripped[:2] in ("-t", "-k") and len(stripped) > 2):
        return 1
    return 0


def build_unittest_arguments(args: list[str]) -> UnittestArguments:
    """Derives launcher settings from a generic unittest argument list."""
    start_directory, consumed = _find_value(args, START_DIRECTORY_FLAGS, DEFAULT_START_DIRECTORY)
    pattern, pattern_consumed = _find_value(
        [token if i not in consumed else "" for i, token in enumerate(args)],
        PATTERN_FLAGS,
        DEFAULT_PATTERN,
    )
    consumed |= pattern_consumed

    fail_fast = False
    verbose = False
    for index, token in enumerate(args):
        if index in consumed:
            continue
        if span := _dropped_span(args, index):
            dropped = set(range(index, index + span))
            log.debug("Dropping unittest option the launcher cannot honour", tokens=[args[i] for i in sorted(dropped)])
            consumed |= dropped
            continue
        stripped = token.strip()
        if stripped in FAILFAST_FLAGS:
            fail_fast = True
            consumed.add(index)
        elif stripped.startswith("-v"):
            verbose = True
            consumed.add(index)

    extra = [token for index, token in enumerate(args) if index not in consumed]
    return UnittestArguments(
        start_directory=start_directory,
        pattern=pattern,
        fail_fast=fail_fast,
        verbosity=VERBOSE_VERBOSITY if verbose else DEFAULT_VERBOSITY,
        extra_args=extra,
    )

# 🔼⚙️
