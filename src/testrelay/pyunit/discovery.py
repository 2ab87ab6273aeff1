# src/testrelay/pyunit/discovery.py

"""
Discovers unittest tests by asking the project's interpreter to list them.
"""

from pathlib import Path

import structlog

from testrelay.cancellation import CancellationToken
from testrelay.config.models import RunnerSettings
from testrelay.exceptions import DiscoveryError
from testrelay.execution import ProcessRunner, SubprocessRunner
from testrelay.models import Tests, build_tests
from testrelay.pyunit.arguments import build_unittest_arguments

log = structlog.get_logger("pyunit.discovery")

ENTRY_PREFIX = "__testrelay__"

# Executed by the target interpreter with argv = [start_directory, pattern].
DISCOVERY_SCRIPT = """
import inspect, os, sys, unittest
start = os.path.abspath(sys.argv[1])
sys.path.insert(0, start)
def walk(suite):
    for item in suite:
        if isinstance(item, unittest.TestSuite):
            yield from walk(item)
        else:
            yield item
for test in walk(unittest.TestLoader().discover(start, pattern=sys.argv[2])):
    try:
        path = inspect.getsourcefile(type(test)) or ""
    except TypeError:
        path = ""
    print("%s\\t%s\\t%s" % ("__testrelay__", test.id(), path))
"""


def parse_discovery_output(stdout: str) -> list[tuple[str, str]]:
    """Extracts `(test_id, file_path)` pairs from the discovery script's output."""
    entries: list[tuple[str, str]] = []
    for line in stdout.splitlines():
        prefix, _, rest = line.partition("\t")
        if prefix != ENTRY_PREFIX:
            continue
        test_id, _, file_path = rest.partition("\t")
        if test_id.startswith("unittest.loader._FailedTest"):
            log.warning("Module failed to import during discovery", test=test_id)
            continue
        entries.append((test_id, file_path))
    return entries


async def discover_tests(
    settings: RunnerSettings,
    root_directory: Path,
    args: list[str],
    process_runner: ProcessRunner | None = None,
    token: CancellationToken | None = None,
) -> Tests:
    """Runs discovery under the configured interpreter and builds the test tree."""
    runner = process_runner or SubprocessRunner(terminate_timeout=settings.terminate_timeout)
    unittest_args = build_unittest_arguments(args)
    command = [
        settings.python_path,
        "-c",
        DISCOVERY_SCRIPT,
        unittest_args.start_directory,
        unittest_args.pattern,
    ]

    result = await runner.run(command, root_directory, token)
    if not result.success:
        log.error("Test discovery failed", exit_code=result.exit_code, stderr=result.stderr[-2000:])
        raise DiscoveryError(f"Test discovery exited with code {result.exit_code}:\n{result.stderr}")

    entries = parse_discovery_output(result.stdout)
    start_directory = (root_directory / unittest_args.start_directory).resolve()
    tests = build_tests(entries, start_directory)
    log.info("Discovered tests", files=len(tests.test_files), functions=len(tests.test_functions))
    return tests

# 🔼⚙️
