# src/testrelay/pyunit/selection.py

"""
Expands a test selection into the queue of launcher invocations.

The launcher executes a single test id per process, so a selection of many
targets becomes one invocation per target, run one after another.
"""

from collections.abc import Iterable
from pathlib import Path

import structlog
from attrs import define, field

from testrelay.models import TestFile, TestFolder, Tests, TestsToRun

log = structlog.get_logger("pyunit.selection")


@define(frozen=True, slots=True)
class InvocationUnit:
    """One launcher process: a single test id, or everything when `test_id` is None."""
    test_file: str | None = field(default=None)
    test_id: str | None = field(default=None)

    @property
    def runs_everything(self) -> bool:
        return self.test_id is None


def resolve_invocations(tests: Tests, tests_to_run: TestsToRun | None = None) -> list[InvocationUnit]:
    """
    Returns invocation units in run order.

    Folder-selected files come first, then selected files, suites and
    functions. No selection means a single unit that runs everything.
    """
    if tests_to_run is None or tests_to_run.is_empty:
        return [InvocationUnit()]

    units: list[InvocationUnit] = []

    for folder in tests_to_run.test_folder:
        for test_file in tests.test_files:
            if test_file.full_path.startswith(folder.name):
                units.append(InvocationUnit(test_file.full_path, test_file.name_to_run))

    for test_file in tests_to_run.test_file:
        units.append(InvocationUnit(test_file.full_path, test_file.name_to_run))

    for suite in tests_to_run.test_suite:
        flattened_suite = tests.find_suite(suite)
        parent_path = flattened_suite.parent_test_file.full_path if flattened_suite else None
        if parent_path is None:
            log.debug("Selected suite is not part of the model", suite=suite.name_to_run)
        units.append(InvocationUnit(parent_path, suite.name_to_run))

    for function in tests_to_run.test_function:
        flattened_function = tests.find_parent_of_function(function)
        parent_path = flattened_function.parent_test_file.full_path if flattened_function else None
        if parent_path is None:
            log.debug("Selected function is not part of the model", function=function.name_to_run)
        units.append(InvocationUnit(parent_path, function.name_to_run))

    log.debug("Resolved selection", invocations=len(units))
    return units


def build_selection(
    tests: Tests,
    root_directory: Path,
    folders: Iterable[str] = (),
    files: Iterable[str] = (),
    suites: Iterable[str] = (),
    functions: Iterable[str] = (),
) -> tuple[TestsToRun, list[str]]:
    """
    Maps user-supplied names onto model entities.

    Folders and files may be given as paths relative to `root_directory`;
    files, suites and functions may also be given by their dotted id.
    Returns the selection and the names that matched nothing.
    """
    unmatched: list[str] = []
    selection = TestsToRun()

    for folder in folders:
        selection.test_folder.append(TestFolder(name=str((root_directory / folder).resolve())))

    files_by_key: dict[str, TestFile] = {}
    for test_file in tests.test_files:
        files_by_key[test_file.name_to_run] = test_file
        files_by_key[str(Path(test_file.full_path).resolve())] = test_file
    for name in files:
        test_file = files_by_key.get(name) or files_by_key.get(str((root_directory / name).resolve()))
        if test_file is None:
            unmatched.append(name)
        else:
            selection.test_file.append(test_file)

    suites_by_id = {s.test_suite.name_to_run: s.test_suite for s in tests.test_suites}
    for name in suites:
        if (suite := suites_by_id.get(name)) is None:
            unmatched.append(name)
        else:
            selection.test_suite.append(suite)

    for name in functions:
        if (flattened := tests.find_function(name)) is None:
            unmatched.append(name)
        else:
            selection.test_function.append(flattened.test_function)

    if unmatched:
        log.warning("Some selected tests are not in the discovered tree", unmatched=unmatched)
    return selection, unmatched

# 🔼⚙️
