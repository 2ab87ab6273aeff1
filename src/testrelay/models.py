# src/testrelay/models.py
#
"""
Defines the in-memory test tree that test runs read and update.

A `Tests` instance is built once per discovery pass and then mutated in
place by every run: function statuses, messages and the summary counters
change, the tree shape does not.
"""

from collections.abc import Iterable, Iterator
from enum import Enum, auto
from pathlib import Path, PurePath

import structlog
from attrs import define, field, mutable

log: structlog.stdlib.BoundLogger = structlog.get_logger("models")


class TestStatus(Enum):
    """Status of a node in the test tree."""

    __test__ = False

    UNKNOWN = auto()  # Never run, or the last run produced no outcome.
    IDLE = auto()
    RUNNING = auto()
    PASS = auto()
    FAIL = auto()
    ERROR = auto()
    SKIPPED = auto()


@mutable(slots=True)
class TestFunction:
    __test__ = False

    name: str = field()
    name_to_run: str = field()
    status: TestStatus = field(default=TestStatus.UNKNOWN)
    passed: bool | None = field(default=None)
    message: str | None = field(default=None)
    traceback: str | None = field(default=None)
    time: float = field(default=0.0)


@mutable(slots=True)
class TestSuite:
    __test__ = False

    name: str = field()
    name_to_run: str = field()
    functions: list[TestFunction] = field(factory=list)
    suites: list["TestSuite"] = field(factory=list)
    status: TestStatus = field(default=TestStatus.UNKNOWN)
    passed: bool | None = field(default=None)
    time: float = field(default=0.0)


@mutable(slots=True)
class TestFile:
    __test__ = False

    name: str = field()
    full_path: str = field()
    name_to_run: str = field()
    functions: list[TestFunction] = field(factory=list)
    suites: list[TestSuite] = field(factory=list)
    status: TestStatus = field(default=TestStatus.UNKNOWN)
    passed: bool | None = field(default=None)
    time: float = field(default=0.0)


@mutable(slots=True)
class TestFolder:
    __test__ = False

    name: str = field()
    test_files: list[TestFile] = field(factory=list)
    folders: list["TestFolder"] = field(factory=list)
    status: TestStatus = field(default=TestStatus.UNKNOWN)
    passed: bool | None = field(default=None)
    time: float = field(default=0.0)


@define(slots=True)
class FlattenedTestSuite:
    """A suite plus a lookup-only reference to the file that declares it."""

    test_suite: TestSuite
    parent_test_file: TestFile


@define(slots=True)
class FlattenedTestFunction:
    """A function plus lookup-only references to its owning file and suite."""

    test_function: TestFunction
    parent_test_file: TestFile
    parent_test_suite: TestSuite | None = None


@mutable(slots=True)
class TestSummary:
    __test__ = False

    passed: int = field(default=0)
    failures: int = field(default=0)
    errors: int = field(default=0)
    skipped: int = field(default=0)

    def reset(self) -> None:
        self.passed = 0
        self.failures = 0
        self.errors = 0
        self.skipped = 0

    def increment(self, counter: str) -> None:
        setattr(self, counter, getattr(self, counter) + 1)

    def decrement(self, counter: str) -> None:
        setattr(self, counter, max(getattr(self, counter) - 1, 0))

    @property
    def total(self) -> int:
        return self.passed + self.failures + self.errors + self.skipped


@mutable(slots=True)
class Tests:
    """
    Aggregate root of a discovered test tree.

    `test_suites` and `test_functions` are flattened views over `test_files`.
    Result correlation goes through an index keyed by `name_to_run` that is
    built on construction; call `reindex()` after editing the flattened lists.
    """

    __test__ = False

    test_files: list[TestFile] = field(factory=list)
    test_folders: list[TestFolder] = field(factory=list)
    root_test_folders: list[TestFolder] = field(factory=list)
    test_suites: list[FlattenedTestSuite] = field(factory=list)
    test_functions: list[FlattenedTestFunction] = field(factory=list)
    summary: TestSummary = field(factory=TestSummary)
    _function_index: dict[str, FlattenedTestFunction] = field(factory=dict, init=False, repr=False)

    def __attrs_post_init__(self):
        self.reindex()

    def reindex(self) -> None:
        self._function_index = {fn.test_function.name_to_run: fn for fn in self.test_functions}
        log.debug(
            "Indexed test functions",
            functions=len(self._function_index),
            files=len(self.test_files),
        )

    def find_function(self, name_to_run: str) -> FlattenedTestFunction | None:
        return self._function_index.get(name_to_run)

    def find_suite(self, suite: TestSuite) -> FlattenedTestSuite | None:
        return next((s for s in self.test_suites if s.test_suite is suite), None)

    def find_parent_of_function(self, function: TestFunction) -> FlattenedTestFunction | None:
        flattened = self._function_index.get(function.name_to_run)
        if flattened is not None and flattened.test_function is function:
            return flattened
        return next((f for f in self.test_functions if f.test_function is function), None)


@define(slots=True)
class TestsToRun:
    """
    A selection of tests to execute.

    The four selectors are disjoint and combine as a union. A selection with
    every list empty means "run everything".
    """

    __test__ = False

    test_folder: list[TestFolder] = field(factory=list)
    test_file: list[TestFile] = field(factory=list)
    test_suite: list[TestSuite] = field(factory=list)
    test_function: list[TestFunction] = field(factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.test_folder or self.test_file or self.test_suite or self.test_function)


def _walk_suites(suites: Iterable[TestSuite]) -> Iterator[TestSuite]:
    for suite in suites:
        yield suite
        yield from _walk_suites(suite.suites)


def flatten_test_files(test_files: list[TestFile], test_folders: list[TestFolder] | None = None) -> Tests:
    """Builds a `Tests` aggregate, flattening suites and functions of every file."""
    flattened_suites: list[FlattenedTestSuite] = []
    flattened_functions: list[FlattenedTestFunction] = []

    for test_file in test_files:
        for fn in test_file.functions:
            flattened_functions.append(FlattenedTestFunction(fn, test_file))
        for suite in _walk_suites(test_file.suites):
            flattened_suites.append(FlattenedTestSuite(suite, test_file))
            for fn in suite.functions:
                flattened_functions.append(FlattenedTestFunction(fn, test_file, suite))

    folders = test_folders or []
    nested = {id(child) for folder in folders for child in folder.folders}
    root_folders = [folder for folder in folders if id(folder) not in nested]
    return Tests(
        test_files=test_files,
        test_folders=folders,
        root_test_folders=root_folders,
        test_suites=flattened_suites,
        test_functions=flattened_functions,
    )


def build_tests(entries: Iterable[tuple[str, str]], root_directory: Path) -> Tests:
    """
    Builds a test tree from `(test_id, file_path)` pairs.

    Ids are dotted unittest ids, `package.module.Class.test_method`. The
    module part names the file, the class part the suite. Files are grouped
    into folders by their directory; ids without a file path are placed
    relative to `root_directory`.
    """
    files: dict[str, TestFile] = {}
    suites: dict[str, TestSuite] = {}
    folders: dict[str, TestFolder] = {}

    for test_id, file_path in entries:
        parts = test_id.split(".")
        if len(parts) < 3:
            log.warning("Skipping test id without module and class", test_id=test_id)
            continue
        module_id = ".".join(parts[:-2])
        suite_id = ".".join(parts[:-1])

        test_file = files.get(module_id)
        if test_file is None:
            full_path = file_path or str(root_directory.joinpath(*module_id.split(".")).with_suffix(".py"))
            test_file = TestFile(name=Path(full_path).name, full_path=full_path, name_to_run=module_id)
            files[module_id] = test_file
            _folder_for(test_file, folders).test_files.append(test_file)

        suite = suites.get(suite_id)
        if suite is None:
            suite = TestSuite(name=parts[-2], name_to_run=suite_id)
            suites[suite_id] = suite
            test_file.suites.append(suite)

        suite.functions.append(TestFunction(name=parts[-1], name_to_run=test_id))

    for key, folder in folders.items():
        parent_key = str(PurePath(key).parent)
        if parent_key != key and parent_key in folders:
            folders[parent_key].folders.append(folder)

    return flatten_test_files(list(files.values()), list(folders.values()))


def _folder_for(test_file: TestFile, folders: dict[str, TestFolder]) -> TestFolder:
    key = str(Path(test_file.full_path).parent)
    folder = folders.get(key)
    if folder is None:
        folder = TestFolder(name=key)
        folders[key] = folder
    return folder


def update_results(tests: Tests) -> None:
    """Rolls function outcomes up into suites, files and folders."""
    for flattened in tests.test_functions:
        fn = flattened.test_function
        if fn.status == TestStatus.RUNNING:
            # Started but never reported, e.g. the run was cancelled.
            fn.status = TestStatus.UNKNOWN
            fn.passed = None

    for test_file in tests.test_files:
        _update_upstream(test_file)
    for folder in tests.root_test_folders:
        _update_folder(folder)


def _update_upstream(node: TestFile | TestSuite) -> None:
    total_time = 0.0
    all_passed = True
    all_ran = True

    for fn in node.functions:
        total_time += fn.time
        if fn.passed is None:
            all_ran = False
        elif not fn.passed:
            all_passed = False

    for suite in node.suites:
        _update_upstream(suite)
        total_time += suite.time
        if suite.passed is None:
            all_ran = False
        elif not suite.passed:
            all_passed = False

    node.time = total_time
    _apply_rollup(node, all_ran, all_passed)


def _update_folder(folder: TestFolder) -> None:
    total_time = 0.0
    all_passed = True
    all_ran = True

    children: list[TestFile | TestFolder] = [*folder.test_files, *folder.folders]
    for child in children:
        if isinstance(child, TestFolder):
            _update_folder(child)
        total_time += child.time
        if child.passed is None:
            all_ran = False
        elif not child.passed:
            all_passed = False

    folder.time = total_time
    _apply_rollup(folder, all_ran, all_passed)


def _apply_rollup(node: TestFile | TestSuite | TestFolder, all_ran: bool, all_passed: bool) -> None:
    if all_ran:
        node.passed = all_passed
        node.status = TestStatus.PASS if all_passed else TestStatus.FAIL
    else:
        node.passed = None
        node.status = TestStatus.UNKNOWN


# 🔼⚙️
