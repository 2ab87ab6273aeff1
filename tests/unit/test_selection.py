# tests/unit/test_selection.py

"""Tests for turning a selection into launcher invocations."""

from testrelay.models import TestFolder, TestFunction, TestSuite, TestsToRun
from testrelay.pyunit import InvocationUnit, build_selection, resolve_invocations


def test_no_selection_runs_everything(sample_tests):
    assert resolve_invocations(sample_tests) == [InvocationUnit()]
    assert resolve_invocations(sample_tests, TestsToRun()) == [InvocationUnit()]
    assert InvocationUnit().runs_everything


def test_unit_count_per_selector(sample_tests, project_root):
    suites = [s.test_suite for s in sample_tests.test_suites]
    functions = [f.test_function for f in sample_tests.test_functions]

    assert len(resolve_invocations(sample_tests, TestsToRun(test_file=sample_tests.test_files))) == 2
    assert len(resolve_invocations(sample_tests, TestsToRun(test_suite=suites))) == 3
    assert len(resolve_invocations(sample_tests, TestsToRun(test_function=functions))) == 5
    folder = TestFolder(name=str(project_root / "pkg"))
    assert len(resolve_invocations(sample_tests, TestsToRun(test_folder=[folder]))) == 1


def test_selectors_combine_in_fixed_order(sample_tests, project_root):
    math_file, io_file = sample_tests.test_files
    function = sample_tests.find_function("test_math.TestSub.test_one").test_function
    suite = sample_tests.test_suites[0].test_suite
    selection = TestsToRun(
        test_folder=[TestFolder(name=str(project_root / "pkg"))],
        test_file=[math_file],
        test_suite=[suite],
        test_function=[function],
    )

    units = resolve_invocations(sample_tests, selection)

    assert [u.test_id for u in units] == [
        "pkg.test_io",
        "test_math",
        "test_math.TestAdd",
        "test_math.TestSub.test_one",
    ]
    assert units[0].test_file == io_file.full_path
    assert units[2].test_file == math_file.full_path
    assert units[3].test_file == math_file.full_path


def test_folder_matching_nothing_yields_no_units(sample_tests, project_root):
    selection = TestsToRun(test_folder=[TestFolder(name=str(project_root / "elsewhere"))])
    assert resolve_invocations(sample_tests, selection) == []


def test_items_outside_the_model_run_without_file_hint(sample_tests):
    selection = TestsToRun(
        test_suite=[TestSuite(name="Ghost", name_to_run="ghost.Ghost")],
        test_function=[TestFunction(name="test_boo", name_to_run="ghost.Ghost.test_boo")],
    )

    assert resolve_invocations(sample_tests, selection) == [
        InvocationUnit(None, "ghost.Ghost"),
        InvocationUnit(None, "ghost.Ghost.test_boo"),
    ]


class TestBuildSelection:
    def test_maps_names_and_paths_to_model_entities(self, sample_tests, project_root):
        selection, unmatched = build_selection(
            sample_tests,
            project_root,
            folders=["pkg"],
            files=["test_math.py"],
            suites=["pkg.test_io.TestRead"],
            functions=["test_math.TestAdd.test_two"],
        )

        assert unmatched == []
        assert selection.test_folder[0].name == str(project_root / "pkg")
        assert selection.test_file == [sample_tests.test_files[0]]
        assert selection.test_suite[0].name_to_run == "pkg.test_io.TestRead"
        assert selection.test_function[0] is sample_tests.find_function("test_math.TestAdd.test_two").test_function

    def test_files_can_be_selected_by_module_id(self, sample_tests, project_root):
        selection, _ = build_selection(sample_tests, project_root, files=["pkg.test_io"])
        assert selection.test_file == [sample_tests.test_files[1]]

    def test_reports_unmatched_names(self, sample_tests, project_root):
        selection, unmatched = build_selection(
            sample_tests, project_root, files=["nope.py"], suites=["x.Y"], functions=["x.Y.test_z"]
        )

        assert unmatched == ["nope.py", "x.Y", "x.Y.test_z"]
        assert selection.is_empty
