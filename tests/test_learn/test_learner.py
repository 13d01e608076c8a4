"""End-to-end tests for ErrorLearner: report → detect → synthesize → persist → export.

Key behaviors tested:
- Literal detection cases land in the registry with the right status
- Unknown categories are stored, never raised
- Similar failures are linked at report time
- Export into a project is idempotent across runs
"""

from __future__ import annotations

import pytest

from tripwire.config import LearnConfig
from tripwire.learn.learner import ErrorLearner, new_error_id
from tripwire.learn.models import (
    ExtractedKind,
    FailureStatus,
    TargetTestKind,
)
from tripwire.storage import FileSystemRegistryStore, InMemoryRegistryStore


@pytest.fixture
def config(tmp_path) -> LearnConfig:
    return LearnConfig(registry_dir=tmp_path / "registry")


@pytest.fixture
def learner(config) -> ErrorLearner:
    return ErrorLearner("will-generator", config=config)


class TestReportFailure:
    def test_undefined_identifier_generates_browser_test(self, learner):
        record = learner.report_failure("fooBar is not defined", "interpreted-runtime")

        assert record.detected_pattern.extracted_kind == ExtractedKind.UNDEFINED_IDENTIFIER
        assert record.detected_pattern.captures[0] == "fooBar"
        assert record.test_generated is True
        assert record.status == FailureStatus.TEST_GENERATED

        registry = learner.registry()
        assert [t.name for t in registry.generated_tests] == ["variable_fooBar_accessible"]
        assert registry.generated_tests[0].error_id == record.id

    def test_missing_module_generates_interpreter_test(self, learner):
        record = learner.report_failure(
            "ModuleNotFoundError: No module named 'requests'", "module-import"
        )
        assert record.detected_pattern.captures[0] == "requests"
        fragment = learner.registry().generated_tests[0]
        assert fragment.test_kind == TargetTestKind.INTERPRETER

    def test_segfault_is_detected_but_not_synthesized(self, learner):
        record = learner.report_failure("Segmentation fault", "process-crash")

        assert record.detected_pattern.extracted_kind == ExtractedKind.SEGFAULT
        assert record.test_generated is False
        assert record.status == FailureStatus.NEW
        assert learner.registry().generated_tests == []

    def test_syntax_error_records_lint_pattern(self, learner):
        record = learner.report_failure("SyntaxError: Unexpected token '<'", "interpreted-syntax")

        registry = learner.registry()
        assert record.test_generated is True
        assert [p.rule for p in registry.lint_patterns] == ["no-undef"]
        assert registry.generated_tests == []

    def test_unknown_category_is_stored_without_pattern(self, learner):
        record = learner.report_failure("fooBar is not defined", "totally-unrecognized")

        assert record.detected_pattern is None
        assert record.test_generated is False
        assert record.status == FailureStatus.NEW
        assert record.category == "unknown"
        assert record.context["reported_category"] == "totally-unrecognized"

        stored = learner.registry().errors
        assert len(stored) == 1
        assert stored[0].detected_pattern is None

    def test_unmatched_text_is_stored(self, learner):
        record = learner.report_failure("something went sideways", "interpreted-runtime")
        assert record.category == "interpreted-runtime"
        assert record.detected_pattern is None
        assert record.test_generated is False

    def test_category_is_auto_detected(self, learner):
        record = learner.report_failure("NameError: name 'cfg' is not defined")
        assert record.category == "general-runtime"
        assert record.detected_pattern.extracted_kind == ExtractedKind.UNDEFINED_NAME

    def test_alias_is_normalized(self, learner):
        record = learner.report_failure("no such table: invoices", "database")
        assert record.category == "storage"
        assert record.detected_pattern.captures == ["invoices"]

    def test_context_is_kept(self, learner):
        record = learner.report_failure(
            "fooBar is not defined", "interpreted-runtime", {"file": "init.js", "line": 4}
        )
        stored = learner.registry().find(record.id)
        assert stored.context == {"file": "init.js", "line": 4}

    def test_similar_errors_linked_at_report_time(self, learner):
        first = learner.report_failure("fooBar is not defined in init.js", "interpreted-runtime")
        second = learner.report_failure("fooBar is not defined in main.js", "interpreted-runtime")
        unrelated = learner.report_failure(
            "ModuleNotFoundError: No module named 'requests'", "module-import"
        )

        assert first.similar_errors == []
        assert second.similar_errors == [first.id]
        assert unrelated.similar_errors == []
        # Earlier records are not revised
        assert learner.registry().find(first.id).similar_errors == []

    def test_ids_are_unique(self, learner):
        records = [learner.report_failure("fooBar is not defined", "js-runtime") for _ in range(5)]
        assert len({r.id for r in records}) == 5

    def test_updated_at_bumped_on_save(self, learner):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        first = learner.registry().updated_at
        learner.report_failure("Segmentation fault", "process-crash")
        assert learner.registry().updated_at >= first

    def test_registry_persists_to_project_file(self, learner, config):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        store = FileSystemRegistryStore(config.registry_dir)
        assert store.path_for("will-generator").exists()
        assert len(store.load("will-generator").errors) == 1

    @pytest.mark.parametrize(
        "payload",
        [
            "null",
            '"oops"',
            '{"project_id": "will-generator", "errors": [{"id": "a", "message": null}]}',
        ],
    )
    def test_report_recovers_from_malformed_registry(self, learner, config, payload):
        path = FileSystemRegistryStore(config.registry_dir).path_for("will-generator")
        path.parent.mkdir(parents=True)
        path.write_text(payload)

        record = learner.report_failure("fooBar is not defined", "interpreted-runtime")

        assert record.test_generated is True
        assert [e.id for e in learner.registry().errors] == [record.id]

    def test_projects_are_independent(self):
        store = InMemoryRegistryStore()
        ErrorLearner("alpha", store=store).report_failure("fooBar is not defined", "js-runtime")
        beta = ErrorLearner("beta", store=store)
        record = beta.report_failure("fooBar is not defined", "js-runtime")
        assert record.similar_errors == []
        assert beta.list_failures().total_errors == 1


class TestListAndSummary:
    def test_list_groups_by_category_in_order(self, learner):
        a = learner.report_failure("fooBar is not defined", "interpreted-runtime")
        b = learner.report_failure("Segmentation fault", "process-crash")
        c = learner.report_failure("renderTab is not a function", "interpreted-runtime")

        view = learner.list_failures()

        assert view.total_errors == 3
        assert view.tests_generated == 2
        assert [r.id for r in view.by_category["interpreted-runtime"]] == [a.id, c.id]
        assert [r.id for r in view.by_category["process-crash"]] == [b.id]

    def test_view_is_read_only_copy(self, learner):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        view = learner.list_failures()
        view.by_category["interpreted-runtime"][0].status = FailureStatus.NEW
        assert learner.registry().errors[0].status == FailureStatus.TEST_GENERATED

    def test_empty_registry(self, learner):
        view = learner.list_failures()
        assert view.total_errors == 0
        assert view.by_category == {}

    def test_summary(self, learner):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        learner.report_failure("Unexpected token", "interpreted-syntax")
        learner.report_failure("Segmentation fault", "process-crash")

        summary = learner.summary()

        assert summary.total_errors == 3
        assert summary.tests_generated == 1
        assert summary.lint_patterns == 1
        assert summary.by_category == {
            "interpreted-runtime": 1,
            "interpreted-syntax": 1,
            "process-crash": 1,
        }
        assert summary.last_updated is not None
        assert summary.to_dict()["project_id"] == "will-generator"


class TestExport:
    def test_export_fragments_by_kind(self, learner):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        learner.report_failure("ModuleNotFoundError: No module named 'yaml'", "module-import")

        appended = learner.export_fragments({})

        assert "variable_fooBar_accessible" in appended[TargetTestKind.BROWSER]
        assert "test_module_yaml_importable" in appended[TargetTestKind.INTERPRETER]

    def test_export_skips_names_already_present(self, learner):
        learner.report_failure("ModuleNotFoundError: No module named 'yaml'", "module-import")
        existing = {TargetTestKind.INTERPRETER: "def test_module_yaml_importable():\n    pass\n"}
        assert learner.export_fragments(existing) == {}

    def test_equivalent_failures_export_once(self, learner, tmp_path):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        learner.report_failure("Uncaught ReferenceError: fooBar is not defined", "js-runtime")

        project = tmp_path / "project"
        project.mkdir()
        learner.export_to_project(project, dry_run=False)

        spec = (project / "tests" / "frontend" / "test_regression_errors.spec.js").read_text()
        assert spec.count("test('regression: variable_fooBar_accessible'") == 1

    def test_export_to_project_twice_is_stable(self, learner, tmp_path):
        learner.report_failure("fooBar is not defined", "interpreted-runtime")
        learner.report_failure("NameError: name 'cfg' is not defined", "general-runtime")
        project = tmp_path / "project"
        project.mkdir()

        learner.export_to_project(project, dry_run=False)
        first = {p: p.read_text() for p in project.rglob("*.*")}
        learner.export_to_project(project, dry_run=False)
        second = {p: p.read_text() for p in project.rglob("*.*")}

        assert first == second
        assert len(first) == 2


def test_new_error_id_format():
    error_id = new_error_id()
    prefix, millis, suffix = error_id.split("_")
    assert prefix == "err"
    assert millis.isdigit()
    assert len(suffix) == 9
