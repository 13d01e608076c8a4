"""Tests for registry stores and serialization round-trips."""

import json
from datetime import datetime, timezone

import pytest

from tripwire.learn.models import (
    SCHEMA_VERSION,
    DetectedPattern,
    ExtractedKind,
    FailureRecord,
    FailureStatus,
    LintPatternEntry,
    Registry,
    TargetTestKind,
    TestFragment,
)
from tripwire.storage import (
    FileSystemRegistryStore,
    InMemoryRegistryStore,
    RegistryStore,
    create_store,
)
from tripwire.storage.filesystem import registry_filename


def _populated_registry() -> Registry:
    when = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
    registry = Registry(project_id="will-generator", created_at=when)
    registry.errors = [
        FailureRecord(
            id="err_1_aaa",
            message="fooBar is not defined",
            category="interpreted-runtime",
            context={"file": "init.js", "line": 12},
            reported_at=when,
            status=FailureStatus.TEST_GENERATED,
            detected_pattern=DetectedPattern(
                extracted_kind=ExtractedKind.UNDEFINED_IDENTIFIER,
                raw_match="fooBar is not defined",
                captures=["fooBar"],
                target=TargetTestKind.BROWSER,
            ),
            test_generated=True,
        ),
        FailureRecord(
            id="err_2_bbb",
            message="fooBar is not defined in main.js",
            category="interpreted-runtime",
            reported_at=when,
            similar_errors=["err_1_aaa"],
        ),
        FailureRecord(
            id="err_3_ccc",
            message="Segmentation fault",
            category="unknown",
            reported_at=when,
        ),
    ]
    registry.generated_tests = [
        TestFragment(
            error_id="err_1_aaa",
            name="variable_fooBar_accessible",
            source_text="\n    test('regression: variable_fooBar_accessible', ...);",
            test_kind=TargetTestKind.BROWSER,
            generated_at=when,
        )
    ]
    registry.lint_patterns = [LintPatternEntry(error_id="err_x", rule="no-undef", generated_at=when)]
    registry.touch()
    return registry


class TestSerialization:
    def test_round_trip_preserves_everything(self):
        registry = _populated_registry()
        restored = Registry.from_dict(json.loads(json.dumps(registry.to_dict())))
        assert restored == registry

    def test_schema_version_written(self):
        assert Registry(project_id="p").to_dict()["schema_version"] == SCHEMA_VERSION

    def test_unknown_kind_survives_round_trip(self):
        pattern = DetectedPattern(extracted_kind="retired-kind", raw_match="x", captures=[])
        restored = DetectedPattern.from_dict(pattern.to_dict())
        assert restored.extracted_kind == "retired-kind"


class TestFileSystemRegistryStore:
    def test_missing_file_gives_empty_registry(self, tmp_path):
        registry = FileSystemRegistryStore(tmp_path).load("fresh")
        assert registry.project_id == "fresh"
        assert registry.errors == []
        assert registry.created_at is not None

    def test_save_then_load(self, tmp_path):
        store = FileSystemRegistryStore(tmp_path / "nested" / "dir")
        registry = _populated_registry()

        store.save("will-generator", registry)
        loaded = store.load("will-generator")

        assert loaded == registry
        assert [e.id for e in loaded.errors] == ["err_1_aaa", "err_2_bbb", "err_3_ccc"]

    def test_one_file_per_project(self, tmp_path):
        store = FileSystemRegistryStore(tmp_path)
        store.save("alpha", Registry(project_id="alpha"))
        store.save("beta", Registry(project_id="beta"))
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "alpha-errors.json",
            "beta-errors.json",
        ]

    def test_corrupt_file_falls_back_to_empty(self, tmp_path, caplog):
        store = FileSystemRegistryStore(tmp_path)
        store.path_for("broken").write_text("{not json")

        registry = store.load("broken")

        assert registry.errors == []
        assert "starting fresh" in caplog.text

    def test_wrong_shape_falls_back_to_empty(self, tmp_path):
        store = FileSystemRegistryStore(tmp_path)
        store.path_for("shape").write_text(json.dumps({"errors": [{"nope": 1}]}))
        assert store.load("shape").errors == []

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "oops",
            {"project_id": "shape", "errors": [{"id": "a", "message": None}]},
            {"project_id": "shape", "errors": [{"id": "a", "message": 42}]},
            {"project_id": "shape", "errors": [None]},
            {"project_id": "shape", "errors": {"id": "a"}},
            {"project_id": "shape", "generated_tests": ["not-a-fragment"]},
        ],
    )
    def test_malformed_registry_falls_back_to_empty(self, tmp_path, caplog, payload):
        store = FileSystemRegistryStore(tmp_path)
        store.path_for("shape").write_text(json.dumps(payload))

        with caplog.at_level("WARNING"):
            registry = store.load("shape")

        assert registry.project_id == "shape"
        assert registry.errors == []
        assert registry.generated_tests == []
        assert "starting fresh" in caplog.text

    def test_non_utf8_file_falls_back_to_empty(self, tmp_path):
        store = FileSystemRegistryStore(tmp_path)
        store.path_for("bytes").write_bytes(b'{"project_id": "caf\xe9"}')
        assert store.load("bytes").project_id == "bytes"

    def test_non_ascii_text_round_trips(self, tmp_path):
        store = FileSystemRegistryStore(tmp_path)
        registry = Registry(project_id="p")
        registry.errors.append(FailureRecord(id="e1", message="naïve façade ☃", category="x"))
        store.save("p", registry)
        assert store.load("p").errors[0].message == "naïve façade ☃"

    def test_no_temp_files_left_behind(self, tmp_path):
        store = FileSystemRegistryStore(tmp_path)
        store.save("p", _populated_registry())
        assert [p.name for p in tmp_path.iterdir()] == ["p-errors.json"]

    def test_save_failure_propagates(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = FileSystemRegistryStore(blocker)
        with pytest.raises(OSError):
            store.save("p", Registry(project_id="p"))

    def test_project_ids_map_to_safe_names(self):
        assert registry_filename("will-generator") == "will-generator-errors.json"
        assert registry_filename("../etc/passwd") == ".._etc_passwd-errors.json"
        assert registry_filename("a b") == registry_filename("a b")


class TestInMemoryRegistryStore:
    def test_round_trip(self):
        store = InMemoryRegistryStore()
        registry = _populated_registry()
        store.save("p", registry)
        assert store.load("p") == registry
        assert "p" in store

    def test_loaded_registry_is_a_copy(self):
        store = InMemoryRegistryStore()
        store.save("p", Registry(project_id="p"))
        store.load("p").errors.append(FailureRecord(id="x", message="m", category="unknown"))
        assert store.load("p").errors == []


class TestCreateStore:
    def test_memory_url(self):
        assert isinstance(create_store("memory://"), InMemoryRegistryStore)

    def test_file_url(self, tmp_path):
        store = create_store(f"file://{tmp_path}")
        assert isinstance(store, FileSystemRegistryStore)
        assert store.root == tmp_path

    def test_bare_path(self, tmp_path):
        assert isinstance(create_store(str(tmp_path)), FileSystemRegistryStore)

    def test_unknown_scheme(self):
        with pytest.raises(ValueError):
            create_store("redis://localhost")

    def test_stores_satisfy_protocol(self, tmp_path):
        assert isinstance(InMemoryRegistryStore(), RegistryStore)
        assert isinstance(FileSystemRegistryStore(tmp_path), RegistryStore)
