"""Data models for Tripwire Learn — failures, fragments, and the registry.

Every model round-trips through ``to_dict``/``from_dict`` so a registry can be
persisted as a single JSON document and reloaded into an equal structure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

SCHEMA_VERSION = "1.0"
UNKNOWN_CATEGORY = "unknown"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# Persisted registries are untrusted: reject wrong shapes with TypeError
_MISSING: Any = object()


def _mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _text(data: dict[str, Any], key: str, default: Any = _MISSING) -> str:
    value = data[key] if default is _MISSING else data.get(key, default)
    if not isinstance(value, str):
        raise TypeError(f"{key!r} must be a string, got {type(value).__name__}")
    return value


def _items(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise TypeError(f"{key!r} must be a list, got {type(value).__name__}")
    return value


# =============================================================================
# Taxonomy Enums
# =============================================================================


class TargetTestKind(str, Enum):
    """What kind of remedy a category's failures turn into."""

    BROWSER = "browser-runtime-check"
    LINT = "lint-rule"
    INTERPRETER = "interpreter-level-check"
    MANUAL = "manual"


class ExtractedKind(str, Enum):
    """What an extraction rule pulled out of the failure text."""

    UNDEFINED_IDENTIFIER = "undefined-identifier"
    NULL_ACCESS = "null-access"
    USE_BEFORE_INIT = "use-before-initialization"
    NOT_CALLABLE = "not-callable"
    UNEXPECTED_TOKEN = "unexpected-token"
    UNTERMINATED_LITERAL = "unterminated-literal"
    MISSING_MODULE = "missing-module"
    MISSING_EXPORT = "missing-export"
    UNDEFINED_NAME = "undefined-name"
    MISSING_ATTRIBUTE = "missing-attribute"
    TYPE_MISMATCH = "type-mismatch"
    ACCESSIBILITY_CRASH = "accessibility-crash"
    SEGFAULT = "segmentation-fault"
    STORAGE_ENGINE_ERROR = "storage-engine-error"
    MISSING_TABLE = "missing-table"


class FailureStatus(str, Enum):
    NEW = "new"
    TEST_GENERATED = "test-generated"


def coerce_kind(value: str) -> ExtractedKind | str:
    """Map a persisted kind back to the enum, keeping unknown kinds as raw text."""
    try:
        return ExtractedKind(value)
    except ValueError:
        return value


def coerce_target(value: str) -> TargetTestKind | str:
    try:
        return TargetTestKind(value)
    except ValueError:
        return value


# =============================================================================
# Category Taxonomy Rows
# =============================================================================


@dataclass(frozen=True)
class ExtractionRule:
    """A textual pattern plus the kind of information it extracts."""

    pattern: re.Pattern[str]
    extracted_kind: ExtractedKind


@dataclass(frozen=True)
class CategoryDefinition:
    name: str
    description: str
    target: TargetTestKind
    rules: tuple[ExtractionRule, ...]
    aliases: tuple[str, ...] = ()


# =============================================================================
# Registry Entries
# =============================================================================


@dataclass
class DetectedPattern:
    """The first extraction rule that matched a failure's text."""

    extracted_kind: ExtractedKind | str
    raw_match: str
    captures: list[str | None] = field(default_factory=list)
    target: TargetTestKind | str = TargetTestKind.MANUAL

    @property
    def first_capture(self) -> str | None:
        return self.captures[0] if self.captures else None

    @property
    def kind_label(self) -> str:
        return str(getattr(self.extracted_kind, "value", self.extracted_kind))

    def to_dict(self) -> dict[str, Any]:
        return {
            "extracted_kind": self.kind_label,
            "raw_match": self.raw_match,
            "captures": list(self.captures),
            "target": str(getattr(self.target, "value", self.target)),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectedPattern:
        data = _mapping(data, "detected_pattern")
        return cls(
            extracted_kind=coerce_kind(_text(data, "extracted_kind")),
            raw_match=_text(data, "raw_match", ""),
            captures=list(_items(data, "captures")),
            target=coerce_target(_text(data, "target", TargetTestKind.MANUAL.value)),
        )


@dataclass
class FailureRecord:
    """A single reported failure. ``message`` never changes once recorded."""

    id: str
    message: str
    category: str
    context: dict[str, Any] = field(default_factory=dict)
    reported_at: datetime = field(default_factory=utcnow)
    status: FailureStatus = FailureStatus.NEW
    detected_pattern: DetectedPattern | None = None
    similar_errors: list[str] = field(default_factory=list)
    test_generated: bool = False

    def mark_test_generated(self) -> None:
        self.test_generated = True
        self.status = FailureStatus.TEST_GENERATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "category": self.category,
            "context": dict(self.context),
            "reported_at": _format_time(self.reported_at),
            "status": self.status.value,
            "detected_pattern": self.detected_pattern.to_dict() if self.detected_pattern else None,
            "similar_errors": list(self.similar_errors),
            "test_generated": self.test_generated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FailureRecord:
        data = _mapping(data, "error record")
        pattern = data.get("detected_pattern")
        return cls(
            id=_text(data, "id"),
            message=_text(data, "message"),
            category=_text(data, "category", UNKNOWN_CATEGORY),
            context=dict(_mapping(data.get("context") or {}, "context")),
            reported_at=_parse_time(data.get("reported_at")) or utcnow(),
            status=FailureStatus(data.get("status", FailureStatus.NEW.value)),
            detected_pattern=DetectedPattern.from_dict(pattern) if pattern else None,
            similar_errors=list(_items(data, "similar_errors")),
            test_generated=bool(data.get("test_generated", False)),
        )


@dataclass
class TestFragment:
    """A named, generated unit of regression-test source."""

    __test__ = False  # not a pytest test class

    error_id: str
    name: str
    source_text: str
    test_kind: TargetTestKind
    generated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_id": self.error_id,
            "name": self.name,
            "source_text": self.source_text,
            "test_kind": self.test_kind.value,
            "generated_at": _format_time(self.generated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestFragment:
        data = _mapping(data, "generated test")
        return cls(
            error_id=_text(data, "error_id"),
            name=_text(data, "name"),
            source_text=_text(data, "source_text"),
            test_kind=TargetTestKind(data["test_kind"]),
            generated_at=_parse_time(data.get("generated_at")) or utcnow(),
        )


@dataclass
class LintPatternEntry:
    """A static-analysis rule that should stay enabled for the project."""

    error_id: str
    rule: str
    generated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_id": self.error_id,
            "rule": self.rule,
            "generated_at": _format_time(self.generated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LintPatternEntry:
        data = _mapping(data, "lint pattern")
        return cls(
            error_id=_text(data, "error_id"),
            rule=_text(data, "rule"),
            generated_at=_parse_time(data.get("generated_at")) or utcnow(),
        )


# =============================================================================
# Registry Aggregate
# =============================================================================


@dataclass
class Registry:
    """Everything learned for one project.

    Loaded wholesale, mutated in memory, and rewritten in full on save.
    There is no locking: two processes saving the same project concurrently
    lose updates (last writer wins). Callers must serialize invocations per
    project.
    """

    project_id: str
    schema_version: str = SCHEMA_VERSION
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    errors: list[FailureRecord] = field(default_factory=list)
    generated_tests: list[TestFragment] = field(default_factory=list)
    lint_patterns: list[LintPatternEntry] = field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = utcnow()

    def find(self, error_id: str) -> FailureRecord | None:
        return next((e for e in self.errors if e.id == error_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "schema_version": self.schema_version,
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "errors": [e.to_dict() for e in self.errors],
            "generated_tests": [t.to_dict() for t in self.generated_tests],
            "lint_patterns": [p.to_dict() for p in self.lint_patterns],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Registry:
        data = _mapping(data, "registry")
        return cls(
            project_id=_text(data, "project_id"),
            schema_version=_text(data, "schema_version", SCHEMA_VERSION),
            created_at=_parse_time(data.get("created_at")) or utcnow(),
            updated_at=_parse_time(data.get("updated_at")),
            errors=[FailureRecord.from_dict(e) for e in _items(data, "errors")],
            generated_tests=[TestFragment.from_dict(t) for t in _items(data, "generated_tests")],
            lint_patterns=[LintPatternEntry.from_dict(p) for p in _items(data, "lint_patterns")],
        )


# =============================================================================
# Read-Only Outputs
# =============================================================================


@dataclass(frozen=True)
class RegistryView:
    """Snapshot of a registry grouped by category, for display."""

    project_id: str
    total_errors: int
    tests_generated: int
    by_category: dict[str, tuple[FailureRecord, ...]]


@dataclass(frozen=True)
class RegistrySummary:
    project_id: str
    total_errors: int
    tests_generated: int
    lint_patterns: int
    by_category: dict[str, int]
    last_updated: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "total_errors": self.total_errors,
            "tests_generated": self.tests_generated,
            "lint_patterns": self.lint_patterns,
            "by_category": dict(self.by_category),
            "last_updated": _format_time(self.last_updated),
        }
