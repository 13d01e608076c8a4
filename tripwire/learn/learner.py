"""The error learner — report failures, list them, export their tests.

One ``ErrorLearner`` operates on one project's registry. Each operation loads
the registry once, mutates it in memory, and saves it once at the end:

    detect → find similar → record → synthesize → save

Nothing here locks the registry. Two processes reporting into the same
project at the same time can lose updates.
"""

from __future__ import annotations

import copy
import logging
import time
import uuid
from collections import Counter
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..config import LEARN_DEFAULTS, LearnConfig
from ..storage import FileSystemRegistryStore, RegistryStore
from .detector import detect
from .exporter import FragmentExporter, TestFileWriter, WriteResult
from .models import (
    UNKNOWN_CATEGORY,
    FailureRecord,
    LintPatternEntry,
    Registry,
    RegistrySummary,
    RegistryView,
    TargetTestKind,
    TestFragment,
)
from .similarity import find_similar
from .synthesizer import TestSynthesizer
from .taxonomy import classify_category, resolve_category

logger = logging.getLogger(__name__)


def new_error_id() -> str:
    """Timestamp plus random suffix, e.g. ``err_1760680000000_3f9a1c2b7``."""
    return f"err_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class ErrorLearner:
    """Learns from one project's failures and turns them into regression tests."""

    def __init__(
        self,
        project_id: str,
        store: RegistryStore | None = None,
        config: LearnConfig | None = None,
    ):
        self.project_id = project_id
        self.config = config or LEARN_DEFAULTS
        self.store = store or FileSystemRegistryStore(self.config.registry_dir)
        self.synthesizer = TestSynthesizer(self.config)

    # =========================================================================
    # Reporting
    # =========================================================================

    def report_failure(
        self,
        message: str,
        category: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> FailureRecord:
        """Record a failure and try to synthesize a regression test for it.

        Unknown categories and unmatched text are stored like any other
        failure; they just get no test.
        """
        registry = self.store.load(self.project_id)
        context = dict(context or {})

        if category is None:
            category = classify_category(message)
            logger.info("Auto-detected category: %s", category)

        definition = resolve_category(category)
        if definition is None:
            if category != UNKNOWN_CATEGORY:
                context.setdefault("reported_category", category)
            logger.info("Unknown category %r; storing without pattern detection", category)

        record = FailureRecord(
            id=new_error_id(),
            message=message,
            category=definition.name if definition else UNKNOWN_CATEGORY,
            context=context,
            detected_pattern=detect(message, definition) if definition else None,
        )

        similar = find_similar(message, registry.errors)
        if similar:
            record.similar_errors = [e.id for e in similar]
            logger.info("Found %d similar error(s) in registry", len(similar))

        registry.errors.append(record)
        logger.info(
            "Error reported: %s (category=%s, pattern=%s)",
            record.id,
            record.category,
            record.detected_pattern.kind_label if record.detected_pattern else "unknown",
        )

        result = self.synthesizer.synthesize(record)
        if isinstance(result, TestFragment):
            registry.generated_tests.append(result)
        elif isinstance(result, LintPatternEntry):
            registry.lint_patterns.append(result)
        if result is not None:
            record.mark_test_generated()

        self._save(registry)
        return record

    # =========================================================================
    # Reading
    # =========================================================================

    def registry(self) -> Registry:
        return self.store.load(self.project_id)

    def list_failures(self) -> RegistryView:
        """Copies of all failures grouped by category, in report order."""
        registry = self.store.load(self.project_id)
        by_category: dict[str, list[FailureRecord]] = {}
        for record in registry.errors:
            by_category.setdefault(record.category, []).append(copy.deepcopy(record))
        return RegistryView(
            project_id=registry.project_id,
            total_errors=len(registry.errors),
            tests_generated=len(registry.generated_tests),
            by_category={k: tuple(v) for k, v in by_category.items()},
        )

    def summary(self) -> RegistrySummary:
        registry = self.store.load(self.project_id)
        return RegistrySummary(
            project_id=registry.project_id,
            total_errors=len(registry.errors),
            tests_generated=len(registry.generated_tests),
            lint_patterns=len(registry.lint_patterns),
            by_category=dict(Counter(e.category for e in registry.errors)),
            last_updated=registry.updated_at,
        )

    # =========================================================================
    # Export
    # =========================================================================

    def export_fragments(
        self, existing_by_kind: Mapping[TargetTestKind, str]
    ) -> dict[TargetTestKind, str]:
        """Text to append to each kind's test file, given its current text."""
        registry = self.store.load(self.project_id)
        return FragmentExporter(self.config).export(registry.generated_tests, existing_by_kind)

    def export_to_project(self, project_path: Path, dry_run: bool = True) -> WriteResult:
        registry = self.store.load(self.project_id)
        writer = TestFileWriter(self.config)
        return writer.write(registry.generated_tests, project_path, dry_run=dry_run)

    def _save(self, registry: Registry) -> None:
        registry.touch()
        self.store.save(self.project_id, registry)
