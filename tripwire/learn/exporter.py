"""Fragment export — append synthesized tests to a project's test files.

A fragment is skipped when its name already occurs anywhere in the target
file. The check is a plain substring test: re-running export never
duplicates a fragment, but a renamed duplicate or a hand-deleted body whose
name survives in a comment goes unnoticed.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable, Mapping
from pathlib import Path

from ..config import LEARN_DEFAULTS, LearnConfig
from .models import TargetTestKind, TestFragment

logger = logging.getLogger(__name__)

# Marker delimiters for Tripwire-managed blocks
_MARKER_START = "tripwire:generated:start"
_MARKER_END = "tripwire:generated:end"

_COMMENT_PREFIX: dict[TargetTestKind, str] = {
    TargetTestKind.BROWSER: "//",
    TargetTestKind.INTERPRETER: "#",
}

# Kinds that have a test file; lint and manual kinds never export
EXPORTABLE_KINDS: tuple[TargetTestKind, ...] = tuple(_COMMENT_PREFIX)

_BROWSER_HEADER = """// @ts-check
const { test, expect } = require('@playwright/test');
const path = require('path');

/**
 * Auto-generated Regression Tests
 *
 * These tests were generated by Tripwire from previously reported failures
 * to keep them from recurring. Regenerate with:
 *   tripwire export --project <name> --apply
 */
"""

_PYTHON_HEADER = '''"""
Auto-generated Regression Tests

These tests were generated by Tripwire from previously reported failures
to keep them from recurring. Regenerate with:
    tripwire export --project <name> --apply
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "%(source)s"))
'''


def select_new(fragments: Iterable[TestFragment], existing_text: str) -> list[TestFragment]:
    """Fragments whose name does not yet appear in ``existing_text``.

    Duplicates within ``fragments`` collapse to the first occurrence.
    """
    selected: list[TestFragment] = []
    seen: set[str] = set()
    for fragment in fragments:
        if fragment.name in seen or fragment.name in existing_text:
            continue
        seen.add(fragment.name)
        selected.append(fragment)
    return selected


class FragmentExporter:
    """Renders the text to append to each kind's test file."""

    def __init__(self, config: LearnConfig | None = None):
        self.config = config or LEARN_DEFAULTS

    def export(
        self,
        fragments: Iterable[TestFragment],
        existing_by_kind: Mapping[TargetTestKind, str],
    ) -> dict[TargetTestKind, str]:
        """Text to append per test kind; kinds with nothing new are omitted."""
        fragments = list(fragments)
        appended: dict[TargetTestKind, str] = {}
        for kind in EXPORTABLE_KINDS:
            of_kind = [f for f in fragments if f.test_kind == kind]
            if not of_kind:
                continue
            existing = existing_by_kind.get(kind, "")
            new = select_new(of_kind, existing)
            if not new:
                logger.info("All %s regression tests already exported", kind.value)
                continue
            appended[kind] = self.render(kind, new, existing)
        return appended

    def render(self, kind: TargetTestKind, fragments: list[TestFragment], existing: str) -> str:
        prefix = _COMMENT_PREFIX[kind]
        lines: list[str] = []
        if not existing.strip():
            lines.append(self._header(kind))
        elif not existing.endswith("\n"):
            lines.append("")

        lines.append(f"{prefix} {_MARKER_START} ({len(fragments)} test(s))")
        if kind == TargetTestKind.BROWSER:
            lines.append("test.describe('Regression Tests - Error Prevention', () => {")
            lines.extend(f.source_text for f in fragments)
            lines.append("});")
        else:
            lines.extend(f.source_text for f in fragments)
        lines.append(f"{prefix} {_MARKER_END}")
        return "\n".join(lines) + "\n"

    def _header(self, kind: TargetTestKind) -> str:
        if kind == TargetTestKind.BROWSER:
            return _BROWSER_HEADER
        source = posixpath.relpath(
            self.config.python_source_dir,
            posixpath.dirname(self.config.python_test_file) or ".",
        )
        return _PYTHON_HEADER % {"source": source}


# =============================================================================
# Write Result
# =============================================================================


class WriteResult:
    """Result of a write operation."""

    def __init__(self) -> None:
        self.files_written: list[Path] = []
        self.content_by_file: dict[Path, str] = {}
        self.appended_by_file: dict[Path, str] = {}
        self.dry_run: bool = True

    def add(self, path: Path, content: str, appended: str) -> None:
        self.files_written.append(path)
        self.content_by_file[path] = content
        self.appended_by_file[path] = appended


# =============================================================================
# Test File Writer
# =============================================================================


class TestFileWriter:
    """Merges new fragments into a project's regression test files."""

    __test__ = False  # not a pytest test class

    def __init__(self, config: LearnConfig | None = None):
        self.config = config or LEARN_DEFAULTS
        self.exporter = FragmentExporter(self.config)

    def resolve_path(self, kind: TargetTestKind, project_path: Path) -> Path:
        if kind == TargetTestKind.BROWSER:
            return project_path / self.config.browser_test_file
        return project_path / self.config.python_test_file

    def write(
        self,
        fragments: Iterable[TestFragment],
        project_path: Path,
        dry_run: bool = True,
    ) -> WriteResult:
        result = WriteResult()
        result.dry_run = dry_run

        paths = {kind: self.resolve_path(kind, project_path) for kind in EXPORTABLE_KINDS}
        existing = {kind: _read_existing(path) for kind, path in paths.items()}
        appended = self.exporter.export(fragments, existing)

        for kind, text in appended.items():
            path = paths[kind]
            content = existing[kind] + text
            result.add(path, content, text)
            if not dry_run:
                # Append only: bytes already in the file are never rewritten
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "a", encoding="utf-8") as f:
                    f.write(text)
                logger.info("Exported %s regression test block to %s", kind.value, path)

        return result


def _read_existing(path: Path) -> str:
    """Current file text; absent and unreadable files both count as empty.

    Bytes that are not UTF-8 are replaced, so names already in such a file
    still match and its contents are not mistaken for an empty file.
    """
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Could not read %s, treating it as empty: %s", path, e)
        return ""
