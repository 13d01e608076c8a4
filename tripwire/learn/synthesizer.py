"""Test synthesis — turn a detected pattern into a regression-test fragment.

Dispatch is a closed table over ``(TargetTestKind, ExtractedKind)``. Every
rule in the taxonomy must appear either in ``_STRATEGIES`` or in
``_UNSYNTHESIZABLE``; the module refuses to import otherwise, so a new
category cannot silently fall through to "no test".

The browser checks are heuristics. They guard against a failure coming
back, they do not prove it is gone:
- undefined-identifier accepts a bare reference, a ``get<Name>`` accessor,
  or a ``window`` property, because fixes often swap a variable for an
  accessor of a predictable name.
- use-before-initialization only probes global functions whose names hint
  at touching the variable, and ignores their unrelated errors.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Callable
from typing import Union

from ..config import LEARN_DEFAULTS, LearnConfig
from .models import (
    DetectedPattern,
    ExtractedKind,
    FailureRecord,
    LintPatternEntry,
    TargetTestKind,
    TestFragment,
    coerce_kind,
    coerce_target,
)
from .taxonomy import CATEGORIES

logger = logging.getLogger(__name__)

SynthesisResult = Union[TestFragment, LintPatternEntry, None]

LINT_RULE = "no-undef"

_NON_WORD = re.compile(r"\W+")


def fragment_name(kind: ExtractedKind, capture: str) -> str:
    """Deterministic fragment name from the extraction kind and first capture."""
    slug = _NON_WORD.sub("_", capture).strip("_")
    template = _NAME_TEMPLATES[kind]
    return template % slug


_NAME_TEMPLATES: dict[ExtractedKind, str] = {
    ExtractedKind.UNDEFINED_IDENTIFIER: "variable_%s_accessible",
    ExtractedKind.USE_BEFORE_INIT: "variable_%s_no_tdz",
    ExtractedKind.NOT_CALLABLE: "function_%s_exists",
    ExtractedKind.MISSING_MODULE: "test_module_%s_importable",
    ExtractedKind.UNDEFINED_NAME: "test_variable_%s_defined",
}


# =============================================================================
# Fragment Templates
# =============================================================================

_BROWSER_TEST = """
    test('regression: %(name)s', async ({ page }) => {
        const htmlPath = path.resolve(__dirname, '%(page)s');
        await page.goto(`file://${htmlPath}`);
        await page.waitForLoadState('domcontentloaded');
        await page.waitForTimeout(1000);
%(check)s
    });"""

_ACCESSIBLE_CHECK = """
        // Original error: "%(var)s is not defined"
        const isAccessible = await page.evaluate(() => {
            try {
                if (typeof window.%(getter)s === 'function') {
                    window.%(getter)s();
                    return true;
                }
                if (typeof %(var)s !== 'undefined') {
                    return true;
                }
                if (typeof window.%(var)s !== 'undefined') {
                    return true;
                }
                return false;
            } catch (e) {
                console.error('Access check failed:', e.message);
                return false;
            }
        });
        expect(isAccessible, '%(var)s should be accessible (directly or via %(getter)s)').toBe(true);"""

_NO_TDZ_CHECK = """
        // Original error: "Cannot access '%(var)s' before initialization"
        const noTdzError = await page.evaluate(() => {
            const isTdz = (msg) =>
                String(msg).includes('%(var)s') && String(msg).includes('before initialization');
            const pageErrors = [];
            window.addEventListener('error', (event) => pageErrors.push(event.message));

            const hints = %(hints)s;
            const fnNames = Object.keys(window).filter(k =>
                typeof window[k] === 'function' && hints.some(h => k.includes(h))
            );
            for (const fn of fnNames.slice(0, %(limit)d)) {
                try {
                    window[fn]();
                } catch (e) {
                    if (e && isTdz(e.message)) {
                        return false;
                    }
                }
            }
            return !pageErrors.some(isTdz);
        });
        expect(noTdzError, '%(var)s should not cause TDZ errors').toBe(true);"""

_CALLABLE_CHECK = """
        // Original error: "%(var)s is not a function"
        const isFunction = await page.evaluate(() => {
            return typeof window.%(var)s === 'function';
        });
        expect(isFunction, '%(var)s should be a function').toBe(true);"""

_IMPORT_TEST = '''
def %(name)s():
    """Regression test: ensure %(module)s module is importable"""
    try:
        import %(module)s  # noqa: F401
    except ImportError:
        pytest.fail("%(module)s module should be importable")
'''

_PLACEHOLDER_TEST = '''
@pytest.mark.skip(reason="needs completion: enclosing scope of '%(var)s' is unknown")
def %(name)s():
    """Regression test: ensure %(var)s is defined"""
    # Import the module that should define %(var)s and assert it resolves.
    pass
'''


# =============================================================================
# Synthesizer
# =============================================================================


class TestSynthesizer:
    """Produces one fragment (or lint entry) per detected pattern."""

    __test__ = False  # not a pytest test class

    def __init__(self, config: LearnConfig | None = None):
        self.config = config or LEARN_DEFAULTS

    def synthesize(self, record: FailureRecord) -> SynthesisResult:
        pattern = record.detected_pattern
        if pattern is None:
            logger.info("Cannot auto-generate test for %s: no pattern detected", record.id)
            return None

        key = (coerce_target(pattern.target), coerce_kind(pattern.extracted_kind))
        strategy = _STRATEGIES.get(key)  # type: ignore[arg-type]
        if strategy is not None:
            return strategy(self, record, pattern)

        if key in _UNSYNTHESIZABLE:
            logger.info(
                "Manual intervention required for %s (%s/%s)",
                record.id,
                _value(key[0]),
                _value(key[1]),
            )
        else:
            logger.warning(
                "Unknown pattern type %s for %s tests (error %s)",
                _value(key[1]),
                _value(key[0]),
                record.id,
            )
        return None

    # --- browser checks -----------------------------------------------------

    def _browser_test(self, name: str, check: str) -> str:
        page = posixpath.relpath(
            self.config.page_path, posixpath.dirname(self.config.browser_test_file) or "."
        )
        return _BROWSER_TEST % {"name": name, "page": page, "check": check}

    def _accessible(self, record: FailureRecord, pattern: DetectedPattern) -> SynthesisResult:
        var = _identifier(pattern)
        if var is None:
            return None
        name = fragment_name(ExtractedKind.UNDEFINED_IDENTIFIER, var)
        getter = f"get{var[0].upper()}{var[1:]}"
        check = _ACCESSIBLE_CHECK % {"var": var, "getter": getter}
        return self._fragment(record, name, self._browser_test(name, check), TargetTestKind.BROWSER)

    def _no_tdz(self, record: FailureRecord, pattern: DetectedPattern) -> SynthesisResult:
        var = _identifier(pattern)
        if var is None:
            return None
        name = fragment_name(ExtractedKind.USE_BEFORE_INIT, var)
        hints = "[" + ", ".join(f"'{h}'" for h in self.config.probe_substrings) + "]"
        check = _NO_TDZ_CHECK % {"var": var, "hints": hints, "limit": self.config.probe_limit}
        return self._fragment(record, name, self._browser_test(name, check), TargetTestKind.BROWSER)

    def _callable(self, record: FailureRecord, pattern: DetectedPattern) -> SynthesisResult:
        var = _identifier(pattern)
        if var is None:
            return None
        name = fragment_name(ExtractedKind.NOT_CALLABLE, var)
        check = _CALLABLE_CHECK % {"var": var}
        return self._fragment(record, name, self._browser_test(name, check), TargetTestKind.BROWSER)

    # --- lint ----------------------------------------------------------------

    def _lint(self, record: FailureRecord, pattern: DetectedPattern) -> SynthesisResult:
        logger.info("Added lint pattern check %s for %s", LINT_RULE, record.id)
        return LintPatternEntry(error_id=record.id, rule=LINT_RULE)

    # --- interpreter checks --------------------------------------------------

    def _importable(self, record: FailureRecord, pattern: DetectedPattern) -> SynthesisResult:
        module = pattern.first_capture
        if not module:
            return None
        name = fragment_name(ExtractedKind.MISSING_MODULE, module)
        source = _IMPORT_TEST % {"name": name, "module": module}
        return self._fragment(record, name, source, TargetTestKind.INTERPRETER)

    def _placeholder(self, record: FailureRecord, pattern: DetectedPattern) -> SynthesisResult:
        var = _identifier(pattern)
        if var is None:
            return None
        name = fragment_name(ExtractedKind.UNDEFINED_NAME, var)
        source = _PLACEHOLDER_TEST % {"name": name, "var": var}
        return self._fragment(record, name, source, TargetTestKind.INTERPRETER)

    def _fragment(
        self, record: FailureRecord, name: str, source: str, kind: TargetTestKind
    ) -> TestFragment:
        logger.info("Generated %s test %s for %s", kind.value, name, record.id)
        return TestFragment(error_id=record.id, name=name, source_text=source, test_kind=kind)


def _value(member: object) -> object:
    return getattr(member, "value", member)


def _identifier(pattern: DetectedPattern) -> str | None:
    capture = pattern.first_capture
    if not capture or not capture.isidentifier():
        logger.warning("Capture %r is not an identifier; skipping synthesis", capture)
        return None
    return capture


_Strategy = Callable[[TestSynthesizer, FailureRecord, DetectedPattern], SynthesisResult]

_STRATEGIES: dict[tuple[TargetTestKind, ExtractedKind], _Strategy] = {
    (TargetTestKind.BROWSER, ExtractedKind.UNDEFINED_IDENTIFIER): TestSynthesizer._accessible,
    (TargetTestKind.BROWSER, ExtractedKind.USE_BEFORE_INIT): TestSynthesizer._no_tdz,
    (TargetTestKind.BROWSER, ExtractedKind.NOT_CALLABLE): TestSynthesizer._callable,
    (TargetTestKind.LINT, ExtractedKind.UNEXPECTED_TOKEN): TestSynthesizer._lint,
    (TargetTestKind.LINT, ExtractedKind.UNTERMINATED_LITERAL): TestSynthesizer._lint,
    (TargetTestKind.INTERPRETER, ExtractedKind.MISSING_MODULE): TestSynthesizer._importable,
    (TargetTestKind.INTERPRETER, ExtractedKind.UNDEFINED_NAME): TestSynthesizer._placeholder,
}

# Detected, but no safe automated reproduction exists
_UNSYNTHESIZABLE: frozenset[tuple[TargetTestKind, ExtractedKind]] = frozenset(
    {
        (TargetTestKind.BROWSER, ExtractedKind.NULL_ACCESS),
        (TargetTestKind.INTERPRETER, ExtractedKind.MISSING_EXPORT),
        (TargetTestKind.INTERPRETER, ExtractedKind.MISSING_ATTRIBUTE),
        (TargetTestKind.INTERPRETER, ExtractedKind.TYPE_MISMATCH),
        (TargetTestKind.INTERPRETER, ExtractedKind.STORAGE_ENGINE_ERROR),
        (TargetTestKind.INTERPRETER, ExtractedKind.MISSING_TABLE),
        (TargetTestKind.MANUAL, ExtractedKind.ACCESSIBILITY_CRASH),
        (TargetTestKind.MANUAL, ExtractedKind.SEGFAULT),
    }
)


def _check_exhaustive() -> None:
    for category in CATEGORIES:
        for rule in category.rules:
            key = (category.target, rule.extracted_kind)
            handled = (key in _STRATEGIES) + (key in _UNSYNTHESIZABLE)
            if handled != 1:
                raise RuntimeError(
                    f"Category {category.name!r}: {rule.extracted_kind.value} must be handled "
                    f"by exactly one of the synthesis strategies or the manual set"
                )


_check_exhaustive()
