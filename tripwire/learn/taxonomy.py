"""Failure category taxonomy and the keyword classifier.

Each category is one declarative row. Adding a category means adding a row
here and, if its extracted kinds are new, a synthesis strategy in
``synthesizer.py`` (the synthesizer refuses to import if a kind is unhandled).
"""

from __future__ import annotations

import re

from .models import (
    UNKNOWN_CATEGORY,
    CategoryDefinition,
    ExtractedKind,
    ExtractionRule,
    TargetTestKind,
)


def _rule(pattern: str, kind: ExtractedKind) -> ExtractionRule:
    return ExtractionRule(pattern=re.compile(pattern), extracted_kind=kind)


# Rules are tried in declared order; first match wins
CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition(
        name="interpreted-runtime",
        description="JavaScript runtime errors (undefined variables, type errors)",
        target=TargetTestKind.BROWSER,
        aliases=("js-runtime",),
        rules=(
            _rule(r"(\w+) is not defined", ExtractedKind.UNDEFINED_IDENTIFIER),
            _rule(r"Cannot read propert(?:y|ies) of (null|undefined)", ExtractedKind.NULL_ACCESS),
            _rule(r"Cannot access '(\w+)' before initialization", ExtractedKind.USE_BEFORE_INIT),
            _rule(r"(\w+) is not a function", ExtractedKind.NOT_CALLABLE),
        ),
    ),
    CategoryDefinition(
        name="interpreted-syntax",
        description="JavaScript syntax errors",
        target=TargetTestKind.LINT,
        aliases=("js-syntax",),
        rules=(
            _rule(r"Unexpected token", ExtractedKind.UNEXPECTED_TOKEN),
            _rule(r"Unterminated string", ExtractedKind.UNTERMINATED_LITERAL),
        ),
    ),
    CategoryDefinition(
        name="module-import",
        description="Python import errors",
        target=TargetTestKind.INTERPRETER,
        aliases=("python-import",),
        rules=(
            _rule(r"ModuleNotFoundError: No module named '([\w.]+)'", ExtractedKind.MISSING_MODULE),
            _rule(r"ImportError: cannot import name '(\w+)'", ExtractedKind.MISSING_EXPORT),
        ),
    ),
    CategoryDefinition(
        name="general-runtime",
        description="Python runtime errors",
        target=TargetTestKind.INTERPRETER,
        aliases=("python-runtime",),
        rules=(
            _rule(r"NameError: name '(\w+)' is not defined", ExtractedKind.UNDEFINED_NAME),
            _rule(
                r"AttributeError: '(\w+)' object has no attribute '(\w+)'",
                ExtractedKind.MISSING_ATTRIBUTE,
            ),
            _rule(r"TypeError: (\w+)", ExtractedKind.TYPE_MISMATCH),
        ),
    ),
    CategoryDefinition(
        name="process-crash",
        description="Qt/PyQt crashes (SIGSEGV, accessibility)",
        target=TargetTestKind.MANUAL,
        aliases=("qt-crash",),
        rules=(
            _rule(r"SIGSEGV.*QAccessible", ExtractedKind.ACCESSIBILITY_CRASH),
            _rule(r"Segmentation fault", ExtractedKind.SEGFAULT),
        ),
    ),
    CategoryDefinition(
        name="storage",
        description="Database errors",
        target=TargetTestKind.INTERPRETER,
        aliases=("database",),
        rules=(
            _rule(r"sqlite3\.OperationalError", ExtractedKind.STORAGE_ENGINE_ERROR),
            _rule(r"no such table: (\w+)", ExtractedKind.MISSING_TABLE),
        ),
    ),
)

_BY_LABEL: dict[str, CategoryDefinition] = {
    label: category
    for category in CATEGORIES
    for label in (category.name, *category.aliases)
}


def resolve_category(label: str | None) -> CategoryDefinition | None:
    """Look up a category by canonical name or alias."""
    if not label:
        return None
    return _BY_LABEL.get(label.strip().lower())


def category_names() -> list[str]:
    return [c.name for c in CATEGORIES]


# =============================================================================
# Keyword Classifier
# =============================================================================


def _js_undefined(text: str) -> bool:
    return "is not defined" in text and "NameError" not in text


def _js_before_init(text: str) -> bool:
    return "Cannot access" in text and "before initialization" in text


def _any_of(*needles: str):
    return lambda text: any(n in text for n in needles)


# Checked in order; first match wins
_KEYWORD_TABLE = [
    (_js_undefined, "interpreted-runtime"),
    (_js_before_init, "interpreted-runtime"),
    (_any_of("Unexpected token", "SyntaxError"), "interpreted-syntax"),
    (_any_of("ModuleNotFoundError", "ImportError"), "module-import"),
    (_any_of("NameError", "AttributeError"), "general-runtime"),
    (_any_of("SIGSEGV", "Segmentation fault"), "process-crash"),
    (_any_of("sqlite3", "no such table"), "storage"),
]


def classify_category(text: str) -> str:
    """Best-guess category for a report that arrived without one."""
    for matches, name in _KEYWORD_TABLE:
        if matches(text):
            return name
    return UNKNOWN_CATEGORY
