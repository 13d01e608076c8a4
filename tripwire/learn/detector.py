"""Pattern detection — apply a category's extraction rules to failure text."""

from __future__ import annotations

from .models import CategoryDefinition, DetectedPattern
from .taxonomy import resolve_category


def detect(text: str, category: str | CategoryDefinition | None) -> DetectedPattern | None:
    """Return the first rule match for ``category``, or None.

    None means "cannot auto-synthesize": the category is unknown or none of
    its rules match. It is never an error.
    """
    definition = (
        category if isinstance(category, CategoryDefinition) else resolve_category(category)
    )
    if definition is None:
        return None

    for rule in definition.rules:
        match = rule.pattern.search(text)
        if match:
            return DetectedPattern(
                extracted_kind=rule.extracted_kind,
                raw_match=match.group(0),
                captures=list(match.groups()),
                target=definition.target,
            )
    return None
