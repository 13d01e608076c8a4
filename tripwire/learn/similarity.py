"""Similarity matching — flag prior failures that share distinctive words.

The threshold is driven by the query's token count only, so a short report
can surface a long one as related but not necessarily the other way round.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import FailureRecord

# Words this short are treated as noise
_MIN_WORD_LENGTH = 4
_MAX_REQUIRED_OVERLAP = 3
_WORD_SPLIT = re.compile(r"\W+")


def significant_words(text: str) -> set[str]:
    return {w for w in _WORD_SPLIT.split(text.lower()) if len(w) >= _MIN_WORD_LENGTH}


def find_similar(text: str, corpus: Iterable[FailureRecord]) -> list[FailureRecord]:
    """Records whose significant words overlap the query's enough to be related.

    A record is similar when the overlap is at least
    ``min(3, 0.5 * len(query_words))``. Membership is binary; the result keeps
    corpus order but carries no ranking.
    """
    words = significant_words(text)
    if not words:
        return []

    threshold = min(_MAX_REQUIRED_OVERLAP, len(words) * 0.5)
    return [
        record
        for record in corpus
        if len(words & significant_words(record.message)) >= threshold
    ]
