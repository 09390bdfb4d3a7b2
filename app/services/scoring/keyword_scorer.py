from __future__ import annotations

from typing import Any, Iterable, Optional


def _get(keyword: Any, name: str, default=None):
    if isinstance(keyword, dict):
        return keyword.get(name, default)
    return getattr(keyword, name, default)


def matched_keywords(answer_text: str | None, keywords: Iterable) -> list[str]:
    """Keywords found in the answer (case-insensitive, substring match)."""
    haystack = (answer_text or "").lower()
    found = []
    for kw in keywords:
        needle = str(_get(kw, "keyword", "") or "").lower()
        if needle and needle in haystack:
            found.append(_get(kw, "keyword"))
    return found


def score_keywords(answer_text: str | None, keywords: Iterable) -> Optional[float]:
    """Weighted share of keywords present in ``answer_text``.

    Matching is unanchored: "clorofill" matches "clorofilliana". Required
    keywords are weighted like any other. Returns None when there is nothing
    to score against (no keywords, or all weights are zero).
    """
    keywords = list(keywords or [])
    if not keywords:
        return None

    haystack = (answer_text or "").lower()
    total_weight = 0.0
    matched_weight = 0.0
    for kw in keywords:
        weight = float(_get(kw, "weight", 0) or 0)
        total_weight += weight
        needle = str(_get(kw, "keyword", "") or "").lower()
        if needle and needle in haystack:
            matched_weight += weight

    if total_weight <= 0:
        return None
    return matched_weight / total_weight
