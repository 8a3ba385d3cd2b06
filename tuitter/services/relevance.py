"""Engagement-weighted relevance ranking for feeds and comment lists."""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from tuitter.constants import COUNTER_COLUMNS

T = TypeVar("T")

DEFAULT_WEIGHTS: dict[str, float] = {
    "views": 0.1,
    "likes": 0.4,
    "retuits": 0.7,
    "bookmarks": 0.4,
    "comments": 0.5,
    "quotes": 0.7,
}


def _counter(item: Any, name: str) -> int:
    value = item.get(name) if isinstance(item, Mapping) else getattr(item, name, None)
    return value or 0


def relevance_score(item: Any, weights: Mapping[str, float] | None = None) -> float:
    """Weighted sum of the engagement counters of ``item``."""
    weights = weights or DEFAULT_WEIGHTS
    return sum(_counter(item, name) * weights[name] for name in COUNTER_COLUMNS)


def rank(items: Iterable[T], k: int, weights: Mapping[str, float] | None = None) -> list[T]:
    """
    Return the ``k`` most relevant items, best first.

    The sort is stable: items with equal scores keep their input order, so a
    newest-first candidate list stays newest-first among ties.
    """
    if k <= 0:
        return []
    weights = weights or DEFAULT_WEIGHTS
    ranked = sorted(items, key=lambda item: relevance_score(item, weights), reverse=True)
    return ranked[:k]
