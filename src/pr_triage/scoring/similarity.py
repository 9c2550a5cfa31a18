"""Set similarity helpers."""

from __future__ import annotations
from typing import Iterable, List, Sequence


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """|A ∩ B| / |A ∪ B|; two empty sets are identical, one empty set shares nothing."""
    sa, sb = set(a), set(b)
    if not sa and not sb:
        return 1.0
    if not sa or not sb:
        return 0.0
    return len(sa & sb) / len(sa | sb)


def overlap(a: Sequence[str], b: Iterable[str]) -> List[str]:
    """Items of `a` (in a's order) that also appear in `b`."""
    sb = set(b)
    return [x for x in a if x in sb]


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))
