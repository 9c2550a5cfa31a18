"""Text helpers shared by the signal extractors."""

from __future__ import annotations
import re
from typing import Iterable, List

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WS_RE = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    """Lowercase, replace punctuation with spaces, collapse whitespace."""
    value = _NON_ALNUM_RE.sub(" ", value.lower())
    return _WS_RE.sub(" ", value).strip()


def unique_sorted(values: Iterable[str]) -> List[str]:
    return sorted({v for v in values if v})
