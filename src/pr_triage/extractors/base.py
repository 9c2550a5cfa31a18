"""Production signal extraction strategy.

Exports, declarations and import specifiers are what make two PRs "the same
feature" even when their line-level diffs differ. How they are found is
language-dependent, so extraction is a strategy: the regex extractor covers
JS/TS, a polyglot variant adds Python, and an AST-backed implementation can be
registered without touching the scorer.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable

from ..fingerprints.schema import ProductionSignals
from ..pipeline.context import ChangedFile


class ProductionSignalExtractor(ABC):
    """Maps the PRODUCTION channel's files to exports/symbols/imports."""
    name: str

    @abstractmethod
    def extract(self, files: Iterable[ChangedFile]) -> ProductionSignals:
        """Return deduplicated, sorted names found in the +/- lines."""
        raise NotImplementedError
