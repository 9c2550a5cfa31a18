"""Evidence bundles.

Every surfaced edge carries the concrete overlaps that justify it, so a
reviewer can check a "duplicate" claim without opening both PRs. Each list is
capped; the raw similarity values are always included.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .scorer import PairScores, SignatureView
from .similarity import overlap

MAX_PATHS = 10
MAX_NAMES = 20
MAX_TEST_ITEMS = 10
MAX_DOC_ITEMS = 10


@dataclass(frozen=True)
class EvidenceBundle:
    overlapping_production_paths: Tuple[str, ...] = ()
    overlapping_exports: Tuple[str, ...] = ()
    overlapping_symbols: Tuple[str, ...] = ()
    overlapping_imports: Tuple[str, ...] = ()
    tests_suite_names: Tuple[str, ...] = ()
    tests_test_names: Tuple[str, ...] = ()
    tests_matchers: Tuple[str, ...] = ()
    docs_headings: Tuple[str, ...] = ()
    docs_code_fences: Tuple[str, ...] = ()
    similarity_values: PairScores = field(default_factory=PairScores)

    def has_overlap(self) -> bool:
        return any((
            self.overlapping_production_paths,
            self.overlapping_exports,
            self.overlapping_symbols,
            self.overlapping_imports,
            self.tests_suite_names,
            self.tests_test_names,
            self.tests_matchers,
            self.docs_headings,
            self.docs_code_fences,
        ))

    def is_empty(self) -> bool:
        """No overlapping item and no non-zero similarity: nothing to show a reviewer."""
        return not self.has_overlap() and not any(self.similarity_values.to_dict().values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "production": {
                "overlapping_paths": list(self.overlapping_production_paths),
                "overlapping_exports": list(self.overlapping_exports),
                "overlapping_symbols": list(self.overlapping_symbols),
                "overlapping_imports": list(self.overlapping_imports),
            },
            "tests": {
                "suite_names": list(self.tests_suite_names),
                "test_names": list(self.tests_test_names),
                "matchers": list(self.tests_matchers),
            },
            "docs": {
                "headings": list(self.docs_headings),
                "code_fences": list(self.docs_code_fences),
            },
            "similarity_values": self.similarity_values.to_dict(),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "EvidenceBundle":
        prod = obj.get("production", {})
        tests = obj.get("tests", {})
        docs = obj.get("docs", {})
        return cls(
            overlapping_production_paths=tuple(prod.get("overlapping_paths", [])),
            overlapping_exports=tuple(prod.get("overlapping_exports", [])),
            overlapping_symbols=tuple(prod.get("overlapping_symbols", [])),
            overlapping_imports=tuple(prod.get("overlapping_imports", [])),
            tests_suite_names=tuple(tests.get("suite_names", [])),
            tests_test_names=tuple(tests.get("test_names", [])),
            tests_matchers=tuple(tests.get("matchers", [])),
            docs_headings=tuple(docs.get("headings", [])),
            docs_code_fences=tuple(docs.get("code_fences", [])),
            similarity_values=PairScores.from_dict(obj.get("similarity_values", {})),
        )


def build_evidence(target: SignatureView, candidate: SignatureView, scores: PairScores) -> EvidenceBundle:
    t_intent, c_intent = target.test_intent, candidate.test_intent
    t_docs, c_docs = target.doc_structure, candidate.doc_structure
    return EvidenceBundle(
        overlapping_production_paths=tuple(overlap(target.production_paths, candidate.production_paths)[:MAX_PATHS]),
        overlapping_exports=tuple(overlap(target.production.exports, candidate.production.exports)[:MAX_NAMES]),
        overlapping_symbols=tuple(overlap(target.production.symbols, candidate.production.symbols)[:MAX_NAMES]),
        overlapping_imports=tuple(overlap(target.production.imports, candidate.production.imports)[:MAX_NAMES]),
        tests_suite_names=tuple(overlap(t_intent.suite_names, c_intent.suite_names)[:MAX_TEST_ITEMS]),
        tests_test_names=tuple(overlap(t_intent.test_names, c_intent.test_names)[:MAX_TEST_ITEMS]),
        tests_matchers=tuple(overlap(t_intent.matchers, c_intent.matchers)[:MAX_TEST_ITEMS]),
        docs_headings=tuple(overlap(t_docs.headings, c_docs.headings)[:MAX_DOC_ITEMS]),
        docs_code_fences=tuple(overlap(t_docs.code_fences, c_docs.code_fences)[:MAX_DOC_ITEMS]),
        similarity_values=scores,
    )
