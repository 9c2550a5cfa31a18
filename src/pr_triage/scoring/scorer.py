"""Production-first pairwise scoring.

Production similarity decides; tests and docs can only add a capped amount on
top. This keeps a PR with a thousand lines of generated tests from looking
like a duplicate of every other PR that touched the same test helpers.

Category rules are evaluated in a fixed order and the first match wins:

1. SAME_CHANGE              identical canonical diff, or near-identical
                            production MinHash over mostly the same files
2. SAME_FEATURE             strong production score plus one supporting signal
3. COMPETING_IMPLEMENTATION same test intent, different production code
4. RELATED                  final score above the review threshold
5. NOT_RELATED              everything else
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional

from ..config.models import Thresholds
from ..fingerprints.minhash import similarity as minhash_similarity
from ..fingerprints.schema import ChannelSignature, DocsStructure, ProductionSignals, TestIntent
from ..pipeline.context import SURFACED_CATEGORIES, ScoredEdge, TriageCategory
from .similarity import clamp01, jaccard


@dataclass(frozen=True)
class PairScores:
    exact: float = 0.0
    prod_minhash: float = 0.0
    prod_files: float = 0.0
    prod_exports: float = 0.0
    prod_symbols: float = 0.0
    prod_imports: float = 0.0
    tests_intent: float = 0.0
    docs_struct: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "exact": self.exact,
            "prod_minhash": self.prod_minhash,
            "prod_files": self.prod_files,
            "prod_exports": self.prod_exports,
            "prod_symbols": self.prod_symbols,
            "prod_imports": self.prod_imports,
            "tests_intent": self.tests_intent,
            "docs_struct": self.docs_struct,
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "PairScores":
        return cls(**{k: float(obj.get(k, 0.0)) for k in cls().to_dict()})


@dataclass(frozen=True)
class ScoreResult:
    category: TriageCategory
    prod_score: float
    final_score: float


@dataclass(frozen=True)
class SignatureView:
    """Everything pair scoring needs about one side of a pair."""
    production_paths: tuple = ()
    canonical_diff_hash: Optional[str] = None
    minhash: Optional[Any] = None  # np.ndarray
    shingle_count: int = 0
    production: ProductionSignals = ProductionSignals()
    test_intent: TestIntent = TestIntent()
    doc_structure: DocsStructure = DocsStructure()

    @classmethod
    def from_signatures(
        cls,
        production: ChannelSignature,
        tests: Optional[ChannelSignature] = None,
        docs: Optional[ChannelSignature] = None,
    ) -> "SignatureView":
        return cls(
            production_paths=production.paths,
            canonical_diff_hash=production.canonical_diff_hash,
            minhash=production.minhash_array(),
            shingle_count=production.shingle_count,
            production=production.production or ProductionSignals(),
            test_intent=(tests.test_intent if tests is not None else None) or TestIntent(),
            doc_structure=(docs.doc_structure if docs is not None else None) or DocsStructure(),
        )


def compute_pair_scores(target: SignatureView, candidate: SignatureView) -> PairScores:
    exact = 1.0 if (
        target.canonical_diff_hash is not None
        and target.canonical_diff_hash == candidate.canonical_diff_hash
    ) else 0.0
    if target.shingle_count == 0 or target.minhash is None or candidate.minhash is None:
        prod_minhash = 0.0
    else:
        prod_minhash = minhash_similarity(target.minhash, candidate.minhash)
    return PairScores(
        exact=exact,
        prod_minhash=prod_minhash,
        prod_files=jaccard(target.production_paths, candidate.production_paths),
        prod_exports=jaccard(target.production.exports, candidate.production.exports),
        prod_symbols=jaccard(target.production.symbols, candidate.production.symbols),
        prod_imports=jaccard(target.production.imports, candidate.production.imports),
        tests_intent=jaccard(target.test_intent.tokens(), candidate.test_intent.tokens()),
        docs_struct=jaccard(target.doc_structure.tokens(), candidate.doc_structure.tokens()),
    )


def compute_prod_score(scores: PairScores, thresholds: Thresholds) -> float:
    w = thresholds.weights.production
    return clamp01(
        w.minhash * scores.prod_minhash
        + w.exports * scores.prod_exports
        + w.symbols * scores.prod_symbols
        + w.files * scores.prod_files
        + w.imports * scores.prod_imports
    )


def score_candidate(scores: PairScores, thresholds: Thresholds) -> ScoreResult:
    prod_score = compute_prod_score(scores, thresholds)
    test_contribution = min(thresholds.weights.tests.intent * scores.tests_intent, thresholds.caps.test_score_cap)
    doc_contribution = min(thresholds.weights.docs.structure * scores.docs_struct, thresholds.caps.doc_score_cap)
    final_score = clamp01(prod_score + test_contribution + doc_contribution)

    sim = thresholds.similarity
    if scores.exact == 1.0 or (
        scores.prod_minhash >= sim.same_change.prod_minhash_threshold
        and scores.prod_files >= sim.same_change.prod_files_overlap_threshold
    ):
        category = TriageCategory.SAME_CHANGE
    elif prod_score >= sim.same_feature.prod_score_threshold and max(
        scores.tests_intent, scores.docs_struct, scores.prod_minhash
    ) >= sim.same_feature.supporting_signal_min:
        category = TriageCategory.SAME_FEATURE
    elif (
        scores.tests_intent >= sim.competing_impl.tests_intent_threshold
        and prod_score <= sim.competing_impl.prod_score_max
    ):
        category = TriageCategory.COMPETING_IMPLEMENTATION
    elif final_score >= sim.review_score_threshold:
        category = TriageCategory.RELATED
    else:
        category = TriageCategory.NOT_RELATED

    return ScoreResult(category=category, prod_score=prod_score, final_score=final_score)


_CATEGORY_RANK = {c: i for i, c in enumerate(SURFACED_CATEGORIES)}


def is_surfaced(category: TriageCategory) -> bool:
    return category in _CATEGORY_RANK


def rank_edges(edges: Iterable[ScoredEdge], limit: int) -> List[ScoredEdge]:
    """Order by category, then final score desc, then candidate PR id; assign 1-based ranks."""
    ordered = sorted(
        edges,
        key=lambda e: (_CATEGORY_RANK.get(e.category, len(_CATEGORY_RANK)), -e.final_score, e.pr_id_b),
    )[:limit]
    return [replace(e, rank=i + 1) for i, e in enumerate(ordered)]
