"""Pairwise scoring, ranking and evidence."""

from .evidence import EvidenceBundle, build_evidence
from .scorer import PairScores, ScoreResult, SignatureView, compute_pair_scores, compute_prod_score, rank_edges, score_candidate
from .similarity import clamp01, jaccard, overlap

__all__ = [
    "EvidenceBundle",
    "PairScores",
    "ScoreResult",
    "SignatureView",
    "build_evidence",
    "clamp01",
    "compute_pair_scores",
    "compute_prod_score",
    "jaccard",
    "overlap",
    "rank_edges",
    "score_candidate",
]
