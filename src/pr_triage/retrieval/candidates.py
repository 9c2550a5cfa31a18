"""Candidate generation.

Candidates come from four index lookups, never from a scan of all open PRs:

1. exact canonical diff hash   (skipped when the target has no production lines)
2. LSH buckets                 (skipped when the production shingle set is empty)
3. production path overlap
4. export/declaration/import name overlap

Each lookup is capped; results are unioned by (pr_id, head_sha) with merged
provenance in first-seen order, and the union is truncated before scoring.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Sequence

from ..config.models import CandidateLimits
from ..pipeline.context import Candidate, Provenance
from ..stores.base import IndexStore, PrHeadRef
from ..stores.index_store import symbols_by_kind

log = logging.getLogger("pr_triage.retrieval")


class CandidateGenerator:
    def __init__(self, index: IndexStore, limits: CandidateLimits, signature_version: int):
        self.index = index
        self.limits = limits
        self.signature_version = signature_version

    def generate(self, fingerprint) -> List[Candidate]:
        """Candidates for a RevisionFingerprint, excluding the PR itself."""
        rev = fingerprint.revision
        repo_id, sv, exclude = rev.repo_id, self.signature_version, rev.pr_id
        per_strategy = self.limits.max_candidates_from_lsh

        found: Dict[str, List[Provenance]] = {}
        refs: Dict[str, PrHeadRef] = {}

        def _add(results: Sequence[PrHeadRef], provenance: Provenance) -> None:
            for ref in results:
                refs.setdefault(ref.key, ref)
                provs = found.setdefault(ref.key, [])
                if provenance not in provs:
                    provs.append(provenance)
            log.debug("%s: %d candidates for PR %s", provenance.value, len(results), rev.pr_id)

        if fingerprint.canonical_diff_hash is not None:
            _add(
                self.index.find_by_canonical_hash(repo_id, sv, fingerprint.canonical_diff_hash, exclude, per_strategy),
                Provenance.EXACT_HASH,
            )
        if fingerprint.production_shingle_count > 0:
            _add(
                self.index.find_by_lsh_buckets(repo_id, sv, fingerprint.bucket_ids, exclude, per_strategy),
                Provenance.LSH_BUCKET,
            )
        if fingerprint.production_paths:
            _add(
                self.index.find_by_paths(repo_id, sv, fingerprint.production_paths, exclude, per_strategy),
                Provenance.PATH_OVERLAP,
            )
        signals = fingerprint.production_signals
        if signals.exports or signals.symbols or signals.imports:
            _add(
                self.index.find_by_symbols(
                    repo_id, sv, symbols_by_kind(signals.exports, signals.symbols, signals.imports), exclude, per_strategy
                ),
                Provenance.SYMBOL_OVERLAP,
            )

        candidates = [
            Candidate(pr_id=refs[key].pr_id, head_sha=refs[key].head_sha, provenance=tuple(provs))
            for key, provs in found.items()
        ]
        limit = self.limits.union_limit
        if len(candidates) > limit:
            log.info("truncating %d candidates to %d for PR %s", len(candidates), limit, rev.pr_id)
            candidates = candidates[:limit]
        return candidates
