"""Analysis engine.

One call to `TriageEngine.analyze` is one AnalysisRun for one PR head:

1. fingerprint the revision (pure; see fingerprint.py)
2. persist channel signatures and index the head
3. retrieve candidates from the indices
4. score each candidate against its stored signatures, keep surfaced
   categories with evidence, rank and truncate
5. persist the run and edges, then join the head's LSH buckets

The engine holds configuration only; all state lives in the stores, so one
engine can serve concurrent workers. Store failures mark the run FAILED and
propagate; degraded inputs are recorded as reasons and the run completes.
"""

from __future__ import annotations
import logging
import time
from typing import List, Optional, Tuple

from ..config.models import ClassificationRules, Thresholds
from ..config.settings import RuntimeSettings
from ..errors import StoreError
from ..extractors.base import ProductionSignalExtractor
from ..extractors.registry import get_production_extractor
from ..fingerprints.minhash import MinHashSeeds
from ..metrics import TriageMetrics
from ..scoring.evidence import build_evidence
from ..scoring.scorer import SignatureView, compute_pair_scores, is_surfaced, rank_edges, score_candidate
from ..stores.base import HeadRecord, IndexStore, PrHeadRef, SignatureStore
from ..stores.index_store import symbols_by_kind
from ..retrieval.candidates import CandidateGenerator
from .context import AnalysisResult, AnalysisRun, Candidate, Channel, PullRequestRevision, ScoredEdge
from .fingerprint import RevisionFingerprint, fingerprint_revision

log = logging.getLogger("pr_triage.analyze")

DEGRADED_CANDIDATE_SIGNATURE_MISSING = "candidate_signature_missing"


class TriageEngine:
    def __init__(
        self,
        rules: ClassificationRules,
        thresholds: Thresholds,
        index: IndexStore,
        signatures: SignatureStore,
        extractor: Optional[ProductionSignalExtractor] = None,
        seeds: Optional[MinHashSeeds] = None,
        settings: Optional[RuntimeSettings] = None,
    ):
        self.rules = rules
        self.thresholds = thresholds
        self.index = index
        self.signatures = signatures
        self.extractor = extractor or get_production_extractor("regex")
        self.seeds = seeds if seeds is not None else MinHashSeeds.derive()
        self.settings = settings or RuntimeSettings()
        self.candidates = CandidateGenerator(index, thresholds.candidates, self.settings.signature_version)

    def fingerprint(self, revision: PullRequestRevision) -> RevisionFingerprint:
        return fingerprint_revision(
            revision,
            self.rules,
            self.extractor,
            self.seeds,
            signature_version=self.settings.signature_version,
        )

    def analyze(self, revision: PullRequestRevision, metrics: Optional[TriageMetrics] = None) -> AnalysisResult:
        run = AnalysisRun(
            repo_id=revision.repo_id,
            pr_id=revision.pr_id,
            head_sha=revision.head_sha,
            signature_version=self.settings.signature_version,
            algorithm_version=self.settings.algorithm_version,
            config_version=self.thresholds.config_version,
        )
        log.info(
            "analysis %s start: repo=%s pr=%s head=%s versions=(sig=%s, algo=%s, config=%s)",
            run.analysis_run_id, run.repo_id, run.pr_id, run.head_sha,
            run.signature_version, run.algorithm_version, run.config_version,
        )
        try:
            fp, edges = self._run(revision, run, metrics)
            run.finish()
            self.signatures.put_result(run, edges)
            if fp.bucket_ids:
                self.index.insert_lsh_buckets(
                    revision.repo_id,
                    run.signature_version,
                    PrHeadRef(revision.pr_id, revision.head_sha),
                    fp.bucket_ids,
                    self.thresholds.candidates.lsh_ttl_seconds,
                )
        except StoreError as exc:
            run.fail(str(exc))
            log.exception("analysis %s failed: %s", run.analysis_run_id, exc)
            if metrics is not None:
                metrics.record_run(run, [])
            raise

        for reason in run.degraded_reasons:
            log.warning("analysis %s degraded: %s", run.analysis_run_id, reason)
        log.info(
            "analysis %s %s: %d edges in %.3fs",
            run.analysis_run_id, run.status.value, len(edges), (run.finished_at or time.time()) - run.started_at,
        )
        if metrics is not None:
            metrics.record_run(run, edges)
        return AnalysisResult(run=run, edges=edges)

    def _run(
        self, revision: PullRequestRevision, run: AnalysisRun, metrics: Optional[TriageMetrics]
    ) -> Tuple[RevisionFingerprint, List[ScoredEdge]]:
        fp = self.fingerprint(revision)
        for reason in fp.degraded_reasons:
            run.add_degraded_reason(reason)

        self.signatures.put_signatures(fp.signatures.values())
        signals = fp.production_signals
        self.index.record_revision(
            HeadRecord(
                repo_id=revision.repo_id,
                pr_id=revision.pr_id,
                number=revision.number,
                head_sha=revision.head_sha,
                state=revision.state,
                signature_version=run.signature_version,
                analyzed_at=run.started_at,
                title=revision.title,
                url=revision.url,
            ),
            canonical_diff_hash=fp.canonical_diff_hash,
            production_paths=fp.production_paths,
            symbols=symbols_by_kind(signals.exports, signals.symbols, signals.imports),
        )

        candidates = self.candidates.generate(fp)
        if metrics is not None:
            metrics.record_candidates(candidates)
        log.info("analysis %s: %d candidates", run.analysis_run_id, len(candidates))

        target = fp.view()
        edges = []
        for candidate in candidates:
            edge = self._score(run, target, candidate)
            if edge is not None:
                edges.append(edge)
        return fp, rank_edges(edges, self.thresholds.candidates.max_candidates_final)

    def _score(self, run: AnalysisRun, target: SignatureView, candidate: Candidate) -> Optional[ScoredEdge]:
        stored = self.signatures.get_signatures(run.repo_id, candidate.pr_id, candidate.head_sha, run.signature_version)
        production = stored.get(Channel.PRODUCTION)
        if production is None:
            run.add_degraded_reason(f"{DEGRADED_CANDIDATE_SIGNATURE_MISSING}:{candidate.pr_id}")
            return None
        other = SignatureView.from_signatures(production, stored.get(Channel.TESTS), stored.get(Channel.DOCS))
        scores = compute_pair_scores(target, other)
        result = score_candidate(scores, self.thresholds)
        if not is_surfaced(result.category):
            return None
        evidence = build_evidence(target, other, scores)
        if evidence.is_empty():
            log.debug("dropping %s for PR %s: no evidence", result.category.value, candidate.pr_id)
            return None
        return ScoredEdge(
            analysis_run_id=run.analysis_run_id,
            repo_id=run.repo_id,
            pr_id_a=run.pr_id,
            head_sha_a=run.head_sha,
            pr_id_b=candidate.pr_id,
            head_sha_b=candidate.head_sha,
            rank=0,
            category=result.category,
            final_score=result.final_score,
            prod_score=result.prod_score,
            scores=scores,
            evidence=evidence,
            provenance=candidate.provenance,
            config_version=run.config_version,
        )
