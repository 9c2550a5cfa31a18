"""Revision fingerprinting: classify -> extract -> sign.

This is the pure half of an analysis. Given the same revision, rules,
extractor and seeds it produces identical signatures, with no store access,
so it can run anywhere (workers, backfills, tests).
"""

from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..classification.classify import classify_files, files_in_channel
from ..config.models import ClassificationRules
from ..constants import LSH_BAND_SIZE, SIGNATURE_VERSION
from ..extractors.base import ProductionSignalExtractor
from ..extractors.docs import extract_doc_structure
from ..extractors.intent import extract_test_intent
from ..fingerprints.canonical import canonicalize, extract_added_removed_lines
from ..fingerprints.minhash import MinHashSeeds, compute_signature, lsh_bucket_ids, signature_to_bytes
from ..fingerprints.schema import ChannelSignature, DocsStructure, ProductionSignals, SizeMetrics, TestIntent
from ..fingerprints.tokens import production_shingles, token_list_shingles
from ..scoring.scorer import SignatureView
from .context import ChangedFile, Channel, ClassifiedFile, PullRequestRevision

DEGRADED_MISSING_PATCH = "missing_production_patch_segments"
DEGRADED_TRUNCATED_PATCH = "truncated_production_patch"


@dataclass(frozen=True, eq=False)
class RevisionFingerprint:
    revision: PullRequestRevision
    classified: Tuple[ClassifiedFile, ...]
    signatures: Dict[Channel, ChannelSignature]
    canonical_diff_hash: Optional[str]
    production_paths: Tuple[str, ...]
    production_signals: ProductionSignals
    production_shingle_count: int
    production_minhash: np.ndarray
    bucket_ids: Tuple[str, ...]
    test_intent: TestIntent
    doc_structure: DocsStructure
    degraded_reasons: Tuple[str, ...] = ()

    def view(self) -> SignatureView:
        return SignatureView(
            production_paths=self.production_paths,
            canonical_diff_hash=self.canonical_diff_hash,
            minhash=self.production_minhash,
            shingle_count=self.production_shingle_count,
            production=self.production_signals,
            test_intent=self.test_intent,
            doc_structure=self.doc_structure,
        )


def _size_metrics(files: Sequence[ChangedFile]) -> SizeMetrics:
    return SizeMetrics(
        files=len(files),
        additions=sum(f.additions for f in files),
        deletions=sum(f.deletions for f in files),
    )


def _degraded_reasons(production_files: Sequence[ChangedFile]) -> Tuple[str, ...]:
    reasons: List[str] = []
    if any(f.patch is None for f in production_files):
        reasons.append(DEGRADED_MISSING_PATCH)
    if any(f.patch_truncated for f in production_files):
        reasons.append(DEGRADED_TRUNCATED_PATCH)
    return tuple(reasons)


def fingerprint_revision(
    revision: PullRequestRevision,
    rules: ClassificationRules,
    extractor: ProductionSignalExtractor,
    seeds: MinHashSeeds,
    signature_version: int = SIGNATURE_VERSION,
    band_size: int = LSH_BAND_SIZE,
    computed_at: Optional[float] = None,
) -> RevisionFingerprint:
    computed_at = time.time() if computed_at is None else computed_at
    classified = tuple(classify_files(revision.files, rules))
    by_channel = {ch: sorted(files_in_channel(classified, ch), key=lambda f: f.path) for ch in Channel}

    def _signature(channel: Channel, **payload) -> ChannelSignature:
        files = by_channel[channel]
        return ChannelSignature(
            repo_id=revision.repo_id,
            pr_id=revision.pr_id,
            head_sha=revision.head_sha,
            channel=channel,
            signature_version=signature_version,
            paths=tuple(f.path for f in files),
            size_metrics=_size_metrics(files),
            computed_at=computed_at,
            **payload,
        )

    # PRODUCTION
    prod_files = by_channel[Channel.PRODUCTION]
    canonical = canonicalize(prod_files)
    prod_lines: List[str] = []
    for f in prod_files:
        prod_lines.extend(extract_added_removed_lines(f.patch))
    prod_shingles = production_shingles(prod_lines)
    prod_minhash = compute_signature(prod_shingles, seeds)
    bucket_ids = tuple(lsh_bucket_ids(prod_minhash, band_size)) if prod_shingles else ()
    signals = extractor.extract(prod_files)

    # TESTS / DOCS
    intent = extract_test_intent(by_channel[Channel.TESTS])
    intent_shingles = token_list_shingles(intent.tokens())
    docs = extract_doc_structure(by_channel[Channel.DOCS])
    doc_shingles = token_list_shingles(docs.tokens())

    signatures = {
        Channel.PRODUCTION: _signature(
            Channel.PRODUCTION,
            canonical_diff_hash=canonical.hash,
            minhash=signature_to_bytes(prod_minhash),
            shingle_count=len(prod_shingles),
            production=signals,
        ),
        Channel.TESTS: _signature(
            Channel.TESTS,
            minhash=signature_to_bytes(compute_signature(intent_shingles, seeds)),
            shingle_count=len(intent_shingles),
            test_intent=intent,
        ),
        Channel.DOCS: _signature(
            Channel.DOCS,
            minhash=signature_to_bytes(compute_signature(doc_shingles, seeds)),
            shingle_count=len(doc_shingles),
            doc_structure=docs,
        ),
        Channel.META: _signature(Channel.META),
    }

    return RevisionFingerprint(
        revision=revision,
        classified=classified,
        signatures=signatures,
        canonical_diff_hash=canonical.hash,
        production_paths=tuple(f.path for f in prod_files),
        production_signals=signals,
        production_shingle_count=len(prod_shingles),
        production_minhash=prod_minhash,
        bucket_ids=bucket_ids,
        test_intent=intent,
        doc_structure=docs,
        degraded_reasons=_degraded_reasons(prod_files),
    )
