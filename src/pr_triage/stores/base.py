"""Store interfaces used by the engine.

The engine never talks to a database directly. It reads and writes through two
collaborators:

- IndexStore: inverted indices for candidate retrieval (canonical hash, LSH
  bucket, production path, symbol name), scoped by repo and signature version,
  plus each PR's current head and open/closed state.
- SignatureStore: channel signatures per PR head, and analysis runs with their
  ranked edges.

Implementations raise StoreError on failure; retries and timeouts are the
caller's policy.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..fingerprints.schema import ChannelSignature
from ..pipeline.context import AnalysisResult, AnalysisRun, Channel, PrState, ScoredEdge

SYMBOL_KIND_EXPORT = "export"
SYMBOL_KIND_DECL = "decl"
SYMBOL_KIND_IMPORT = "import"


@dataclass(frozen=True)
class PrHeadRef:
    pr_id: int
    head_sha: str

    @property
    def key(self) -> str:
        return f"{self.pr_id}:{self.head_sha}"

    @classmethod
    def parse(cls, key: str) -> "PrHeadRef":
        pr_id, head_sha = key.split(":", 1)
        return cls(pr_id=int(pr_id), head_sha=head_sha)


@dataclass(frozen=True)
class HeadRecord:
    """The most recently analyzed head of a PR."""
    repo_id: int
    pr_id: int
    number: int
    head_sha: str
    state: PrState
    signature_version: int
    analyzed_at: float
    title: Optional[str] = None
    url: Optional[str] = None

    @property
    def ref(self) -> PrHeadRef:
        return PrHeadRef(self.pr_id, self.head_sha)


class IndexStore(ABC):
    """Candidate retrieval indices. Lookups return only OPEN PRs at their current head."""

    @abstractmethod
    def record_revision(
        self,
        head: HeadRecord,
        *,
        canonical_diff_hash: Optional[str],
        production_paths: Sequence[str],
        symbols: Mapping[str, Sequence[str]],
    ) -> None:
        """Index a PR head, replacing whatever the PR's previous head indexed."""
        raise NotImplementedError

    @abstractmethod
    def set_pr_state(self, repo_id: int, pr_id: int, state: PrState) -> None:
        raise NotImplementedError

    @abstractmethod
    def find_by_canonical_hash(
        self, repo_id: int, signature_version: int, canonical_diff_hash: str, exclude_pr_id: int, limit: int
    ) -> List[PrHeadRef]:
        raise NotImplementedError

    @abstractmethod
    def find_by_lsh_buckets(
        self, repo_id: int, signature_version: int, bucket_ids: Sequence[str], exclude_pr_id: int, limit: int
    ) -> List[PrHeadRef]:
        raise NotImplementedError

    @abstractmethod
    def find_by_paths(
        self, repo_id: int, signature_version: int, paths: Sequence[str], exclude_pr_id: int, limit: int
    ) -> List[PrHeadRef]:
        raise NotImplementedError

    @abstractmethod
    def find_by_symbols(
        self,
        repo_id: int,
        signature_version: int,
        symbols: Mapping[str, Sequence[str]],
        exclude_pr_id: int,
        limit: int,
    ) -> List[PrHeadRef]:
        raise NotImplementedError

    @abstractmethod
    def insert_lsh_buckets(
        self, repo_id: int, signature_version: int, member: PrHeadRef, bucket_ids: Sequence[str], ttl_seconds: int
    ) -> None:
        """Idempotent set-insert of member into each bucket; refreshes the bucket TTL."""
        raise NotImplementedError

    @abstractmethod
    def open_heads(self, repo_id: int) -> List[HeadRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_head(self, repo_id: int, pr_id: int) -> Optional[HeadRecord]:
        raise NotImplementedError

    @abstractmethod
    def flush(self) -> None:
        """Persist in-memory state to backend if any."""
        raise NotImplementedError


class SignatureStore(ABC):
    """Channel signatures and analysis results."""

    @abstractmethod
    def put_signatures(self, signatures: Iterable[ChannelSignature]) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_signatures(
        self, repo_id: int, pr_id: int, head_sha: str, signature_version: int
    ) -> Dict[Channel, ChannelSignature]:
        raise NotImplementedError

    @abstractmethod
    def put_result(self, run: AnalysisRun, edges: Sequence[ScoredEdge]) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_result(self, analysis_run_id: str) -> Optional[AnalysisResult]:
        raise NotImplementedError

    @abstractmethod
    def latest_results(self, repo_id: int) -> List[AnalysisResult]:
        """Newest finished run per (PR, head) in the repo."""
        raise NotImplementedError

    @abstractmethod
    def flush(self) -> None:
        raise NotImplementedError
