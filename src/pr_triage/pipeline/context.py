"""Core data model.

A PullRequestRevision is the input of one analysis: a PR identity, its head
SHA and the changed files at that head. Everything derived from it (channel
signatures, candidates, scored edges) is keyed by (repo_id, pr_id, head_sha)
and is superseded, never mutated, when the PR receives a new head.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time
import uuid


class Channel(str, Enum):
    PRODUCTION = "PRODUCTION"
    TESTS = "TESTS"
    DOCS = "DOCS"
    META = "META"


class FileStatus(str, Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    REMOVED = "REMOVED"
    RENAMED = "RENAMED"

    @classmethod
    def parse(cls, value: str) -> "FileStatus":
        """Accepts our names and GitHub's lowercase file statuses."""
        aliases = {"changed": "MODIFIED", "copied": "ADDED", "unchanged": "MODIFIED", "deleted": "REMOVED"}
        key = str(value).strip()
        key = aliases.get(key.lower(), key.upper())
        return cls(key)


class PrState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    MERGED = "MERGED"


class TriageCategory(str, Enum):
    SAME_CHANGE = "SAME_CHANGE"
    SAME_FEATURE = "SAME_FEATURE"
    COMPETING_IMPLEMENTATION = "COMPETING_IMPLEMENTATION"
    RELATED = "RELATED"
    NOT_RELATED = "NOT_RELATED"
    UNCERTAIN = "UNCERTAIN"


# Categories that produce a surfaced edge, in ranking order.
SURFACED_CATEGORIES: Tuple[TriageCategory, ...] = (
    TriageCategory.SAME_CHANGE,
    TriageCategory.SAME_FEATURE,
    TriageCategory.COMPETING_IMPLEMENTATION,
    TriageCategory.RELATED,
)


class Provenance(str, Enum):
    EXACT_HASH = "exact_hash"
    LSH_BUCKET = "lsh_bucket"
    PATH_OVERLAP = "path_overlap"
    SYMBOL_OVERLAP = "symbol_overlap"


class RunStatus(str, Enum):
    RUNNING = "RUNNING"
    DONE = "DONE"
    DEGRADED = "DEGRADED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ChangedFile:
    path: str
    status: FileStatus = FileStatus.MODIFIED
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None
    previous_path: Optional[str] = None
    patch_truncated: bool = False

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ChangedFile":
        return cls(
            path=obj["path"],
            status=FileStatus.parse(obj.get("status", "MODIFIED")),
            additions=int(obj.get("additions", 0)),
            deletions=int(obj.get("deletions", 0)),
            patch=obj.get("patch"),
            previous_path=obj.get("previous_path"),
            patch_truncated=bool(obj.get("patch_truncated", False)),
        )


@dataclass(frozen=True)
class ClassifiedFile:
    file: ChangedFile
    channel: Channel

    @property
    def path(self) -> str:
        return self.file.path


@dataclass(frozen=True)
class PullRequestRevision:
    repo_id: int
    pr_id: int
    number: int
    head_sha: str
    files: Tuple[ChangedFile, ...] = ()
    state: PrState = PrState.OPEN
    title: Optional[str] = None
    url: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.pr_id}:{self.head_sha}"

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "PullRequestRevision":
        return cls(
            repo_id=int(obj["repo_id"]),
            pr_id=int(obj["pr_id"]),
            number=int(obj.get("number", obj["pr_id"])),
            head_sha=str(obj["head_sha"]),
            files=tuple(ChangedFile.from_dict(f) for f in obj.get("files", [])),
            state=PrState(str(obj.get("state", "OPEN")).upper()),
            title=obj.get("title"),
            url=obj.get("url"),
        )


@dataclass(frozen=True)
class Candidate:
    """A PR head retrieved from the indices, with every strategy that found it."""
    pr_id: int
    head_sha: str
    provenance: Tuple[Provenance, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.pr_id}:{self.head_sha}"


@dataclass(frozen=True)
class ScoredEdge:
    analysis_run_id: str
    repo_id: int
    pr_id_a: int
    head_sha_a: str
    pr_id_b: int
    head_sha_b: str
    rank: int
    category: TriageCategory
    final_score: float
    prod_score: float
    scores: Any  # scoring.scorer.PairScores
    evidence: Any  # scoring.evidence.EvidenceBundle
    provenance: Tuple[Provenance, ...] = ()
    config_version: int = 0
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis_run_id": self.analysis_run_id,
            "repo_id": self.repo_id,
            "pr_id_a": self.pr_id_a,
            "head_sha_a": self.head_sha_a,
            "pr_id_b": self.pr_id_b,
            "head_sha_b": self.head_sha_b,
            "rank": self.rank,
            "category": self.category.value,
            "final_score": self.final_score,
            "prod_score": self.prod_score,
            "scores": self.scores.to_dict(),
            "evidence": self.evidence.to_dict(),
            "provenance": [p.value for p in self.provenance],
            "config_version": self.config_version,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ScoredEdge":
        from ..scoring.evidence import EvidenceBundle
        from ..scoring.scorer import PairScores

        return cls(
            analysis_run_id=obj["analysis_run_id"],
            repo_id=int(obj["repo_id"]),
            pr_id_a=int(obj["pr_id_a"]),
            head_sha_a=obj["head_sha_a"],
            pr_id_b=int(obj["pr_id_b"]),
            head_sha_b=obj["head_sha_b"],
            rank=int(obj["rank"]),
            category=TriageCategory(obj["category"]),
            final_score=float(obj["final_score"]),
            prod_score=float(obj["prod_score"]),
            scores=PairScores.from_dict(obj["scores"]),
            evidence=EvidenceBundle.from_dict(obj["evidence"]),
            provenance=tuple(Provenance(p) for p in obj.get("provenance", [])),
            config_version=int(obj.get("config_version", 0)),
            created_at=float(obj.get("created_at", 0.0)),
        )


@dataclass
class AnalysisRun:
    """One pass over a PR head under an explicit version tuple."""
    repo_id: int
    pr_id: int
    head_sha: str
    signature_version: int
    algorithm_version: int
    config_version: int
    analysis_run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: RunStatus = RunStatus.RUNNING
    degraded_reasons: List[str] = field(default_factory=list)
    error: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    def add_degraded_reason(self, reason: str) -> None:
        if reason not in self.degraded_reasons:
            self.degraded_reasons.append(reason)

    def finish(self) -> None:
        self.status = RunStatus.DEGRADED if self.degraded_reasons else RunStatus.DONE
        self.finished_at = time.time()

    def fail(self, error: str) -> None:
        self.status = RunStatus.FAILED
        self.error = error
        self.finished_at = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis_run_id": self.analysis_run_id,
            "repo_id": self.repo_id,
            "pr_id": self.pr_id,
            "head_sha": self.head_sha,
            "signature_version": self.signature_version,
            "algorithm_version": self.algorithm_version,
            "config_version": self.config_version,
            "status": self.status.value,
            "degraded_reasons": list(self.degraded_reasons),
            "error": self.error,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "AnalysisRun":
        return cls(
            repo_id=int(obj["repo_id"]),
            pr_id=int(obj["pr_id"]),
            head_sha=obj["head_sha"],
            signature_version=int(obj["signature_version"]),
            algorithm_version=int(obj["algorithm_version"]),
            config_version=int(obj["config_version"]),
            analysis_run_id=obj["analysis_run_id"],
            status=RunStatus(obj["status"]),
            degraded_reasons=list(obj.get("degraded_reasons", [])),
            error=obj.get("error"),
            started_at=float(obj.get("started_at", 0.0)),
            finished_at=obj.get("finished_at"),
        )


@dataclass
class AnalysisResult:
    run: AnalysisRun
    edges: List[ScoredEdge] = field(default_factory=list)
