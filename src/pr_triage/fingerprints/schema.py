"""Channel signature schema.

One ChannelSignature exists per (repo, PR, head, channel, signature_version).
It is a pure function of the channel's files and patches, so recomputing it
for the same head yields an identical record (apart from computed_at).
Signatures are stored without source text: paths, names and the MinHash
values only.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import time

import numpy as np

from ..pipeline.context import Channel
from .minhash import signature_from_bytes


@dataclass(frozen=True)
class ProductionSignals:
    exports: Tuple[str, ...] = ()
    symbols: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"exports": list(self.exports), "symbols": list(self.symbols), "imports": list(self.imports)}

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ProductionSignals":
        return cls(
            exports=tuple(obj.get("exports", [])),
            symbols=tuple(obj.get("symbols", [])),
            imports=tuple(obj.get("imports", [])),
        )


@dataclass(frozen=True)
class TestIntent:
    """What a PR's tests claim to exercise: suite/test names, matchers, imports."""
    __test__ = False

    suite_names: Tuple[str, ...] = ()
    test_names: Tuple[str, ...] = ()
    matchers: Tuple[str, ...] = ()
    imports_under_test: Tuple[str, ...] = ()

    def tokens(self) -> List[str]:
        return [*self.suite_names, *self.test_names, *self.matchers, *self.imports_under_test]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suite_names": list(self.suite_names),
            "test_names": list(self.test_names),
            "matchers": list(self.matchers),
            "imports_under_test": list(self.imports_under_test),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "TestIntent":
        return cls(
            suite_names=tuple(obj.get("suite_names", [])),
            test_names=tuple(obj.get("test_names", [])),
            matchers=tuple(obj.get("matchers", [])),
            imports_under_test=tuple(obj.get("imports_under_test", [])),
        )


@dataclass(frozen=True)
class DocsStructure:
    headings: Tuple[str, ...] = ()
    code_fences: Tuple[str, ...] = ()
    references: Tuple[str, ...] = ()

    def tokens(self) -> List[str]:
        return [*self.headings, *self.code_fences, *self.references]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headings": list(self.headings),
            "code_fences": list(self.code_fences),
            "references": list(self.references),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "DocsStructure":
        return cls(
            headings=tuple(obj.get("headings", [])),
            code_fences=tuple(obj.get("code_fences", [])),
            references=tuple(obj.get("references", [])),
        )


@dataclass(frozen=True)
class SizeMetrics:
    files: int = 0
    additions: int = 0
    deletions: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"files": self.files, "additions": self.additions, "deletions": self.deletions}


@dataclass(frozen=True, eq=False)
class ChannelSignature:
    repo_id: int
    pr_id: int
    head_sha: str
    channel: Channel
    signature_version: int
    paths: Tuple[str, ...] = ()
    canonical_diff_hash: Optional[str] = None
    minhash: Optional[bytes] = None  # little-endian uint32 values
    shingle_count: int = 0
    production: Optional[ProductionSignals] = None
    test_intent: Optional[TestIntent] = None
    doc_structure: Optional[DocsStructure] = None
    size_metrics: SizeMetrics = field(default_factory=SizeMetrics)
    computed_at: float = field(default_factory=time.time)

    @property
    def key(self) -> Tuple[int, int, str, str, int]:
        return (self.repo_id, self.pr_id, self.head_sha, self.channel.value, self.signature_version)

    def minhash_array(self) -> Optional[np.ndarray]:
        return None if self.minhash is None else signature_from_bytes(self.minhash)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repo_id": self.repo_id,
            "pr_id": self.pr_id,
            "head_sha": self.head_sha,
            "channel": self.channel.value,
            "signature_version": self.signature_version,
            "paths": list(self.paths),
            "canonical_diff_hash": self.canonical_diff_hash,
            "minhash_hex": self.minhash.hex() if self.minhash is not None else None,
            "shingle_count": self.shingle_count,
            "production": self.production.to_dict() if self.production else None,
            "test_intent": self.test_intent.to_dict() if self.test_intent else None,
            "doc_structure": self.doc_structure.to_dict() if self.doc_structure else None,
            "size_metrics": self.size_metrics.to_dict(),
            "computed_at": self.computed_at,
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ChannelSignature":
        minhash_hex = obj.get("minhash_hex")
        production = obj.get("production")
        intent = obj.get("test_intent")
        docs = obj.get("doc_structure")
        return cls(
            repo_id=int(obj["repo_id"]),
            pr_id=int(obj["pr_id"]),
            head_sha=obj["head_sha"],
            channel=Channel(obj["channel"]),
            signature_version=int(obj["signature_version"]),
            paths=tuple(obj.get("paths", [])),
            canonical_diff_hash=obj.get("canonical_diff_hash"),
            minhash=bytes.fromhex(minhash_hex) if minhash_hex is not None else None,
            shingle_count=int(obj.get("shingle_count", 0)),
            production=ProductionSignals.from_dict(production) if production is not None else None,
            test_intent=TestIntent.from_dict(intent) if intent is not None else None,
            doc_structure=DocsStructure.from_dict(docs) if docs is not None else None,
            size_metrics=SizeMetrics(**obj.get("size_metrics", {})),
            computed_at=float(obj.get("computed_at", 0.0)),
        )
