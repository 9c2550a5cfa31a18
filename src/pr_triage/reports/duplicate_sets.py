"""Duplicate sets: connected components of the duplicate graph.

Edges are directional per analysis (target -> candidate), but a reader wants
groups: "these four PRs are the same thing". Sets are computed at read time
with union-find over (pr_id, head_sha) keys, using only nodes that are open at
their current head, so a new head or a closed PR simply drops out of the view.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..pipeline.context import ScoredEdge, TriageCategory
from ..stores.base import HeadRecord
from ..utils.hashing import sha256_hex

STRONGEST_EDGES = 5


def _node_key(pr_id: int, head_sha: str) -> str:
    return f"{pr_id}:{head_sha}"


class UnionFind:
    """Union-find over string keys; the lexicographically smaller root wins."""

    def __init__(self) -> None:
        self.parent: Dict[str, str] = {}

    def find(self, key: str) -> str:
        root = self.parent.setdefault(key, key)
        if root == key:
            return key
        root = self.find(root)
        self.parent[key] = root
        return root

    def union(self, left: str, right: str) -> None:
        a, b = self.find(left), self.find(right)
        if a == b:
            return
        if a < b:
            self.parent[b] = a
        else:
            self.parent[a] = b


@dataclass(frozen=True)
class SetEdge:
    left: HeadRecord
    right: HeadRecord
    category: TriageCategory
    score: float
    evidence: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_pr_number": self.left.number,
            "from_pr_url": self.left.url,
            "to_pr_number": self.right.number,
            "to_pr_url": self.right.url,
            "category": self.category.value,
            "score": self.score,
            "evidence": self.evidence.to_dict() if hasattr(self.evidence, "to_dict") else self.evidence,
        }


@dataclass(frozen=True)
class DuplicateSet:
    set_id: str
    members: Tuple[HeadRecord, ...]
    max_score: float
    categories: Tuple[TriageCategory, ...]
    last_analyzed_at: float
    strongest_edges: Tuple[SetEdge, ...] = field(default_factory=tuple)

    @property
    def size(self) -> int:
        return len(self.members)

    def sort_key(self) -> Tuple[float, int, int, float, str]:
        return (-self.max_score, len(self.categories), self.size, -self.last_analyzed_at, self.set_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "set_id": self.set_id,
            "size": self.size,
            "max_score": self.max_score,
            "categories": [c.value for c in self.categories],
            "last_analyzed_at": self.last_analyzed_at,
            "members": [
                {
                    "pr_id": m.pr_id,
                    "pr_number": m.number,
                    "head_sha": m.head_sha,
                    "title": m.title,
                    "url": m.url,
                    "state": m.state.value,
                    "last_analyzed_at": m.analyzed_at,
                }
                for m in self.members
            ],
            "strongest_edges": [e.to_dict() for e in self.strongest_edges],
        }


def _ordered_pair(a: HeadRecord, b: HeadRecord) -> Tuple[HeadRecord, HeadRecord]:
    if a.pr_id != b.pr_id:
        return (a, b) if a.pr_id < b.pr_id else (b, a)
    return (a, b) if a.head_sha <= b.head_sha else (b, a)


def build_duplicate_sets(nodes: Iterable[HeadRecord], edges: Iterable[ScoredEdge]) -> List[DuplicateSet]:
    nodes_by_key = {_node_key(n.pr_id, n.head_sha): n for n in nodes}
    uf = UnionFind()

    deduped: Dict[str, SetEdge] = {}
    for edge in edges:
        a = nodes_by_key.get(_node_key(edge.pr_id_a, edge.head_sha_a))
        b = nodes_by_key.get(_node_key(edge.pr_id_b, edge.head_sha_b))
        if a is None or b is None:
            continue
        left, right = _ordered_pair(a, b)
        lk, rk = _node_key(left.pr_id, left.head_sha), _node_key(right.pr_id, right.head_sha)
        pair_key = f"{lk}|{rk}"
        existing = deduped.get(pair_key)
        if existing is None or edge.final_score > existing.score:
            deduped[pair_key] = SetEdge(left, right, edge.category, edge.final_score, edge.evidence)
        uf.union(lk, rk)

    members_by_root: Dict[str, List[HeadRecord]] = {}
    for key, node in nodes_by_key.items():
        members_by_root.setdefault(uf.find(key), []).append(node)

    edges_by_root: Dict[str, List[SetEdge]] = {}
    for e in deduped.values():
        edges_by_root.setdefault(uf.find(_node_key(e.left.pr_id, e.left.head_sha)), []).append(e)

    out: List[DuplicateSet] = []
    for root, members in members_by_root.items():
        set_edges = edges_by_root.get(root, [])
        if len(members) < 2 or not set_edges:
            continue
        members.sort(key=lambda m: (m.number, m.head_sha))
        strongest = sorted(set_edges, key=lambda e: (-e.score, e.left.number, e.right.number))[:STRONGEST_EDGES]
        signature = ",".join(_node_key(m.pr_id, m.head_sha) for m in members)
        out.append(DuplicateSet(
            set_id=sha256_hex(signature)[:16],
            members=tuple(members),
            max_score=max(e.score for e in set_edges),
            categories=tuple(sorted({e.category for e in set_edges}, key=lambda c: c.value)),
            last_analyzed_at=max(m.analyzed_at for m in members),
            strongest_edges=tuple(strongest),
        ))
    out.sort(key=DuplicateSet.sort_key)
    return out


def latest_edges(results: Sequence) -> List[ScoredEdge]:
    """Flatten AnalysisResults into one edge list."""
    edges: List[ScoredEdge] = []
    for result in results:
        edges.extend(result.edges)
    return edges


def find_set_for(sets: Sequence[DuplicateSet], pr_id: int) -> Optional[DuplicateSet]:
    for s in sets:
        if any(m.pr_id == pr_id for m in s.members):
            return s
    return None
