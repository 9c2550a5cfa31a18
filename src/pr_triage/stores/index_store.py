"""Local index store: in-memory inverted indices with an optional JSON snapshot.

Suitable for a single process and for tests. Every index is keyed by
(repo_id, signature_version, value) so repos never see each other's PRs and a
signature version bump starts from empty buckets.

LSH buckets expire: each bucket has an expiry that is pushed forward on every
insert (the "recent PR window"), and expired buckets are ignored on lookup and
pruned on flush.
"""

from __future__ import annotations
import json
import logging
import threading
import time
from collections import Counter
from dataclasses import asdict, dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import StoreError
from ..pipeline.context import PrState
from ..storage.base import StorageBackend
from .base import SYMBOL_KIND_DECL, SYMBOL_KIND_EXPORT, SYMBOL_KIND_IMPORT, HeadRecord, IndexStore, PrHeadRef

log = logging.getLogger("pr_triage.stores.index")

SNAPSHOT_VERSION = 1


@dataclass
class _IndexedHead:
    head: HeadRecord
    canonical_diff_hash: Optional[str]
    production_paths: Tuple[str, ...]
    symbols: Dict[str, Tuple[str, ...]]


@dataclass
class _Bucket:
    members: Set[str] = field(default_factory=set)
    expires_at: float = 0.0


class LocalIndexStore(IndexStore):
    def __init__(
        self,
        storage: Optional[StorageBackend] = None,
        root_path: str = "",
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.root_path = root_path
        self.clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[Tuple[int, int], _IndexedHead] = {}
        self._by_hash: Dict[Tuple[int, int, str], Set[int]] = {}
        self._by_path: Dict[Tuple[int, int, str], Set[int]] = {}
        self._by_symbol: Dict[Tuple[int, int, str, str], Set[int]] = {}
        self._buckets: Dict[Tuple[int, int, str], _Bucket] = {}
        self._snapshot_path = storage.join(root_path, "index.json") if storage is not None else ""
        self._load()

    # ------------------------------------------------------------ writes

    def record_revision(
        self,
        head: HeadRecord,
        *,
        canonical_diff_hash: Optional[str],
        production_paths: Sequence[str],
        symbols: Mapping[str, Sequence[str]],
    ) -> None:
        entry = _IndexedHead(
            head=head,
            canonical_diff_hash=canonical_diff_hash,
            production_paths=tuple(sorted(set(production_paths))),
            symbols={kind: tuple(sorted(set(names))) for kind, names in symbols.items()},
        )
        with self._lock:
            self._unindex(head.repo_id, head.pr_id)
            self._index(entry)

    def set_pr_state(self, repo_id: int, pr_id: int, state: PrState) -> None:
        with self._lock:
            entry = self._entries.get((repo_id, pr_id))
            if entry is None:
                log.debug("state change for unindexed PR %s in repo %s", pr_id, repo_id)
                return
            entry.head = replace(entry.head, state=state)

    def insert_lsh_buckets(
        self, repo_id: int, signature_version: int, member: PrHeadRef, bucket_ids: Sequence[str], ttl_seconds: int
    ) -> None:
        expires_at = self.clock() + ttl_seconds
        with self._lock:
            for bucket_id in bucket_ids:
                bucket = self._buckets.setdefault((repo_id, signature_version, bucket_id), _Bucket())
                if bucket.expires_at <= self.clock():
                    bucket.members.clear()
                bucket.members.add(member.key)
                bucket.expires_at = expires_at

    def _index(self, entry: _IndexedHead) -> None:
        h = entry.head
        sv = h.signature_version
        self._entries[(h.repo_id, h.pr_id)] = entry
        if entry.canonical_diff_hash:
            self._by_hash.setdefault((h.repo_id, sv, entry.canonical_diff_hash), set()).add(h.pr_id)
        for path in entry.production_paths:
            self._by_path.setdefault((h.repo_id, sv, path), set()).add(h.pr_id)
        for kind, names in entry.symbols.items():
            for name in names:
                self._by_symbol.setdefault((h.repo_id, sv, kind, name), set()).add(h.pr_id)

    def _unindex(self, repo_id: int, pr_id: int) -> None:
        old = self._entries.pop((repo_id, pr_id), None)
        if old is None:
            return
        sv = old.head.signature_version
        keys: List[Tuple[Dict, tuple]] = []
        if old.canonical_diff_hash:
            keys.append((self._by_hash, (repo_id, sv, old.canonical_diff_hash)))
        keys.extend((self._by_path, (repo_id, sv, p)) for p in old.production_paths)
        for kind, names in old.symbols.items():
            keys.extend((self._by_symbol, (repo_id, sv, kind, n)) for n in names)
        for index, key in keys:
            members = index.get(key)
            if members is None:
                continue
            members.discard(pr_id)
            if not members:
                del index[key]

    # ------------------------------------------------------------- reads

    def _current_ref(self, repo_id: int, signature_version: int, pr_id: int, exclude_pr_id: int) -> Optional[PrHeadRef]:
        if pr_id == exclude_pr_id:
            return None
        entry = self._entries.get((repo_id, pr_id))
        if entry is None:
            return None
        head = entry.head
        if head.state is not PrState.OPEN or head.signature_version != signature_version:
            return None
        return head.ref

    def _rank(self, counts: Counter, repo_id: int, signature_version: int, exclude_pr_id: int, limit: int) -> List[PrHeadRef]:
        out: List[PrHeadRef] = []
        for pr_id, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
            ref = self._current_ref(repo_id, signature_version, pr_id, exclude_pr_id)
            if ref is not None:
                out.append(ref)
                if len(out) >= limit:
                    break
        return out

    def find_by_canonical_hash(
        self, repo_id: int, signature_version: int, canonical_diff_hash: str, exclude_pr_id: int, limit: int
    ) -> List[PrHeadRef]:
        with self._lock:
            members = self._by_hash.get((repo_id, signature_version, canonical_diff_hash), set())
            return self._rank(Counter(members), repo_id, signature_version, exclude_pr_id, limit)

    def find_by_paths(
        self, repo_id: int, signature_version: int, paths: Sequence[str], exclude_pr_id: int, limit: int
    ) -> List[PrHeadRef]:
        with self._lock:
            counts: Counter = Counter()
            for path in set(paths):
                counts.update(self._by_path.get((repo_id, signature_version, path), ()))
            return self._rank(counts, repo_id, signature_version, exclude_pr_id, limit)

    def find_by_symbols(
        self,
        repo_id: int,
        signature_version: int,
        symbols: Mapping[str, Sequence[str]],
        exclude_pr_id: int,
        limit: int,
    ) -> List[PrHeadRef]:
        with self._lock:
            counts: Counter = Counter()
            for kind, names in symbols.items():
                for name in set(names):
                    counts.update(self._by_symbol.get((repo_id, signature_version, kind, name), ()))
            return self._rank(counts, repo_id, signature_version, exclude_pr_id, limit)

    def find_by_lsh_buckets(
        self, repo_id: int, signature_version: int, bucket_ids: Sequence[str], exclude_pr_id: int, limit: int
    ) -> List[PrHeadRef]:
        now = self.clock()
        with self._lock:
            counts: Counter = Counter()
            for bucket_id in bucket_ids:
                bucket = self._buckets.get((repo_id, signature_version, bucket_id))
                if bucket is None or bucket.expires_at <= now:
                    continue
                counts.update(bucket.members)
            out: List[PrHeadRef] = []
            for key, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
                member = PrHeadRef.parse(key)
                ref = self._current_ref(repo_id, signature_version, member.pr_id, exclude_pr_id)
                # Members written for a superseded head are stale.
                if ref is None or ref.head_sha != member.head_sha:
                    continue
                out.append(ref)
                if len(out) >= limit:
                    break
            return out

    def bucket_members(self, repo_id: int, signature_version: int, bucket_id: str) -> Set[str]:
        with self._lock:
            bucket = self._buckets.get((repo_id, signature_version, bucket_id))
            if bucket is None or bucket.expires_at <= self.clock():
                return set()
            return set(bucket.members)

    def open_heads(self, repo_id: int) -> List[HeadRecord]:
        with self._lock:
            heads = [
                e.head for (r, _), e in self._entries.items()
                if r == repo_id and e.head.state is PrState.OPEN
            ]
        return sorted(heads, key=lambda h: h.pr_id)

    def get_head(self, repo_id: int, pr_id: int) -> Optional[HeadRecord]:
        with self._lock:
            entry = self._entries.get((repo_id, pr_id))
            return entry.head if entry is not None else None

    # ------------------------------------------------------- persistence

    def prune_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [k for k, b in self._buckets.items() if b.expires_at <= now]
            for k in expired:
                del self._buckets[k]
        return len(expired)

    def _snapshot(self) -> Dict:
        entries = []
        for entry in self._entries.values():
            h = entry.head
            entries.append({
                "head": {**asdict(h), "state": h.state.value},
                "canonical_diff_hash": entry.canonical_diff_hash,
                "production_paths": list(entry.production_paths),
                "symbols": {k: list(v) for k, v in entry.symbols.items()},
            })
        buckets = [
            {
                "repo_id": repo_id,
                "signature_version": sv,
                "bucket_id": bucket_id,
                "members": sorted(b.members),
                "expires_at": b.expires_at,
            }
            for (repo_id, sv, bucket_id), b in self._buckets.items()
        ]
        return {"snapshot_version": SNAPSHOT_VERSION, "entries": entries, "buckets": buckets}

    def flush(self) -> None:
        if self.storage is None:
            return
        self.prune_expired()
        with self._lock:
            payload = json.dumps(self._snapshot(), sort_keys=True).encode("utf-8")
        try:
            self.storage.write_file(self._snapshot_path, payload)
        except OSError as exc:
            raise StoreError(f"failed to write index snapshot {self._snapshot_path}: {exc}") from exc

    def _load(self) -> None:
        if self.storage is None or not self.storage.exists(self._snapshot_path):
            return
        try:
            obj = json.loads(self.storage.read_file(self._snapshot_path).decode("utf-8"))
            for raw in obj.get("entries", []):
                head = HeadRecord(**{**raw["head"], "state": PrState(raw["head"]["state"])})
                self._index(_IndexedHead(
                    head=head,
                    canonical_diff_hash=raw.get("canonical_diff_hash"),
                    production_paths=tuple(raw.get("production_paths", [])),
                    symbols={k: tuple(v) for k, v in raw.get("symbols", {}).items()},
                ))
            for raw in obj.get("buckets", []):
                key = (int(raw["repo_id"]), int(raw["signature_version"]), raw["bucket_id"])
                self._buckets[key] = _Bucket(members=set(raw["members"]), expires_at=float(raw["expires_at"]))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StoreError(f"failed to load index snapshot {self._snapshot_path}: {exc}") from exc
        log.info("loaded index snapshot: %d heads, %d buckets", len(self._entries), len(self._buckets))


def symbols_by_kind(exports: Iterable[str], decls: Iterable[str], imports: Iterable[str]) -> Dict[str, List[str]]:
    return {
        SYMBOL_KIND_EXPORT: list(exports),
        SYMBOL_KIND_DECL: list(decls),
        SYMBOL_KIND_IMPORT: list(imports),
    }
