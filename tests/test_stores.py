"""Tests for the local index and signature stores."""
import json
import logging
import os

import pytest

from pr_triage.errors import StoreError
from pr_triage.extractors.production import RegexProductionExtractor
from pr_triage.pipeline.context import AnalysisRun, Channel, PrState, RunStatus
from pr_triage.pipeline.fingerprint import fingerprint_revision
from pr_triage.storage.base import LocalStorageBackend, get_storage_backend
from pr_triage.stores.base import SYMBOL_KIND_EXPORT, HeadRecord, PrHeadRef
from pr_triage.stores.index_store import LocalIndexStore
from pr_triage.stores.signature_store import LocalSignatureStore


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _head(pr_id, sha, state=PrState.OPEN, sv=1, number=None):
    return HeadRecord(repo_id=1, pr_id=pr_id, number=number or pr_id, head_sha=sha, state=state,
                      signature_version=sv, analyzed_at=float(pr_id))


class TestIndexStore:

    def test_lsh_ttl_expires_and_refreshes(self):
        clock = FakeClock()
        idx = LocalIndexStore(clock=clock)
        idx.record_revision(_head(2, "b"), canonical_diff_hash=None, production_paths=[], symbols={})
        idx.insert_lsh_buckets(1, 1, PrHeadRef(2, "b"), ["0:abc"], ttl_seconds=100)

        clock.now += 50
        assert idx.find_by_lsh_buckets(1, 1, ["0:abc"], exclude_pr_id=1, limit=10) == [PrHeadRef(2, "b")]

        idx.insert_lsh_buckets(1, 1, PrHeadRef(2, "b"), ["0:abc"], ttl_seconds=100)
        clock.now += 90
        assert idx.bucket_members(1, 1, "0:abc") == {"2:b"}

        clock.now += 20
        assert idx.find_by_lsh_buckets(1, 1, ["0:abc"], exclude_pr_id=1, limit=10) == []
        assert idx.prune_expired() == 1

    def test_lsh_insert_is_idempotent(self):
        idx = LocalIndexStore()
        for _ in range(3):
            idx.insert_lsh_buckets(1, 1, PrHeadRef(2, "b"), ["0:abc", "1:def"], ttl_seconds=100)
        assert idx.bucket_members(1, 1, "0:abc") == {"2:b"}

    def test_lookups_are_scoped_by_repo_and_version(self):
        idx = LocalIndexStore()
        idx.record_revision(_head(2, "b"), canonical_diff_hash="h", production_paths=["src/a.ts"], symbols={})
        assert idx.find_by_canonical_hash(1, 1, "h", exclude_pr_id=0, limit=5) == [PrHeadRef(2, "b")]
        assert idx.find_by_canonical_hash(2, 1, "h", exclude_pr_id=0, limit=5) == []
        assert idx.find_by_canonical_hash(1, 2, "h", exclude_pr_id=0, limit=5) == []

    def test_path_lookup_ranks_by_overlap(self):
        idx = LocalIndexStore()
        idx.record_revision(_head(2, "b"), canonical_diff_hash=None, production_paths=["a", "b"], symbols={})
        idx.record_revision(_head(3, "c"), canonical_diff_hash=None, production_paths=["a"], symbols={})
        idx.record_revision(_head(4, "d"), canonical_diff_hash=None, production_paths=["a", "b", "c"], symbols={})
        found = idx.find_by_paths(1, 1, ["a", "b", "c"], exclude_pr_id=0, limit=2)
        assert found == [PrHeadRef(4, "d"), PrHeadRef(2, "b")]

    def test_symbol_kinds_are_separate(self):
        idx = LocalIndexStore()
        idx.record_revision(_head(2, "b"), canonical_diff_hash=None, production_paths=[],
                            symbols={SYMBOL_KIND_EXPORT: ["cartTotal"]})
        assert idx.find_by_symbols(1, 1, {"import": ["cartTotal"]}, exclude_pr_id=0, limit=5) == []
        assert idx.find_by_symbols(1, 1, {"export": ["cartTotal"]}, exclude_pr_id=0, limit=5) == [PrHeadRef(2, "b")]

    def test_new_head_replaces_old_entries(self):
        idx = LocalIndexStore()
        idx.record_revision(_head(2, "b1"), canonical_diff_hash="h1", production_paths=["a"], symbols={})
        idx.insert_lsh_buckets(1, 1, PrHeadRef(2, "b1"), ["0:x"], ttl_seconds=100)
        idx.record_revision(_head(2, "b2"), canonical_diff_hash="h2", production_paths=["z"], symbols={})
        assert idx.find_by_canonical_hash(1, 1, "h1", exclude_pr_id=0, limit=5) == []
        assert idx.find_by_paths(1, 1, ["a"], exclude_pr_id=0, limit=5) == []
        assert idx.find_by_lsh_buckets(1, 1, ["0:x"], exclude_pr_id=0, limit=5) == []
        assert idx.get_head(1, 2).head_sha == "b2"

    def test_open_heads(self):
        idx = LocalIndexStore()
        idx.record_revision(_head(3, "c"), canonical_diff_hash=None, production_paths=[], symbols={})
        idx.record_revision(_head(2, "b"), canonical_diff_hash=None, production_paths=[], symbols={})
        idx.set_pr_state(1, 3, PrState.MERGED)
        idx.set_pr_state(1, 42, PrState.CLOSED)
        assert [h.pr_id for h in idx.open_heads(1)] == [2]

    def test_snapshot_round_trip(self, tmp_path):
        storage = LocalStorageBackend()
        root = str(tmp_path / "index")
        idx = LocalIndexStore(storage, root)
        idx.record_revision(_head(2, "b", number=17), canonical_diff_hash="h", production_paths=["src/a.ts"],
                            symbols={SYMBOL_KIND_EXPORT: ["cartTotal"]})
        idx.insert_lsh_buckets(1, 1, PrHeadRef(2, "b"), ["0:x"], ttl_seconds=3600)
        idx.flush()

        reloaded = LocalIndexStore(storage, root)
        assert reloaded.get_head(1, 2).number == 17
        assert reloaded.find_by_canonical_hash(1, 1, "h", exclude_pr_id=0, limit=5) == [PrHeadRef(2, "b")]
        assert reloaded.find_by_lsh_buckets(1, 1, ["0:x"], exclude_pr_id=0, limit=5) == [PrHeadRef(2, "b")]

    def test_corrupt_snapshot_is_store_error(self, tmp_path):
        root = tmp_path / "index"
        root.mkdir()
        (root / "index.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError):
            LocalIndexStore(LocalStorageBackend(), str(root))


@pytest.fixture
def signatures(rules, seeds, make_file, make_revision):
    rev = make_revision(1, "a1", [make_file("src/cart.ts", "+export function cartTotal(items) { return items.length; }")])
    fp = fingerprint_revision(rev, rules, RegexProductionExtractor(), seeds)
    return list(fp.signatures.values())


class TestSignatureStore:

    def test_put_and_get(self, signatures):
        store = LocalSignatureStore()
        store.put_signatures(signatures)
        got = store.get_signatures(1, 1, "a1", 1)
        assert set(got) == set(Channel)
        assert store.get_signatures(1, 1, "a1", 2) == {}

    def test_persistence(self, tmp_path, signatures):
        storage = get_storage_backend({"type": "local"})
        root = str(tmp_path / "sigs")
        store = LocalSignatureStore(storage, root)
        store.put_signatures(signatures)
        run = AnalysisRun(repo_id=1, pr_id=1, head_sha="a1", signature_version=1, algorithm_version=1,
                          config_version=1)
        run.finish()
        store.put_result(run, [])

        reloaded = LocalSignatureStore(storage, root)
        prod = reloaded.get_signatures(1, 1, "a1", 1)[Channel.PRODUCTION]
        assert prod.to_dict() == signatures[0].to_dict()
        assert reloaded.get_result(run.analysis_run_id).run.status is RunStatus.DONE

    def test_unreadable_documents_are_skipped(self, tmp_path, signatures, caplog):
        storage = LocalStorageBackend()
        root = str(tmp_path / "sigs")
        LocalSignatureStore(storage, root).put_signatures(signatures)
        with open(os.path.join(root, "signatures", "broken.json"), "w", encoding="utf-8") as f:
            f.write("{")
        with open(os.path.join(root, "runs", "partial.json"), "w", encoding="utf-8") as f:
            json.dump({"edges": []}, f)

        with caplog.at_level(logging.WARNING, logger="pr_triage.stores.signatures"):
            reloaded = LocalSignatureStore(storage, root)
        assert len(reloaded.get_signatures(1, 1, "a1", 1)) == 4
        assert "broken.json" in caplog.text
        assert "partial.json" in caplog.text

    def test_latest_results_picks_newest_completed_run(self):
        store = LocalSignatureStore()
        runs = []
        for finished_at, status in ((10.0, RunStatus.DONE), (30.0, RunStatus.DEGRADED), (50.0, RunStatus.FAILED)):
            run = AnalysisRun(repo_id=1, pr_id=1, head_sha="a1", signature_version=1, algorithm_version=1,
                              config_version=1, status=status, finished_at=finished_at)
            store.put_result(run, [])
            runs.append(run)
        latest = store.latest_results(1)
        assert [r.run.analysis_run_id for r in latest] == [runs[1].analysis_run_id]
        assert store.latest_results(2) == []

    def test_write_failure_is_store_error(self, tmp_path, signatures):
        class ReadOnly(LocalStorageBackend):
            def write_file(self, path, data):
                raise OSError("read-only file system")

        store = LocalSignatureStore(ReadOnly(), str(tmp_path / "ro"))
        with pytest.raises(StoreError):
            store.put_signatures(signatures)


def test_unknown_storage_type():
    with pytest.raises(ValueError):
        get_storage_backend({"type": "s3"})
