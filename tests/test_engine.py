"""End-to-end analysis scenarios against in-memory stores."""
import numpy as np
import pytest

from pr_triage.config.settings import RuntimeSettings
from pr_triage.errors import StoreError
from pr_triage.fingerprints.minhash import empty_signature
from pr_triage.metrics import TriageMetrics
from pr_triage.pipeline.analyze import TriageEngine
from pr_triage.pipeline.context import Channel, PrState, Provenance, RunStatus, TriageCategory
from pr_triage.stores.base import HeadRecord
from pr_triage.stores.index_store import LocalIndexStore
from pr_triage.stores.signature_store import LocalSignatureStore

CART = (
    '+import { Money } from "./money";',
    "+export function cartTotal(items) {",
    "+  return items.reduce((sum, item) => sum + item.price * item.qty, 0);",
    "+}",
)

CART_TESTS = (
    '+import { describe, it, expect } from "vitest";',
    '+import { total } from "../src/cart";',
    '+describe("cart total", () => {',
    '+  it("sums item prices", () => {',
    "+    expect(total([{ price: 2, qty: 1 }])).toBe(2);",
    "+  });",
    '+  it("returns zero for an empty cart", () => {',
    "+    expect(total([])).toEqual(0);",
    "+  });",
    "+});",
)


class SpyIndex(LocalIndexStore):
    """Records which lookups the engine performed."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def find_by_canonical_hash(self, *args, **kwargs):
        self.calls.append("hash")
        return super().find_by_canonical_hash(*args, **kwargs)

    def find_by_lsh_buckets(self, *args, **kwargs):
        self.calls.append("lsh")
        return super().find_by_lsh_buckets(*args, **kwargs)

    def insert_lsh_buckets(self, *args, **kwargs):
        self.calls.append("insert_lsh")
        return super().insert_lsh_buckets(*args, **kwargs)


class FailingSignatureStore(LocalSignatureStore):
    def put_signatures(self, signatures):
        raise StoreError("signature store unavailable")


@pytest.fixture
def engine(rules, thresholds):
    return TriageEngine(rules, thresholds, LocalIndexStore(), LocalSignatureStore())


class TestScenarios:

    def test_identical_production_diff_is_same_change(self, engine, make_file, make_revision):
        first = make_revision(1, "a1", [make_file("src/cart.ts", *CART), make_file("tests/cart.test.ts", *CART_TESTS)])
        second = make_revision(2, "b1", [
            make_file("src/cart.ts", *CART),
            make_file("tests/other.test.ts", '+describe("checkout", () => { it("charges", () => {}) })'),
        ])
        assert engine.analyze(first).edges == []

        result = engine.analyze(second)
        assert result.run.status is RunStatus.DONE
        assert len(result.edges) == 1
        edge = result.edges[0]
        assert edge.category is TriageCategory.SAME_CHANGE
        assert edge.scores.exact == 1.0
        assert edge.rank == 1
        assert (edge.pr_id_a, edge.pr_id_b, edge.head_sha_b) == (2, 1, "a1")
        assert edge.provenance[:2] == (Provenance.EXACT_HASH, Provenance.LSH_BUCKET)
        assert edge.evidence.overlapping_production_paths == ("src/cart.ts",)
        assert edge.config_version == 1

    def test_shared_tests_with_different_code_is_competing(self, engine, make_file, make_revision):
        first = make_revision(1, "a1", [
            make_file("src/cart/total.ts",
                      '+import { Money } from "./money";',
                      "+export function computeTotal(items) { return items.map(priceOf).reduce(add, zero); }"),
            make_file("tests/cart.test.ts", *CART_TESTS),
        ])
        second = make_revision(2, "b1", [
            make_file("src/cart/sum.ts",
                      '+import { Money } from "./money";',
                      "+export const sumItems = (list) => { let acc = 0; for (const x of list) acc += x.price; return acc; };"),
            make_file("tests/cart.test.ts", *CART_TESTS),
        ])
        engine.analyze(first)
        result = engine.analyze(second)

        assert len(result.edges) == 1
        edge = result.edges[0]
        assert edge.provenance == (Provenance.SYMBOL_OVERLAP,)
        assert edge.scores.prod_files == 0.0
        assert edge.scores.prod_exports == 0.0
        assert edge.scores.tests_intent == 1.0
        assert edge.category is TriageCategory.COMPETING_IMPLEMENTATION
        assert edge.evidence.overlapping_imports == ("./money",)
        assert "cart total" in edge.evidence.tests_suite_names

    def test_docs_only_pr_skips_hash_and_lsh(self, rules, thresholds, make_file, make_revision):
        index = SpyIndex()
        engine = TriageEngine(rules, thresholds, index, LocalSignatureStore())
        rev = make_revision(7, "d1", [make_file("docs/cart.md", "+# Cart", "+How totals are computed.")])
        result = engine.analyze(rev)

        assert result.edges == []
        assert "hash" not in index.calls
        assert "lsh" not in index.calls
        assert "insert_lsh" not in index.calls
        sig = engine.signatures.get_signatures(1, 7, "d1", 1)[Channel.PRODUCTION]
        assert sig.canonical_diff_hash is None
        assert np.array_equal(sig.minhash_array(), empty_signature())

    def test_unrelated_prs_produce_no_edges(self, engine, make_file, make_revision):
        engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        result = engine.analyze(make_revision(2, "b1", [
            make_file("lib/session.ts", "+export class Session { touch(key) { this.seen = Date.now(); } }"),
        ]))
        assert result.edges == []


class TestRunLifecycle:

    def test_run_is_persisted_with_versions(self, engine, make_file, make_revision):
        result = engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        stored = engine.signatures.get_result(result.run.analysis_run_id)
        assert stored is not None
        assert stored.run.status is RunStatus.DONE
        assert stored.run.finished_at is not None
        assert (stored.run.signature_version, stored.run.algorithm_version, stored.run.config_version) == (1, 1, 1)

    def test_settings_override_versions(self, rules, thresholds, make_file, make_revision):
        settings = RuntimeSettings(signature_version=3, algorithm_version=2)
        engine = TriageEngine(rules, thresholds, LocalIndexStore(), LocalSignatureStore(), settings=settings)
        result = engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        assert (result.run.signature_version, result.run.algorithm_version) == (3, 2)
        assert set(engine.signatures.get_signatures(1, 1, "a1", 3)) == set(Channel)

    def test_missing_patch_degrades_but_completes(self, engine, make_file, make_revision):
        engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        result = engine.analyze(make_revision(2, "b1", [
            make_file("src/cart.ts", *CART),
            make_file("src/big.ts", no_patch=True),
        ]))
        assert result.run.status is RunStatus.DEGRADED
        assert "missing_production_patch_segments" in result.run.degraded_reasons
        assert result.edges

    def test_candidate_without_signature_is_degraded(self, engine, make_file, make_revision):
        engine.index.record_revision(
            HeadRecord(repo_id=1, pr_id=9, number=9, head_sha="x9", state=PrState.OPEN,
                       signature_version=1, analyzed_at=0.0),
            canonical_diff_hash=None, production_paths=["src/cart.ts"], symbols={},
        )
        result = engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        assert result.run.status is RunStatus.DEGRADED
        assert "candidate_signature_missing:9" in result.run.degraded_reasons
        assert result.edges == []

    def test_store_failure_fails_run(self, rules, thresholds, make_file, make_revision):
        engine = TriageEngine(rules, thresholds, LocalIndexStore(), FailingSignatureStore())
        metrics = TriageMetrics()
        with pytest.raises(StoreError):
            engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]), metrics)
        assert metrics.failed_runs == 1

    def test_new_head_supersedes_old(self, engine, make_file, make_revision):
        engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        engine.analyze(make_revision(1, "a2", [make_file("lib/session.ts", "+export class Session {}")]))
        result = engine.analyze(make_revision(2, "b1", [make_file("src/cart.ts", *CART)]))
        assert result.edges == []

    def test_closed_pr_is_not_a_candidate(self, engine, make_file, make_revision):
        engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]))
        engine.index.set_pr_state(1, 1, PrState.CLOSED)
        assert engine.analyze(make_revision(2, "b1", [make_file("src/cart.ts", *CART)])).edges == []

    def test_metrics_are_recorded(self, engine, make_file, make_revision):
        metrics = TriageMetrics()
        engine.analyze(make_revision(1, "a1", [make_file("src/cart.ts", *CART)]), metrics)
        engine.analyze(make_revision(2, "b1", [make_file("src/cart.ts", *CART)]), metrics)
        assert metrics.total_runs == 2
        assert metrics.done_runs == 2
        assert metrics.total_edges == 1
        assert metrics.edges_by_category == {"SAME_CHANGE": 1}
        assert metrics.candidates_by_provenance["exact_hash"] == 1
        assert "Runs: 2" in metrics.summary()
