"""Tests for duplicate sets, check summaries and metrics."""
from pr_triage.metrics import TriageMetrics
from pr_triage.pipeline.context import AnalysisRun, PrState, RunStatus, ScoredEdge, TriageCategory
from pr_triage.reports.duplicate_sets import UnionFind, build_duplicate_sets, find_set_for
from pr_triage.reports.summary import (
    TITLE_FOUND,
    TITLE_NONE,
    build_check_summary,
    format_edge_line,
)
from pr_triage.scoring.evidence import EvidenceBundle
from pr_triage.scoring.scorer import PairScores
from pr_triage.stores.base import HeadRecord
from pr_triage.utils.hashing import sha256_hex


def _node(pr_id, sha, analyzed_at=0.0):
    return HeadRecord(repo_id=1, pr_id=pr_id, number=pr_id + 100, head_sha=sha, state=PrState.OPEN,
                      signature_version=1, analyzed_at=analyzed_at)


def _edge(a, sa, b, sb, category=TriageCategory.SAME_CHANGE, score=0.9, paths=("src/a.ts",), rank=1):
    return ScoredEdge(
        analysis_run_id="run", repo_id=1, pr_id_a=a, head_sha_a=sa, pr_id_b=b, head_sha_b=sb,
        rank=rank, category=category, final_score=score, prod_score=score, scores=PairScores(),
        evidence=EvidenceBundle(overlapping_production_paths=tuple(paths)),
    )


def _run(status=RunStatus.DONE, reasons=()):
    run = AnalysisRun(repo_id=1, pr_id=1, head_sha="abcdef1234567890", signature_version=1,
                      algorithm_version=1, config_version=1)
    for r in reasons:
        run.add_degraded_reason(r)
    run.finish()
    assert run.status is status
    return run


class TestUnionFind:

    def test_smaller_root_wins(self):
        uf = UnionFind()
        uf.union("b", "c")
        uf.union("c", "a")
        assert uf.find("c") == "a"
        assert uf.find("b") == "a"

    def test_singletons(self):
        assert UnionFind().find("x") == "x"


class TestDuplicateSets:

    def test_connected_components(self):
        nodes = [_node(1, "a", 5.0), _node(2, "b", 7.0), _node(3, "c", 6.0), _node(4, "d")]
        edges = [
            _edge(2, "b", 1, "a", score=0.9),
            _edge(3, "c", 2, "b", category=TriageCategory.RELATED, score=0.6),
            _edge(1, "a", 2, "b", score=0.7),  # same pair, weaker
        ]
        sets = build_duplicate_sets(nodes, edges)
        assert len(sets) == 1
        s = sets[0]
        assert [m.pr_id for m in s.members] == [1, 2, 3]
        assert s.set_id == sha256_hex("1:a,2:b,3:c")[:16]
        assert s.max_score == 0.9
        assert s.categories == (TriageCategory.RELATED, TriageCategory.SAME_CHANGE)
        assert s.last_analyzed_at == 7.0
        assert len(s.strongest_edges) == 2
        assert s.strongest_edges[0].score == 0.9
        assert find_set_for(sets, 3) is s
        assert find_set_for(sets, 4) is None

    def test_edges_to_superseded_or_closed_heads_are_ignored(self):
        nodes = [_node(1, "a2"), _node(2, "b")]
        edges = [_edge(2, "b", 1, "a1"), _edge(2, "b", 9, "z")]
        assert build_duplicate_sets(nodes, edges) == []

    def test_ordering(self):
        nodes = [_node(i, f"s{i}") for i in range(1, 8)]
        edges = [
            _edge(1, "s1", 2, "s2", score=0.7),
            _edge(3, "s3", 4, "s4", score=0.9),
            _edge(5, "s5", 6, "s6", score=0.9, category=TriageCategory.RELATED),
            _edge(7, "s7", 6, "s6", score=0.8, category=TriageCategory.SAME_FEATURE),
        ]
        sets = build_duplicate_sets(nodes, edges)
        # equal max score: fewer categories first
        assert [[m.pr_id for m in s.members] for s in sets] == [[3, 4], [5, 6, 7], [1, 2]]

    def test_to_dict(self):
        nodes = [_node(1, "a"), _node(2, "b")]
        d = build_duplicate_sets(nodes, [_edge(1, "a", 2, "b")])[0].to_dict()
        assert d["size"] == 2
        assert d["members"][0]["pr_number"] == 101
        assert d["strongest_edges"][0]["category"] == "SAME_CHANGE"


class TestCheckSummary:

    def test_edge_line(self):
        edge = _edge(1, "a", 2, "b", score=0.91234, paths=("a.ts", "b.ts", "c.ts", "d.ts"))
        assert format_edge_line(edge, 42) == "- #42 | SAME_CHANGE | score 0.912 | paths: a.ts, b.ts, c.ts"

    def test_edge_line_without_paths(self):
        edge = _edge(1, "a", 2, "b", paths=())
        assert format_edge_line(edge).endswith("paths: none")
        assert format_edge_line(edge).startswith("- #2 |")

    def test_top_five_only(self):
        edges = [_edge(1, "a", i, f"s{i}", rank=i) for i in range(2, 10)]
        summary = build_check_summary(_run(), edges)
        assert summary.title == TITLE_FOUND
        assert len(summary.summary.splitlines()) == 5

    def test_no_edges(self):
        summary = build_check_summary(_run(), [])
        assert summary.title == TITLE_NONE
        assert "incomplete" not in summary.text

    def test_degraded_note(self):
        run = _run(RunStatus.DEGRADED, ["truncated_production_patch"])
        summary = build_check_summary(run, [])
        assert "results may be incomplete" in summary.text
        assert "truncated_production_patch" in summary.text

    def test_length_cap(self):
        edges = [_edge(1, "a", i, f"s{i}", paths=("x" * 300,)) for i in range(2, 7)]
        summary = build_check_summary(_run(), edges, max_chars=200)
        assert len(summary.summary) <= 200
        assert summary.summary.endswith("...")

    def test_length_cap_covers_summary_and_text_together(self):
        edges = [_edge(1, "a", i, f"s{i}", paths=("x" * 300,)) for i in range(2, 7)]
        summary = build_check_summary(_run(), edges, max_chars=200)
        assert len(summary.summary) + len(summary.text) <= 200

    def test_degraded_note_survives_truncation(self):
        run = _run(RunStatus.DEGRADED, ["truncated_production_patch"])
        edges = [_edge(1, "a", i, f"s{i}", paths=("x" * 300,)) for i in range(2, 7)]
        summary = build_check_summary(run, edges, max_chars=200)
        assert len(summary.summary) + len(summary.text) <= 200
        assert summary.text.endswith("Note: results may be incomplete (truncated_production_patch).")

    def test_long_reason_list_keeps_note_prefix(self):
        run = _run(RunStatus.DEGRADED, [f"candidate_signature_missing:{i}" for i in range(50)])
        summary = build_check_summary(run, [], max_chars=400)
        assert len(summary.summary) + len(summary.text) <= 400
        assert "Note: results may be incomplete (" in summary.text


def test_metrics_summary():
    metrics = TriageMetrics()
    metrics.record_run(_run(), [_edge(1, "a", 2, "b")])
    metrics.record_run(_run(RunStatus.DEGRADED, ["candidate_signature_missing:4", "candidate_signature_missing:5"]), [])
    failed = AnalysisRun(repo_id=1, pr_id=3, head_sha="c", signature_version=1, algorithm_version=1, config_version=1)
    failed.fail("boom")
    metrics.record_run(failed, [])

    assert (metrics.total_runs, metrics.done_runs, metrics.degraded_runs, metrics.failed_runs) == (3, 1, 1, 1)
    assert metrics.degraded_reason_counts == {"candidate_signature_missing": 2}
    text = metrics.summary()
    assert "Degraded rate: 33.33%" in text
    assert "candidate_signature_missing: 2" in text
