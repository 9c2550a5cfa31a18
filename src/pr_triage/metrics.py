"""Triage metrics: run outcomes, candidate provenance, edge categories."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .pipeline.context import AnalysisRun, Candidate, RunStatus, ScoredEdge


@dataclass
class TriageMetrics:
    """Counters for a batch of analyses (one CLI scan, one worker lifetime)."""

    total_runs: int = 0
    done_runs: int = 0
    degraded_runs: int = 0
    failed_runs: int = 0
    total_candidates: int = 0
    total_edges: int = 0
    candidates_by_provenance: Dict[str, int] = field(default_factory=dict)
    edges_by_category: Dict[str, int] = field(default_factory=dict)
    degraded_reason_counts: Dict[str, int] = field(default_factory=dict)
    top_degraded_reasons: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def degraded_rate_pct(self) -> float:
        if self.total_runs == 0:
            return 0.0
        return 100.0 * self.degraded_runs / self.total_runs

    @property
    def edges_per_run(self) -> float:
        if self.total_runs == 0:
            return 0.0
        return self.total_edges / self.total_runs

    def record_candidates(self, candidates: Iterable[Candidate]) -> None:
        for c in candidates:
            self.total_candidates += 1
            for p in c.provenance:
                self.candidates_by_provenance[p.value] = self.candidates_by_provenance.get(p.value, 0) + 1

    def record_run(self, run: AnalysisRun, edges: Iterable[ScoredEdge]) -> None:
        self.total_runs += 1
        if run.status is RunStatus.FAILED:
            self.failed_runs += 1
            return
        if run.status is RunStatus.DEGRADED:
            self.degraded_runs += 1
        else:
            self.done_runs += 1
        for reason in run.degraded_reasons:
            # candidate_signature_missing:<pr_id> counts under its prefix
            key = reason.split(":", 1)[0]
            self.degraded_reason_counts[key] = self.degraded_reason_counts.get(key, 0) + 1
        for e in edges:
            self.total_edges += 1
            self.edges_by_category[e.category.value] = self.edges_by_category.get(e.category.value, 0) + 1

    def compute_top_degraded_reasons(self, n: int = 10) -> None:
        self.top_degraded_reasons = sorted(
            self.degraded_reason_counts.items(),
            key=lambda x: (-x[1], x[0]),
        )[:n]

    def summary(self) -> str:
        self.compute_top_degraded_reasons()
        lines = [
            "=== Triage Metrics ===",
            f"Runs: {self.total_runs} (done {self.done_runs}, degraded {self.degraded_runs}, failed {self.failed_runs})",
            f"Degraded rate: {self.degraded_rate_pct:.2f}%",
            f"Candidates: {self.total_candidates}",
            f"Edges: {self.total_edges} ({self.edges_per_run:.2f} per run)",
            "Candidates by provenance:",
        ]
        for name, cnt in sorted(self.candidates_by_provenance.items()):
            lines.append(f"  {name}: {cnt}")
        lines.append("Edges by category:")
        for name, cnt in sorted(self.edges_by_category.items()):
            lines.append(f"  {name}: {cnt}")
        if self.top_degraded_reasons:
            lines.append("Degraded reasons:")
            for reason, cnt in self.top_degraded_reasons:
                lines.append(f"  {reason}: {cnt}")
        return "\n".join(lines)
