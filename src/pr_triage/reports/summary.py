"""Status check summary for a PR's ranked duplicates.

The engine only builds the text. Posting it (check run, label, comment) is the
notification layer's job and is gated by the `actions` flags in thresholds.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from ..pipeline.context import AnalysisRun, RunStatus, ScoredEdge

TITLE_FOUND = "Possible duplicate PRs"
TITLE_NONE = "No likely duplicates found"
INCOMPLETE_NOTE = "Note: results may be incomplete ({reasons})."
TOP_N = 5
MAX_PATHS_SHOWN = 3


@dataclass(frozen=True)
class CheckSummary:
    title: str
    summary: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "summary": self.summary, "text": self.text}


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    if max_chars <= 3:
        return text[: max(max_chars, 0)]
    return text[: max_chars - 3].rstrip() + "..."


def format_edge_line(edge: ScoredEdge, number: Optional[int] = None) -> str:
    paths = list(edge.evidence.overlapping_production_paths[:MAX_PATHS_SHOWN])
    shown = ", ".join(paths) if paths else "none"
    num = number if number is not None else edge.pr_id_b
    return f"- #{num} | {edge.category.value} | score {edge.final_score:.3f} | paths: {shown}"


def build_check_summary(
    run: AnalysisRun,
    edges: Sequence[ScoredEdge],
    pr_numbers: Optional[Mapping[int, int]] = None,
    max_chars: int = 4000,
) -> CheckSummary:
    """Title, top-5 summary lines and a short explanation.

    Summary and text together stay within max_chars. Room for the
    incomplete-results note is reserved first so truncation never cuts it.
    """
    pr_numbers = pr_numbers or {}
    top = list(edges)[:TOP_N]
    title = TITLE_FOUND if top else TITLE_NONE
    if top:
        summary = "\n".join(format_edge_line(e, pr_numbers.get(e.pr_id_b)) for e in top)
    else:
        summary = "No open PRs scored above the review threshold."

    body = "\n".join([
        f"Analyzed head {run.head_sha[:12]} "
        f"(signature v{run.signature_version}, algorithm v{run.algorithm_version}, config v{run.config_version}).",
        f"{len(edges)} candidate(s) surfaced; scores are production-first, tests and docs are capped.",
    ])
    note = ""
    if run.status is RunStatus.DEGRADED and run.degraded_reasons:
        # a long reason list is the only thing allowed to shorten the note
        note = "\n" + _truncate(INCOMPLETE_NOTE.format(reasons=", ".join(run.degraded_reasons)), max_chars // 2)

    remaining = max_chars - len(note)
    summary = _truncate(summary, max(remaining - len(body), remaining // 2))
    body = _truncate(body, remaining - len(summary))
    return CheckSummary(title=title, summary=summary, text=body + note)
