from __future__ import annotations
import json
import os
from typing import Any, Dict, Sequence

from ..pipeline.context import AnalysisRun, ScoredEdge
from .base import EdgeWriter


class JSONLEdgeWriter(EdgeWriter):
    name = "jsonl"
    schema_version = "edges_v1"

    def schema(self) -> Dict[str, Any]:
        return {"schema_version": self.schema_version, "format": "one ScoredEdge.to_dict() per line"}

    def write_run(self, run: AnalysisRun, edges: Sequence[ScoredEdge], *, out_dir: str) -> str:
        base = os.path.join(out_dir, "edges", f"repo={run.repo_id}", f"pr={run.pr_id}")
        os.makedirs(base, exist_ok=True)
        path = os.path.join(base, f"{run.analysis_run_id}.jsonl")
        with open(path, "w", encoding="utf-8") as f:
            for e in edges:
                row = e.to_dict()
                row["run_status"] = run.status.value
                f.write(json.dumps(row, ensure_ascii=False) + "\n")
        return path
