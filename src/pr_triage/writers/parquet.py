from __future__ import annotations
import json
import os
from typing import Any, Dict, List, Sequence

import pyarrow as pa
import pyarrow.parquet as pq

from ..pipeline.context import AnalysisRun, ScoredEdge
from .base import EdgeWriter

_SCORE_COLUMNS = (
    "exact",
    "prod_minhash",
    "prod_files",
    "prod_exports",
    "prod_symbols",
    "prod_imports",
    "tests_intent",
    "docs_struct",
)


class ParquetEdgeWriter(EdgeWriter):
    """Flat edge table; evidence is kept as a JSON string column."""
    name = "parquet"
    schema_version = "edges_v1"

    def schema(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "columns": [(f.name, str(f.type)) for f in self._schema_arrow()],
        }

    def _schema_arrow(self) -> pa.Schema:
        fields: List[tuple] = [
            ("analysis_run_id", pa.string()),
            ("repo_id", pa.int64()),
            ("pr_id_a", pa.int64()),
            ("head_sha_a", pa.string()),
            ("pr_id_b", pa.int64()),
            ("head_sha_b", pa.string()),
            ("rank", pa.int32()),
            ("category", pa.string()),
            ("final_score", pa.float64()),
            ("prod_score", pa.float64()),
        ]
        fields.extend((f"score_{name}", pa.float64()) for name in _SCORE_COLUMNS)
        fields.extend([
            ("provenance", pa.list_(pa.string())),
            ("evidence_json", pa.string()),
            ("config_version", pa.int32()),
            ("run_status", pa.string()),
            ("created_at", pa.float64()),
        ])
        return pa.schema(fields, metadata={"schema_version": self.schema_version})

    def write_run(self, run: AnalysisRun, edges: Sequence[ScoredEdge], *, out_dir: str) -> str:
        path = os.path.join(out_dir, "edges", f"repo={run.repo_id}", f"pr={run.pr_id}", f"{run.analysis_run_id}.parquet")
        os.makedirs(os.path.dirname(path), exist_ok=True)

        rows = []
        for e in edges:
            row = {
                "analysis_run_id": e.analysis_run_id,
                "repo_id": e.repo_id,
                "pr_id_a": e.pr_id_a,
                "head_sha_a": e.head_sha_a,
                "pr_id_b": e.pr_id_b,
                "head_sha_b": e.head_sha_b,
                "rank": e.rank,
                "category": e.category.value,
                "final_score": e.final_score,
                "prod_score": e.prod_score,
                "provenance": [p.value for p in e.provenance],
                "evidence_json": json.dumps(e.evidence.to_dict(), sort_keys=True),
                "config_version": e.config_version,
                "run_status": run.status.value,
                "created_at": e.created_at,
            }
            scores = e.scores.to_dict()
            for name in _SCORE_COLUMNS:
                row[f"score_{name}"] = scores[name]
            rows.append(row)

        table = pa.Table.from_pylist(rows, schema=self._schema_arrow())
        pq.write_table(table, path, compression="zstd")
        return path
