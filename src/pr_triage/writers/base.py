"""Scored edge writers.

Edges are exported per analysis run for offline review and threshold tuning.
Each writer owns a layout under `out_dir` and returns the path it wrote.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from ..pipeline.context import AnalysisRun, ScoredEdge


class EdgeWriter(ABC):
    """Writes the ranked edges of one analysis run."""
    name: str
    schema_version: str

    @abstractmethod
    def write_run(self, run: AnalysisRun, edges: Sequence[ScoredEdge], *, out_dir: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def schema(self) -> Dict[str, Any]:
        """Return schema definition for documentation/validation."""
        raise NotImplementedError
