"""Edge writer registry.

Writers are configured by name in triage.yaml (`output.edges_format`).
"""

from __future__ import annotations
from typing import Dict, List

from .base import EdgeWriter
from .jsonl import JSONLEdgeWriter
from .parquet import ParquetEdgeWriter

_EDGE_WRITERS: Dict[str, EdgeWriter] = {
    "jsonl": JSONLEdgeWriter(),
    "parquet": ParquetEdgeWriter(),
}


def register_edge_writer(name: str, writer: EdgeWriter) -> None:
    """Register a new edge writer at runtime."""
    if name in _EDGE_WRITERS:
        raise ValueError(f"Edge writer '{name}' already registered")
    _EDGE_WRITERS[name] = writer


def list_edge_writers() -> List[str]:
    return list(_EDGE_WRITERS.keys())


def get_edge_writer(name: str) -> EdgeWriter:
    if name not in _EDGE_WRITERS:
        raise KeyError(
            f"Unknown edge writer: {name}. "
            f"Available: {list(_EDGE_WRITERS)}. "
            f"Register with register_edge_writer()"
        )
    return _EDGE_WRITERS[name]
