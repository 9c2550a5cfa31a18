"""Read-side reports: status summaries and duplicate sets."""

from .duplicate_sets import DuplicateSet, UnionFind, build_duplicate_sets
from .summary import CheckSummary, build_check_summary

__all__ = ["CheckSummary", "DuplicateSet", "UnionFind", "build_check_summary", "build_duplicate_sets"]
