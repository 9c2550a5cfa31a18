"""Bounded candidate retrieval from the index store."""

from .candidates import CandidateGenerator

__all__ = ["CandidateGenerator"]
