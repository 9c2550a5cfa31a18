"""Fingerprints: canonical diff hash, shingles, MinHash signatures."""

from .canonical import CanonicalDiff, canonicalize, extract_added_removed_lines
from .minhash import (
    MinHashSeeds,
    compute_signature,
    empty_signature,
    lsh_bucket_ids,
    signature_from_bytes,
    signature_to_bytes,
    similarity,
)
from .schema import ChannelSignature, DocsStructure, ProductionSignals, SizeMetrics, TestIntent
from .tokens import production_shingles, shingles, token_list_shingles, tokenize_line

__all__ = [
    "CanonicalDiff",
    "ChannelSignature",
    "DocsStructure",
    "MinHashSeeds",
    "ProductionSignals",
    "SizeMetrics",
    "TestIntent",
    "canonicalize",
    "compute_signature",
    "empty_signature",
    "extract_added_removed_lines",
    "lsh_bucket_ids",
    "production_shingles",
    "shingles",
    "signature_from_bytes",
    "signature_to_bytes",
    "similarity",
    "token_list_shingles",
    "tokenize_line",
]
