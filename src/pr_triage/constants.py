"""Versioned constants shared by fingerprinting, retrieval and scoring.

Bumping SIGNATURE_VERSION invalidates stored signatures and LSH buckets.
Bumping ALGORITHM_VERSION changes how stored signatures are compared.
"""

from __future__ import annotations

SIGNATURE_VERSION = 1
ALGORITHM_VERSION = 1

MINHASH_SIZE = 128
LSH_BAND_SIZE = 8
MINHASH_SEED = 0x9E3779B9

PRODUCTION_SHINGLE_SIZE = 5
TOKEN_SHINGLE_SIZE = 3

DEFAULT_REVIEW_SCORE_THRESHOLD = 0.55

# Classification precedence, first match wins.
CHANNEL_ORDER = ("META", "TESTS", "DOCS", "PRODUCTION")
