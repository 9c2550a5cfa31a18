"""Deterministic MinHash signatures and LSH banding (datasketch).

Signatures must be bit-identical across processes and machines: they are
persisted, compared against signatures computed weeks earlier, and banded into
shared LSH buckets. datasketch's defaults draw permutations from a seeded
numpy RNG and hash with SHA-1; we pin both instead:

- the base hash is 32-bit FNV-1a over the UTF-8 shingle
- the permutations come from an explicit, immutable MinHashSeeds value derived
  from a fixed constant, computed once and passed to every call

An empty shingle set yields the all-0xFFFFFFFF sentinel (datasketch's initial
state), which never shares a band with a non-empty signature in practice.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Tuple

import numpy as np
from datasketch import MinHash

from ..constants import LSH_BAND_SIZE, MINHASH_SEED, MINHASH_SIZE
from ..errors import SignatureInvariantError
from ..utils.hashing import fnv1a_32, mix32, sha1_hex

EMPTY_SLOT = 0xFFFFFFFF
_SEED_STEP = 0x85EBCA6B
_B_SALT = 0x5BD1E995


@dataclass(frozen=True, eq=False)
class MinHashSeeds:
    """Permutation parameters (a_i, b_i) for the universal hash family.

    Built once per process with `MinHashSeeds.derive()`; the arrays are marked
    read-only so the value can be shared by concurrent analyses.
    """
    num_perm: int
    seed: int
    a: np.ndarray
    b: np.ndarray

    @classmethod
    def derive(cls, num_perm: int = MINHASH_SIZE, seed: int = MINHASH_SEED) -> "MinHashSeeds":
        if num_perm <= 0:
            raise SignatureInvariantError(f"num_perm must be positive, got {num_perm}")
        state = seed & 0xFFFFFFFF
        a_vals: List[int] = []
        b_vals: List[int] = []
        for i in range(num_perm):
            state = mix32(state + i * _SEED_STEP)
            a_vals.append(state | 1)
            b_vals.append(mix32(state ^ _B_SALT))
        a = np.array(a_vals, dtype=np.uint64)
        b = np.array(b_vals, dtype=np.uint64)
        a.setflags(write=False)
        b.setflags(write=False)
        return cls(num_perm=num_perm, seed=seed, a=a, b=b)

    @property
    def permutations(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.a, self.b


def _shingle_hash(data: bytes) -> int:
    return fnv1a_32(data)


def compute_signature(shingles: Iterable[str], seeds: MinHashSeeds) -> np.ndarray:
    """uint32[num_perm] MinHash signature of a shingle set."""
    mh = MinHash(num_perm=seeds.num_perm, hashfunc=_shingle_hash, permutations=seeds.permutations)
    encoded = [s.encode("utf-8") for s in sorted(set(shingles))]
    if encoded:
        mh.update_batch(encoded)
    return np.asarray(mh.hashvalues, dtype=np.uint64).astype(np.uint32)


def empty_signature(num_perm: int = MINHASH_SIZE) -> np.ndarray:
    return np.full(num_perm, EMPTY_SLOT, dtype=np.uint32)


def similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Fraction of positions where the two signatures agree."""
    size = min(len(a), len(b))
    if size == 0:
        return 0.0
    if len(a) != len(b):
        raise SignatureInvariantError(f"signature length mismatch: {len(a)} != {len(b)}")
    return float(np.count_nonzero(np.asarray(a) == np.asarray(b))) / size


def lsh_bucket_ids(signature: np.ndarray, band_size: int = LSH_BAND_SIZE) -> List[str]:
    """One bucket id per band: `<band>:<first 16 hex of sha1(values)>`."""
    if band_size <= 0 or len(signature) % band_size != 0:
        raise SignatureInvariantError(
            f"signature length {len(signature)} is not divisible by band size {band_size}"
        )
    values = [int(v) for v in signature]
    buckets = []
    for band, start in enumerate(range(0, len(values), band_size)):
        material = ":".join(str(v) for v in values[start:start + band_size])
        buckets.append(f"{band}:{sha1_hex(material)[:16]}")
    return buckets


def signature_to_bytes(signature: np.ndarray) -> bytes:
    return np.asarray(signature, dtype="<u4").tobytes()


def signature_from_bytes(data: bytes) -> np.ndarray:
    if len(data) % 4 != 0:
        raise SignatureInvariantError(f"signature byte length {len(data)} is not a multiple of 4")
    return np.frombuffer(data, dtype="<u4").astype(np.uint32)
