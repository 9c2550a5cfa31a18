"""Hashing utilities.

SHA-256 is used for canonical diff hashes and duplicate set ids, SHA-1 for
LSH bucket ids, FNV-1a for the per-shingle MinHash base hash. All of them are
deterministic across machines and processes (unlike the builtin `hash`).
"""

from __future__ import annotations
import hashlib

FNV_OFFSET_BASIS_32 = 0x811C9DC5
FNV_PRIME_32 = 0x01000193


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha1_hex(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def fnv1a_32(data: bytes) -> int:
    """32-bit FNV-1a over raw bytes."""
    h = FNV_OFFSET_BASIS_32
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME_32) & 0xFFFFFFFF
    return h


def mix32(x: int) -> int:
    """Avalanche finalizer for 32-bit integers (murmur3 fmix32)."""
    x &= 0xFFFFFFFF
    x ^= x >> 16
    x = (x * 0x85EBCA6B) & 0xFFFFFFFF
    x ^= x >> 13
    x = (x * 0xC2B2AE35) & 0xFFFFFFFF
    x ^= x >> 16
    return x
