"""Index and signature/result stores."""

from .base import HeadRecord, IndexStore, PrHeadRef, SignatureStore
from .index_store import LocalIndexStore, symbols_by_kind
from .signature_store import LocalSignatureStore

__all__ = [
    "HeadRecord",
    "IndexStore",
    "LocalIndexStore",
    "LocalSignatureStore",
    "PrHeadRef",
    "SignatureStore",
    "symbols_by_kind",
]
