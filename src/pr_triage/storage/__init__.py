"""Storage abstraction layer."""

from .base import LocalStorageBackend, StorageBackend, get_storage_backend

__all__ = ["StorageBackend", "LocalStorageBackend", "get_storage_backend"]
