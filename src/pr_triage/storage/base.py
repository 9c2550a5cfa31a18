"""Storage abstraction for store snapshots and result files."""

from __future__ import annotations
import glob
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class StorageBackend(ABC):
    """Byte-level storage used by the local stores."""

    @abstractmethod
    def join(self, *parts: str) -> str:
        raise NotImplementedError()

    @abstractmethod
    def exists(self, path: str) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def makedirs(self, path: str, exist_ok: bool = True) -> None:
        raise NotImplementedError()

    @abstractmethod
    def list_files(self, path: str, pattern: Optional[str] = None) -> List[str]:
        raise NotImplementedError()

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        raise NotImplementedError()

    @abstractmethod
    def write_file(self, path: str, data: bytes) -> None:
        raise NotImplementedError()


class LocalStorageBackend(StorageBackend):
    """Filesystem-backed storage backend.

    Writes go to a temporary sibling first and are renamed into place, so a
    crashed writer never leaves a half-written snapshot behind.
    """

    def join(self, *parts: str) -> str:
        return os.path.join(*parts) if parts else ""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: str, exist_ok: bool = True) -> None:
        if not path:
            return
        os.makedirs(path, exist_ok=exist_ok)

    def list_files(self, path: str, pattern: Optional[str] = None) -> List[str]:
        if not path or not os.path.exists(path):
            return []
        if pattern:
            return sorted(glob.glob(os.path.join(path, pattern)))
        return sorted(
            os.path.join(path, entry)
            for entry in os.listdir(path)
            if os.path.isfile(os.path.join(path, entry))
        )

    def read_file(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def write_file(self, path: str, data: bytes) -> None:
        dirpath = os.path.dirname(path)
        if dirpath:
            os.makedirs(dirpath, exist_ok=True)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)


def get_storage_backend(storage_config: Optional[Dict[str, Any]] = None) -> StorageBackend:
    """Create a storage backend from configuration."""
    if not storage_config:
        return LocalStorageBackend()
    storage_type = storage_config.get("type", "local").lower()
    if storage_type == "local":
        return LocalStorageBackend()
    raise ValueError(f"Unknown storage type: {storage_type}")
