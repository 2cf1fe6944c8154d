# wastewealth/storage.py
"""
Key-value storage backends for persisted store state.

Both backends hold string values under string keys, the same contract as
device key-value storage on mobile:
- JsonFileStorage: one '<key>.json' file per key inside a directory
- MemoryStorage: a plain dict, used by tests and throwaway sessions
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional, Protocol

from . import config

logger = logging.getLogger(__name__)


class StorageError(OSError):
    """Raised when a storage backend cannot read or write a key."""


class KeyValueStorage(Protocol):
    """Interface shared by the storage backends."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """In-memory key-value storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """
    File-backed key-value storage.

    Each key maps to '<directory>/<key>.json'. Writes go to a temporary file
    first and are moved into place, so a crash mid-write leaves the previous
    value intact.

    Attributes:
        directory: Folder holding the value files (created on first write)
    """

    def __init__(self, directory: Optional[str] = None) -> None:
        self.directory = directory or config.STORAGE_DIR

    def _path(self, key: str) -> str:
        if not key or os.sep in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under `key`.

        Returns:
            The stored string, or None if the key was never written

        Raises:
            StorageError: If the file exists but cannot be read
        """
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read '{key}' from {path}: {e}")

    def set_item(self, key: str, value: str) -> None:
        """
        Store `value` under `key`.

        Raises:
            StorageError: If the directory or file cannot be written
        """
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write '{key}' to {path}: {e}")
        logger.debug(f"Wrote {len(value)} bytes to {path}")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove '{key}' at {path}: {e}")
