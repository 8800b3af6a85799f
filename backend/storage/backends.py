"""
Key-value backends for the expiring cache.

The cache only needs four string operations, so the medium is pluggable:
an in-process dict for tests and a JSON document on disk for the running
server (survives restarts, shared by every request in the process).
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional


class StoreFullError(OSError):
    """Raised when a bounded store cannot accept a write."""
    pass


class KeyValueStore(ABC):
    """String-to-string storage capability."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""
        pass


class InMemoryStore(KeyValueStore):
    """
    Dict-backed store.

    Args:
        max_bytes: Optional quota on the total size of stored values;
            writes past it raise StoreFullError.
    """

    def __init__(self, max_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.max_bytes = max_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.max_bytes:
                raise StoreFullError(f"Quota of {self.max_bytes} bytes exceeded")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore(KeyValueStore):
    """
    Store persisted as a single JSON object on disk.

    The whole document is rewritten on every change; a missing or corrupted
    file starts an empty store.
    """

    def __init__(self, storage_path: Path):
        self.storage_path = Path(storage_path)
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self._data = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.storage_path.exists():
            return {}
        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        tmp_path = self.storage_path.with_suffix(self.storage_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False)
        os.replace(tmp_path, self.storage_path)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        previous = self._data.get(key)
        self._data[key] = value
        try:
            self._save()
        except OSError:
            if previous is None:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
            raise

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def keys(self) -> List[str]:
        return list(self._data.keys())
