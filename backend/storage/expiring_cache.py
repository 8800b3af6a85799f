"""
Best-effort TTL cache in front of every upstream fetch.

Entries are stored as JSON ``{"data": ..., "expiresAt": <epoch ms>}``.
Expiry is lazy: a stale entry is removed when it is next read. Nothing in
here ever raises to the caller; a broken cache only costs an extra fetch.
"""

import json
import time
from typing import Any, Callable, Optional

from log import get_logger
from .backends import KeyValueStore


logger = get_logger(__name__)

DEFAULT_TTL_MINUTES = 5


class ExpiringCache:
    """
    Key/value cache with a per-entry TTL.

    Usage:
        cache = ExpiringCache(InMemoryStore())
        cache.set("quote:AAPL", {"price": 1.0}, ttl_minutes=5)
        cache.get("quote:AAPL")
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        """
        Args:
            store: Backing medium
            clock: Returns the current time in seconds (injectable for tests)
        """
        self.store = store
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def set(self, key: str, value: Any, ttl_minutes: float = DEFAULT_TTL_MINUTES) -> None:
        """Store a JSON-serializable value for ``ttl_minutes``."""
        try:
            payload = json.dumps(
                {"data": value, "expiresAt": self._now_ms() + int(ttl_minutes * 60 * 1000)},
                ensure_ascii=False,
            )
            self.store.set(key, payload)
        except (TypeError, ValueError, OSError) as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent, expired or corrupt."""
        try:
            stored = self.store.get(key)
        except OSError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if stored is None:
            return None

        try:
            item = json.loads(stored)
            expires_at = int(item["expiresAt"])
            data = item["data"]
        except (ValueError, TypeError, KeyError, OverflowError) as e:
            logger.warning("cache_entry_corrupt", key=key, error=str(e))
            self._discard(key)
            return None

        if self._now_ms() > expires_at:
            self._discard(key)
            return None

        return data

    def clear(self, key_prefix: str) -> int:
        """Delete every key starting with ``key_prefix``; returns the count removed."""
        removed = 0
        try:
            for key in self.store.keys():
                if key.startswith(key_prefix):
                    self.store.delete(key)
                    removed += 1
        except OSError as e:
            logger.warning("cache_clear_failed", prefix=key_prefix, error=str(e))
        return removed

    def _discard(self, key: str) -> None:
        try:
            self.store.delete(key)
        except OSError as e:
            logger.warning("cache_delete_failed", key=key, error=str(e))
