"""
Expiring cache and its key-value backends.

- InMemoryStore for tests
- JsonFileStore for the running server (a JSON file next to the backend)
"""

from .backends import KeyValueStore, InMemoryStore, JsonFileStore, StoreFullError
from .expiring_cache import ExpiringCache, DEFAULT_TTL_MINUTES

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "StoreFullError",
    "ExpiringCache",
    "DEFAULT_TTL_MINUTES",
]
