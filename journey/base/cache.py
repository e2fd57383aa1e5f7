# ==============================================================================
# Cache Abstract Base Class
# ==============================================================================
"""
Abstract interface for key-value caching with TTL support.

This is NOT a repository (which represents domain object collections).
Cache is transient storage for near-real-time views.

Implementations: Valkey, Redis, in-memory, etc.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable


class Cache(ABC):
    """
    Generic cache interface for key-value storage with TTL support.

    All values are stored as dicts (JSON-serializable). Implementations
    handle serialization/deserialization internally.
    """

    @abstractmethod
    def get(self, key: str) -> dict | None:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            Cached value as dict, or None if not found
        """
        ...

    @abstractmethod
    def set(self, key: str, value: dict, ttl_seconds: int | None = None) -> None:
        """
        Set a cached value with optional TTL.

        Args:
            key: Cache key
            value: Value to cache (must be JSON-serializable dict)
            ttl_seconds: Optional time-to-live in seconds
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Args:
            key: Cache key to delete

        Returns:
            True if key was deleted, False if not found
        """
        ...

    @abstractmethod
    def update(
        self,
        key: str,
        mutate: Callable[[dict | None], dict],
        ttl_seconds: int | None = None,
    ) -> dict:
        """
        Atomically read-modify-write one key.

        The current value (None on miss) is passed to ``mutate`` and the
        returned dict is stored. Implementations must not lose concurrent
        updates: if the key changed between read and write, ``mutate`` runs
        again on the fresh value.

        Args:
            key: Cache key
            mutate: Pure function from the current value to the new value
            ttl_seconds: Optional time-to-live, reset on every write

        Returns:
            The value that was stored

        Raises:
            CacheContentionError: If the write kept conflicting
        """
        ...
