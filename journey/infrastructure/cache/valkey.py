# ==============================================================================
# Valkey Cache Implementation
# ==============================================================================
"""
Valkey/Redis implementation of the Cache interface.

Provides:
- Generic key-value storage with TTL
- Optimistic read-modify-write (WATCH/MULTI/EXEC) without lost updates

Uses JSON serialization for storing dict values.
"""

import json
import logging
from collections.abc import Callable

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError
from redis.retry import Retry

from journey.base import Cache
from journey.core.errors import CacheContentionError
from journey.utils.config import get_settings
from journey.utils.retry import VALKEY_RETRIES

logger = logging.getLogger(__name__)

# Optimistic update attempts before giving up
DEFAULT_CAS_ATTEMPTS = 5


class ValkeyCache(Cache):
    """
    Valkey/Redis implementation of the Cache interface.

    Configured with:
    - 10 second socket timeouts for fast failure detection
    - Automatic retries with exponential backoff for transient failures
    - Health check interval to keep connections alive

    All values are stored as JSON strings and deserialized on retrieval.
    """

    def __init__(
        self,
        url: str | None = None,
        socket_timeout: int = 10,
        retries: int | None = None,
        health_check_interval: int = 30,
        cas_attempts: int | None = None,
    ):
        """
        Initialize Valkey cache.

        Args:
            url: Valkey/Redis connection URL. If None, uses settings.
            socket_timeout: Socket timeout in seconds (default: 10)
            retries: Number of retries for transient failures (default: from settings)
            health_check_interval: Health check interval in seconds (default: 30)
            cas_attempts: Optimistic update attempts in update(). If None, uses
                settings when url is None, else 5.
        """
        if url is None:
            settings = get_settings()
            url = settings.valkey.url
            if cas_attempts is None:
                cas_attempts = settings.valkey.flow_cache_cas_attempts
        if cas_attempts is None:
            cas_attempts = DEFAULT_CAS_ATTEMPTS

        retry_count = retries if retries is not None else VALKEY_RETRIES
        retry_strategy = Retry(ExponentialBackoff(cap=32, base=1), retries=retry_count)

        self._client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry=retry_strategy,
            retry_on_error=[RedisTimeoutError, RedisConnectionError],
            health_check_interval=health_check_interval,
        )
        self._url = url
        self._cas_attempts = cas_attempts

    @staticmethod
    def _decode(key: str, value: str | None) -> dict | None:
        if value is None:
            return None
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Failed to decode JSON for key %s", key)
            return None
        if not isinstance(decoded, dict):
            logger.warning("Unexpected payload type for key %s", key)
            return None
        return decoded

    def get(self, key: str) -> dict | None:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            Cached value as dict, or None if not found
        """
        return self._decode(key, self._client.get(key))

    def set(self, key: str, value: dict, ttl_seconds: int | None = None) -> None:
        """
        Set a cached value with optional TTL.

        Args:
            key: Cache key
            value: Value to cache (must be JSON-serializable dict)
            ttl_seconds: Optional time-to-live in seconds
        """
        json_value = json.dumps(value)
        if ttl_seconds is not None:
            self._client.setex(key, ttl_seconds, json_value)
        else:
            self._client.set(key, json_value)

    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Args:
            key: Cache key to delete

        Returns:
            True if key was deleted, False if not found
        """
        return self._client.delete(key) > 0

    def update(
        self,
        key: str,
        mutate: Callable[[dict | None], dict],
        ttl_seconds: int | None = None,
    ) -> dict:
        """
        Atomically read-modify-write one key using WATCH/MULTI/EXEC.

        If another client writes the key between our read and our EXEC,
        the transaction is aborted and ``mutate`` runs again on the fresh value.

        Args:
            key: Cache key
            mutate: Pure function from the current value (None on miss) to the new value
            ttl_seconds: Optional time-to-live, reset on every write

        Returns:
            The value that was stored

        Raises:
            CacheContentionError: If all attempts conflicted
        """
        with self._client.pipeline() as pipe:
            for attempt in range(1, self._cas_attempts + 1):
                try:
                    pipe.watch(key)
                    current = self._decode(key, pipe.get(key))
                    value = mutate(current)
                    json_value = json.dumps(value)

                    pipe.multi()
                    if ttl_seconds is not None:
                        pipe.setex(key, ttl_seconds, json_value)
                    else:
                        pipe.set(key, json_value)
                    pipe.execute()
                    return value
                except WatchError:
                    logger.debug("Concurrent write on %s (attempt %d), retrying", key, attempt)
                    continue
                finally:
                    pipe.reset()

        raise CacheContentionError(
            f"Gave up updating {key} after {self._cas_attempts} conflicting attempts"
        )

    def close(self) -> None:
        """Close the connection."""
        self._client.close()


def check_valkey_connection() -> bool:
    """
    Check if Valkey is reachable.

    Uses a shorter timeout (5 seconds) since this is just a health check.

    Returns:
        True if Valkey responds to ping, False otherwise
    """
    settings = get_settings()
    client = redis.from_url(
        settings.valkey.url,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )
    try:
        return bool(client.ping())
    except (RedisConnectionError, RedisTimeoutError):
        return False
    finally:
        client.close()
