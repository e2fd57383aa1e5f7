# ==============================================================================
# Live Flow Cache Implementation (Valkey/Redis)
# ==============================================================================
"""
Cache-backed implementation of the LiveFlowCache interface.

Each customer owns one key, flows:recent:{customer_id}, holding a JSON
document {"entries": [...]} with the customer's in-progress flows in the
order their sessions were first seen. Every write resets the key's TTL, so
the whole list expires after a period of customer-wide inactivity.

Writes go through Cache.update(), which retries on concurrent modification,
so two events of the same customer never overwrite each other.
"""

import logging
from uuid import UUID

from pydantic import ValidationError

from journey.base import Cache, LiveFlowCache
from journey.core.flow_builder import FlowBuilder
from journey.core.models import CachedFlowEntry, Event
from journey.utils.config import get_settings

logger = logging.getLogger(__name__)


# Key prefix for a customer's cached flows
FLOW_CACHE_PREFIX = "flows:recent:"


class ValkeyLiveFlowCache(LiveFlowCache):
    """
    LiveFlowCache storing one JSON document per customer.

    Document format:
        {
            "entries": [
                {
                    "session_id": str,
                    "start_at": str,      # ISO-8601
                    "end_at": str,        # ISO-8601
                    "blocks": list[int],
                    "pages": list[int],
                },
                ...
            ]
        }
    """

    def __init__(self, cache: Cache | None = None, ttl_seconds: int | None = None):
        """
        Initialize the live flow cache.

        Args:
            cache: Cache instance. If None, creates a ValkeyCache from settings.
            ttl_seconds: Sliding TTL. If None, uses settings.
        """
        if cache is None:
            from journey.infrastructure.cache import ValkeyCache

            cache = ValkeyCache()
        if ttl_seconds is None:
            ttl_seconds = get_settings().valkey.flow_cache_ttl_seconds

        self._cache = cache
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def _key(self, customer_id: UUID) -> str:
        """Generate the cache key for a customer's flows."""
        return f"{FLOW_CACHE_PREFIX}{customer_id}"

    def _parse_entries(self, customer_id: UUID, document: dict | None) -> list[CachedFlowEntry]:
        """Parse a stored document, treating anything malformed as empty."""
        if not document:
            return []
        try:
            return [CachedFlowEntry.model_validate(e) for e in document.get("entries", [])]
        except (ValidationError, TypeError):
            logger.warning("Discarding malformed cached flows for customer %s", customer_id)
            return []

    @staticmethod
    def _serialize_entries(entries: list[CachedFlowEntry]) -> dict:
        return {"entries": [e.model_dump(mode="json") for e in entries]}

    # ==========================================================================
    # LiveFlowCache Interface Implementation
    # ==========================================================================

    def record(self, event: Event) -> list[CachedFlowEntry]:
        """
        Fold one event into its customer's cached flows.

        Args:
            event: Persisted event with page and block resolved

        Returns:
            The customer's entries after the update

        Raises:
            CacheContentionError: If concurrent writers kept winning
        """
        customer_id = event.customer_id
        updated: list[CachedFlowEntry] = []

        def mutate(document: dict | None) -> dict:
            entries = self._parse_entries(customer_id, document)
            FlowBuilder.apply_event(entries, event)
            updated[:] = entries
            return self._serialize_entries(entries)

        self._cache.update(self._key(customer_id), mutate, ttl_seconds=self._ttl_seconds)
        return updated

    def recent(self, customer_id: UUID, limit: int) -> list[CachedFlowEntry]:
        """
        Get up to ``limit`` cached flows in stored order.

        Returns an empty list on cache miss or expiry.
        """
        if limit <= 0:
            return []
        document = self._cache.get(self._key(customer_id))
        return self._parse_entries(customer_id, document)[:limit]

    def clear(self, customer_id: UUID) -> bool:
        """Drop a customer's cached flows."""
        return self._cache.delete(self._key(customer_id))
