# ==============================================================================
# Live Flow Cache Abstract Base Class
# ==============================================================================
"""
Abstract interface for the near-real-time view of in-progress flows.

This is a higher-level interface for flow-specific operations.
Implementations typically wrap a Cache for storage.

The view is non-authoritative: it is updated per event by the ingest
service, while the relational flow table is only written by the sessionizer.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from journey.core.models import CachedFlowEntry, Event


class LiveFlowCache(ABC):
    """Per-customer, time-bounded list of recent flows."""

    @abstractmethod
    def record(self, event: Event) -> list[CachedFlowEntry]:
        """
        Fold one persisted event into its customer's cached flows.

        Args:
            event: The event, with page and block already resolved

        Returns:
            The customer's entries after the update
        """
        ...

    @abstractmethod
    def recent(self, customer_id: UUID, limit: int) -> list[CachedFlowEntry]:
        """
        Get up to ``limit`` cached flows in stored order.

        Returns an empty list on cache miss, never raises for a missing key.
        """
        ...

    @abstractmethod
    def clear(self, customer_id: UUID) -> bool:
        """
        Drop a customer's cached flows.

        Returns:
            True if something was deleted
        """
        ...
