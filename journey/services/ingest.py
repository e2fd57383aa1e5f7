# ==============================================================================
# Event Ingest Service
# ==============================================================================
"""
Resolves raw events to (customer, page, block), persists them and forwards
them to the live flow cache.

The relational write is authoritative. The cache update happens after the
write has committed and is best effort: a cache failure is logged and never
fails or undoes the ingestion.
"""

import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field

from journey.base import Directory, EventRepository, LiveFlowCache
from journey.core.errors import NotFoundError
from journey.core.models import Event, EventIn

logger = logging.getLogger(__name__)


class IngestReport(BaseModel):
    """Outcome of a multi-event ingestion."""

    accepted: int = 0
    rejected: list[tuple[int, str]] = Field(default_factory=list)


class EventIngest:
    """Ingests one event at a time; safe to call concurrently."""

    def __init__(
        self,
        directory: Directory,
        events: EventRepository,
        live_cache: LiveFlowCache | None = None,
    ):
        """
        Initialize the ingest service.

        Args:
            directory: Customer/block lookups
            events: Durable event store
            live_cache: Optional live flow cache to update after each write
        """
        self._directory = directory
        self._events = events
        self._live_cache = live_cache

    def collect(self, event_in: EventIn) -> Event:
        """
        Ingest one event.

        Args:
            event_in: Raw event

        Returns:
            The persisted event

        Raises:
            NotFoundError: If the customer key or block name is unknown
        """
        customer = self._directory.get_customer_by_key(event_in.customer_key)
        if customer is None:
            raise NotFoundError("Customer")

        block = self._directory.get_block_by_name(customer.id, event_in.block_name)
        if block is None:
            raise NotFoundError("Block")

        event = self._events.save(
            Event(
                customer_id=customer.id,
                page_id=block.page_id,
                block_id=block.id,
                session_id=event_in.session_id,
                occurred_at=event_in.occurred_at,
            )
        )

        self._update_cache(event)
        return event

    def _update_cache(self, event: Event) -> None:
        if self._live_cache is None:
            return
        try:
            self._live_cache.record(event)
        except Exception as e:
            logger.warning(
                "Live flow cache update failed for customer %s (session=%s): %s",
                event.customer_id,
                event.session_id,
                e,
            )

    def collect_many(self, events_in: Iterable[EventIn]) -> IngestReport:
        """
        Ingest events independently of each other.

        An unknown customer or block rejects only that event; the rejection
        is recorded with the event's position in the input.
        """
        report = IngestReport()
        for index, event_in in enumerate(events_in):
            try:
                self.collect(event_in)
            except NotFoundError as e:
                report.rejected.append((index, e.message))
                logger.info("Rejected event #%d: %s", index, e.message)
                continue
            report.accepted += 1
        return report
