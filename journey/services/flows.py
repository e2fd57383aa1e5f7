# ==============================================================================
# Flow Queries
# ==============================================================================
"""
Read side for flows: persisted listing, cached listing and summaries.

Every query takes the caller's Principal and an optional target customer id
that must match it.
"""

from datetime import datetime
from uuid import UUID

from journey.base import Directory, FlowRepository, LiveFlowCache
from journey.core.access import resolve_target
from journey.core.aggregations import summarize_by_duration, summarize_by_length
from journey.core.errors import JourneyError
from journey.core.models import (
    UNKNOWN_NAME,
    CachedFlowEntry,
    DurationSummary,
    Flow,
    FlowListing,
    FlowView,
    LengthSummary,
    Principal,
    Ref,
)

MAX_PAGE_SIZE = 100


class FlowQueries:
    """Flow listing and summary queries."""

    def __init__(
        self,
        flows: FlowRepository,
        directory: Directory,
        live_cache: LiveFlowCache,
    ):
        self._flows = flows
        self._directory = directory
        self._live_cache = live_cache

    def list_flows(
        self,
        principal: Principal,
        customer_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> FlowListing:
        """
        One page of persisted flows, newest first, with names resolved.

        Args:
            principal: The caller
            customer_id: Target customer (default: the caller)
            start: Only flows starting at or after this time
            end: Only flows ending at or before this time
            page: 1-based page number
            page_size: Items per page, 1..100

        Raises:
            JourneyError: If page or page_size is out of range
        """
        if page < 1:
            raise JourneyError("page must be at least 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise JourneyError(f"page size must be between 1 and {MAX_PAGE_SIZE}")
        target = resolve_target(principal, customer_id)

        total, flows = self._flows.fetch_page(
            target, start, end, offset=(page - 1) * page_size, limit=page_size
        )
        return FlowListing(
            total=total,
            page=page,
            page_size=page_size,
            items=self._with_names(flows),
        )

    def _with_names(self, flows: list[Flow]) -> list[FlowView]:
        blocks = self._directory.get_blocks(b for f in flows for b in f.block_ids)
        pages = self._directory.get_pages(p for f in flows for p in f.page_ids)

        def block_ref(block_id: int) -> Ref:
            block = blocks.get(block_id)
            return Ref(id=block_id, name=block.name if block else UNKNOWN_NAME)

        def page_ref(page_id: int) -> Ref:
            found = pages.get(page_id)
            return Ref(id=page_id, name=found.name if found else UNKNOWN_NAME)

        return [
            FlowView(
                id=flow.id,
                session_id=flow.session_id,
                start_at=flow.start_at,
                end_at=flow.end_at,
                blocks=[block_ref(b) for b in flow.block_ids],
                pages=[page_ref(p) for p in flow.page_ids],
            )
            for flow in flows
        ]

    def cached_flows(
        self,
        principal: Principal,
        customer_id: UUID | None = None,
        limit: int = 10,
    ) -> list[CachedFlowEntry]:
        """Recent in-progress flows from the live cache; empty on miss."""
        target = resolve_target(principal, customer_id)
        return self._live_cache.recent(target, limit)

    def length_summary(
        self,
        principal: Principal,
        customer_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> LengthSummary:
        """
        Shortest/longest flow by page count and the mean page count.

        Raises:
            NotFoundError: If no flow lies within [start, end]
        """
        target = resolve_target(principal, customer_id)
        return summarize_by_length(self._flows.find(target, start, end))

    def duration_summary(
        self,
        principal: Principal,
        customer_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> DurationSummary:
        """
        Shortest/longest flow by duration and the mean duration.

        Raises:
            NotFoundError: If no flow lies within [start, end]
        """
        target = resolve_target(principal, customer_id)
        return summarize_by_duration(self._flows.find(target, start, end))
