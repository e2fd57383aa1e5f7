# ==============================================================================
# Result Queries
# ==============================================================================
"""
Conversion funnel and heatmap queries over persisted events.

The two metrics normalize differently on purpose: the funnel divides by the
entry page's clicks, the heatmap divides by the page's total clicks.
"""

from datetime import datetime
from uuid import UUID

from journey.base import Directory, EventRepository
from journey.core.access import ensure_owner, resolve_target
from journey.core.aggregations import conversion_shares, heatmap_shares
from journey.core.errors import NotFoundError
from journey.core.models import Conversion, Heatmap, Principal, Ref


class ResultQueries:
    """Conversion and heatmap queries."""

    def __init__(self, events: EventRepository, directory: Directory):
        self._events = events
        self._directory = directory

    def conversion(
        self,
        principal: Principal,
        customer_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Conversion:
        """
        Clicks per page, ordered by display order, relative to the first page.

        Pages without clicks are listed with zero clicks.
        """
        target = resolve_target(principal, customer_id)
        pages = self._directory.list_pages(target)
        clicks = self._events.count_by_page(target, start, end)
        return Conversion(
            customer_id=target,
            start=start,
            end=end,
            pages=conversion_shares(pages, clicks),
        )

    def heatmap(
        self,
        principal: Principal,
        page_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Heatmap:
        """
        Clicks per block of one page relative to the page total.

        Every click recorded on the page counts, including clicks on blocks
        that have since moved to another page.

        Raises:
            NotFoundError: If the page does not exist
            NoAccessError: If the page belongs to another customer
        """
        page = self._directory.get_page(page_id)
        if page is None:
            raise NotFoundError("Page")
        ensure_owner(principal, page.customer_id, "page")

        blocks = self._directory.list_blocks(page.id)
        clicks = self._events.count_by_block(page.customer_id, page.id, start, end)
        moved = set(clicks) - {b.id for b in blocks}
        if moved:
            blocks = [*blocks, *self._directory.get_blocks(moved).values()]
        total, shares = heatmap_shares(blocks, clicks)
        return Heatmap(
            page=Ref(id=page.id, name=page.name),
            start=start,
            end=end,
            total_clicks=total,
            blocks=shares,
        )
