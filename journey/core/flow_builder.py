# ==============================================================================
# Flow Builder - Pure Domain Logic
# ==============================================================================
"""
Pure flow reconstruction logic with no external dependencies.

This module contains the domain logic shared by the sessionizer and the
live flow cache:
- Grouping events by session
- Temporal ordering of blocks
- Collapsing consecutive repeated page visits
- Incremental update of cached in-progress flows

All methods work with the pydantic models from core.models - no database,
cache, or framework dependencies.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from uuid import UUID

from journey.core.models import CachedFlowEntry, Event, Flow


def collapse_consecutive(values: Iterable[int]) -> list[int]:
    """
    Drop every value equal to the one right before it.

    >>> collapse_consecutive([1, 1, 2, 1, 1])
    [1, 2, 1]
    """
    collapsed: list[int] = []
    for value in values:
        if not collapsed or collapsed[-1] != value:
            collapsed.append(value)
    return collapsed


class FlowBuilder:
    """
    Pure flow reconstruction logic.

    A flow is the ordered list of pages and blocks a visitor went through
    under one session id. Blocks keep every click; pages collapse
    consecutive repeats, so ``A, A, B, A`` becomes ``A, B, A``.
    """

    def __init__(self, settle_seconds: int = 0):
        """
        Initialize flow builder.

        Args:
            settle_seconds: Sessions whose newest event is younger than this
                            are not turned into flows yet. 0 disables the check.
        """
        self.settle_seconds = settle_seconds

    @staticmethod
    def _sort_key(event: Event) -> tuple:
        return (event.occurred_at, event.id if event.id is not None else 0)

    def group_sessions(self, events: Iterable[Event]) -> dict[str, list[Event]]:
        """
        Group events by session id, each group ordered by occurrence time.

        Ties on ``occurred_at`` are broken by event id (insertion order).
        """
        sessions: dict[str, list[Event]] = {}
        for event in events:
            sessions.setdefault(event.session_id, []).append(event)
        for group in sessions.values():
            group.sort(key=self._sort_key)
        return sessions

    def build_flow(self, customer_id: UUID, session_id: str, events: Sequence[Event]) -> Flow:
        """
        Build one flow from the events of a single session.

        Args:
            customer_id: Owner of the session
            session_id: Session identifier
            events: Non-empty events of the session, in any order

        Returns:
            Unsaved Flow with start_at/end_at = min/max occurrence time
        """
        if not events:
            raise ValueError(f"Cannot build a flow for session {session_id!r} without events")

        ordered = sorted(events, key=self._sort_key)
        return Flow(
            customer_id=customer_id,
            session_id=session_id,
            start_at=ordered[0].occurred_at,
            end_at=ordered[-1].occurred_at,
            block_ids=[e.block_id for e in ordered],
            page_ids=collapse_consecutive(e.page_id for e in ordered),
        )

    def build_flows(
        self,
        customer_id: UUID,
        events: Iterable[Event],
        now: datetime | None = None,
    ) -> tuple[list[Flow], list[Event]]:
        """
        Turn one customer's unhandled events into flows.

        Args:
            customer_id: Customer whose events these are
            events: Unhandled events of that customer
            now: Reference time for the settle window (required when
                 settle_seconds > 0)

        Returns:
            Tuple of (flows, consumed_events). Events of sessions still
            inside the settle window are not part of consumed_events.
        """
        flows: list[Flow] = []
        consumed: list[Event] = []

        for session_id, group in self.group_sessions(events).items():
            if self.settle_seconds > 0 and now is not None:
                idle = (now - group[-1].occurred_at).total_seconds()
                if idle < self.settle_seconds:
                    continue
            flows.append(self.build_flow(customer_id, session_id, group))
            consumed.extend(group)

        flows.sort(key=lambda f: (f.start_at, f.session_id))
        return flows, consumed

    @staticmethod
    def apply_event(entries: list[CachedFlowEntry], event: Event) -> list[CachedFlowEntry]:
        """
        Fold one event into a customer's cached flow entries.

        Finds or creates the entry for the event's session, appends the block,
        appends the page unless it equals the last stored page, and widens the
        entry's time span to include the event.

        Mutates the list in place and returns it.
        """
        entry = next((e for e in entries if e.session_id == event.session_id), None)
        if entry is None:
            entry = CachedFlowEntry(
                session_id=event.session_id,
                start_at=event.occurred_at,
                end_at=event.occurred_at,
            )
            entries.append(entry)

        entry.blocks.append(event.block_id)
        if not entry.pages or entry.pages[-1] != event.page_id:
            entry.pages.append(event.page_id)

        entry.start_at = min(entry.start_at, event.occurred_at)
        entry.end_at = max(entry.end_at, event.occurred_at)
        return entries
