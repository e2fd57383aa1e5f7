# ==============================================================================
# In-Memory Port Implementations
# ==============================================================================
"""
Dict/list-backed implementations of the journey.base ports for unit tests.

They follow the contracts of the PostgreSQL adapters (inclusive time ranges,
newest-first paging, all-or-nothing consume) without a database.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from uuid import UUID

from journey.base import Directory, EventRepository, FlowBuildFn, FlowRepository, SessionizerStore
from journey.core.models import Block, Customer, Event, Flow, Page

# ==============================================================================
# Sample Data
# ==============================================================================

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

ACME_ID = UUID("00000000-0000-0000-0000-00000000000a")
GLOBEX_ID = UUID("00000000-0000-0000-0000-00000000000b")

# acme: home (1) -> product (2); globex: landing (3)
HOME, PRODUCT, LANDING = 1, 2, 3
BANNER, MENU, BUY, SIGNUP = 11, 12, 21, 31


def at(seconds: float) -> datetime:
    """T0 plus some seconds."""
    return T0 + timedelta(seconds=seconds)


def make_event(session_id: str, block_id: int, page_id: int, seconds: float, **kwargs) -> Event:
    return Event(
        customer_id=kwargs.pop("customer_id", ACME_ID),
        page_id=page_id,
        block_id=block_id,
        session_id=session_id,
        occurred_at=at(seconds),
        **kwargs,
    )


# ==============================================================================
# Ports
# ==============================================================================


def _within(value: datetime, start: datetime | None, end: datetime | None) -> bool:
    return (start is None or value >= start) and (end is None or value <= end)


class InMemoryDirectory(Directory):
    def __init__(self, customers=(), pages=(), blocks=()):
        self.customers = {c.id: c for c in customers}
        self.pages = {p.id: p for p in pages}
        self.blocks = {b.id: b for b in blocks}

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    def get_customer_by_key(self, public_key: str) -> Customer | None:
        return next((c for c in self.customers.values() if c.public_key == public_key), None)

    def get_block_by_name(self, customer_id: UUID, name: str) -> Block | None:
        return next(
            (b for b in self.blocks.values() if b.customer_id == customer_id and b.name == name),
            None,
        )

    def get_page(self, page_id: int) -> Page | None:
        return self.pages.get(page_id)

    def list_pages(self, customer_id: UUID) -> list[Page]:
        return [p for p in self.pages.values() if p.customer_id == customer_id]

    def list_blocks(self, page_id: int) -> list[Block]:
        return [b for b in self.blocks.values() if b.page_id == page_id]

    def get_blocks(self, block_ids: Iterable[int]) -> dict[int, Block]:
        return {i: self.blocks[i] for i in set(block_ids) if i in self.blocks}

    def get_pages(self, page_ids: Iterable[int]) -> dict[int, Page]:
        return {i: self.pages[i] for i in set(page_ids) if i in self.pages}


class InMemoryEventRepository(EventRepository):
    def __init__(self):
        self.events: list[Event] = []

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    def save(self, event: Event) -> Event:
        saved = event.model_copy(update={"id": len(self.events) + 1})
        self.events.append(saved)
        return saved

    def count_by_page(
        self, customer_id: UUID, start: datetime | None = None, end: datetime | None = None
    ) -> dict[int, int]:
        return dict(
            Counter(
                e.page_id
                for e in self.events
                if e.customer_id == customer_id and _within(e.occurred_at, start, end)
            )
        )

    def count_by_block(
        self,
        customer_id: UUID,
        page_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[int, int]:
        return dict(
            Counter(
                e.block_id
                for e in self.events
                if e.customer_id == customer_id
                and e.page_id == page_id
                and _within(e.occurred_at, start, end)
            )
        )


class InMemoryFlowRepository(FlowRepository):
    def __init__(self, flows: Iterable[Flow] = ()):
        self.flows: list[Flow] = []
        self.add(flows)

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    def add(self, flows: Iterable[Flow]) -> None:
        for flow in flows:
            self.flows.append(flow.model_copy(update={"id": len(self.flows) + 1}))

    def _matching(self, customer_id, start, end) -> list[Flow]:
        return [
            f
            for f in self.flows
            if f.customer_id == customer_id
            and (start is None or f.start_at >= start)
            and (end is None or f.end_at <= end)
        ]

    def fetch_page(
        self,
        customer_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Flow]]:
        matching = sorted(
            self._matching(customer_id, start, end),
            key=lambda f: (f.start_at, f.id),
            reverse=True,
        )
        return len(matching), matching[offset : offset + limit]

    def find(
        self, customer_id: UUID, start: datetime | None = None, end: datetime | None = None
    ) -> list[Flow]:
        return self._matching(customer_id, start, end)


class InMemorySessionizerStore(SessionizerStore):
    """
    Sessionizer store over an InMemoryEventRepository and InMemoryFlowRepository.

    ``claimed`` simulates customers locked by another worker; ``failing``
    makes consume raise after the build step, leaving everything untouched.
    """

    def __init__(self, events: InMemoryEventRepository, flows: InMemoryFlowRepository):
        self.events = events
        self.flows = flows
        self.claimed: set[UUID] = set()
        self.failing: set[UUID] = set()

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    def pending_customer_ids(self) -> list[UUID]:
        return list(dict.fromkeys(e.customer_id for e in self.events.events if not e.handled))

    def consume(self, customer_id: UUID, build: FlowBuildFn) -> tuple[int, int] | None:
        if customer_id in self.claimed:
            return None

        unhandled = [
            e for e in self.events.events if e.customer_id == customer_id and not e.handled
        ]
        flows, consumed = build(unhandled)
        if customer_id in self.failing:
            raise RuntimeError(f"insert failed for {customer_id}")

        self.flows.add(flows)
        consumed_ids = {e.id for e in consumed}
        for event in self.events.events:
            if event.id in consumed_ids:
                event.handled = True
        return len(flows), len(consumed)
