# ==============================================================================
# Repository Abstract Base Classes
# ==============================================================================
"""
Repository ABCs for data persistence.

These define the "what" (save, scan, count) not the "how" (SQL, locking).
Concrete implementations in infrastructure/ handle the specifics.

Includes:
- Directory: Read-only customers, pages and blocks
- EventRepository: Event persistence and click counting
- FlowRepository: Flow range scans
- SessionizerStore: Claim-and-consume of unhandled events

Note: Cache and LiveFlowCache are in separate modules (cache.py, flow_cache.py)
since they are not traditional repositories (collections of domain objects).
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime
from uuid import UUID

from journey.core.models import Block, Customer, Event, Flow, Page

# Given one customer's unhandled events, return (flows to insert, events consumed)
FlowBuildFn = Callable[[list[Event]], tuple[list[Flow], list[Event]]]


class Repository(ABC):
    """Connection lifecycle shared by every repository."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...

    def reconnect(self) -> None:
        """Drop the current connection and establish a new one."""
        self.close()
        self.connect()



class Directory(Repository):
    """Read-only view of customers, pages and blocks."""

    @abstractmethod
    def get_customer_by_key(self, public_key: str) -> Customer | None:
        """Find a customer by its public key."""
        ...

    @abstractmethod
    def get_block_by_name(self, customer_id: UUID, name: str) -> Block | None:
        """Find a block by name. Block names are unique per customer."""
        ...

    @abstractmethod
    def get_page(self, page_id: int) -> Page | None:
        """Find a page by id."""
        ...

    @abstractmethod
    def list_pages(self, customer_id: UUID) -> list[Page]:
        """All pages of a customer, ordered by display order then id."""
        ...

    @abstractmethod
    def list_blocks(self, page_id: int) -> list[Block]:
        """All blocks placed on a page."""
        ...

    @abstractmethod
    def get_blocks(self, block_ids: Iterable[int]) -> dict[int, Block]:
        """Batch lookup of blocks. Unknown ids are omitted."""
        ...

    @abstractmethod
    def get_pages(self, page_ids: Iterable[int]) -> dict[int, Page]:
        """Batch lookup of pages. Unknown ids are omitted."""
        ...


class EventRepository(Repository):
    """Repository for interaction events."""

    @abstractmethod
    def save(self, event: Event) -> Event:
        """
        Persist one event and commit.

        Returns:
            The stored event with its id assigned
        """
        ...

    @abstractmethod
    def count_by_page(
        self, customer_id: UUID, start: datetime | None, end: datetime | None
    ) -> dict[int, int]:
        """Count a customer's events per page, bounds inclusive."""
        ...

    @abstractmethod
    def count_by_block(
        self, customer_id: UUID, page_id: int, start: datetime | None, end: datetime | None
    ) -> dict[int, int]:
        """Count a customer's events on one page per block, bounds inclusive."""
        ...


class FlowRepository(Repository):
    """Repository for persisted flows."""

    @abstractmethod
    def fetch_page(
        self,
        customer_id: UUID,
        start: datetime | None,
        end: datetime | None,
        offset: int,
        limit: int,
    ) -> tuple[int, list[Flow]]:
        """
        One page of flows, newest first.

        Filters on start_at >= start and end_at <= end.

        Returns:
            Tuple of (total matching flows, flows in this page)
        """
        ...

    @abstractmethod
    def find(
        self, customer_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[Flow]:
        """All flows with start_at >= start and end_at <= end."""
        ...


class SessionizerStore(Repository):
    """Storage operations of the sessionizer."""

    @abstractmethod
    def pending_customer_ids(self) -> list[UUID]:
        """Customers that currently have unhandled events."""
        ...

    @abstractmethod
    def consume(self, customer_id: UUID, build: FlowBuildFn) -> tuple[int, int] | None:
        """
        Turn one customer's unhandled events into flows, atomically.

        Claims the customer exclusively, reads its unhandled events, calls
        ``build``, inserts the returned flows and marks the returned events
        handled, all in one transaction. On any error nothing is committed.

        Returns:
            Tuple of (flows inserted, events marked handled), or None if
            another worker holds the customer's claim
        """
        ...
