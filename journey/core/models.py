# ==============================================================================
# Journey Domain Models
# ==============================================================================
"""
Pydantic models for customers, pages, blocks, events and flows.

These models are used for:
- Validating raw events handed to the ingest service
- Serializing/deserializing live flow cache entries
- Returning aggregate results (summaries, funnels, heatmaps)

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field


class Role(str, Enum):
    """Customer roles as stored in the directory."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


# ==============================================================================
# Directory (read-only collaborators)
# ==============================================================================


class Customer(BaseModel):
    """A tenant whose site emits events."""

    id: UUID
    public_key: str
    name: str = ""
    role: Role = Role.USER
    approved: bool = False
    active: bool = True


class Page(BaseModel):
    """A page of a customer's site. ``display_order`` drives the funnel."""

    id: int
    customer_id: UUID
    name: str
    display_order: int = 0


class Block(BaseModel):
    """A clickable block on a page. Names are unique per customer."""

    id: int
    customer_id: UUID
    page_id: int
    name: str


class Principal(BaseModel):
    """The caller's identity, passed explicitly into every query."""

    customer_id: UUID
    role: Role = Role.USER
    approved: bool = False


# ==============================================================================
# Events and Flows
# ==============================================================================


def as_utc(value: datetime) -> datetime:
    """Read naive timestamps as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class EventIn(BaseModel):
    """
    A raw interaction event as sent by a customer's site.

    Attributes:
        session_id: Caller-supplied identifier of one continuous visit
        occurred_at: When the interaction happened
        block_name: Name of the clicked block (unique per customer)
        customer_key: The customer's public key
    """

    session_id: str = Field(..., min_length=1, alias="sessionId")
    occurred_at: UtcDatetime = Field(..., alias="occurredAt")
    block_name: str = Field(..., min_length=1, alias="blockName")
    customer_key: str = Field(..., min_length=1, alias="customerKey")

    model_config = {"populate_by_name": True}


class Event(BaseModel):
    """A persisted event. Only ``handled`` ever changes after creation."""

    id: int | None = None
    customer_id: UUID
    page_id: int
    block_id: int
    session_id: str
    occurred_at: UtcDatetime
    handled: bool = False


class Flow(BaseModel):
    """
    A reconstructed session: ordered pages and blocks visited under one
    session id for one customer.

    ``page_ids`` never holds two equal adjacent entries; ``block_ids`` keeps
    every click, duplicates included.
    """

    id: int | None = None
    customer_id: UUID
    session_id: str
    start_at: datetime
    end_at: datetime
    block_ids: list[int] = Field(default_factory=list)
    page_ids: list[int] = Field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Flow duration in seconds."""
        return (self.end_at - self.start_at).total_seconds()

    @property
    def page_count(self) -> int:
        return len(self.page_ids)

    def to_db_record(self) -> dict:
        """Convert flow to database record format."""
        return {
            "customer_id": self.customer_id,
            "session_id": self.session_id,
            "start_at": self.start_at,
            "end_at": self.end_at,
            "block_ids": self.block_ids,
            "page_ids": self.page_ids,
        }


class CachedFlowEntry(BaseModel):
    """One in-progress flow held in the live flow cache."""

    session_id: str
    start_at: datetime
    end_at: datetime
    blocks: list[int] = Field(default_factory=list)
    pages: list[int] = Field(default_factory=list)


# ==============================================================================
# Query Results
# ==============================================================================

# Name shown for a page or block the directory no longer knows
UNKNOWN_NAME = "Unknown"


class Ref(BaseModel):
    """An ``{id, name}`` reference to a page or block."""

    id: int
    name: str


class FlowView(BaseModel):
    """A persisted flow with block and page names resolved."""

    id: int
    session_id: str
    start_at: datetime
    end_at: datetime
    blocks: list[Ref] = Field(default_factory=list)
    pages: list[Ref] = Field(default_factory=list)


class FlowListing(BaseModel):
    """One page of persisted flows."""

    total: int
    page: int
    page_size: int
    items: list[FlowView] = Field(default_factory=list)


class FlowShort(BaseModel):
    """Compact description of a single flow used in summaries."""

    session_id: str
    start_at: datetime
    end_at: datetime
    page_count: int
    duration_seconds: float

    @classmethod
    def from_flow(cls, flow: Flow) -> "FlowShort":
        return cls(
            session_id=flow.session_id,
            start_at=flow.start_at,
            end_at=flow.end_at,
            page_count=flow.page_count,
            duration_seconds=flow.duration_seconds,
        )


class LengthSummary(BaseModel):
    """Shortest and longest flow by page count, plus the mean page count."""

    minimum: FlowShort
    maximum: FlowShort
    average_page_count: float
    flow_count: int


class DurationSummary(BaseModel):
    """Shortest and longest flow by duration, plus the mean duration."""

    minimum: FlowShort
    maximum: FlowShort
    average_duration_seconds: float
    flow_count: int


class ClickShare(BaseModel):
    """Click count of one page or block and its normalized share."""

    id: int
    name: str
    clicks: int
    share: float


class Conversion(BaseModel):
    """Per-page clicks normalized against the entry (first-ordered) page."""

    customer_id: UUID
    start: datetime | None = None
    end: datetime | None = None
    pages: list[ClickShare] = Field(default_factory=list)


class Heatmap(BaseModel):
    """Per-block click share within one page."""

    page: Ref
    start: datetime | None = None
    end: datetime | None = None
    total_clicks: int
    blocks: list[ClickShare] = Field(default_factory=list)
