# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external dependencies.

This module contains:
- Domain models (Event, Flow, CachedFlowEntry, result models)
- Flow reconstruction (session grouping, page collapsing)
- Aggregations (summaries, conversion funnel, heatmap)
- Error hierarchy and access rules

All code here is framework-agnostic and easily unit-testable.
"""

from journey.core.access import ensure_owner, resolve_target
from journey.core.aggregations import (
    conversion_shares,
    heatmap_shares,
    summarize_by_duration,
    summarize_by_length,
)
from journey.core.errors import (
    CacheContentionError,
    ConflictError,
    JourneyError,
    NoAccessError,
    NotFoundError,
    UnauthorizedError,
)
from journey.core.flow_builder import FlowBuilder, collapse_consecutive
from journey.core.models import (
    Block,
    CachedFlowEntry,
    Customer,
    Event,
    EventIn,
    Flow,
    Page,
    Principal,
    Role,
)

__all__ = [
    # Access
    "ensure_owner",
    "resolve_target",
    # Aggregations
    "conversion_shares",
    "heatmap_shares",
    "summarize_by_duration",
    "summarize_by_length",
    # Errors
    "CacheContentionError",
    "ConflictError",
    "JourneyError",
    "NoAccessError",
    "NotFoundError",
    "UnauthorizedError",
    # Flow building
    "FlowBuilder",
    "collapse_consecutive",
    # Models
    "Block",
    "CachedFlowEntry",
    "Customer",
    "Event",
    "EventIn",
    "Flow",
    "Page",
    "Principal",
    "Role",
]
