# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the ports of the ports-and-adapters architecture.

Services depend on these contracts only; PostgreSQL and Valkey adapters live
in journey.infrastructure.
"""

from journey.base.cache import Cache
from journey.base.flow_cache import LiveFlowCache
from journey.base.repositories import (
    Directory,
    EventRepository,
    FlowBuildFn,
    FlowRepository,
    Repository,
    SessionizerStore,
)

__all__ = [
    "Cache",
    "Directory",
    "EventRepository",
    "FlowBuildFn",
    "FlowRepository",
    "LiveFlowCache",
    "Repository",
    "SessionizerStore",
]
