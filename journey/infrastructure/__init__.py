# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

This module contains concrete implementations of the journey.base ports:
- cache/ - Cache adapters (Valkey/Redis)
- repositories/ - Database adapters (PostgreSQL)
- flow_cache.py - Live flow cache on top of a Cache
"""

from journey.infrastructure.cache import ValkeyCache, check_valkey_connection
from journey.infrastructure.flow_cache import ValkeyLiveFlowCache
from journey.infrastructure.repositories import (
    PostgreSQLDirectory,
    PostgreSQLEventRepository,
    PostgreSQLFlowRepository,
    PostgreSQLSessionizerStore,
    check_postgresql_connection,
)

__all__ = [
    # Cache
    "ValkeyCache",
    "ValkeyLiveFlowCache",
    "check_valkey_connection",
    # Repositories
    "PostgreSQLDirectory",
    "PostgreSQLEventRepository",
    "PostgreSQLFlowRepository",
    "PostgreSQLSessionizerStore",
    "check_postgresql_connection",
]
