# ==============================================================================
# Database Repository Adapters
# ==============================================================================
"""
Database adapters implementing the repository interfaces from base/repositories.py.

Currently supported:
- PostgreSQL (postgresql.py)
"""

from journey.infrastructure.repositories.postgresql import (
    PostgreSQLDirectory,
    PostgreSQLEventRepository,
    PostgreSQLFlowRepository,
    PostgreSQLSessionizerStore,
    check_postgresql_connection,
)

__all__ = [
    "PostgreSQLDirectory",
    "PostgreSQLEventRepository",
    "PostgreSQLFlowRepository",
    "PostgreSQLSessionizerStore",
    "check_postgresql_connection",
]
