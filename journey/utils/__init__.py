# ==============================================================================
# Journey Utilities
# ==============================================================================
"""
Shared utilities for the journey analytics core.

This module exports configuration and schema helpers.
"""

from journey.utils.config import (
    PostgresSettings,
    SessionizerSettings,
    Settings,
    ValkeySettings,
    get_settings,
)
from journey.utils.db import (
    ensure_schema,
    reset_schema,
)

__all__ = [
    # Config
    "PostgresSettings",
    "SessionizerSettings",
    "Settings",
    "ValkeySettings",
    "get_settings",
    # Database
    "ensure_schema",
    "reset_schema",
]
