# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and status icons
- Common option types (customer key, time range)
- Error reporting for expected failures
- Repository connection handling
"""

import json
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

import psycopg2
import redis
import typer
from pydantic import BaseModel

from journey.base import Directory, Repository
from journey.core.errors import JourneyError
from journey.core.models import Principal
from journey.services import IdentityService

# ==============================================================================
# ANSI Colors and Icons
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"


# Module-level aliases for convenience
C, I = Colors, Icons


# ==============================================================================
# Option Types
# ==============================================================================

CustomerKey = Annotated[
    str,
    typer.Option(
        "--key",
        "-k",
        envvar="JOURNEY_CUSTOMER_KEY",
        help="Public key of the calling customer",
    ),
]

CustomerId = Annotated[
    Optional[str],
    typer.Option("--customer", "-c", help="Target customer id (defaults to the caller)"),
]

Since = Annotated[
    Optional[datetime],
    typer.Option("--from", help="Start of the time range (inclusive)"),
]

Until = Annotated[
    Optional[datetime],
    typer.Option("--to", help="End of the time range (inclusive)"),
]


# ==============================================================================
# Output Helpers
# ==============================================================================


def success(message: str) -> None:
    print(f"{C.BRIGHT_GREEN}{I.CHECK} {message}{C.RESET}")


def warn(message: str) -> None:
    print(f"{C.BRIGHT_YELLOW}{I.WARN} {message}{C.RESET}")


def fail(message: str) -> None:
    print(f"{C.BRIGHT_RED}{I.CROSS} {message}{C.RESET}")


def print_json(value: BaseModel | Sequence[BaseModel]) -> None:
    """Print a model, or a list of models, as indented JSON."""
    if isinstance(value, BaseModel):
        print(value.model_dump_json(indent=2))
    else:
        print(json.dumps([item.model_dump(mode="json") for item in value], indent=2))


# ==============================================================================
# Error and Resource Handling
# ==============================================================================


@contextmanager
def reported_errors() -> Iterator[None]:
    """
    Turn expected failures into a red message and exit code 1.

    Anything that is not a JourneyError or a connection failure propagates
    with its traceback.
    """
    try:
        yield
    except JourneyError as e:
        fail(e.message)
        raise typer.Exit(1)
    except psycopg2.OperationalError as e:
        fail(f"PostgreSQL is not reachable: {str(e).strip()}")
        raise typer.Exit(1)
    except redis.ConnectionError as e:
        fail(f"Valkey is not reachable: {e}")
        raise typer.Exit(1)


@contextmanager
def connected(*repositories: Repository) -> Iterator[None]:
    """Connect the given repositories and close them on exit."""
    try:
        for repository in repositories:
            repository.connect()
        yield
    finally:
        for repository in repositories:
            repository.close()


def authenticate(directory: Directory, customer_key: str) -> Principal:
    """Resolve the caller from their public key."""
    return IdentityService(directory).authenticate(customer_key)


def parse_customer_id(customer_id: str | None) -> UUID | None:
    """Parse the optional --customer value into a UUID."""
    if customer_id is None:
        return None
    try:
        return UUID(customer_id)
    except ValueError:
        raise typer.BadParameter(f"'{customer_id}' is not a valid customer id")
