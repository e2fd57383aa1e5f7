# ==============================================================================
# Database Commands
# ==============================================================================
"""
Schema management commands for the journey CLI.
"""

from typing import Annotated

import typer

from journey.cli.shared import fail, reported_errors, success, warn
from journey.infrastructure import check_postgresql_connection
from journey.utils.config import get_settings
from journey.utils.db import ensure_schema, reset_schema


def db_init() -> None:
    """Create the database schema if it does not exist yet."""
    schema_name = get_settings().postgres.schema_name
    with reported_errors():
        created = ensure_schema()
    if created:
        success(f"Schema '{schema_name}' created")
    else:
        success(f"Schema '{schema_name}' already exists")


def db_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Drop and recreate the database schema (deletes all data).

    Examples:
        journey db reset       # With confirmation prompt
        journey db reset -y    # Skip confirmation
    """
    schema_name = get_settings().postgres.schema_name
    if not check_postgresql_connection():
        fail("PostgreSQL is not reachable")
        raise typer.Exit(1)

    if not confirm:
        warn(f"This deletes every customer, event and flow in schema '{schema_name}'.")
        typer.confirm("Continue?", abort=True)

    with reported_errors():
        reset_schema()
    success(f"Schema '{schema_name}' reset")
