# ==============================================================================
# Event Commands
# ==============================================================================
"""
Event ingestion commands for the journey CLI.

CSV imports expect a header row with the columns
``sessionId,occurredAt,blockName,customerKey``.
"""

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from journey.cli.shared import connected, fail, print_json, reported_errors, success, warn
from journey.core.models import EventIn
from journey.infrastructure import (
    PostgreSQLDirectory,
    PostgreSQLEventRepository,
    ValkeyLiveFlowCache,
    check_valkey_connection,
)
from journey.services import EventIngest

CSV_COLUMNS = ("sessionId", "occurredAt", "blockName", "customerKey")


def _live_cache() -> ValkeyLiveFlowCache | None:
    """The live flow cache, or None with a warning if Valkey is down."""
    if not check_valkey_connection():
        warn("Valkey is not reachable, the live flow cache will not be updated")
        return None
    return ValkeyLiveFlowCache()


def _read_csv(path: Path) -> list[EventIn]:
    """Parse every row of a CSV export; exits on the first malformed row."""
    with path.open(newline="") as f:
        reader = csv.DictReader(f)
        missing = [c for c in CSV_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            fail(f"{path} is missing column(s): {', '.join(missing)}")
            raise typer.Exit(1)

        events = []
        # Line 1 is the header
        for line, row in enumerate(reader, start=2):
            try:
                events.append(EventIn.model_validate({c: row[c] for c in CSV_COLUMNS}))
            except ValidationError as e:
                fail(f"{path}:{line}: {e.errors()[0]['msg']}")
                raise typer.Exit(1)
    return events


def events_send(
    block_name: Annotated[str, typer.Argument(help="Name of the clicked block")],
    session_id: Annotated[str, typer.Option("--session", "-s", help="Session identifier")],
    customer_key: Annotated[
        str,
        typer.Option(
            "--key", "-k", envvar="JOURNEY_CUSTOMER_KEY", help="Public key of the customer"
        ),
    ],
    occurred_at: Annotated[
        Optional[datetime],
        typer.Option("--at", help="When the click happened (default: now)"),
    ] = None,
) -> None:
    """Ingest one click event."""
    event_in = EventIn(
        session_id=session_id,
        occurred_at=occurred_at or datetime.now(timezone.utc),
        block_name=block_name,
        customer_key=customer_key,
    )

    directory = PostgreSQLDirectory()
    events = PostgreSQLEventRepository()
    with reported_errors(), connected(directory, events):
        event = EventIngest(directory, events, _live_cache()).collect(event_in)
    print_json(event)


def events_import(
    path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="CSV file")
    ],
) -> None:
    """Ingest every event of a CSV file.

    Rows with an unknown customer key or block name are reported and skipped;
    the remaining rows are still ingested.
    """
    events_in = _read_csv(path)

    directory = PostgreSQLDirectory()
    events = PostgreSQLEventRepository()
    with reported_errors(), connected(directory, events):
        report = EventIngest(directory, events, _live_cache()).collect_many(events_in)

    for index, reason in report.rejected:
        # Data rows start on line 2
        warn(f"{path}:{index + 2}: {reason}")
    success(f"Imported {report.accepted} of {len(events_in)} events")
    if report.rejected:
        raise typer.Exit(1)
