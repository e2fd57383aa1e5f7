# ==============================================================================
# Flow Commands
# ==============================================================================
"""
Flow listing and summary commands for the journey CLI.
"""

from enum import Enum
from typing import Annotated

import typer

from journey.cli.shared import (
    CustomerId,
    CustomerKey,
    Since,
    Until,
    authenticate,
    connected,
    parse_customer_id,
    print_json,
    reported_errors,
    success,
    warn,
)
from journey.core.access import resolve_target
from journey.infrastructure import (
    PostgreSQLDirectory,
    PostgreSQLFlowRepository,
    ValkeyLiveFlowCache,
)
from journey.services import FlowQueries


class SummaryKind(str, Enum):
    length = "length"
    duration = "duration"


def flows_list(
    key: CustomerKey,
    customer: CustomerId = None,
    since: Since = None,
    until: Until = None,
    page: Annotated[int, typer.Option("--page", "-p", help="Page number (1-based)")] = 1,
    page_size: Annotated[int, typer.Option("--page-size", help="Flows per page (1-100)")] = 20,
) -> None:
    """List persisted flows, newest first."""
    directory = PostgreSQLDirectory()
    flows = PostgreSQLFlowRepository()
    with reported_errors(), connected(directory, flows):
        principal = authenticate(directory, key)
        queries = FlowQueries(flows, directory, ValkeyLiveFlowCache())
        listing = queries.list_flows(
            principal,
            parse_customer_id(customer),
            start=since,
            end=until,
            page=page,
            page_size=page_size,
        )
    print_json(listing)


def flows_cached(
    key: CustomerKey,
    customer: CustomerId = None,
    limit: Annotated[int, typer.Option("--limit", "-n", min=0, help="Max entries")] = 10,
) -> None:
    """Show in-progress flows from the live cache."""
    directory = PostgreSQLDirectory()
    with reported_errors(), connected(directory):
        principal = authenticate(directory, key)
        queries = FlowQueries(PostgreSQLFlowRepository(), directory, ValkeyLiveFlowCache())
        entries = queries.cached_flows(principal, parse_customer_id(customer), limit=limit)
    if not entries:
        warn("No cached flows")
        return
    print_json(entries)


def flows_summary(
    key: CustomerKey,
    by: Annotated[SummaryKind, typer.Option("--by", help="Summary dimension")] = SummaryKind.length,
    customer: CustomerId = None,
    since: Since = None,
    until: Until = None,
) -> None:
    """Shortest, longest and average flow by page count or duration."""
    directory = PostgreSQLDirectory()
    flows = PostgreSQLFlowRepository()
    with reported_errors(), connected(directory, flows):
        principal = authenticate(directory, key)
        queries = FlowQueries(flows, directory, ValkeyLiveFlowCache())
        target = parse_customer_id(customer)
        if by is SummaryKind.length:
            summary = queries.length_summary(principal, target, since, until)
        else:
            summary = queries.duration_summary(principal, target, since, until)
    print_json(summary)


def flows_clear_cache(key: CustomerKey, customer: CustomerId = None) -> None:
    """Drop the caller's live flow cache entry."""
    directory = PostgreSQLDirectory()
    with reported_errors(), connected(directory):
        principal = authenticate(directory, key)
        target = resolve_target(principal, parse_customer_id(customer))
        cleared = ValkeyLiveFlowCache().clear(target)
    if cleared:
        success("Live flow cache cleared")
    else:
        warn("Live flow cache was already empty")
