# ==============================================================================
# Result Commands
# ==============================================================================
"""
Conversion funnel and heatmap commands for the journey CLI.

Both commands print a table by default and JSON with --json.
"""

from typing import Annotated

import typer

from journey.cli.shared import (
    C,
    CustomerId,
    CustomerKey,
    Since,
    Until,
    authenticate,
    connected,
    parse_customer_id,
    print_json,
    reported_errors,
)
from journey.core.models import ClickShare
from journey.infrastructure import PostgreSQLDirectory, PostgreSQLEventRepository
from journey.services import ResultQueries

JsonOutput = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON for scripting")]


def _print_shares(title: str, shares: list[ClickShare]) -> None:
    print()
    print(f"  {C.BOLD}{title}{C.RESET}")
    print(f"  {'':32}{'Clicks':>10}  {'Share':>8}")
    print("  " + "─" * 52)
    for share in shares:
        print(f"  {share.name[:32]:<32}{share.clicks:>10,}  {share.share * 100:>7.1f}%")
    print()


def results_conversion(
    key: CustomerKey,
    customer: CustomerId = None,
    since: Since = None,
    until: Until = None,
    json_output: JsonOutput = False,
) -> None:
    """Conversion funnel: clicks per page relative to the first page.

    Examples:
        journey results conversion -k KEY
        journey results conversion -k KEY --from 2024-01-01 --json
    """
    directory = PostgreSQLDirectory()
    events = PostgreSQLEventRepository()
    with reported_errors(), connected(directory, events):
        principal = authenticate(directory, key)
        conversion = ResultQueries(events, directory).conversion(
            principal, parse_customer_id(customer), since, until
        )

    if json_output:
        print_json(conversion)
        return
    _print_shares("Conversion funnel", conversion.pages)


def results_heatmap(
    page_id: Annotated[int, typer.Argument(help="Page id")],
    key: CustomerKey,
    since: Since = None,
    until: Until = None,
    json_output: JsonOutput = False,
) -> None:
    """Heatmap: clicks per block of a page relative to the page total."""
    directory = PostgreSQLDirectory()
    events = PostgreSQLEventRepository()
    with reported_errors(), connected(directory, events):
        principal = authenticate(directory, key)
        heatmap = ResultQueries(events, directory).heatmap(principal, page_id, since, until)

    if json_output:
        print_json(heatmap)
        return
    _print_shares(f"Heatmap for {heatmap.page.name} ({heatmap.total_clicks:,} clicks)", heatmap.blocks)
