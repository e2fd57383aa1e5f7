# ==============================================================================
# Journey Analytics CLI
# ==============================================================================
"""
Command-line interface for the journey analytics service.

Usage:
    journey --help
    journey db init
    journey db reset -y
    journey events send HOME_BANNER --session s-1 --key KEY
    journey events import clicks.csv
    journey sessionizer run --once
    journey flows list --key KEY --page 2
    journey flows cached --key KEY --limit 5
    journey flows summary --key KEY --by duration
    journey results conversion --key KEY
    journey results heatmap 3 --key KEY
"""

import logging
import os
from typing import Annotated, Optional

import typer

from journey.utils.config import get_settings

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="journey",
    help="Clickstream journey analytics CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def configure(
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Logging level (default: LOG_LEVEL or INFO)"),
    ] = None,
) -> None:
    """Clickstream journey analytics CLI."""
    logging.basicConfig(
        level=(log_level or get_settings().log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


db_app = typer.Typer(
    help="Database schema operations",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from journey.cli.db import db_init, db_reset

db_app.command("init")(db_init)
db_app.command("reset")(db_reset)

events_app = typer.Typer(
    help="Event ingestion",
    no_args_is_help=True,
)
app.add_typer(events_app, name="events")

from journey.cli.events import events_import, events_send

events_app.command("send")(events_send)
events_app.command("import")(events_import)

sessionizer_app = typer.Typer(
    help="Sessionizer worker",
    no_args_is_help=True,
)
app.add_typer(sessionizer_app, name="sessionizer")

from journey.cli.sessionizer import sessionizer_run

sessionizer_app.command("run")(sessionizer_run)

flows_app = typer.Typer(
    help="Flow listings and summaries",
    no_args_is_help=True,
)
app.add_typer(flows_app, name="flows")

from journey.cli.flows import flows_cached, flows_clear_cache, flows_list, flows_summary

flows_app.command("list")(flows_list)
flows_app.command("cached")(flows_cached)
flows_app.command("summary")(flows_summary)
flows_app.command("clear-cache")(flows_clear_cache)

results_app = typer.Typer(
    help="Conversion funnels and heatmaps",
    no_args_is_help=True,
)
app.add_typer(results_app, name="results")

from journey.cli.results import results_conversion, results_heatmap

results_app.command("conversion")(results_conversion)
results_app.command("heatmap")(results_heatmap)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
