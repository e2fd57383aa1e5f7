# ==============================================================================
# Sessionizer Commands
# ==============================================================================
"""
Sessionizer worker command for the journey CLI.

Several workers may run side by side against the same database; each
customer is claimed by one worker per pass.
"""

import logging
import signal
import threading
from typing import Annotated, Optional

import typer

from journey.cli.shared import connected, print_json, reported_errors
from journey.core.flow_builder import FlowBuilder
from journey.infrastructure import PostgreSQLSessionizerStore
from journey.services import Sessionizer
from journey.utils.config import get_settings

logger = logging.getLogger(__name__)


def sessionizer_run(
    once: Annotated[bool, typer.Option("--once", help="Run a single pass and exit")] = False,
    interval: Annotated[
        Optional[int],
        typer.Option("--interval", "-i", min=1, help="Seconds between passes"),
    ] = None,
    settle: Annotated[
        Optional[int],
        typer.Option("--settle", min=0, help="Leave sessions younger than this many seconds"),
    ] = None,
) -> None:
    """Turn unhandled events into flows.

    Examples:
        journey sessionizer run --once        # One pass, print the report
        journey sessionizer run -i 30         # Every 30 seconds until stopped
    """
    settings = get_settings().sessionizer
    interval = interval or settings.interval_seconds
    builder = FlowBuilder(settle_seconds=settings.settle_seconds if settle is None else settle)

    store = PostgreSQLSessionizerStore()
    with reported_errors(), connected(store):
        sessionizer = Sessionizer(store, builder)
        if once:
            print_json(sessionizer.run_once())
            return

        stop = threading.Event()

        def request_stop(signum, frame):
            logger.info("Received signal %d, shutting down gracefully...", signum)
            stop.set()

        signal.signal(signal.SIGTERM, request_stop)
        signal.signal(signal.SIGINT, request_stop)

        logger.info("Sessionizer started (interval=%ds)", interval)
        passes = sessionizer.run_forever(interval, stop=stop)
        logger.info("Sessionizer shutdown complete after %d passes.", passes)
