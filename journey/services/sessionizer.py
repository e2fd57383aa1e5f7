# ==============================================================================
# Sessionizer
# ==============================================================================
"""
Batch conversion of unhandled events into persisted flows.

Each pass:

    1. store.pending_customer_ids()        - customers with unhandled events
    2. store.consume(customer, build)      - per customer, one transaction:
                                             claim, read, insert flows,
                                             mark events handled

An event moves from unhandled to handled only when its customer's
transaction commits, together with the flows built from it. A failing
customer is rolled back and retried on the next pass; the other customers
of the pass are unaffected. If the pending customers cannot even be listed,
the whole pass fails.

Each pass is timed with time.monotonic() and logged at INFO level.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field

from journey.base import SessionizerStore
from journey.core.flow_builder import FlowBuilder
from journey.core.models import Event, Flow

logger = logging.getLogger(__name__)


class SessionizerReport(BaseModel):
    """Outcome of one sessionizer pass."""

    customers_processed: int = 0
    customers_skipped: int = 0
    failed_customers: list[UUID] = Field(default_factory=list)
    flows_created: int = 0
    events_handled: int = 0
    duration_ms: float = 0.0

    @property
    def customers_failed(self) -> int:
        return len(self.failed_customers)


class Sessionizer:
    """
    Periodic worker turning unhandled events into flows.

    Several workers may share a store: the store's per-customer claim makes
    a customer's events visible to only one of them at a time.
    """

    def __init__(
        self,
        store: SessionizerStore,
        builder: FlowBuilder | None = None,
        log: logging.Logger | None = None,
    ):
        """
        Initialize the sessionizer.

        Args:
            store: SessionizerStore implementation
            builder: Flow reconstruction logic (default: FlowBuilder())
            log: Optional logger override. Defaults to this module's logger.
        """
        self._store = store
        self._builder = builder or FlowBuilder()
        self._log = log or logger

    def _build(self, customer_id: UUID, now: datetime):
        def build(events: list[Event]) -> tuple[list[Flow], list[Event]]:
            return self._builder.build_flows(customer_id, events, now=now)

        return build

    def run_once(self) -> SessionizerReport:
        """
        Run one pass over all customers with unhandled events.

        Returns:
            SessionizerReport for the pass

        Raises:
            Any exception from listing pending customers (systemic failure)
        """
        t0 = time.monotonic()
        now = datetime.now(timezone.utc)
        report = SessionizerReport()

        for customer_id in self._store.pending_customer_ids():
            try:
                result = self._store.consume(customer_id, self._build(customer_id, now))
            except Exception:
                self._log.exception(
                    "Sessionizer failed for customer %s, events left for retry", customer_id
                )
                report.failed_customers.append(customer_id)
                continue

            if result is None:
                report.customers_skipped += 1
                continue

            flows, events = result
            report.customers_processed += 1
            report.flows_created += flows
            report.events_handled += events

        report.duration_ms = (time.monotonic() - t0) * 1000
        self._log.info(
            "Sessionizer pass: %d customers, %d flows, %d events | "
            "skipped=%d failed=%d | total=%.*fms",
            report.customers_processed,
            report.flows_created,
            report.events_handled,
            report.customers_skipped,
            report.customers_failed,
            _precision(report.duration_ms),
            report.duration_ms,
        )
        return report

    def run_forever(
        self,
        interval_seconds: float,
        stop: threading.Event | None = None,
        max_passes: int | None = None,
    ) -> int:
        """
        Run passes until ``stop`` is set or ``max_passes`` is reached.

        A failed pass is logged, the store is reconnected and the loop keeps
        going; its events are picked up again by the next pass. If the
        reconnect fails too, the next pass tries again.

        Returns:
            Number of passes run
        """
        stop = stop or threading.Event()
        passes = 0
        while not stop.is_set():
            try:
                self.run_once()
            except Exception:
                self._log.exception("Sessionizer pass aborted, retrying next schedule")
                self._reconnect()
            passes += 1
            if max_passes is not None and passes >= max_passes:
                break
            stop.wait(interval_seconds)
        return passes

    def _reconnect(self) -> None:
        try:
            self._store.reconnect()
            self._log.info("Sessionizer store reconnected after failed pass")
        except Exception as e:
            self._log.error("Failed to reconnect sessionizer store: %s", e)


def _precision(ms: float) -> int:
    """Return decimal precision for millisecond values.

    >= 10ms  → 0 decimals (e.g., 85ms)
    >= 1ms   → 1 decimal  (e.g., 3.2ms)
    < 1ms    → 2 decimals (e.g., 0.45ms)
    """
    if ms >= 10:
        return 0
    elif ms >= 1:
        return 1
    else:
        return 2
