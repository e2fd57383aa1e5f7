# ==============================================================================
# PostgreSQL Repository Implementations
# ==============================================================================
"""
PostgreSQL implementations of the repository interfaces.

Provides:
- PostgreSQLDirectory: Read-only customers, pages and blocks
- PostgreSQLEventRepository: Single-row event inserts and click counts
- PostgreSQLFlowRepository: Flow range scans and pagination
- PostgreSQLSessionizerStore: Per-customer claim, flow insert and
  event hand-off in one transaction
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

import psycopg2
from psycopg2 import errorcodes
from psycopg2.extras import RealDictCursor, execute_batch, register_uuid

from journey.base.repositories import (
    Directory,
    EventRepository,
    FlowBuildFn,
    FlowRepository,
    Repository,
    SessionizerStore,
)
from journey.core.errors import ConflictError
from journey.core.models import Block, Customer, Event, Flow, Page
from journey.utils.config import Settings, get_settings
from journey.utils.db import add_connect_timeout

logger = logging.getLogger(__name__)

# Return uuid.UUID for UUID columns and accept it as a parameter
register_uuid()

# Batch size for execute_batch
PAGE_SIZE = 1000

# First key of the two-key advisory lock used to claim a customer
SESSIONIZER_LOCK_NAMESPACE = 4242

EVENT_COLUMNS = "id, customer_id, page_id, block_id, session_id, occurred_at, handled"
FLOW_COLUMNS = "id, customer_id, session_id, start_at, end_at, block_ids, page_ids"


def _range_clause(
    start_column: str,
    end_column: str,
    start: datetime | None,
    end: datetime | None,
) -> tuple[str, list]:
    """Build an inclusive ``AND`` range filter and its parameters."""
    sql = ""
    params: list = []
    if start is not None:
        sql += f" AND {start_column} >= %s"
        params.append(start)
    if end is not None:
        sql += f" AND {end_column} <= %s"
        params.append(end)
    return sql, params


class PostgreSQLRepository(Repository):
    """
    Connection handling shared by the PostgreSQL repositories.

    Read-mostly repositories run in autocommit mode; the sessionizer store
    manages its own transactions.
    """

    autocommit = True

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the repository.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._conn: psycopg2.extensions.connection | None = None
        self._schema = self._settings.postgres.schema_name

    def connect(self) -> None:
        """Establish connection to PostgreSQL."""
        conn_string = add_connect_timeout(self._settings.postgres.connection_string)
        self._conn = psycopg2.connect(conn_string)
        self._conn.autocommit = self.autocommit
        logger.info("%s connected (schema=%s)", type(self).__name__, self._schema)

    def _connection(self) -> psycopg2.extensions.connection:
        if self._conn is None:
            raise RuntimeError("PostgreSQL connection not established. Call connect() first.")
        return self._conn

    def _fetch_all(self, sql: str, params: Iterable = ()) -> list[dict]:
        with self._connection().cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(sql, tuple(params))
            return [dict(row) for row in cur.fetchall()]

    def _fetch_one(self, sql: str, params: Iterable = ()) -> dict | None:
        with self._connection().cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(sql, tuple(params))
            row = cur.fetchone()
            return dict(row) if row else None

    def rollback(self) -> None:
        """Rollback current transaction."""
        if self._conn:
            try:
                self._conn.rollback()
            except psycopg2.Error as e:
                logger.warning("Rollback failed: %s", e)

    def close(self) -> None:
        """Close connection and release resources."""
        if self._conn:
            try:
                self._conn.close()
                logger.info("%s connection closed", type(self).__name__)
            except psycopg2.Error as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._conn = None

    def reconnect(self) -> None:
        """Attempt to reconnect to the database."""
        self.close()
        self.connect()
        logger.info("%s reconnected", type(self).__name__)


class PostgreSQLDirectory(PostgreSQLRepository, Directory):
    """Read-only directory of customers, pages and blocks."""

    def get_customer_by_key(self, public_key: str) -> Customer | None:
        row = self._fetch_one(
            f"""
            SELECT id, public_key, name, role, approved, active
            FROM {self._schema}.customers
            WHERE public_key = %s
            """,
            (public_key,),
        )
        return Customer(**row) if row else None

    def get_block_by_name(self, customer_id: UUID, name: str) -> Block | None:
        row = self._fetch_one(
            f"""
            SELECT id, customer_id, page_id, name
            FROM {self._schema}.blocks
            WHERE customer_id = %s AND name = %s
            """,
            (customer_id, name),
        )
        return Block(**row) if row else None

    def get_page(self, page_id: int) -> Page | None:
        row = self._fetch_one(
            f"""
            SELECT id, customer_id, name, display_order
            FROM {self._schema}.pages
            WHERE id = %s
            """,
            (page_id,),
        )
        return Page(**row) if row else None

    def list_pages(self, customer_id: UUID) -> list[Page]:
        rows = self._fetch_all(
            f"""
            SELECT id, customer_id, name, display_order
            FROM {self._schema}.pages
            WHERE customer_id = %s
            ORDER BY display_order, id
            """,
            (customer_id,),
        )
        return [Page(**row) for row in rows]

    def list_blocks(self, page_id: int) -> list[Block]:
        rows = self._fetch_all(
            f"""
            SELECT id, customer_id, page_id, name
            FROM {self._schema}.blocks
            WHERE page_id = %s
            ORDER BY id
            """,
            (page_id,),
        )
        return [Block(**row) for row in rows]

    def get_blocks(self, block_ids: Iterable[int]) -> dict[int, Block]:
        ids = sorted(set(block_ids))
        if not ids:
            return {}
        rows = self._fetch_all(
            f"""
            SELECT id, customer_id, page_id, name
            FROM {self._schema}.blocks
            WHERE id = ANY(%s)
            """,
            (ids,),
        )
        return {row["id"]: Block(**row) for row in rows}

    def get_pages(self, page_ids: Iterable[int]) -> dict[int, Page]:
        ids = sorted(set(page_ids))
        if not ids:
            return {}
        rows = self._fetch_all(
            f"""
            SELECT id, customer_id, name, display_order
            FROM {self._schema}.pages
            WHERE id = ANY(%s)
            """,
            (ids,),
        )
        return {row["id"]: Page(**row) for row in rows}


class PostgreSQLEventRepository(PostgreSQLRepository, EventRepository):
    """
    PostgreSQL implementation of EventRepository.

    Each event is a single-row INSERT in autocommit mode, so a saved event
    is durable as soon as save() returns.
    """

    def save(self, event: Event) -> Event:
        """
        Persist one event.

        Returns:
            The event with its database id

        Raises:
            ConflictError: On a uniqueness violation
        """
        try:
            row = self._fetch_one(
                f"""
                INSERT INTO {self._schema}.events
                    (customer_id, page_id, block_id, session_id, occurred_at, handled)
                VALUES (%s, %s, %s, %s, %s, FALSE)
                RETURNING id
                """,
                (
                    event.customer_id,
                    event.page_id,
                    event.block_id,
                    event.session_id,
                    event.occurred_at,
                ),
            )
        except psycopg2.IntegrityError as e:
            if e.pgcode == errorcodes.UNIQUE_VIOLATION:
                raise ConflictError("Event") from e
            raise

        logger.debug("Inserted event %s (session=%s)", row["id"], event.session_id)
        return event.model_copy(update={"id": row["id"], "handled": False})

    def count_by_page(
        self, customer_id: UUID, start: datetime | None, end: datetime | None
    ) -> dict[int, int]:
        range_sql, range_params = _range_clause("occurred_at", "occurred_at", start, end)
        rows = self._fetch_all(
            f"""
            SELECT page_id, COUNT(*) AS clicks
            FROM {self._schema}.events
            WHERE customer_id = %s{range_sql}
            GROUP BY page_id
            """,
            [customer_id, *range_params],
        )
        return {row["page_id"]: row["clicks"] for row in rows}

    def count_by_block(
        self, customer_id: UUID, page_id: int, start: datetime | None, end: datetime | None
    ) -> dict[int, int]:
        range_sql, range_params = _range_clause("occurred_at", "occurred_at", start, end)
        rows = self._fetch_all(
            f"""
            SELECT block_id, COUNT(*) AS clicks
            FROM {self._schema}.events
            WHERE customer_id = %s AND page_id = %s{range_sql}
            GROUP BY block_id
            """,
            [customer_id, page_id, *range_params],
        )
        return {row["block_id"]: row["clicks"] for row in rows}


class PostgreSQLFlowRepository(PostgreSQLRepository, FlowRepository):
    """PostgreSQL implementation of FlowRepository."""

    def fetch_page(
        self,
        customer_id: UUID,
        start: datetime | None,
        end: datetime | None,
        offset: int,
        limit: int,
    ) -> tuple[int, list[Flow]]:
        range_sql, range_params = _range_clause("start_at", "end_at", start, end)
        params = [customer_id, *range_params]

        total_row = self._fetch_one(
            f"""
            SELECT COUNT(*) AS total
            FROM {self._schema}.flows
            WHERE customer_id = %s{range_sql}
            """,
            params,
        )
        rows = self._fetch_all(
            f"""
            SELECT {FLOW_COLUMNS}
            FROM {self._schema}.flows
            WHERE customer_id = %s{range_sql}
            ORDER BY start_at DESC, id DESC
            OFFSET %s LIMIT %s
            """,
            [*params, offset, limit],
        )
        total = total_row["total"] if total_row else 0
        return total, [Flow(**row) for row in rows]

    def find(
        self, customer_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[Flow]:
        range_sql, range_params = _range_clause("start_at", "end_at", start, end)
        rows = self._fetch_all(
            f"""
            SELECT {FLOW_COLUMNS}
            FROM {self._schema}.flows
            WHERE customer_id = %s{range_sql}
            ORDER BY start_at, id
            """,
            [customer_id, *range_params],
        )
        return [Flow(**row) for row in rows]


class PostgreSQLSessionizerStore(PostgreSQLRepository, SessionizerStore):
    """
    PostgreSQL implementation of SessionizerStore.

    A customer is claimed with a transaction-scoped advisory lock, so several
    sessionizer workers can run side by side: whoever gets the lock processes
    the customer, the others skip it for this pass. The lock is released by
    the same COMMIT/ROLLBACK that publishes or discards the flows.
    """

    autocommit = False

    def pending_customer_ids(self) -> list[UUID]:
        conn = self._connection()
        try:
            rows = self._fetch_all(
                f"""
                SELECT DISTINCT customer_id
                FROM {self._schema}.events
                WHERE NOT handled
                """
            )
            conn.commit()
        except psycopg2.Error:
            self.rollback()
            raise
        return [row["customer_id"] for row in rows]

    def consume(self, customer_id: UUID, build: FlowBuildFn) -> tuple[int, int] | None:
        conn = self._connection()
        try:
            claimed = self._fetch_one(
                "SELECT pg_try_advisory_xact_lock(%s, hashtext(%s)) AS claimed",
                (SESSIONIZER_LOCK_NAMESPACE, str(customer_id)),
            )
            if not claimed or not claimed["claimed"]:
                conn.rollback()
                logger.info("Customer %s is claimed by another worker, skipping", customer_id)
                return None

            rows = self._fetch_all(
                f"""
                SELECT {EVENT_COLUMNS}
                FROM {self._schema}.events
                WHERE customer_id = %s AND NOT handled
                ORDER BY occurred_at, id
                FOR UPDATE
                """,
                (customer_id,),
            )
            events = [Event(**row) for row in rows]
            flows, consumed = build(events)

            with conn.cursor() as cur:
                if flows:
                    execute_batch(
                        cur,
                        f"""
                        INSERT INTO {self._schema}.flows
                            (customer_id, session_id, start_at, end_at, block_ids, page_ids)
                        VALUES
                            (%(customer_id)s, %(session_id)s, %(start_at)s, %(end_at)s,
                             %(block_ids)s, %(page_ids)s)
                        """,
                        [f.to_db_record() for f in flows],
                        page_size=PAGE_SIZE,
                    )
                consumed_ids = [e.id for e in consumed]
                if consumed_ids:
                    cur.execute(
                        f"""
                        UPDATE {self._schema}.events
                        SET handled = TRUE
                        WHERE id = ANY(%s) AND NOT handled
                        """,
                        (consumed_ids,),
                    )
                    if cur.rowcount != len(consumed_ids):
                        raise RuntimeError(
                            f"Expected to hand off {len(consumed_ids)} events, "
                            f"updated {cur.rowcount}"
                        )

            conn.commit()
        except Exception:
            self.rollback()
            raise

        logger.debug(
            "Customer %s: inserted %d flows, handled %d events",
            customer_id,
            len(flows),
            len(consumed),
        )
        return len(flows), len(consumed)


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    settings = settings or get_settings()
    try:
        conn = psycopg2.connect(add_connect_timeout(settings.postgres.connection_string))
    except psycopg2.Error:
        return False
    conn.close()
    return True
