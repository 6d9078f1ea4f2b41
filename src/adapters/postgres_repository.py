"""PostgreSQL event store implementation using psycopg2 with connection pooling."""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from threading import Lock
from time import sleep
from typing import TYPE_CHECKING, Any, Final

from psycopg2 import Error as PsycopgError
from psycopg2 import extensions
from psycopg2 import pool as psycopg2_pool
from psycopg2.extras import Json, RealDictCursor

from src.adapters.event_rows import (
    DRAFT_COLUMNS,
    PRICE_REACTION_PATCHABLE_COLUMNS,
    check_patch_columns,
    coins_from_json,
    coins_to_json,
    draft_values,
    parse_db_datetime,
    parse_db_decimal,
    price_reaction_values,
    row_to_price_reaction,
    to_utc,
)
from src.config.logging_config import get_logger
from src.domain.exceptions import RepositoryError
from src.domain.models import (
    EditSuggestion,
    EventDraft,
    EventStage,
    PersistedEvent,
    PriceReaction,
)

if TYPE_CHECKING:
    from src.config.settings import Settings


DEFAULT_POOL_MIN_CONNECTIONS: Final[int] = 1
DEFAULT_POOL_MAX_CONNECTIONS: Final[int] = 5
POOL_ACQUIRE_MAX_ATTEMPTS_DEFAULT: Final[int] = 5
POOL_ACQUIRE_BASE_DELAY_SECONDS: Final[float] = 0.1
POOL_ACQUIRE_MAX_DELAY_SECONDS: Final[float] = 2.0

logger = get_logger(__name__)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, list):
        # Coin lists are cast to JSONB in SQL
        return coins_to_json(value)
    return value


class PostgresEventStore:
    """PostgreSQL event store backed by a connection pool."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        settings: "Settings | None" = None,
    ):
        """Initialize PostgreSQL store with pooled connections."""
        self._host = host
        self._port = port
        self._database = database
        self._user = user
        self._password = password

        self._statement_timeout_ms = (
            settings.postgres_statement_timeout_ms if settings else 10_000
        )
        self._connect_timeout_seconds = (
            settings.postgres_connect_timeout_seconds if settings else 10
        )
        self._application_name = (
            settings.postgres_application_name if settings else "crypto_calendar"
        )
        self._pool_min_connections = (
            settings.postgres_min_connections
            if settings
            else DEFAULT_POOL_MIN_CONNECTIONS
        )
        self._pool_max_connections = (
            settings.postgres_max_connections
            if settings
            else DEFAULT_POOL_MAX_CONNECTIONS
        )
        self._ssl_mode = settings.postgres_ssl_mode if settings else None

        self._pool_acquire_max_attempts = POOL_ACQUIRE_MAX_ATTEMPTS_DEFAULT
        self._pool_in_use_count = 0
        self._pool_lock = Lock()

        if self._pool_min_connections <= 0:
            raise RepositoryError("postgres_min_connections must be positive")
        if self._pool_max_connections < self._pool_min_connections:
            raise RepositoryError(
                "postgres_max_connections must be greater than or equal to postgres_min_connections"
            )

        self._pool = self._create_pool()

    def _create_pool(self) -> psycopg2_pool.ThreadedConnectionPool:
        """Create a PostgreSQL connection pool with validation."""
        options = (
            f"-c statement_timeout={self._statement_timeout_ms} "
            f"-c application_name={self._application_name}"
        )

        conn_kwargs: dict[str, Any] = {
            "host": self._host,
            "port": self._port,
            "database": self._database,
            "user": self._user,
            "password": self._password,
            "connect_timeout": self._connect_timeout_seconds,
            "options": options,
        }
        if self._ssl_mode:
            conn_kwargs["sslmode"] = self._ssl_mode

        try:
            pool = psycopg2_pool.ThreadedConnectionPool(
                self._pool_min_connections,
                self._pool_max_connections,
                **conn_kwargs,
            )
        except PsycopgError as exc:
            raise RepositoryError(
                f"Failed to initialize PostgreSQL pool: {exc}"
            ) from exc

        try:
            conn = pool.getconn()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
            finally:
                pool.putconn(conn)
        except PsycopgError as exc:
            pool.closeall()
            raise RepositoryError(f"PostgreSQL validation query failed: {exc}") from exc

        logger.info(
            "postgres_pool_initialized",
            host=self._host,
            port=self._port,
            database=self._database,
            min_connections=self._pool_min_connections,
            max_connections=self._pool_max_connections,
            statement_timeout_ms=self._statement_timeout_ms,
        )
        return pool

    def _acquire_connection_with_retry(self) -> extensions.connection:
        """Acquire a connection from the pool with exponential backoff."""
        attempt = 0
        delay = POOL_ACQUIRE_BASE_DELAY_SECONDS
        while True:
            attempt += 1
            try:
                conn = self._pool.getconn()
            except psycopg2_pool.PoolError as exc:
                if attempt >= self._pool_acquire_max_attempts:
                    logger.error(
                        "postgres_pool_acquire_failed",
                        attempts=attempt,
                        max_connections=self._pool_max_connections,
                        in_use=self._pool_in_use_count,
                    )
                    raise RepositoryError(
                        "Failed to acquire PostgreSQL connection from pool"
                    ) from exc

                logger.warning(
                    "postgres_pool_exhausted_retry",
                    attempt=attempt,
                    wait_seconds=delay,
                    in_use=self._pool_in_use_count,
                )
                sleep(delay)
                delay = min(delay * 2, POOL_ACQUIRE_MAX_DELAY_SECONDS)
                continue

            with self._pool_lock:
                self._pool_in_use_count += 1
            return conn

    def _release_connection(self, conn: extensions.connection, *, close: bool) -> None:
        """Return a connection to the pool."""
        try:
            self._pool.putconn(conn, close=close)
        except PsycopgError:
            logger.warning(
                "postgres_putconn_failed",
                database=self._database,
                close=close,
                exc_info=True,
            )
        finally:
            with self._pool_lock:
                if self._pool_in_use_count > 0:
                    self._pool_in_use_count -= 1

    def close(self) -> None:
        """Close all connections in the pool."""
        self._pool.closeall()
        with self._pool_lock:
            self._pool_in_use_count = 0
        logger.info("postgres_pool_closed", database=self._database)

    @contextmanager
    def _get_connection(self) -> Iterator[extensions.connection]:
        """Borrow a connection from the pool and ensure cleanup."""
        conn: extensions.connection | None = None
        try:
            conn = self._acquire_connection_with_retry()
            conn.autocommit = False
            yield conn
        except PsycopgError as exc:
            if conn is not None:
                try:
                    conn.rollback()
                except PsycopgError:
                    logger.warning(
                        "postgres_connection_rollback_failed",
                        database=self._database,
                        exc_info=True,
                    )
                finally:
                    self._release_connection(conn, close=True)
                    conn = None
            raise RepositoryError(f"PostgreSQL connection error: {exc}") from exc
        finally:
            if conn is not None:
                try:
                    status = conn.get_transaction_status()
                    if status in (
                        extensions.TRANSACTION_STATUS_INTRANS,
                        extensions.TRANSACTION_STATUS_INERROR,
                    ):
                        conn.rollback()
                except PsycopgError:
                    logger.warning(
                        "postgres_connection_cleanup_failed",
                        database=self._database,
                        exc_info=True,
                    )
                    self._release_connection(conn, close=True)
                else:
                    self._release_connection(conn, close=False)

    def _row_to_event(self, row: dict[str, Any], stage: EventStage) -> PersistedEvent:
        """Convert database row to PersistedEvent."""
        start_at = parse_db_datetime(row["start_at"])
        if start_at is None:
            raise RepositoryError(f"Event row {row['id']} missing start_at")

        return PersistedEvent(
            id=row["id"],
            stage=stage,
            title=row["title"],
            description=row.get("description"),
            start_at=start_at,
            end_at=parse_db_datetime(row.get("end_at")),
            timezone=row.get("timezone"),
            type=row.get("type"),
            event_type_slug=row.get("event_type_slug"),
            link=row.get("link"),
            coin_name=row.get("coin_name"),
            coin_quantity=parse_db_decimal(row.get("coin_quantity")),
            coins=coins_from_json(row.get("coins")),
            coin_price_link=row.get("coin_price_link"),
            coin_address=row.get("coin_address"),
            coin_chain=row.get("coin_chain"),
            coin_circulating_supply=parse_db_decimal(row.get("coin_circulating_supply")),
            source=row.get("source"),
            source_key=row.get("source_key"),
            created_at=parse_db_datetime(row.get("created_at")),
        )

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        with self._get_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
            conn.commit()
        return dict(row) if row else None

    def _fetch_all(
        self, query: str, params: tuple[Any, ...] = ()
    ) -> list[dict[str, Any]]:
        with self._get_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
            conn.commit()
        return [dict(row) for row in rows]

    def _execute(self, query: str, params: tuple[Any, ...]) -> int:
        """Run a write statement and return the affected row count."""
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rowcount = cur.rowcount
            conn.commit()
        return rowcount

    def find_approved_event(
        self,
        event_type_slug: str | None,
        coin_name: str | None,
        start_at: datetime,
    ) -> PersistedEvent | None:
        """Find approved event by (slug, coin, start) natural key.

        Raises:
            RepositoryError: On storage errors
        """
        row = self._fetch_one(
            """
            SELECT * FROM events_approved
            WHERE event_type_slug IS NOT DISTINCT FROM %s
              AND coin_name IS NOT DISTINCT FROM %s
              AND start_at = %s
            ORDER BY id LIMIT 1
            """,
            (event_type_slug, coin_name, to_utc(start_at)),
        )
        return self._row_to_event(row, EventStage.APPROVED) if row else None

    def find_pending_by_source_key(
        self, source: str, source_key: str
    ) -> PersistedEvent | None:
        """Find pending auto-draft by (source, source_key)."""
        row = self._fetch_one(
            """
            SELECT * FROM auto_events_pending
            WHERE source = %s AND source_key = %s
            ORDER BY id LIMIT 1
            """,
            (source, source_key),
        )
        return self._row_to_event(row, EventStage.PENDING) if row else None

    def find_pending_exact(
        self, title: str, start_at: datetime, link: str | None
    ) -> PersistedEvent | None:
        """Find pending auto-draft by exact (title, start_at, link)."""
        row = self._fetch_one(
            """
            SELECT * FROM auto_events_pending
            WHERE title = %s AND start_at = %s AND link IS NOT DISTINCT FROM %s
            ORDER BY id LIMIT 1
            """,
            (title, to_utc(start_at), link),
        )
        return self._row_to_event(row, EventStage.PENDING) if row else None

    def _insert_event(self, table: str, values: dict[str, Any]) -> int:
        columns = ", ".join(values)
        placeholders = ", ".join(
            "%s::jsonb" if column == "coins" else "%s" for column in values
        )
        row = self._fetch_one(
            f"""
            INSERT INTO {table} ({columns}, created_at)
            VALUES ({placeholders}, CURRENT_TIMESTAMP)
            RETURNING id
            """,
            tuple(_to_db_value(value) for value in values.values()),
        )
        if row is None:
            raise RepositoryError(f"Insert into {table} returned no id")
        return int(row["id"])

    def insert_pending_event(self, draft: EventDraft) -> int:
        """Insert a pending auto-draft and return its id."""
        return self._insert_event("auto_events_pending", draft_values(draft))

    def insert_approved_event(
        self,
        draft: EventDraft,
        coin_address: str | None = None,
        coin_chain: str | None = None,
    ) -> int:
        """Insert an event directly into the approved store (moderation/seeding)."""
        return self._insert_event(
            "events_approved",
            {**draft_values(draft), "coin_address": coin_address, "coin_chain": coin_chain},
        )

    def update_pending_event(self, event_id: int, patch: dict[str, Any]) -> None:
        """Patch a pending auto-draft in place.

        Raises:
            RepositoryError: On storage errors or unknown columns
        """
        if not patch:
            return
        try:
            check_patch_columns(patch)
        except ValueError as exc:
            raise RepositoryError(str(exc)) from exc

        assignments = ", ".join(
            f"{column} = %s::jsonb" if column == "coins" else f"{column} = %s"
            for column in patch
        )
        self._execute(
            f"UPDATE auto_events_pending SET {assignments} WHERE id = %s",
            tuple(_to_db_value(value) for value in patch.values()) + (event_id,),
        )

    def has_edit_suggestion(self, event_id: int, payload: dict[str, Any]) -> bool:
        """Check whether an identical edit suggestion is already queued."""
        row = self._fetch_one(
            """
            SELECT 1 AS found FROM event_edits_pending
            WHERE event_id = %s AND payload = %s::jsonb
            LIMIT 1
            """,
            (event_id, Json(payload)),
        )
        return row is not None

    def insert_edit_suggestion(self, suggestion: EditSuggestion) -> int:
        """Queue an edit suggestion and return its id."""
        row = self._fetch_one(
            """
            INSERT INTO event_edits_pending (event_id, payload, submitter_email, created_at)
            VALUES (%s, %s::jsonb, %s, CURRENT_TIMESTAMP)
            RETURNING id
            """,
            (suggestion.event_id, Json(suggestion.payload), suggestion.submitter_email),
        )
        if row is None:
            raise RepositoryError("Insert into event_edits_pending returned no id")
        return int(row["id"])

    def get_last_processed_message_id(self, channel: str) -> int:
        """Get channel watermark (0 when never processed)."""
        row = self._fetch_one(
            "SELECT last_msg_id FROM tg_scrape_state WHERE channel = %s",
            (channel,),
        )
        return int(row["last_msg_id"]) if row else 0

    def update_last_processed_message_id(self, channel: str, message_id: int) -> None:
        """Upsert channel watermark; a lower id never replaces a higher one."""
        self._execute(
            """
            INSERT INTO tg_scrape_state (channel, last_msg_id, updated_at)
            VALUES (%s, %s, CURRENT_TIMESTAMP)
            ON CONFLICT (channel) DO UPDATE SET
                last_msg_id = GREATEST(tg_scrape_state.last_msg_id, EXCLUDED.last_msg_id),
                updated_at = CURRENT_TIMESTAMP
            """,
            (channel, message_id),
        )

    def approve_pending_event(self, pending_id: int) -> int:
        """Move a pending row into the approved store.

        Raises:
            RepositoryError: If the pending row does not exist or on storage errors
        """
        columns = ", ".join(DRAFT_COLUMNS)
        with self._get_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"""
                    INSERT INTO events_approved ({columns}, created_at)
                    SELECT {columns}, CURRENT_TIMESTAMP
                    FROM auto_events_pending WHERE id = %s
                    RETURNING id
                    """,
                    (pending_id,),
                )
                row = cur.fetchone()
                if row is None:
                    conn.rollback()
                    raise RepositoryError(f"Pending event {pending_id} not found")
                cur.execute(
                    "DELETE FROM auto_events_pending WHERE id = %s", (pending_id,)
                )
            conn.commit()

        approved_id = int(row["id"])
        logger.info(
            "pending_event_approved", pending_id=pending_id, event_id=approved_id
        )
        return approved_id

    def get_approved_event(self, event_id: int) -> PersistedEvent | None:
        """Get approved event by id."""
        row = self._fetch_one("SELECT * FROM events_approved WHERE id = %s", (event_id,))
        return self._row_to_event(row, EventStage.APPROVED) if row else None

    def list_pending_events(self) -> list[PersistedEvent]:
        """List pending auto-drafts ordered by id."""
        rows = self._fetch_all("SELECT * FROM auto_events_pending ORDER BY id")
        return [self._row_to_event(row, EventStage.PENDING) for row in rows]

    def list_edit_suggestions(self, event_id: int | None = None) -> list[EditSuggestion]:
        """List queued edit suggestions, optionally for one event."""
        if event_id is None:
            rows = self._fetch_all("SELECT * FROM event_edits_pending ORDER BY id")
        else:
            rows = self._fetch_all(
                "SELECT * FROM event_edits_pending WHERE event_id = %s ORDER BY id",
                (event_id,),
            )
        return [
            EditSuggestion(
                id=row["id"],
                event_id=row["event_id"],
                payload=row["payload"] or {},
                submitter_email=row.get("submitter_email"),
                created_at=parse_db_datetime(row.get("created_at")),
            )
            for row in rows
        ]

    def list_events_missing_price_link(self) -> list[PersistedEvent]:
        """Approved events with a coin address but no price link."""
        rows = self._fetch_all(
            """
            SELECT * FROM events_approved
            WHERE coin_address IS NOT NULL AND BTRIM(coin_address) <> ''
              AND (coin_price_link IS NULL OR BTRIM(coin_price_link) = '')
            ORDER BY id
            """
        )
        return [self._row_to_event(row, EventStage.APPROVED) for row in rows]

    def update_approved_coin_info(
        self,
        event_id: int,
        circulating_supply: Decimal | None,
        price_link: str | None,
    ) -> None:
        """Store resolved coin metadata; None keeps the current value."""
        self._execute(
            """
            UPDATE events_approved SET
                coin_circulating_supply = COALESCE(%s, coin_circulating_supply),
                coin_price_link = COALESCE(%s, coin_price_link)
            WHERE id = %s
            """,
            (circulating_supply, price_link, event_id),
        )

    def list_approved_events_between(
        self, start: datetime, end: datetime
    ) -> list[PersistedEvent]:
        """Approved events with start_at in [start, end], ordered by start_at."""
        rows = self._fetch_all(
            """
            SELECT * FROM events_approved
            WHERE start_at >= %s AND start_at <= %s
            ORDER BY start_at, id
            """,
            (to_utc(start), to_utc(end)),
        )
        return [self._row_to_event(row, EventStage.APPROVED) for row in rows]

    def get_price_reactions(self, event_ids: list[int]) -> dict[int, PriceReaction]:
        """Price reaction rows keyed by event id."""
        if not event_ids:
            return {}
        rows = self._fetch_all(
            "SELECT * FROM event_price_reaction WHERE event_id = ANY(%s)",
            (list(event_ids),),
        )
        reactions = [row_to_price_reaction(row) for row in rows]
        return {reaction.event_id: reaction for reaction in reactions}

    def insert_price_reaction(self, reaction: PriceReaction) -> int:
        """Insert a price reaction row (one per event)."""
        return self._insert_event(
            "event_price_reaction", price_reaction_values(reaction)
        )

    def update_price_reaction(self, event_id: int, patch: dict[str, Any]) -> None:
        """Patch the price reaction row of an event.

        Raises:
            RepositoryError: On storage errors or unknown columns
        """
        if not patch:
            return
        try:
            check_patch_columns(patch, PRICE_REACTION_PATCHABLE_COLUMNS)
        except ValueError as exc:
            raise RepositoryError(str(exc)) from exc

        assignments = ", ".join(f"{column} = %s" for column in patch)
        self._execute(
            f"UPDATE event_price_reaction SET {assignments} WHERE event_id = %s",
            tuple(_to_db_value(value) for value in patch.values()) + (event_id,),
        )

    def list_unnotified_pending_events(self, limit: int) -> list[PersistedEvent]:
        """Pending auto-drafts not yet announced to moderators, oldest first."""
        rows = self._fetch_all(
            """
            SELECT * FROM auto_events_pending
            WHERE notified_at IS NULL
            ORDER BY id LIMIT %s
            """,
            (limit,),
        )
        return [self._row_to_event(row, EventStage.PENDING) for row in rows]

    def mark_pending_notified(self, event_id: int) -> None:
        """Stamp notified_at on a pending auto-draft."""
        self._execute(
            "UPDATE auto_events_pending SET notified_at = CURRENT_TIMESTAMP WHERE id = %s",
            (event_id,),
        )

    def delete_approved_before(self, cutoff: datetime) -> int:
        """Delete approved events starting before cutoff with their edits and reactions."""
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM event_edits_pending WHERE event_id IN (
                        SELECT id FROM events_approved WHERE start_at < %s
                    )
                    """,
                    (to_utc(cutoff),),
                )
                cur.execute(
                    """
                    DELETE FROM event_price_reaction WHERE event_id IN (
                        SELECT id FROM events_approved WHERE start_at < %s
                    )
                    """,
                    (to_utc(cutoff),),
                )
                cur.execute(
                    "DELETE FROM events_approved WHERE start_at < %s", (to_utc(cutoff),)
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

    def delete_pending_before(self, cutoff: datetime) -> int:
        """Delete pending auto-drafts starting before cutoff."""
        return self._execute(
            "DELETE FROM auto_events_pending WHERE start_at < %s", (to_utc(cutoff),)
        )
