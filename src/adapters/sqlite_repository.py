"""SQLite event store adapter for local storage.

Implements EventStoreProtocol with SQLite backend. Datetimes are stored as
ISO-8601 UTC text, decimals as text and coin lists as JSON.
"""

import json
import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytz

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

logger = get_logger(__name__)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_utc(value).isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return coins_to_json(value)
    return value


def _payload_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True)


class SQLiteEventStore:
    """SQLite-based event store for local runs and tests."""

    def __init__(self, db_path: str) -> None:
        """Initialize store and ensure schema.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Ensure data directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._create_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection.

        Returns:
            SQLite connection
        """
        conn = sqlite3.Connection(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_schema(self) -> None:
        """Create database schema if not exists."""
        logger.info("sqlite_schema_creation_started", db_path=str(self.db_path))
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            # Moderated events shown in the calendar
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS events_approved (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    start_at TEXT NOT NULL,
                    end_at TEXT,
                    timezone TEXT,
                    type TEXT,
                    event_type_slug TEXT,
                    link TEXT,
                    coin_name TEXT,
                    coin_quantity TEXT,
                    coins TEXT,
                    coin_price_link TEXT,
                    coin_address TEXT,
                    coin_chain TEXT,
                    coin_circulating_supply TEXT,
                    source TEXT,
                    source_key TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_events_approved_match
                ON events_approved(event_type_slug, coin_name, start_at)
                """
            )

            # Scraped drafts awaiting moderation
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS auto_events_pending (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    start_at TEXT NOT NULL,
                    end_at TEXT,
                    timezone TEXT,
                    type TEXT,
                    event_type_slug TEXT,
                    link TEXT,
                    coin_name TEXT,
                    coin_quantity TEXT,
                    coins TEXT,
                    coin_price_link TEXT,
                    source TEXT,
                    source_key TEXT,
                    notified_at TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            # Backfill notification tracking for existing databases
            try:
                cursor.execute(
                    "ALTER TABLE auto_events_pending ADD COLUMN notified_at TEXT"
                )
            except sqlite3.OperationalError as exc:
                if "duplicate column name" not in str(exc).lower():
                    raise
            cursor.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS idx_pending_source_key
                ON auto_events_pending(source, source_key)
                WHERE source_key IS NOT NULL
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS event_edits_pending (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    submitter_email TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_edits_event
                ON event_edits_pending(event_id)
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tg_scrape_state (
                    channel TEXT PRIMARY KEY,
                    last_msg_id INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                )
                """
            )

            # Market reaction around approved events
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS event_price_reaction (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id INTEGER NOT NULL UNIQUE,
                    coin_name TEXT,
                    pair TEXT NOT NULL,
                    exchange TEXT,
                    t0_time TEXT NOT NULL,
                    t0_price TEXT,
                    t0_percent TEXT,
                    t_plus_5_time TEXT NOT NULL,
                    t_plus_5_price TEXT,
                    t_plus_5_percent TEXT,
                    t_plus_15_time TEXT NOT NULL,
                    t_plus_15_price TEXT,
                    t_plus_15_percent TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to create schema: {e}") from e
        finally:
            conn.close()

    def close(self) -> None:
        """Connections are opened per call; nothing to release."""

    def _now(self) -> str:
        return datetime.now(tz=pytz.UTC).isoformat()

    def _row_to_event(self, row: sqlite3.Row, stage: EventStage) -> PersistedEvent:
        """Convert database row to PersistedEvent."""
        keys = row.keys()
        start_at = parse_db_datetime(row["start_at"])
        if start_at is None:
            raise RepositoryError(f"Event row {row['id']} missing start_at")

        return PersistedEvent(
            id=row["id"],
            stage=stage,
            title=row["title"],
            description=row["description"],
            start_at=start_at,
            end_at=parse_db_datetime(row["end_at"]),
            timezone=row["timezone"],
            type=row["type"],
            event_type_slug=row["event_type_slug"],
            link=row["link"],
            coin_name=row["coin_name"],
            coin_quantity=parse_db_decimal(row["coin_quantity"]),
            coins=coins_from_json(row["coins"]),
            coin_price_link=row["coin_price_link"],
            coin_address=row["coin_address"] if "coin_address" in keys else None,
            coin_chain=row["coin_chain"] if "coin_chain" in keys else None,
            coin_circulating_supply=parse_db_decimal(row["coin_circulating_supply"])
            if "coin_circulating_supply" in keys
            else None,
            source=row["source"],
            source_key=row["source_key"],
            created_at=parse_db_datetime(row["created_at"]),
        )

    def _row_to_suggestion(self, row: sqlite3.Row) -> EditSuggestion:
        return EditSuggestion(
            id=row["id"],
            event_id=row["event_id"],
            payload=json.loads(row["payload"]),
            submitter_email=row["submitter_email"],
            created_at=parse_db_datetime(row["created_at"]),
        )

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        conn = self._get_connection()
        try:
            return conn.execute(query, params).fetchone()
        finally:
            conn.close()

    def _fetch_all(self, query: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        conn = self._get_connection()
        try:
            return conn.execute(query, params).fetchall()
        finally:
            conn.close()

    def find_approved_event(
        self,
        event_type_slug: str | None,
        coin_name: str | None,
        start_at: datetime,
    ) -> PersistedEvent | None:
        """Find approved event by (slug, coin, start) natural key.

        Args:
            event_type_slug: Event type slug
            coin_name: Ticker (NULL matches NULL)
            start_at: UTC start instant

        Returns:
            Oldest matching approved event or None

        Raises:
            RepositoryError: On database errors
        """
        try:
            row = self._fetch_one(
                """
                SELECT * FROM events_approved
                WHERE event_type_slug IS ? AND coin_name IS ? AND start_at = ?
                ORDER BY id LIMIT 1
                """,
                (event_type_slug, coin_name, _to_db_value(start_at)),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to find approved event: {e}") from e
        return self._row_to_event(row, EventStage.APPROVED) if row else None

    def find_pending_by_source_key(
        self, source: str, source_key: str
    ) -> PersistedEvent | None:
        """Find pending auto-draft by (source, source_key)."""
        try:
            row = self._fetch_one(
                """
                SELECT * FROM auto_events_pending
                WHERE source = ? AND source_key = ?
                ORDER BY id LIMIT 1
                """,
                (source, source_key),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to find pending event: {e}") from e
        return self._row_to_event(row, EventStage.PENDING) if row else None

    def find_pending_exact(
        self, title: str, start_at: datetime, link: str | None
    ) -> PersistedEvent | None:
        """Find pending auto-draft by exact (title, start_at, link)."""
        try:
            row = self._fetch_one(
                """
                SELECT * FROM auto_events_pending
                WHERE title = ? AND start_at = ? AND link IS ?
                ORDER BY id LIMIT 1
                """,
                (title, _to_db_value(start_at), link),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to find pending event: {e}") from e
        return self._row_to_event(row, EventStage.PENDING) if row else None

    def _insert_event(
        self, table: str, values: dict[str, Any]
    ) -> int:
        values = {**values, "created_at": self._now()}
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(_to_db_value(value) for value in values.values()),
            )
            conn.commit()
            return int(cursor.lastrowid or 0)
        finally:
            conn.close()

    def insert_pending_event(self, draft: EventDraft) -> int:
        """Insert a pending auto-draft.

        Args:
            draft: Validated draft

        Returns:
            New row id

        Raises:
            RepositoryError: On database errors (including key collisions)
        """
        try:
            return self._insert_event("auto_events_pending", draft_values(draft))
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to insert pending event: {e}") from e

    def insert_approved_event(
        self,
        draft: EventDraft,
        coin_address: str | None = None,
        coin_chain: str | None = None,
    ) -> int:
        """Insert an event directly into the approved store (moderation/seeding)."""
        values = {
            **draft_values(draft),
            "coin_address": coin_address,
            "coin_chain": coin_chain,
        }
        try:
            return self._insert_event("events_approved", values)
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to insert approved event: {e}") from e

    def update_pending_event(self, event_id: int, patch: dict[str, Any]) -> None:
        """Patch a pending auto-draft in place.

        Raises:
            RepositoryError: On database errors or unknown columns
        """
        if not patch:
            return
        try:
            check_patch_columns(patch)
        except ValueError as e:
            raise RepositoryError(str(e)) from e

        assignments = ", ".join(f"{column} = ?" for column in patch)
        params = tuple(_to_db_value(value) for value in patch.values()) + (event_id,)
        conn = self._get_connection()
        try:
            conn.execute(
                f"UPDATE auto_events_pending SET {assignments} WHERE id = ?", params
            )
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to update pending event: {e}") from e
        finally:
            conn.close()

    def has_edit_suggestion(self, event_id: int, payload: dict[str, Any]) -> bool:
        """Check whether an identical edit suggestion is already queued."""
        try:
            row = self._fetch_one(
                "SELECT 1 FROM event_edits_pending WHERE event_id = ? AND payload = ? LIMIT 1",
                (event_id, _payload_json(payload)),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to check edit suggestions: {e}") from e
        return row is not None

    def insert_edit_suggestion(self, suggestion: EditSuggestion) -> int:
        """Queue an edit suggestion and return its id."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO event_edits_pending (event_id, payload, submitter_email, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    suggestion.event_id,
                    _payload_json(suggestion.payload),
                    suggestion.submitter_email,
                    self._now(),
                ),
            )
            conn.commit()
            return int(cursor.lastrowid or 0)
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to insert edit suggestion: {e}") from e
        finally:
            conn.close()

    def get_last_processed_message_id(self, channel: str) -> int:
        """Get channel watermark.

        Args:
            channel: Telegram username

        Returns:
            Last processed message id (0 when never processed)
        """
        try:
            row = self._fetch_one(
                "SELECT last_msg_id FROM tg_scrape_state WHERE channel = ?",
                (channel,),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to get last processed message ID: {e}") from e
        return int(row["last_msg_id"]) if row else 0

    def update_last_processed_message_id(self, channel: str, message_id: int) -> None:
        """Upsert channel watermark; a lower id never replaces a higher one."""
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO tg_scrape_state (channel, last_msg_id, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(channel) DO UPDATE SET
                    last_msg_id = MAX(last_msg_id, excluded.last_msg_id),
                    updated_at = excluded.updated_at
                """,
                (channel, message_id, self._now()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(
                f"Failed to update last processed message ID: {e}"
            ) from e
        finally:
            conn.close()

    def approve_pending_event(self, pending_id: int) -> int:
        """Move a pending row into the approved store.

        Returns:
            Id of the new approved event

        Raises:
            RepositoryError: If the pending row does not exist or on database errors
        """
        columns = ", ".join(DRAFT_COLUMNS)
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"""
                INSERT INTO events_approved ({columns}, created_at)
                SELECT {columns}, ? FROM auto_events_pending WHERE id = ?
                """,
                (self._now(), pending_id),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise RepositoryError(f"Pending event {pending_id} not found")
            approved_id = int(cursor.lastrowid or 0)
            conn.execute("DELETE FROM auto_events_pending WHERE id = ?", (pending_id,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RepositoryError(f"Failed to approve pending event: {e}") from e
        finally:
            conn.close()

        logger.info(
            "pending_event_approved", pending_id=pending_id, event_id=approved_id
        )
        return approved_id

    def get_approved_event(self, event_id: int) -> PersistedEvent | None:
        """Get approved event by id."""
        try:
            row = self._fetch_one(
                "SELECT * FROM events_approved WHERE id = ?", (event_id,)
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to get approved event: {e}") from e
        return self._row_to_event(row, EventStage.APPROVED) if row else None

    def list_pending_events(self) -> list[PersistedEvent]:
        """List pending auto-drafts ordered by id."""
        try:
            rows = self._fetch_all("SELECT * FROM auto_events_pending ORDER BY id")
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list pending events: {e}") from e
        return [self._row_to_event(row, EventStage.PENDING) for row in rows]

    def list_edit_suggestions(self, event_id: int | None = None) -> list[EditSuggestion]:
        """List queued edit suggestions, optionally for one event."""
        try:
            if event_id is None:
                rows = self._fetch_all("SELECT * FROM event_edits_pending ORDER BY id")
            else:
                rows = self._fetch_all(
                    "SELECT * FROM event_edits_pending WHERE event_id = ? ORDER BY id",
                    (event_id,),
                )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list edit suggestions: {e}") from e
        return [self._row_to_suggestion(row) for row in rows]

    def list_events_missing_price_link(self) -> list[PersistedEvent]:
        """Approved events with a coin address but no price link."""
        try:
            rows = self._fetch_all(
                """
                SELECT * FROM events_approved
                WHERE coin_address IS NOT NULL AND TRIM(coin_address) != ''
                  AND (coin_price_link IS NULL OR TRIM(coin_price_link) = '')
                ORDER BY id
                """
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list events for coin info: {e}") from e
        return [self._row_to_event(row, EventStage.APPROVED) for row in rows]

    def update_approved_coin_info(
        self,
        event_id: int,
        circulating_supply: Decimal | None,
        price_link: str | None,
    ) -> None:
        """Store resolved coin metadata; None keeps the current value."""
        conn = self._get_connection()
        try:
            conn.execute(
                """
                UPDATE events_approved SET
                    coin_circulating_supply = COALESCE(?, coin_circulating_supply),
                    coin_price_link = COALESCE(?, coin_price_link)
                WHERE id = ?
                """,
                (_to_db_value(circulating_supply), price_link, event_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to update coin info: {e}") from e
        finally:
            conn.close()

    def list_approved_events_between(
        self, start: datetime, end: datetime
    ) -> list[PersistedEvent]:
        """Approved events with start_at in [start, end], ordered by start_at."""
        try:
            rows = self._fetch_all(
                """
                SELECT * FROM events_approved
                WHERE start_at >= ? AND start_at <= ?
                ORDER BY start_at, id
                """,
                (_to_db_value(start), _to_db_value(end)),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list approved events: {e}") from e
        return [self._row_to_event(row, EventStage.APPROVED) for row in rows]

    def get_price_reactions(self, event_ids: list[int]) -> dict[int, PriceReaction]:
        """Price reaction rows keyed by event id."""
        if not event_ids:
            return {}
        placeholders = ", ".join("?" for _ in event_ids)
        try:
            rows = self._fetch_all(
                f"SELECT * FROM event_price_reaction WHERE event_id IN ({placeholders})",
                tuple(event_ids),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to get price reactions: {e}") from e
        reactions = [row_to_price_reaction(row) for row in rows]
        return {reaction.event_id: reaction for reaction in reactions}

    def insert_price_reaction(self, reaction: PriceReaction) -> int:
        """Insert a price reaction row (one per event).

        Raises:
            RepositoryError: On database errors (including a second row per event)
        """
        try:
            return self._insert_event(
                "event_price_reaction", price_reaction_values(reaction)
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to insert price reaction: {e}") from e

    def update_price_reaction(self, event_id: int, patch: dict[str, Any]) -> None:
        """Patch the price reaction row of an event.

        Raises:
            RepositoryError: On database errors or unknown columns
        """
        if not patch:
            return
        try:
            check_patch_columns(patch, PRICE_REACTION_PATCHABLE_COLUMNS)
        except ValueError as e:
            raise RepositoryError(str(e)) from e

        assignments = ", ".join(f"{column} = ?" for column in patch)
        params = tuple(_to_db_value(value) for value in patch.values()) + (event_id,)
        conn = self._get_connection()
        try:
            conn.execute(
                f"UPDATE event_price_reaction SET {assignments} WHERE event_id = ?",
                params,
            )
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to update price reaction: {e}") from e
        finally:
            conn.close()

    def list_unnotified_pending_events(self, limit: int) -> list[PersistedEvent]:
        """Pending auto-drafts not yet announced to moderators, oldest first."""
        try:
            rows = self._fetch_all(
                """
                SELECT * FROM auto_events_pending
                WHERE notified_at IS NULL
                ORDER BY id LIMIT ?
                """,
                (limit,),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list unnotified events: {e}") from e
        return [self._row_to_event(row, EventStage.PENDING) for row in rows]

    def mark_pending_notified(self, event_id: int) -> None:
        """Stamp notified_at on a pending auto-draft."""
        conn = self._get_connection()
        try:
            conn.execute(
                "UPDATE auto_events_pending SET notified_at = ? WHERE id = ?",
                (self._now(), event_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to mark event notified: {e}") from e
        finally:
            conn.close()

    def delete_approved_before(self, cutoff: datetime) -> int:
        """Delete approved events starting before cutoff with their edits and reactions.

        Returns:
            Number of approved events deleted
        """
        cutoff_value = _to_db_value(cutoff)
        conn = self._get_connection()
        try:
            conn.execute(
                """
                DELETE FROM event_edits_pending WHERE event_id IN (
                    SELECT id FROM events_approved WHERE start_at < ?
                )
                """,
                (cutoff_value,),
            )
            conn.execute(
                """
                DELETE FROM event_price_reaction WHERE event_id IN (
                    SELECT id FROM events_approved WHERE start_at < ?
                )
                """,
                (cutoff_value,),
            )
            cursor = conn.execute(
                "DELETE FROM events_approved WHERE start_at < ?", (cutoff_value,)
            )
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            conn.rollback()
            raise RepositoryError(f"Failed to delete approved events: {e}") from e
        finally:
            conn.close()

    def delete_pending_before(self, cutoff: datetime) -> int:
        """Delete pending auto-drafts starting before cutoff."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM auto_events_pending WHERE start_at < ?",
                (_to_db_value(cutoff),),
            )
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to delete pending events: {e}") from e
        finally:
            conn.close()
