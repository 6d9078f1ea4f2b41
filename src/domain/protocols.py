"""Protocol definitions for dependency inversion.

These abstract interfaces define contracts that adapters must implement.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from src.domain.models import (
    EditSuggestion,
    EventDraft,
    PersistedEvent,
    PriceReaction,
    RawMessage,
)


class ChannelPostFetcherProtocol(Protocol):
    """Fetches the latest public posts of a Telegram channel."""

    def fetch_posts(self, username: str) -> list[RawMessage]:
        """Return the channel's latest posts in ascending id order.

        Raises:
            SourceFetchError: On HTTP or connection errors
        """
        ...


class PriceSourceProtocol(Protocol):
    """Historical spot price lookup for a trading pair."""

    def get_price_at(self, symbol: str, at: datetime) -> Decimal | None:
        """Price of `symbol` (e.g. FOOUSDT) around instant `at`, None if unknown.

        Raises:
            SourceFetchError: On HTTP or connection errors
        """
        ...


class AdminNotifierProtocol(Protocol):
    """Delivers plain-text notices to the moderators' chat."""

    def send_message(self, text: str) -> None:
        """Send one message.

        Raises:
            SourceFetchError: When delivery fails
        """
        ...


class EventStoreProtocol(Protocol):
    """Relational store for approved events, pending drafts, edits and watermarks.

    Every method is fallible I/O and raises RepositoryError on storage errors.
    """

    def find_approved_event(
        self,
        event_type_slug: str | None,
        coin_name: str | None,
        start_at: datetime,
    ) -> PersistedEvent | None:
        """Find approved event by (slug, coin, start) natural key.

        Two distinct events sharing type, coin and start instant collide on
        this key.
        """
        ...

    def find_pending_by_source_key(
        self, source: str, source_key: str
    ) -> PersistedEvent | None:
        """Find pending auto-draft by (source, source_key)."""
        ...

    def find_pending_exact(
        self, title: str, start_at: datetime, link: str | None
    ) -> PersistedEvent | None:
        """Find pending auto-draft by exact (title, start_at, link)."""
        ...

    def insert_pending_event(self, draft: EventDraft) -> int:
        """Insert a pending auto-draft and return its id."""
        ...

    def update_pending_event(self, event_id: int, patch: dict[str, Any]) -> None:
        """Patch a pending auto-draft in place."""
        ...

    def has_edit_suggestion(self, event_id: int, payload: dict[str, Any]) -> bool:
        """Check whether an identical edit suggestion is already queued."""
        ...

    def insert_edit_suggestion(self, suggestion: EditSuggestion) -> int:
        """Queue an edit suggestion and return its id."""
        ...

    def get_last_processed_message_id(self, channel: str) -> int:
        """Get channel watermark (0 when never processed)."""
        ...

    def update_last_processed_message_id(self, channel: str, message_id: int) -> None:
        """Upsert channel watermark."""
        ...

    def insert_approved_event(
        self,
        draft: EventDraft,
        coin_address: str | None = None,
        coin_chain: str | None = None,
    ) -> int:
        """Insert an event directly into the approved store and return its id."""
        ...

    def approve_pending_event(self, pending_id: int) -> int:
        """Move a pending row into the approved store and return the new id."""
        ...

    def get_approved_event(self, event_id: int) -> PersistedEvent | None:
        """Get approved event by id."""
        ...

    def list_pending_events(self) -> list[PersistedEvent]:
        """List pending auto-drafts ordered by id."""
        ...

    def list_edit_suggestions(self, event_id: int | None = None) -> list[EditSuggestion]:
        """List queued edit suggestions, optionally for one event."""
        ...

    def list_events_missing_price_link(self) -> list[PersistedEvent]:
        """Approved events with a coin address but no price link."""
        ...

    def update_approved_coin_info(
        self,
        event_id: int,
        circulating_supply: Decimal | None,
        price_link: str | None,
    ) -> None:
        """Store resolved coin metadata on an approved event."""
        ...

    def list_approved_events_between(
        self, start: datetime, end: datetime
    ) -> list[PersistedEvent]:
        """Approved events with start_at in [start, end], ordered by start_at."""
        ...

    def get_price_reactions(self, event_ids: list[int]) -> dict[int, PriceReaction]:
        """Price reaction rows keyed by event id."""
        ...

    def insert_price_reaction(self, reaction: PriceReaction) -> int:
        """Insert a price reaction row and return its id."""
        ...

    def update_price_reaction(self, event_id: int, patch: dict[str, Any]) -> None:
        """Patch the price reaction row of an event."""
        ...

    def list_unnotified_pending_events(self, limit: int) -> list[PersistedEvent]:
        """Pending auto-drafts not yet announced to moderators, oldest first."""
        ...

    def mark_pending_notified(self, event_id: int) -> None:
        """Record that a pending auto-draft was announced."""
        ...

    def delete_approved_before(self, cutoff: datetime) -> int:
        """Delete approved events (with their edits and price reactions) starting before cutoff."""
        ...

    def delete_pending_before(self, cutoff: datetime) -> int:
        """Delete pending auto-drafts starting before cutoff."""
        ...

    def close(self) -> None:
        """Release connections."""
        ...
