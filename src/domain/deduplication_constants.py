"""Business rules and constants for event deduplication.

This module defines which fields are compared when a freshly scraped draft
meets an already-approved event, and which columns identify a pending
auto-draft. All deduplication rules are centralized here so that every store
backend and the upsert engine agree on them.
"""

from typing import Final

COMPARABLE_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "description",
    "start_at",
    "end_at",
    "timezone",
    "type",
    "event_type_slug",
    "link",
    "coin_name",
    "coin_quantity",
    "coins",
)
"""Fields diffed between a draft and the approved event it matches.

Business rule: only these fields may appear in an edit suggestion. Coin
metadata resolved later (price link, address, circulating supply) is owned by
moderators and the coin-info job, never by scrapers.
"""

PENDING_PATCHABLE_FIELDS: Final[tuple[str, ...]] = COMPARABLE_FIELDS + (
    "coin_price_link",
    "source",
    "source_key",
)
"""Fields copied from a draft onto the pending row it re-scrapes."""
