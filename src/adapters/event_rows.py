"""Column layout and value conversion shared by the event store backends."""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Final

import pytz

from src.domain.deduplication_constants import PENDING_PATCHABLE_FIELDS
from src.domain.models import CoinEntry, EventDraft, PriceReaction

DRAFT_COLUMNS: Final[tuple[str, ...]] = (
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
    "coin_price_link",
    "source",
    "source_key",
)
"""Columns written from an EventDraft (pending and approved tables)."""

PATCHABLE_COLUMNS: Final[frozenset[str]] = frozenset(PENDING_PATCHABLE_FIELDS)

PRICE_REACTION_COLUMNS: Final[tuple[str, ...]] = (
    "event_id",
    "coin_name",
    "pair",
    "exchange",
    "t0_time",
    "t0_price",
    "t0_percent",
    "t_plus_5_time",
    "t_plus_5_price",
    "t_plus_5_percent",
    "t_plus_15_time",
    "t_plus_15_price",
    "t_plus_15_percent",
)

PRICE_REACTION_PATCHABLE_COLUMNS: Final[frozenset[str]] = frozenset(
    PRICE_REACTION_COLUMNS[4:]
)


def to_utc(value: datetime) -> datetime:
    """Normalize an aware (or naive, assumed UTC) datetime to UTC."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def parse_db_datetime(value: Any) -> datetime | None:
    """Read a datetime column (ISO text or driver datetime) as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    return to_utc(datetime.fromisoformat(str(value)))


def parse_db_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def coins_to_json(coins: list[CoinEntry] | None) -> str | None:
    """Serialize coin entries (quantities as strings, no float rounding)."""
    if coins is None:
        return None
    return json.dumps(
        [
            {
                "name": coin.name,
                "quantity": str(coin.quantity) if coin.quantity is not None else None,
            }
            for coin in coins
        ]
    )


def coins_from_json(value: Any) -> list[CoinEntry] | None:
    """Deserialize coin entries from JSON text or a decoded JSON list."""
    if value is None or value == "":
        return None
    raw = json.loads(value) if isinstance(value, str) else value
    return [
        CoinEntry(name=item.get("name"), quantity=parse_db_decimal(item.get("quantity")))
        for item in raw
    ]


def draft_values(draft: EventDraft) -> dict[str, Any]:
    """Column -> python value mapping of a draft."""
    return {column: getattr(draft, column) for column in DRAFT_COLUMNS}


def check_patch_columns(
    patch: dict[str, Any], allowed: frozenset[str] = PATCHABLE_COLUMNS
) -> None:
    """Reject patch keys that are not in `allowed`.

    Raises:
        ValueError: On unknown column
    """
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unpatchable columns: {', '.join(sorted(unknown))}")


def price_reaction_values(reaction: PriceReaction) -> dict[str, Any]:
    """Column -> python value mapping of a price reaction."""
    return {column: getattr(reaction, column) for column in PRICE_REACTION_COLUMNS}


def row_to_price_reaction(row: Any) -> PriceReaction:
    """Build a PriceReaction from a mapping-like row of either backend."""
    values: dict[str, Any] = {"id": row["id"]}
    for column in PRICE_REACTION_COLUMNS:
        value = row[column]
        if column.endswith("_time"):
            value = parse_db_datetime(value)
        elif column.endswith(("_price", "_percent")):
            value = parse_db_decimal(value)
        values[column] = value
    return PriceReaction(**values)
