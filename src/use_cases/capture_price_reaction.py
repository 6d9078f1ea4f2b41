"""Capture the market reaction around approved events.

For every approved event starting in the tracking window a reaction row
records the pair price at T0 (event start), T+5m and T+15m.

Rules:
- the first sighting of an event only stores a stub (times, no prices)
- a price is fetched once its instant has passed and is never refetched
- T+5m and T+15m need a T0 price; percentages are relative to it
- a failed or empty lookup leaves the price empty for the next run
"""

import re
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Final

from src.config.logging_config import bind_context, get_logger, unbind_context
from src.config.settings import Settings
from src.domain.exceptions import RepositoryError, SourceFetchError
from src.domain.models import PersistedEvent, PriceReaction, PriceReactionResult
from src.domain.protocols import EventStoreProtocol, PriceSourceProtocol
from src.services.date_resolver import utc_now

logger = get_logger(__name__)

QUOTE_CURRENCY: Final[str] = "USDT"
EXCHANGE_NAME: Final[str] = "MEXC"
CHECKPOINT_OFFSETS: Final[tuple[tuple[str, timedelta], ...]] = (
    ("t_plus_5", timedelta(minutes=5)),
    ("t_plus_15", timedelta(minutes=15)),
)

_MEXC_PAIR_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"/EXCHANGE/([A-Z0-9]+)_USDT"
)
_BARE_PAIR_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([A-Z0-9]+)_USDT$")
_GLUED_PAIR_PATTERN: Final[re.Pattern[str]] = re.compile(r"([A-Z0-9]{2,})USDT")
_TICKER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Z0-9]{2,}$")


def extract_pair(text: str | None) -> str | None:
    """Pair (BASE_USDT) from a MEXC pair URL, a bare pair or a glued symbol.

    Example:
        >>> extract_pair("https://www.mexc.com/uk-UA/exchange/FOO_USDT")
        'FOO_USDT'
        >>> extract_pair("barusdt")
        'BAR_USDT'
    """
    if not text:
        return None
    upper = text.strip().upper()
    for pattern in (_MEXC_PAIR_URL_PATTERN, _BARE_PAIR_PATTERN, _GLUED_PAIR_PATTERN):
        match = pattern.search(upper)
        if match:
            return f"{match.group(1)}_{QUOTE_CURRENCY}"
    return None


def pick_pair(event: PersistedEvent) -> str | None:
    """Trading pair of an event: price link, then link, then the coin ticker."""
    for candidate in (event.coin_price_link, event.link):
        pair = extract_pair(candidate)
        if pair:
            return pair
    ticker = (event.coin_name or "").strip().lstrip("$").upper()
    if _TICKER_PATTERN.match(ticker):
        return f"{ticker}_{QUOTE_CURRENCY}"
    return None


def percent_change(base: Decimal | None, price: Decimal | None) -> Decimal | None:
    """Change of `price` against `base` in percent; None without a usable base."""
    if base is None or price is None or base == 0:
        return None
    return (price - base) / base * 100


def new_reaction(event: PersistedEvent, pair: str) -> PriceReaction:
    """Stub row carrying the checkpoint times and no prices."""
    return PriceReaction(
        event_id=event.id,
        coin_name=event.coin_name,
        pair=pair,
        exchange=EXCHANGE_NAME,
        t0_time=event.start_at,
        **{
            f"{prefix}_time": event.start_at + offset
            for prefix, offset in CHECKPOINT_OFFSETS
        },
    )


def reaction_patch(
    reaction: PriceReaction, prices: PriceSourceProtocol, now: datetime
) -> dict[str, Any]:
    """Columns to fill for checkpoints that have passed and still lack a price.

    Raises:
        SourceFetchError: When a price lookup fails
    """
    patch: dict[str, Any] = {}
    base = reaction.t0_price
    if base is None and now >= reaction.t0_time:
        base = prices.get_price_at(reaction.symbol, reaction.t0_time)
        if base is not None:
            patch["t0_price"] = base
            patch["t0_percent"] = Decimal(0)
    if base is None:
        return patch

    for prefix, _ in CHECKPOINT_OFFSETS:
        checkpoint: datetime = getattr(reaction, f"{prefix}_time")
        if getattr(reaction, f"{prefix}_price") is not None or now < checkpoint:
            continue
        price = prices.get_price_at(reaction.symbol, checkpoint)
        if price is None:
            continue
        patch[f"{prefix}_price"] = price
        patch[f"{prefix}_percent"] = percent_change(base, price)
    return patch


def capture_price_reaction_use_case(
    prices: PriceSourceProtocol,
    store: EventStoreProtocol,
    settings: Settings,
    now: datetime | None = None,
) -> PriceReactionResult:
    """Create or advance reaction rows for approved events in the window.

    Per-event failures are counted and never abort the batch.

    Args:
        prices: Price source (MEXC)
        store: Event store
        settings: Application settings (tracking window)
        now: Reference time (defaults to current UTC time)

    Returns:
        PriceReactionResult with counts

    Raises:
        RepositoryError: If the candidate events or rows cannot be read
    """
    now = now or utc_now()
    result = PriceReactionResult()
    window_start = now - timedelta(days=settings.price_reaction_lookback_days)
    window_end = now + timedelta(days=settings.price_reaction_lookahead_days)

    events = store.list_approved_events_between(window_start, window_end)
    existing = store.get_price_reactions([event.id for event in events])
    logger.info(
        "price_reaction_started",
        events=len(events),
        tracked=len(existing),
        window_start=window_start.isoformat(),
        window_end=window_end.isoformat(),
    )

    for event in events:
        result.processed += 1
        bind_context(event_id=event.id)
        try:
            reaction = existing.get(event.id)
            if reaction is None:
                pair = pick_pair(event)
                if pair is None:
                    logger.debug("price_reaction_no_pair", title=event.title)
                    result.skipped += 1
                    continue
                store.insert_price_reaction(new_reaction(event, pair))
                logger.info("price_reaction_tracked", pair=pair)
                result.inserted += 1
                continue

            if reaction.is_complete:
                result.skipped += 1
                continue

            patch = reaction_patch(reaction, prices, now)
            if not patch:
                result.skipped += 1
                continue
            store.update_price_reaction(event.id, patch)
            logger.info(
                "price_reaction_captured", pair=reaction.pair, columns=sorted(patch)
            )
            result.updated += 1
        except (SourceFetchError, RepositoryError) as e:
            logger.warning("price_reaction_failed", error=str(e))
            result.errors += 1
        finally:
            unbind_context("event_id")

    logger.info("price_reaction_completed", **result.model_dump())
    return result
