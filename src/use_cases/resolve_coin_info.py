"""Resolve coin metadata (circulating supply, MEXC pair link) for approved events."""

from src.adapters.coingecko_client import CoinGeckoClient
from src.config.logging_config import get_logger
from src.config.settings import Settings
from src.domain.exceptions import RepositoryError, SourceFetchError
from src.domain.models import CoinInfoResult
from src.domain.protocols import EventStoreProtocol

logger = get_logger(__name__)


def resolve_coin_info_use_case(
    client: CoinGeckoClient,
    store: EventStoreProtocol,
    settings: Settings,
) -> CoinInfoResult:
    """Patch approved events that have a contract address but no price link.

    Per-event failures are counted and never abort the batch.

    Args:
        client: CoinGecko client
        store: Event store
        settings: Application settings (default chain)

    Returns:
        CoinInfoResult with counts

    Raises:
        RepositoryError: If the candidate list cannot be read
    """
    result = CoinInfoResult()
    events = store.list_events_missing_price_link()
    result.total = len(events)

    for event in events:
        address = (event.coin_address or "").strip()
        chain = (event.coin_chain or settings.coingecko_default_chain).strip().lower()
        try:
            info = client.fetch_coin_info(chain, address)
        except SourceFetchError as e:
            logger.warning(
                "coin_info_fetch_failed", event_id=event.id, chain=chain, error=str(e)
            )
            result.failures += 1
            continue

        if info.is_empty:
            result.skipped += 1
            continue

        try:
            store.update_approved_coin_info(
                event.id, info.circulating_supply, info.price_link
            )
        except RepositoryError as e:
            logger.error("coin_info_update_failed", event_id=event.id, error=str(e))
            result.failures += 1
            continue

        logger.info(
            "coin_info_resolved",
            event_id=event.id,
            price_link=info.price_link,
            has_supply=info.circulating_supply is not None,
        )
        result.resolved += 1

    logger.info("coin_info_completed", **result.model_dump())
    return result
