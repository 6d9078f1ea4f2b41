"""Sync Binance trading-competition announcements use case."""

from datetime import datetime

from src.adapters.binance_client import BinanceArticle, BinanceClient
from src.config.logging_config import get_logger
from src.config.settings import Settings
from src.domain.exceptions import RepositoryError, SourceFetchError
from src.domain.models import BinanceSyncResult, RawMessage, SourceKind, UpsertOutcome
from src.domain.protocols import EventStoreProtocol
from src.parsers.registry import get_parser
from src.services.date_resolver import utc_now
from src.services.event_upserter import EventUpserter

logger = get_logger(__name__)


def matches_keywords(title: str, keywords: list[str]) -> bool:
    """Case-insensitive check that a headline mentions any keyword."""
    lowered = title.lower()
    return any(keyword.lower() in lowered for keyword in keywords if keyword)


def select_articles(
    articles: list[BinanceArticle], keywords: list[str], max_items: int
) -> list[BinanceArticle]:
    """Newest-first cap, then keyword filter."""
    return [
        article
        for article in articles[:max_items]
        if matches_keywords(article.title, keywords)
    ]


def sync_binance_tournaments_use_case(
    client: BinanceClient,
    store: EventStoreProtocol,
    settings: Settings,
    now: datetime | None = None,
) -> BinanceSyncResult:
    """Fetch tournament announcements and upsert them as drafts.

    Args:
        client: Binance CMS client
        store: Event store
        settings: Application settings (catalog name, cap, keywords)
        now: Reference time

    Returns:
        BinanceSyncResult with counts

    Raises:
        SourceFetchError: If the catalog or its listing cannot be fetched
    """
    reference = now or utc_now()
    result = BinanceSyncResult()
    parser = get_parser(SourceKind.BINANCE_TOURNAMENT)
    upserter = EventUpserter(store)

    catalog_id = client.fetch_catalog_id(settings.binance_catalog_name)
    articles = select_articles(
        client.fetch_catalog_articles(catalog_id),
        settings.binance_title_keywords,
        settings.binance_max_items,
    )
    logger.info(
        "binance_articles_selected", catalog_id=catalog_id, count=len(articles)
    )

    for article in articles:
        result.processed += 1
        try:
            html = client.fetch_announcement(article.code)
        except SourceFetchError as e:
            logger.warning(
                "binance_announcement_fetch_failed", code=article.code, error=str(e)
            )
            result.skipped += 1
            continue

        page = RawMessage(
            message_id=0,
            channel="binance",
            text=html,
            published_at=article.release_date,
            url=article.url,
        )
        drafts = parser.parse(page, None, reference)
        if not drafts:
            logger.info("binance_announcement_unparsed", code=article.code)
            result.skipped += 1
            continue

        for draft in drafts:
            try:
                outcome = upserter.upsert(draft)
            except RepositoryError as e:
                logger.error(
                    "event_upsert_failed", code=article.code, error=str(e)
                )
                result.errors += 1
                continue

            if outcome is UpsertOutcome.INSERTED:
                result.inserted += 1
            elif outcome is UpsertOutcome.UPDATED:
                result.updated += 1
            elif outcome is UpsertOutcome.EDIT_SUGGESTED:
                result.edit_suggestions += 1
            else:
                result.skipped += 1

    logger.info("binance_sync_completed", **result.model_dump())
    return result
