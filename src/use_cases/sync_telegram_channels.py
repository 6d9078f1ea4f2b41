"""Sync Telegram channels use case.

Scrapes the public web preview of every enabled channel, parses new posts
into event drafts and pushes them through the upsert engine.

Watermark rules per channel:
- only posts with id above the stored watermark are processed, ascending
- a store failure on any draft of a post freezes the watermark just below
  that post, so the post is retried on the next run
- the watermark never moves backwards
- a failed page fetch leaves the watermark untouched

A post that passes the channel trigger but yields no usable draft (no
resolvable date, missing title) is counted as skipped.
"""

from datetime import datetime

from src.config.logging_config import bind_context, get_logger, unbind_context
from src.config.settings import Settings
from src.domain.exceptions import RepositoryError, SourceFetchError
from src.domain.models import (
    ChannelRunSummary,
    EventDraft,
    RawMessage,
    SyncResult,
    TelegramChannelConfig,
    UpsertOutcome,
)
from src.domain.protocols import ChannelPostFetcherProtocol, EventStoreProtocol
from src.parsers.base import ParseResult
from src.parsers.registry import fallback_parsers, get_parser
from src.services.date_resolver import utc_now
from src.services.event_upserter import EventUpserter, validate_draft

logger = get_logger(__name__)


def parse_post(
    post: RawMessage,
    channel: TelegramChannelConfig,
    now: datetime,
) -> ParseResult:
    """Run the channel's parser, then trigger-less fallbacks if enabled.

    Args:
        post: Scraped post
        channel: Channel configuration
        now: Reference time

    Returns:
        Result of the first parser that produced drafts; otherwise the
        primary parser's result (fallbacks never mark a post as matched)
    """
    primary = get_parser(channel.source_kind).parse_message(post, channel, now)
    if primary.drafts or not channel.fallback_parsers:
        return primary

    for parser in fallback_parsers(channel.source_kind):
        drafts = parser.parse(post, None, now)
        if drafts:
            logger.debug(
                "fallback_parser_matched",
                message_id=post.message_id,
                parser=parser.kind.value,
            )
            return ParseResult(drafts, matched=True)
    return primary


def attach_post_link(draft: EventDraft, post: RawMessage) -> EventDraft:
    """Use the post URL as link unless the source has none or a link is set."""
    if draft.omit_link or draft.link or not post.url:
        return draft
    return draft.model_copy(update={"link": post.url})


def _count_outcome(summary: ChannelRunSummary, outcome: UpsertOutcome) -> None:
    if outcome is UpsertOutcome.INSERTED:
        summary.inserted += 1
    elif outcome is UpsertOutcome.UPDATED:
        summary.updated += 1
    elif outcome is UpsertOutcome.EDIT_SUGGESTED:
        summary.edit_suggestions += 1
    else:
        summary.skipped += 1


def sync_channel(
    channel: TelegramChannelConfig,
    fetcher: ChannelPostFetcherProtocol,
    store: EventStoreProtocol,
    now: datetime,
) -> ChannelRunSummary:
    """Process new posts of one channel and advance its watermark.

    Args:
        channel: Channel configuration
        fetcher: Channel post fetcher
        store: Event store
        now: Reference time for parsers

    Returns:
        Per-channel summary (ok=False when the page or state could not be read)
    """
    username = channel.username
    summary = ChannelRunSummary(channel=username)
    upserter = EventUpserter(store)

    try:
        previous = store.get_last_processed_message_id(username)
    except RepositoryError as e:
        logger.error("telegram_watermark_read_failed", error=str(e))
        summary.ok = False
        summary.error = str(e)
        return summary
    summary.previous_watermark = previous
    summary.last_watermark = previous

    try:
        fetched = fetcher.fetch_posts(username)
    except SourceFetchError as e:
        logger.warning("telegram_fetch_failed", error=str(e))
        summary.ok = False
        summary.error = str(e)
        return summary

    posts = [post for post in fetched if post.message_id > previous]
    summary.new_message_count = len(posts)

    committed = previous
    frozen = False
    for post in posts:
        parsed = parse_post(post, channel, now)
        if parsed.dropped:
            logger.debug("post_dropped", message_id=post.message_id)
            summary.skipped += 1
        drafts = parsed.drafts
        summary.parsed += len(drafts)
        post_failed = False

        for draft in drafts:
            draft = attach_post_link(draft, post)
            errors = validate_draft(draft)
            if errors:
                logger.debug(
                    "draft_rejected", message_id=post.message_id, errors=errors
                )
                summary.skipped += 1
                continue
            try:
                outcome = upserter.upsert(draft)
            except RepositoryError as e:
                logger.error(
                    "event_upsert_failed",
                    message_id=post.message_id,
                    title=draft.title,
                    error=str(e),
                )
                summary.errors += 1
                post_failed = True
                continue
            _count_outcome(summary, outcome)

        if post_failed:
            frozen = True
        if not frozen:
            committed = post.message_id

    if committed > previous:
        try:
            store.update_last_processed_message_id(username, committed)
        except RepositoryError as e:
            logger.error("telegram_watermark_update_failed", error=str(e))
            summary.ok = False
            summary.error = str(e)
            summary.errors += 1
            return summary
        summary.last_watermark = committed

    return summary


def sync_telegram_channels_use_case(
    fetcher: ChannelPostFetcherProtocol,
    store: EventStoreProtocol,
    settings: Settings,
    now: datetime | None = None,
) -> SyncResult:
    """Sync all enabled Telegram channels sequentially.

    Args:
        fetcher: Channel post fetcher (TelegramWebClient)
        store: Event store
        settings: Application settings (channel catalog)
        now: Reference time (defaults to current UTC time)

    Returns:
        SyncResult with one summary per enabled channel

    Example:
        >>> result = sync_telegram_channels_use_case(client, store, settings)
        >>> result.total_inserted
        3
    """
    reference = now or utc_now()
    result = SyncResult()

    channels = settings.get_enabled_telegram_channels()
    if not channels:
        logger.warning("telegram_sync_no_channels", reason="no_channels_configured")
        return result

    for channel in channels:
        bind_context(channel=channel.username)
        try:
            summary = sync_channel(channel, fetcher, store, reference)
        finally:
            unbind_context("channel")
        logger.info("telegram_channel_synced", **summary.model_dump())
        result.channels.append(summary)

    logger.info(
        "telegram_sync_completed",
        channels=len(result.channels),
        inserted=result.total_inserted,
        errors=result.total_errors,
    )
    return result
