"""Tests for the Telegram channel sync use case (watermarks, fallbacks, links)."""

from datetime import datetime
from unittest.mock import Mock

import pytest

from src.config.settings import Settings
from src.domain.exceptions import RepositoryError, SourceFetchError
from src.adapters.telegram_web_client import extract_posts
from src.domain.models import EventDraft, RawMessage, SourceKind, TelegramChannelConfig
from src.use_cases.sync_telegram_channels import (
    attach_post_link,
    parse_post,
    sync_channel,
    sync_telegram_channels_use_case,
)
from tests.conftest import (
    ALPHA_POST_HTML,
    LEGACY_LAUNCHPOOL_POST_TEXT,
    make_channel_page,
    make_message,
)

BAR_POST_HTML = ALPHA_POST_HTML.replace("Foo Network (FOO)", "Bar Chain (BAR)").replace(
    "320 FOO", "50 BAR"
)
BAZ_POST_HTML = ALPHA_POST_HTML.replace("Foo Network (FOO)", "Baz (BAZ)").replace(
    "320 FOO", "7 BAZ"
)


class FakeFetcher:
    """Serves canned preview pages; unknown channels fail like a 503."""

    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.calls: list[str] = []

    def fetch_posts(self, username: str) -> list[RawMessage]:
        self.calls.append(username)
        page = self.pages.get(username)
        if page is None:
            raise SourceFetchError(
                f"https://t.me/s/{username}", "HTTP 503", status_code=503
            )
        return extract_posts(page, username)


def _alpha_page() -> str:
    return make_channel_page(
        "alphadropbinance",
        [(101, ALPHA_POST_HTML), (102, "Weekly digest"), (103, BAR_POST_HTML)],
    )


def test_sync_channel_processes_new_posts_and_advances_watermark(
    repo, alpha_channel: TelegramChannelConfig, now: datetime
):
    fetcher = FakeFetcher({"alphadropbinance": _alpha_page()})

    summary = sync_channel(alpha_channel, fetcher, repo, now)

    assert summary.ok is True
    assert summary.new_message_count == 3
    assert summary.parsed == 2
    assert summary.inserted == 2
    assert summary.skipped == 0
    assert summary.last_watermark == 103
    assert repo.get_last_processed_message_id("alphadropbinance") == 103

    pending = repo.list_pending_events()
    assert [event.coin_name for event in pending] == ["FOO", "BAR"]
    assert pending[0].link == "https://t.me/alphadropbinance/101"


def test_second_run_skips_already_processed_posts(
    repo, alpha_channel: TelegramChannelConfig, now: datetime
):
    fetcher = FakeFetcher({"alphadropbinance": _alpha_page()})
    sync_channel(alpha_channel, fetcher, repo, now)

    summary = sync_channel(alpha_channel, fetcher, repo, now)

    assert summary.previous_watermark == 103
    assert summary.new_message_count == 0
    assert summary.inserted == 0
    assert summary.last_watermark == 103
    assert len(repo.list_pending_events()) == 2


def test_store_failure_freezes_watermark_below_failed_post(
    repo, alpha_channel: TelegramChannelConfig, now: datetime
):
    page = make_channel_page(
        "alphadropbinance",
        [(101, ALPHA_POST_HTML), (102, BAR_POST_HTML), (103, BAZ_POST_HTML)],
    )
    fetcher = FakeFetcher({"alphadropbinance": page})

    def failing_insert(draft: EventDraft) -> int:
        if draft.coin_name == "BAR":
            raise RepositoryError("database is locked")
        return repo.insert_pending_event(draft)

    flaky_store = Mock(wraps=repo)
    flaky_store.insert_pending_event.side_effect = failing_insert

    summary = sync_channel(alpha_channel, fetcher, flaky_store, now)

    assert summary.ok is True
    assert summary.errors == 1
    assert summary.inserted == 2
    assert summary.last_watermark == 101
    assert repo.get_last_processed_message_id("alphadropbinance") == 101

    retry = sync_channel(alpha_channel, fetcher, repo, now)

    assert retry.new_message_count == 2
    assert retry.inserted == 1
    assert retry.updated == 1
    assert retry.last_watermark == 103
    assert sorted(event.coin_name for event in repo.list_pending_events()) == [
        "BAR",
        "BAZ",
        "FOO",
    ]


def test_fetch_failure_leaves_watermark_untouched(
    repo, alpha_channel: TelegramChannelConfig, now: datetime
):
    repo.update_last_processed_message_id("alphadropbinance", 50)

    summary = sync_channel(alpha_channel, FakeFetcher({}), repo, now)

    assert summary.ok is False
    assert summary.error is not None
    assert "503" in summary.error
    assert summary.last_watermark == 50
    assert repo.get_last_processed_message_id("alphadropbinance") == 50


def test_watermark_write_failure_is_reported(
    repo, alpha_channel: TelegramChannelConfig, now: datetime
):
    store = Mock(wraps=repo)
    store.update_last_processed_message_id.side_effect = RepositoryError("disk full")

    summary = sync_channel(
        alpha_channel, FakeFetcher({"alphadropbinance": _alpha_page()}), store, now
    )

    assert summary.ok is False
    assert summary.errors == 1
    assert summary.inserted == 2
    assert summary.last_watermark == 0


def test_fallback_parsers_used_only_when_enabled(now: datetime):
    post = make_message(LEGACY_LAUNCHPOOL_POST_TEXT, channel="launchpool_alerts")
    channel = TelegramChannelConfig(
        username="launchpool_alerts",
        trigger="stake",
        source_kind=SourceKind.LAUNCHPOOL,
        fallback_parsers=True,
    )

    parsed = parse_post(post, channel, now)

    assert len(parsed.drafts) == 1
    assert parsed.dropped is False
    assert parsed.drafts[0].title == "Foo Network Launchpool"

    strict = channel.model_copy(update={"fallback_parsers": False})
    assert parse_post(post, strict, now).drafts == []


def test_attach_post_link():
    post = RawMessage(
        message_id=5, channel="okxboostx", text="x", url="https://t.me/okxboostx/5"
    )
    draft = EventDraft(title="Event")

    assert attach_post_link(draft, post).link == "https://t.me/okxboostx/5"
    assert attach_post_link(draft.model_copy(update={"omit_link": True}), post).link is None

    linked = draft.model_copy(update={"link": "https://www.binance.com/x"})
    assert attach_post_link(linked, post).link == "https://www.binance.com/x"


def test_use_case_continues_after_failing_channel(
    repo, settings: Settings, alpha_channel: TelegramChannelConfig, now: datetime
):
    channels = [
        TelegramChannelConfig(
            username="okxboostx",
            trigger="new okx boost x launch event",
            source_kind=SourceKind.OKX_BOOST,
        ),
        alpha_channel,
        TelegramChannelConfig(
            username="tokensplsh",
            trigger="new token splash:",
            source_kind=SourceKind.TOKEN_SPLASH,
            enabled=False,
        ),
    ]
    configured = settings.model_copy(update={"telegram_channels": channels})
    fetcher = FakeFetcher({"alphadropbinance": _alpha_page()})

    result = sync_telegram_channels_use_case(fetcher, repo, configured, now=now)

    assert fetcher.calls == ["okxboostx", "alphadropbinance"]
    assert [summary.channel for summary in result.channels] == [
        "okxboostx",
        "alphadropbinance",
    ]
    assert result.channels[0].ok is False
    assert result.channels[1].ok is True
    assert result.total_inserted == 2
    assert result.total_errors == 0


def test_use_case_without_channels(repo, settings: Settings):
    configured = settings.model_copy(update={"telegram_channels": []})

    result = sync_telegram_channels_use_case(FakeFetcher({}), repo, configured)

    assert result.channels == []


@pytest.mark.parametrize("bad_html", ["", "<html>maintenance</html>"])
def test_page_without_posts_keeps_watermark(
    repo, alpha_channel: TelegramChannelConfig, now: datetime, bad_html: str
):
    summary = sync_channel(
        alpha_channel, FakeFetcher({"alphadropbinance": bad_html}), repo, now
    )

    assert summary.ok is True
    assert summary.new_message_count == 0
    assert repo.get_last_processed_message_id("alphadropbinance") == 0


def test_post_without_resolvable_date_counts_as_skipped(
    repo, alpha_channel: TelegramChannelConfig, now: datetime
):
    undated = ALPHA_POST_HTML.replace(
        "Claim starts: Jan 8, 10:00 UTC", "Claim starts: soon"
    )
    page = make_channel_page("alphadropbinance", [(104, undated)])

    summary = sync_channel(
        alpha_channel, FakeFetcher({"alphadropbinance": page}), repo, now
    )

    assert summary.ok is True
    assert summary.new_message_count == 1
    assert summary.skipped == 1
    assert summary.parsed == 0
    assert summary.inserted == 0
    assert summary.last_watermark == 104
    assert repo.list_pending_events() == []
