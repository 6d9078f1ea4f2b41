"""Tests for the Bybit Token Splash parser."""

from datetime import datetime
from decimal import Decimal

import pytz

from src.domain.models import SourceKind, TelegramChannelConfig
from src.parsers.token_splash import TokenSplashParser
from tests.conftest import TOKEN_SPLASH_POST_TEXT, make_message

SPLASH_CHANNEL = TelegramChannelConfig(
    username="tokensplsh",
    trigger="new token splash:",
    source_kind=SourceKind.TOKEN_SPLASH,
)


def test_parses_russian_post(now: datetime) -> None:
    drafts = TokenSplashParser().parse(
        make_message(TOKEN_SPLASH_POST_TEXT), SPLASH_CHANNEL, now
    )

    assert len(drafts) == 1
    draft = drafts[0]
    assert draft.title == "New token splash: ABC"
    assert draft.start_at == datetime(2026, 1, 8, 10, 0, tzinfo=pytz.UTC)
    assert draft.end_at == datetime(2026, 1, 15, 10, 0, tzinfo=pytz.UTC)
    assert draft.coin_name == "ABC"
    assert draft.coin_quantity == Decimal("1000000")
    assert draft.timezone == "UTC"
    assert draft.source == "ts_bybit"
    assert draft.source_key == "TS_BYBIT|ABC|2026-01-08 10:00"
    assert draft.description == (
        "Pool: 1000000 ABC\nDate: 2026-01-08 10:00 UTC - 2026-01-15 10:00 UTC"
    )


def test_english_labels_and_missing_start(now: datetime) -> None:
    text = "\n".join(
        [
            "New token splash: $XYZ",
            "Total rewards: 250,000 XYZ",
            "End: 2026-02-01 12:00 UTC",
        ]
    )
    drafts = TokenSplashParser().parse(make_message(text), SPLASH_CHANNEL, now)

    assert len(drafts) == 1
    assert drafts[0].start_at == datetime(2026, 2, 1, 12, 0, tzinfo=pytz.UTC)
    assert drafts[0].end_at == drafts[0].start_at
    assert drafts[0].coin_quantity == Decimal("250000")
    assert drafts[0].description == "Pool: 250000 XYZ\nDate: 2026-02-01 12:00 UTC"


def test_missing_end_yields_nothing(now: datetime) -> None:
    text = "New token splash: $ABC\nНачало: 2026-01-08 10:00 UTC"
    assert TokenSplashParser().parse(make_message(text), SPLASH_CHANNEL, now) == []


def test_distribution_follow_up_is_ignored(now: datetime) -> None:
    text = TOKEN_SPLASH_POST_TEXT + "\nНаграды были распределены"
    assert TokenSplashParser().parse(make_message(text), SPLASH_CHANNEL, now) == []


def test_first_line_must_announce_new(now: datetime) -> None:
    text = TOKEN_SPLASH_POST_TEXT.replace("New token splash", "Token splash")
    assert TokenSplashParser().parse(make_message(text), None, now) == []
