"""Tests for the Binance Alpha airdrop parser."""

from datetime import datetime
from decimal import Decimal

import pytz

from src.domain.models import CoinEntry, TelegramChannelConfig
from src.parsers.binance_alpha import BinanceAlphaParser
from tests.conftest import ALPHA_POST_HTML, make_message


def test_parses_full_post(now: datetime, alpha_channel: TelegramChannelConfig) -> None:
    drafts = BinanceAlphaParser().parse(make_message(ALPHA_POST_HTML), alpha_channel, now)

    assert len(drafts) == 1
    draft = drafts[0]
    assert draft.title == "Foo Network Binance Alpha Airdrop"
    assert draft.start_at == datetime(2026, 1, 8, 10, 0, tzinfo=pytz.UTC)
    assert draft.coin_name == "FOO"
    assert draft.coin_quantity == Decimal("320")
    assert draft.coins == [CoinEntry(name="FOO", quantity=Decimal("320"))]
    assert draft.type == "Binance Alpha"
    assert draft.event_type_slug == "binance-alpha"
    assert draft.source == "binance_alpha"
    assert draft.source_key == "BINANCE_ALPHA|FOO|2026-01-08 10:00"
    assert draft.timezone == "Kyiv"
    assert draft.description == (
        "Amount: 320 tokens\nAlpha Points: 220\nDate: 08.01.2026 12:00"
    )


def test_date_without_time_is_kyiv_midnight(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = "\n".join(
        [
            "New Binance Alpha Airdrop",
            "Token: Bar (BAR)",
            "Amount: 1 BAR",
            "Claim starts: Jan 9",
        ]
    )
    drafts = BinanceAlphaParser().parse(make_message(text), alpha_channel, now)

    assert len(drafts) == 1
    assert drafts[0].start_at == datetime(2026, 1, 8, 22, 0, tzinfo=pytz.UTC)
    assert drafts[0].description is not None
    assert drafts[0].description.startswith("Amount: 1 token\n")


def test_ticker_from_token_line_when_amount_missing(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = "\n".join(
        [
            "New Binance Alpha Airdrop",
            "Token: Baz Protocol (BAZ)",
            "Claim starts: 10 Jan 12:00 UTC",
        ]
    )
    drafts = BinanceAlphaParser().parse(make_message(text), alpha_channel, now)

    assert len(drafts) == 1
    assert drafts[0].coin_name == "BAZ"
    assert drafts[0].coin_quantity is None
    assert drafts[0].start_at == datetime(2026, 1, 10, 12, 0, tzinfo=pytz.UTC)


def test_youve_earned_amount_line(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = "\n".join(
        [
            "New Binance Alpha Airdrop",
            "Token: Foo (FOO)",
            "You’ve earned 1,500 FOO",
            "Claim starts: Jan 8, 10:00 UTC",
        ]
    )
    drafts = BinanceAlphaParser().parse(make_message(text), alpha_channel, now)
    assert drafts[0].coin_quantity == Decimal("1500")


def test_stale_claim_is_dropped(alpha_channel: TelegramChannelConfig) -> None:
    """Test a claim before today's Kyiv midnight yields nothing."""
    now = datetime(2026, 1, 9, 9, 0, tzinfo=pytz.UTC)
    drafts = BinanceAlphaParser().parse(make_message(ALPHA_POST_HTML), alpha_channel, now)
    assert drafts == []


def test_trigger_mismatch_yields_nothing(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = ALPHA_POST_HTML.replace("New Binance Alpha Airdrop", "Weekly digest")
    assert BinanceAlphaParser().parse(make_message(text), alpha_channel, now) == []


def test_missing_claim_line_yields_nothing(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = "New Binance Alpha Airdrop\nToken: Foo (FOO)\nAmount: 5 FOO"
    assert BinanceAlphaParser().parse(make_message(text), alpha_channel, now) == []


def test_trigger_less_parse(now: datetime) -> None:
    """Test parsing without a channel skips the trigger check."""
    text = ALPHA_POST_HTML.replace("New Binance Alpha Airdrop", "Airdrop alert")
    drafts = BinanceAlphaParser().parse(make_message(text), None, now)
    assert len(drafts) == 1


def test_unresolvable_claim_date_is_reported_as_dropped(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = ALPHA_POST_HTML.replace("Claim starts: Jan 8, 10:00 UTC", "Claim starts: soon")

    result = BinanceAlphaParser().parse_message(make_message(text), alpha_channel, now)

    assert result.matched is True
    assert result.drafts == []
    assert result.dropped is True


def test_trigger_mismatch_is_not_reported_as_dropped(
    now: datetime, alpha_channel: TelegramChannelConfig
) -> None:
    text = ALPHA_POST_HTML.replace("New Binance Alpha Airdrop", "Weekly digest")

    result = BinanceAlphaParser().parse_message(make_message(text), alpha_channel, now)

    assert result.matched is False
    assert result.dropped is False
