"""Tests for the price reaction capture use case."""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest
import pytz

from src.config.settings import Settings
from src.domain.exceptions import SourceFetchError
from src.domain.models import EventDraft, EventStage, PersistedEvent
from src.use_cases.capture_price_reaction import (
    capture_price_reaction_use_case,
    extract_pair,
    percent_change,
    pick_pair,
)

EVENT_START = datetime(2026, 1, 8, 10, 0, tzinfo=pytz.UTC)


def _event(**fields) -> PersistedEvent:
    values = {
        "id": 1,
        "stage": EventStage.APPROVED,
        "title": "Foo listing",
        "start_at": EVENT_START,
        **fields,
    }
    return PersistedEvent(**values)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("https://www.mexc.com/exchange/FOO_USDT", "FOO_USDT"),
        ("https://www.mexc.com/uk-UA/exchange/foo_usdt?_from=search", "FOO_USDT"),
        ("BAR_USDT", "BAR_USDT"),
        ("https://www.binance.com/en/trade/BAZUSDT", "BAZ_USDT"),
        ("https://t.me/alphadropbinance/101", None),
        (None, None),
    ],
)
def test_extract_pair(text, expected) -> None:
    assert extract_pair(text) == expected


def test_pick_pair_prefers_price_link_then_link_then_ticker() -> None:
    assert (
        pick_pair(
            _event(
                coin_price_link="https://www.mexc.com/exchange/FOO_USDT",
                link="https://www.binance.com/en/trade/BARUSDT",
                coin_name="QUX",
            )
        )
        == "FOO_USDT"
    )
    assert pick_pair(_event(link="BAR_USDT", coin_name="QUX")) == "BAR_USDT"
    assert pick_pair(_event(coin_name="$qux")) == "QUX_USDT"
    assert pick_pair(_event(coin_name="Foo Network")) is None
    assert pick_pair(_event()) is None


def test_percent_change() -> None:
    assert percent_change(Decimal("2"), Decimal("2.5")) == Decimal("25")
    assert percent_change(Decimal("2"), Decimal("1")) == Decimal("-50")
    assert percent_change(Decimal("0"), Decimal("1")) is None
    assert percent_change(None, Decimal("1")) is None


def _prices(mapping: dict[datetime, Decimal | None]) -> Mock:
    prices = Mock()
    prices.get_price_at.side_effect = lambda symbol, at: mapping.get(at)
    return prices


def test_first_run_stores_stub_without_prices(
    repo, settings: Settings, sample_draft: EventDraft
) -> None:
    event_id = repo.insert_approved_event(sample_draft)
    prices = _prices({})

    result = capture_price_reaction_use_case(
        prices, repo, settings, now=EVENT_START + timedelta(hours=1)
    )

    assert result.processed == 1
    assert result.inserted == 1
    prices.get_price_at.assert_not_called()
    reaction = repo.get_price_reactions([event_id])[event_id]
    assert reaction.pair == "FOO_USDT"
    assert reaction.exchange == "MEXC"
    assert reaction.t_plus_5_time == EVENT_START + timedelta(minutes=5)
    assert reaction.t0_price is None


def test_captures_only_passed_checkpoints(
    repo, settings: Settings, sample_draft: EventDraft
) -> None:
    event_id = repo.insert_approved_event(sample_draft)
    capture_price_reaction_use_case(
        _prices({}), repo, settings, now=EVENT_START - timedelta(days=2)
    )
    prices = _prices(
        {
            EVENT_START: Decimal("2"),
            EVENT_START + timedelta(minutes=5): Decimal("2.5"),
            EVENT_START + timedelta(minutes=15): Decimal("3"),
        }
    )

    result = capture_price_reaction_use_case(
        prices, repo, settings, now=EVENT_START + timedelta(minutes=6)
    )

    assert result.updated == 1
    reaction = repo.get_price_reactions([event_id])[event_id]
    assert reaction.t0_price == Decimal("2")
    assert reaction.t0_percent == Decimal("0")
    assert reaction.t_plus_5_price == Decimal("2.5")
    assert reaction.t_plus_5_percent == Decimal("25")
    assert reaction.t_plus_15_price is None
    assert [call.args[0] for call in prices.get_price_at.call_args_list] == [
        "FOOUSDT",
        "FOOUSDT",
    ]

    later = capture_price_reaction_use_case(
        prices, repo, settings, now=EVENT_START + timedelta(minutes=20)
    )

    assert later.updated == 1
    reaction = repo.get_price_reactions([event_id])[event_id]
    assert reaction.t_plus_15_price == Decimal("3")
    assert reaction.t_plus_15_percent == Decimal("50")
    assert reaction.is_complete
    assert prices.get_price_at.call_count == 3

    done = capture_price_reaction_use_case(
        prices, repo, settings, now=EVENT_START + timedelta(minutes=30)
    )

    assert done.skipped == 1
    assert prices.get_price_at.call_count == 3


def test_missing_base_price_defers_later_checkpoints(
    repo, settings: Settings, sample_draft: EventDraft
) -> None:
    event_id = repo.insert_approved_event(sample_draft)
    capture_price_reaction_use_case(
        _prices({}), repo, settings, now=EVENT_START - timedelta(hours=1)
    )
    prices = _prices({EVENT_START + timedelta(minutes=5): Decimal("9")})

    result = capture_price_reaction_use_case(
        prices, repo, settings, now=EVENT_START + timedelta(minutes=30)
    )

    assert result.skipped == 1
    assert prices.get_price_at.call_count == 1
    reaction = repo.get_price_reactions([event_id])[event_id]
    assert reaction.t0_price is None
    assert reaction.t_plus_5_price is None


def test_events_without_pair_and_outside_window_are_ignored(
    repo, settings: Settings, sample_draft: EventDraft
) -> None:
    repo.insert_approved_event(
        sample_draft.model_copy(update={"coin_name": None, "title": "AMA session"})
    )
    repo.insert_approved_event(
        sample_draft.model_copy(
            update={"coin_name": "BAR", "start_at": EVENT_START + timedelta(days=30)}
        )
    )

    result = capture_price_reaction_use_case(
        _prices({}), repo, settings, now=EVENT_START
    )

    assert result.processed == 1
    assert result.skipped == 1
    assert result.inserted == 0


def test_price_lookup_failure_is_counted_and_batch_continues(
    repo, settings: Settings, sample_draft: EventDraft
) -> None:
    failing_id = repo.insert_approved_event(sample_draft)
    other_id = repo.insert_approved_event(
        sample_draft.model_copy(
            update={"coin_name": "BAR", "start_at": EVENT_START + timedelta(minutes=1)}
        )
    )
    capture_price_reaction_use_case(
        _prices({}), repo, settings, now=EVENT_START - timedelta(hours=1)
    )

    def get_price_at(symbol: str, at: datetime) -> Decimal | None:
        if symbol == "FOOUSDT":
            raise SourceFetchError("https://api.mexc.com", "HTTP 503", 503)
        return Decimal("1")

    prices = Mock()
    prices.get_price_at.side_effect = get_price_at

    result = capture_price_reaction_use_case(
        prices, repo, settings, now=EVENT_START + timedelta(minutes=2)
    )

    assert result.errors == 1
    assert result.updated == 1
    reactions = repo.get_price_reactions([failing_id, other_id])
    assert reactions[failing_id].t0_price is None
    assert reactions[other_id].t0_price == Decimal("1")
