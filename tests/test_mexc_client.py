"""Tests for MEXC pair price lookups."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock
from urllib.parse import parse_qs, urlparse

import pytest
import pytz

from src.adapters.mexc_client import MexcClient, parse_kline_open, parse_ticker_price
from src.domain.exceptions import SourceFetchError

EVENT_START = datetime(2026, 1, 8, 10, 0, tzinfo=pytz.UTC)
EVENT_START_MS = 1767866400000


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def test_parse_kline_open() -> None:
    kline = [EVENT_START_MS, "0.01234", "0.013", "0.012", "0.0125", "1000"]

    assert parse_kline_open([kline]) == Decimal("0.01234")
    assert parse_kline_open([]) is None
    assert parse_kline_open([["broken"]]) is None
    assert parse_kline_open({"code": -1121, "msg": "Invalid symbol."}) is None


def test_parse_ticker_price() -> None:
    assert parse_ticker_price({"symbol": "FOOUSDT", "price": "1.5"}) == Decimal("1.5")
    assert parse_ticker_price({"lastPrice": "2"}) == Decimal("2")
    assert parse_ticker_price({"price": "NaN"}) is None
    assert parse_ticker_price([]) is None


def test_price_from_one_minute_kline_window() -> None:
    http = Mock()
    http.get_json.return_value = [[EVENT_START_MS, "0.5", "0.6", "0.4", "0.55"]]

    price = MexcClient(http, base_url="https://api.mexc.com/").get_price_at(
        "FOOUSDT", EVENT_START
    )

    assert price == Decimal("0.5")
    url = http.get_json.call_args.args[0]
    assert url.startswith("https://api.mexc.com/api/v3/klines?")
    assert _query(url) == {
        "symbol": ["FOOUSDT"],
        "interval": ["1m"],
        "startTime": [str(EVENT_START_MS - 60_000)],
        "endTime": [str(EVENT_START_MS + 60_000)],
        "limit": ["1"],
    }


def test_empty_klines_fall_back_to_ticker() -> None:
    http = Mock()
    http.get_json.side_effect = [[], {"symbol": "FOOUSDT", "price": "0.7"}]

    assert MexcClient(http).get_price_at("FOOUSDT", EVENT_START) == Decimal("0.7")
    ticker_url = http.get_json.call_args_list[1].args[0]
    assert ticker_url == "https://api.mexc.com/api/v3/ticker/price?symbol=FOOUSDT"


def test_klines_error_falls_back_to_ticker() -> None:
    http = Mock()
    http.get_json.side_effect = [
        SourceFetchError("https://api.mexc.com/api/v3/klines", "HTTP 400", 400),
        {"price": "3"},
    ]

    assert MexcClient(http).get_price_at("FOOUSDT", EVENT_START) == Decimal("3")


def test_ticker_error_propagates() -> None:
    http = Mock()
    http.get_json.side_effect = [
        [],
        SourceFetchError("https://api.mexc.com/api/v3/ticker/price", "HTTP 503", 503),
    ]

    with pytest.raises(SourceFetchError, match="503"):
        MexcClient(http).get_price_at("FOOUSDT", EVENT_START)
