"""Tests for CoinGecko coin metadata resolution."""

from decimal import Decimal
from unittest.mock import Mock

from src.adapters.coingecko_client import (
    CoinGeckoClient,
    CoinMarketInfo,
    parse_coin_payload,
    pick_best_mexc_ticker,
)


def _ticker(market: str, target: str, volume, base: str = "FOO") -> dict:
    return {
        "base": base,
        "target": target,
        "market": {"identifier": market},
        "volume": volume,
    }


def test_pick_best_mexc_ticker_by_volume() -> None:
    tickers = [
        _ticker("binance", "USDT", 10_000),
        _ticker("mexc", "USDC", 9_000),
        _ticker("mexc", "USDT", 50),
        _ticker("mexc", "usdt", "700.5"),
        "garbage",
    ]

    best = pick_best_mexc_ticker(tickers)

    assert best is not None
    assert best["volume"] == "700.5"


def test_pick_best_mexc_ticker_none() -> None:
    assert pick_best_mexc_ticker([_ticker("binance", "USDT", 1)]) is None
    assert pick_best_mexc_ticker(None) is None


def test_parse_coin_payload() -> None:
    payload = {
        "market_data": {"circulating_supply": 123456789.5},
        "tickers": [_ticker("mexc", "USDT", 5, base="foo")],
    }

    info = parse_coin_payload(payload)

    assert info.circulating_supply == Decimal("123456789.5")
    assert info.price_link == "https://www.mexc.com/exchange/FOO_USDT"
    assert not info.is_empty


def test_parse_coin_payload_without_data() -> None:
    assert parse_coin_payload({"market_data": None, "tickers": []}).is_empty
    assert parse_coin_payload([]) == CoinMarketInfo()


def test_fetch_coin_info_lowercases_address_and_sends_key() -> None:
    http = Mock()
    http.get_json.return_value = {"market_data": {"circulating_supply": 10}}

    info = CoinGeckoClient(http, api_key="demo-key").fetch_coin_info(
        "binance-smart-chain", " 0xABC "
    )

    assert info.circulating_supply == Decimal("10")
    url = http.get_json.call_args.args[0]
    assert "/coins/binance-smart-chain/contract/0xabc" in url
    assert http.get_json.call_args.kwargs["headers"] == {"x-cg-demo-api-key": "demo-key"}


def test_fetch_coin_info_without_key_sends_no_headers() -> None:
    http = Mock()
    http.get_json.return_value = {}

    info = CoinGeckoClient(http).fetch_coin_info("ethereum", "0xdef")

    assert info.is_empty
    assert http.get_json.call_args.kwargs["headers"] is None
