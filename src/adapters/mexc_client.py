"""MEXC spot market client for pair prices around an instant."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Final
from urllib.parse import urlencode

from src.adapters.event_rows import to_utc
from src.adapters.http_client import HttpClient
from src.config.logging_config import get_logger
from src.domain.exceptions import SourceFetchError
from src.services.quantity_parser import json_decimal

logger = get_logger(__name__)

MEXC_API_BASE_URL: Final[str] = "https://api.mexc.com"
KLINES_PATH: Final[str] = "/api/v3/klines"
TICKER_PRICE_PATH: Final[str] = "/api/v3/ticker/price"
KLINE_WINDOW_MS: Final[int] = 60_000
"""Half-width of the kline search window around the requested instant."""


def parse_kline_open(payload: Any) -> Decimal | None:
    """Open price of the first kline ([openTime, open, high, low, close, ...])."""
    if not isinstance(payload, list) or not payload:
        return None
    kline = payload[0]
    if not isinstance(kline, list) or len(kline) < 2:
        return None
    return json_decimal(kline[1])


def parse_ticker_price(payload: Any) -> Decimal | None:
    """Last price from a ticker payload ("price", or "lastPrice" on 24h tickers)."""
    if not isinstance(payload, dict):
        return None
    raw = payload.get("price")
    if raw is None:
        raw = payload.get("lastPrice")
    return json_decimal(raw)


class MexcClient:
    """MEXC public REST API client (no key needed)."""

    def __init__(self, http: HttpClient, base_url: str = MEXC_API_BASE_URL) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")

    def get_price_at(self, symbol: str, at: datetime) -> Decimal | None:
        """Open of the 1m kline at `at`, falling back to the current ticker.

        Args:
            symbol: Exchange symbol without separator (FOOUSDT)
            at: Instant of interest

        Returns:
            Price or None when MEXC knows no price for the symbol

        Raises:
            SourceFetchError: When the ticker fallback fails too
        """
        center_ms = int(to_utc(at).timestamp() * 1000)
        query = urlencode(
            {
                "symbol": symbol,
                "interval": "1m",
                "startTime": center_ms - KLINE_WINDOW_MS,
                "endTime": center_ms + KLINE_WINDOW_MS,
                "limit": 1,
            }
        )
        try:
            price = parse_kline_open(
                self.http.get_json(f"{self.base_url}{KLINES_PATH}?{query}")
            )
        except SourceFetchError as e:
            logger.warning("mexc_klines_failed", symbol=symbol, error=str(e))
            price = None

        if price is not None:
            return price
        logger.debug("mexc_klines_empty", symbol=symbol, at=at.isoformat())
        return self.get_ticker_price(symbol)

    def get_ticker_price(self, symbol: str) -> Decimal | None:
        """Current spot price of a symbol.

        Raises:
            SourceFetchError: On HTTP errors
        """
        query = urlencode({"symbol": symbol})
        payload = self.http.get_json(f"{self.base_url}{TICKER_PRICE_PATH}?{query}")
        return parse_ticker_price(payload)
