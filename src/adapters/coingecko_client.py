"""CoinGecko client for contract-address coin metadata."""

from decimal import Decimal
from typing import Any, Final

from pydantic import BaseModel

from src.adapters.http_client import HttpClient
from src.config.logging_config import get_logger
from src.services.quantity_parser import json_decimal

logger = get_logger(__name__)

COINGECKO_CONTRACT_URL: Final[str] = (
    "https://api.coingecko.com/api/v3/coins/{chain}/contract/{address}?tickers=true"
)
MEXC_MARKET_ID: Final[str] = "mexc"
MEXC_PAIR_URL: Final[str] = "https://www.mexc.com/exchange/{base}_{target}"
QUOTE_CURRENCY: Final[str] = "USDT"


class CoinMarketInfo(BaseModel):
    """Supply and trading-pair link resolved for a contract."""

    circulating_supply: Decimal | None = None
    price_link: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.circulating_supply is None and self.price_link is None


def pick_best_mexc_ticker(tickers: list[Any] | None) -> dict[str, Any] | None:
    """Highest-volume MEXC ticker quoted in USDT.

    Example:
        >>> pick_best_mexc_ticker([
        ...     {"market": {"identifier": "mexc"}, "target": "USDT", "volume": 5},
        ...     {"market": {"identifier": "mexc"}, "target": "USDT", "volume": 9},
        ... ])["volume"]
        9
    """
    best: dict[str, Any] | None = None
    best_volume = Decimal("-1")
    for ticker in tickers or []:
        if not isinstance(ticker, dict):
            continue
        if (ticker.get("market") or {}).get("identifier") != MEXC_MARKET_ID:
            continue
        if str(ticker.get("target") or "").upper() != QUOTE_CURRENCY:
            continue
        volume = json_decimal(ticker.get("volume")) or Decimal(0)
        if best is None or volume > best_volume:
            best = ticker
            best_volume = volume
    return best


def parse_coin_payload(payload: Any) -> CoinMarketInfo:
    """Extract circulating supply and MEXC pair link from a coin payload."""
    if not isinstance(payload, dict):
        return CoinMarketInfo()

    supply = json_decimal((payload.get("market_data") or {}).get("circulating_supply"))
    ticker = pick_best_mexc_ticker(payload.get("tickers"))
    price_link = None
    if ticker is not None:
        base = str(ticker.get("base") or "").upper()
        target = str(ticker.get("target") or "").upper()
        if base and target:
            price_link = MEXC_PAIR_URL.format(base=base, target=target)
    return CoinMarketInfo(circulating_supply=supply, price_link=price_link)


class CoinGeckoClient:
    """CoinGecko public API client."""

    def __init__(self, http: HttpClient, api_key: str | None = None) -> None:
        """Initialize client.

        Args:
            http: Shared HTTP client
            api_key: Optional demo API key (x-cg-demo-api-key header)
        """
        self.http = http
        self._headers = {"x-cg-demo-api-key": api_key} if api_key else {}

    def fetch_coin_info(self, chain: str, address: str) -> CoinMarketInfo:
        """Resolve market info for a token contract.

        Raises:
            SourceFetchError: On HTTP errors
        """
        url = COINGECKO_CONTRACT_URL.format(
            chain=chain, address=address.strip().lower()
        )
        payload = self.http.get_json(url, headers=self._headers or None)
        return parse_coin_payload(payload)
