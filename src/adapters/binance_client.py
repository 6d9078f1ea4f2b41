"""Binance CMS announcements client.

Announcements are grouped in catalogs. The catalog id for "Latest
Activities" is looked up by name on every run, then its newest articles are
listed and individual announcement pages fetched as HTML.
"""

from datetime import datetime
from typing import Any, Final

import pytz
from pydantic import BaseModel, Field

from src.adapters.http_client import HttpClient
from src.config.logging_config import get_logger
from src.domain.exceptions import SourceFetchError

logger = get_logger(__name__)

BINANCE_CMS_BASE: Final[str] = "https://www.binance.com/bapi/composite/v1/public/cms"
COMPOSITE_LIST_URL: Final[str] = (
    f"{BINANCE_CMS_BASE}/article/list/query?type=1&pageNo=1&pageSize=50"
)
CATALOG_LIST_URL: Final[str] = (
    f"{BINANCE_CMS_BASE}/article/catalog/list/query"
    "?catalogId={catalog_id}&pageNo=1&pageSize={page_size}"
)
ANNOUNCEMENT_URL: Final[str] = "https://www.binance.com/en/support/announcement/{code}"

BINANCE_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/json,text/html,*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "clienttype": "web",
}


class BinanceArticle(BaseModel):
    """Catalog entry of an announcement."""

    code: str = Field(..., description="Article code used in the page URL")
    title: str = Field(..., description="Announcement headline")
    release_date: datetime | None = Field(default=None, description="Publish time (UTC)")

    @property
    def url(self) -> str:
        return ANNOUNCEMENT_URL.format(code=self.code)


def _release_date(value: Any) -> datetime | None:
    """CMS release dates are epoch milliseconds."""
    if isinstance(value, int | float) and value > 0:
        return datetime.fromtimestamp(value / 1000, tz=pytz.UTC)
    return None


def parse_catalog_id(payload: Any, catalog_name: str) -> int | None:
    """Find a catalog id by case-insensitive name in the composite listing."""
    data = payload.get("data") if isinstance(payload, dict) else None
    catalogs = (data or {}).get("catalogs") or []
    wanted = catalog_name.strip().lower()
    for catalog in catalogs:
        if not isinstance(catalog, dict):
            continue
        if str(catalog.get("catalogName") or "").strip().lower() == wanted:
            catalog_id = catalog.get("catalogId")
            return int(catalog_id) if catalog_id is not None else None
    return None


def parse_catalog_articles(payload: Any) -> list[BinanceArticle]:
    """Articles of a catalog listing (entries without code or title dropped)."""
    data = payload.get("data") if isinstance(payload, dict) else None
    data = data or {}
    raw_articles = data.get("articles") or (data.get("catalog") or {}).get("articles") or []

    articles: list[BinanceArticle] = []
    for raw in raw_articles:
        if not isinstance(raw, dict) or not raw.get("code") or not raw.get("title"):
            continue
        articles.append(
            BinanceArticle(
                code=str(raw["code"]),
                title=str(raw["title"]),
                release_date=_release_date(raw.get("releaseDate")),
            )
        )
    return articles


class BinanceClient:
    """Binance CMS API client."""

    def __init__(self, http: HttpClient) -> None:
        """Initialize client.

        Args:
            http: Shared HTTP client
        """
        self.http = http

    def fetch_catalog_id(self, catalog_name: str) -> int:
        """Resolve a catalog name to its id.

        Raises:
            SourceFetchError: On transport errors or when the catalog is absent
        """
        payload = self.http.get_json(COMPOSITE_LIST_URL, headers=BINANCE_HEADERS)
        catalog_id = parse_catalog_id(payload, catalog_name)
        if catalog_id is None:
            raise SourceFetchError(
                COMPOSITE_LIST_URL, f"Catalog {catalog_name!r} not found"
            )
        return catalog_id

    def fetch_catalog_articles(
        self, catalog_id: int, page_size: int = 50
    ) -> list[BinanceArticle]:
        """List the newest articles of a catalog."""
        url = CATALOG_LIST_URL.format(catalog_id=catalog_id, page_size=page_size)
        articles = parse_catalog_articles(
            self.http.get_json(url, headers=BINANCE_HEADERS)
        )
        logger.debug(
            "binance_catalog_fetched", catalog_id=catalog_id, article_count=len(articles)
        )
        return articles

    def fetch_announcement(self, code: str) -> str:
        """Fetch an announcement page as HTML."""
        return self.http.get_text(
            ANNOUNCEMENT_URL.format(code=code), headers=BINANCE_HEADERS
        )
