"""Telegram public channel scraper (t.me/s web preview).

No API credentials are needed: the public preview page of a channel lists
its latest posts as HTML widgets, each tagged with data-post="channel/id".
"""

import re
from typing import Final

from src.adapters.http_client import HttpClient
from src.config.logging_config import get_logger
from src.domain.models import RawMessage
from src.services.date_resolver import parse_iso_datetime

logger = get_logger(__name__)

TELEGRAM_PREVIEW_URL: Final[str] = "https://t.me/s/{username}"
TELEGRAM_POST_URL: Final[str] = "https://t.me/{channel}/{message_id}"

_ARTICLE_BLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r'data-post="([^"]+?)/(\d+)"[\s\S]*?</article>'
)
_FOOTER_BLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r'data-post="([^"]+?)/(\d+)"[\s\S]*?class="tgme_widget_message_footer'
)
_MESSAGE_TEXT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r'class="tgme_widget_message_text[^"]*"[^>]*>([\s\S]*?)</div>'
)
_TIME_PATTERN: Final[re.Pattern[str]] = re.compile(r'<time[^>]+datetime="([^"]+)"')


def _collect_posts(
    pattern: re.Pattern[str], html: str, expected_channel: str | None
) -> dict[int, RawMessage]:
    posts: dict[int, RawMessage] = {}
    wanted = expected_channel.lower() if expected_channel else None

    for match in pattern.finditer(html):
        channel, message_id_str = match.group(1), match.group(2)
        if wanted and channel.lower() != wanted:
            continue

        block = match.group(0)
        text_match = _MESSAGE_TEXT_PATTERN.search(block)
        text = text_match.group(1).strip() if text_match else ""
        if not text:
            # Media-only post
            continue

        time_match = _TIME_PATTERN.search(block)
        message_id = int(message_id_str)
        posts.setdefault(
            message_id,
            RawMessage(
                message_id=message_id,
                channel=channel.lower(),
                text=text,
                published_at=parse_iso_datetime(time_match.group(1)) if time_match else None,
                url=TELEGRAM_POST_URL.format(channel=channel, message_id=message_id),
            ),
        )
    return posts


def extract_posts(html: str, expected_channel: str | None = None) -> list[RawMessage]:
    """Extract posts from a t.me/s channel page.

    Blocks are delimited by </article>; when that yields nothing, by the
    message footer. Posts without text or from another channel are dropped.

    Args:
        html: Raw preview page
        expected_channel: Keep only posts of this channel (case-insensitive)

    Returns:
        Posts in ascending message_id order, one per id
    """
    if not html:
        return []

    posts = _collect_posts(_ARTICLE_BLOCK_PATTERN, html, expected_channel)
    if not posts:
        posts = _collect_posts(_FOOTER_BLOCK_PATTERN, html, expected_channel)
    return [posts[message_id] for message_id in sorted(posts)]


class TelegramWebClient:
    """Fetches public channel preview pages over HTTPS."""

    def __init__(self, http: HttpClient) -> None:
        """Initialize client.

        Args:
            http: Shared HTTP client
        """
        self.http = http

    def fetch_channel_page(self, username: str) -> str:
        """Return raw HTML of the channel's public web preview.

        Raises:
            SourceFetchError: On HTTP or connection errors
        """
        url = TELEGRAM_PREVIEW_URL.format(username=username.lstrip("@"))
        html = self.http.get_text(url)
        logger.debug(
            "telegram_page_fetched",
            channel=username,
            bytes=len(html),
            data_post_count=html.count('data-post="'),
        )
        return html

    def fetch_posts(self, username: str) -> list[RawMessage]:
        """Fetch and extract the latest posts of a channel."""
        return extract_posts(self.fetch_channel_page(username), username.lstrip("@"))
