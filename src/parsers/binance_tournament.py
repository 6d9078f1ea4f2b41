"""Binance trading-competition announcement pages.

Input is a RawMessage whose text is the announcement HTML and whose url is
the announcement page. The event is dated by the end of the promotion
period, or by its start when no end is found.
"""

import re
from datetime import datetime
from typing import Final

from src.domain.models import EventDraft, RawMessage, SourceKind
from src.domain.parsing_constants import MAX_DESCRIPTION_LENGTH
from src.parsers.base import SourceParser
from src.services.date_resolver import to_utc
from src.services.text_normalizer import strip_html

_H1_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"<h1[^>]*>([\s\S]*?)</h1>", flags=re.IGNORECASE
)
_OFFICIAL_LINK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r'href="(https://www\.binance\.com[^"]+)"', flags=re.IGNORECASE
)

_STAMP = r"(\d{4})-(\d{2})-(\d{2})\s*(\d{2}):(\d{2})\s*\(UTC\)"
PERIOD_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(
        rf"{label}\s+(?:Period|Time)\s*:?.*?{_STAMP}.*?(?:to|-)\s*{_STAMP}",
        flags=re.IGNORECASE | re.DOTALL,
    )
    for label in ("Promotion", "Activity", "Event")
)
"""Period ranges tried in order; first match wins."""

DESCRIPTION_START_MARKER: Final[str] = "fellow binancians"
DESCRIPTION_END_MARKER: Final[str] = "terms"
DESCRIPTION_FALLBACK_LENGTH: Final[int] = 2000


def extract_period(text: str) -> tuple[datetime | None, datetime | None]:
    """Find the promotion period as (start, end) UTC instants."""
    for pattern in PERIOD_PATTERNS:
        match = pattern.search(text)
        if match:
            parts = [int(part) for part in match.groups()]
            return to_utc(*parts[:5], "UTC"), to_utc(*parts[5:], "UTC")
    return None, None


def extract_description(text: str) -> str:
    """Announcement body from the greeting up to the terms section."""
    lowered = text.lower()
    start = lowered.find(DESCRIPTION_START_MARKER)
    if start == -1:
        description = text
    else:
        end = lowered.find(DESCRIPTION_END_MARKER, start)
        if end == -1:
            end = start + DESCRIPTION_FALLBACK_LENGTH
        description = text[start:end]
    return description.strip()[:MAX_DESCRIPTION_LENGTH]


class BinanceTournamentParser(SourceParser):
    """Parser for Binance trading-competition announcements."""

    kind = SourceKind.BINANCE_TOURNAMENT
    source = "binance_tournament"
    key_prefix = "BINANCE_TOURNAMENT"
    event_type = "Binance Tournaments"
    event_type_slug = "binance_tournament"
    normalizes_text = False

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        page = message.text or ""
        h1_match = _H1_PATTERN.search(page)
        title = strip_html(h1_match.group(1)) if h1_match else ""
        if not title:
            return []

        text = strip_html(page)
        period_start, period_end = extract_period(text)
        start_at = period_end or period_start
        if start_at is None:
            return []

        link_match = _OFFICIAL_LINK_PATTERN.search(page)
        link = link_match.group(1) if link_match else message.url

        description = extract_description(text)
        return [
            self.make_draft(
                title=title,
                identity=title,
                start_at=start_at,
                description_lines=[description] if description else [],
                link=link,
            )
        ]
