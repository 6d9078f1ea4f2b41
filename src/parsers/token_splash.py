"""Bybit Token Splash posts (Russian or English labels).

Example post (after normalization):
    New token splash: $ABC
    Общая награда: 1 000 000 ABC
    Начало: 2026-01-08 10:00 UTC
    Конец: 2026-01-15 10:00 UTC

The end time is required; start falls back to it when missing. Follow-up
posts announcing that rewards were distributed are ignored.
"""

import re
from datetime import datetime
from typing import Final

from src.domain.models import EventDraft, RawMessage, SourceKind
from src.domain.parsing_constants import UTC_TIMEZONE_LABEL
from src.parsers.base import SourceParser, clean_title
from src.services.date_resolver import format_minute, parse_utc_stamp
from src.services.quantity_parser import format_quantity, parse_quantity

_NEW_WORD_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bnew\b", flags=re.IGNORECASE)

DISTRIBUTED_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"Награды были распределены", flags=re.IGNORECASE),
    re.compile(r"лежат у участников на балансе", flags=re.IGNORECASE),
    re.compile(r"rewards (?:were|have been) distributed", flags=re.IGNORECASE),
    re.compile(r"already (?:credited|distributed)", flags=re.IGNORECASE),
)
"""Wording of reward-distribution follow-ups (not new events)."""

_START_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:Начало|Start)\s*:\s*(\d{4}-\d{2}-\d{2}\s+\d{1,2}:\d{2}\s*\(?UTC\)?)",
    flags=re.IGNORECASE,
)
_END_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:Конец|End)\s*:\s*(\d{4}-\d{2}-\d{2}\s+\d{1,2}:\d{2}\s*\(?UTC\)?)",
    flags=re.IGNORECASE,
)
_TICKER_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\$([A-Z0-9]{2,20})\b", flags=re.IGNORECASE),
    re.compile(r"token\s+splash\s*:\s*\$?([A-Z0-9]{2,20})\b", flags=re.IGNORECASE),
)
_POOL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?:Общая\s+наград[аы]|Total\s+rewards?|Prize\s+pool|Trade)\s*:\s*"
    r"(\d[\d ,.]*?)\s*\$?([A-Z][A-Z0-9_-]{1,})",
    flags=re.IGNORECASE,
)


class TokenSplashParser(SourceParser):
    """Parser for Bybit Token Splash announcements."""

    kind = SourceKind.TOKEN_SPLASH
    source = "ts_bybit"
    key_prefix = "TS_BYBIT"
    event_type = "TS BYBIT"
    event_type_slug = "ts-bybit"
    timezone_label = UTC_TIMEZONE_LABEL

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        first_line = lines[0]
        if not _NEW_WORD_PATTERN.search(first_line):
            return []

        text = "\n".join(lines)
        if any(pattern.search(text) for pattern in DISTRIBUTED_PATTERNS):
            return []

        start_match = _START_PATTERN.search(text)
        end_match = _END_PATTERN.search(text)
        explicit_start = parse_utc_stamp(start_match.group(1)) if start_match else None
        end_at = parse_utc_stamp(end_match.group(1)) if end_match else None
        if end_at is None:
            return []
        start_at = explicit_start or end_at

        ticker = None
        for pattern in _TICKER_PATTERNS:
            match = pattern.search(first_line)
            if match:
                ticker = match.group(1).upper()
                break
        title = f"New token splash: {ticker}" if ticker else clean_title(first_line)
        if not title:
            return []

        coin_name = None
        coin_quantity = None
        pool_line = None
        pool_match = _POOL_PATTERN.search(text)
        if pool_match:
            coin_quantity = parse_quantity(pool_match.group(1))
            pool_token = pool_match.group(2).upper()
            if coin_quantity is not None:
                coin_name = pool_token
                pool_line = f"Pool: {format_quantity(coin_quantity)} {pool_token}"

        if explicit_start:
            date_line = (
                f"Date: {format_minute(explicit_start)} UTC - {format_minute(end_at)} UTC"
            )
        else:
            date_line = f"Date: {format_minute(end_at)} UTC"

        return [
            self.make_draft(
                title=title,
                identity=ticker or coin_name or title,
                start_at=start_at,
                end_at=end_at,
                description_lines=[part for part in (pool_line, date_line) if part],
                coin_name=coin_name or ticker,
                coin_quantity=coin_quantity,
            )
        ]
