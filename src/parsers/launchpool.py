"""Launchpool alert posts, current and legacy formats.

Current format (after normalization):
    Stake VIRTUAL with 100.00% APR (Non-VIP) (link)
    APR: 100.00%
    Period: 7 days
    Quota: 985.5K VIRTUAL
    Start: 2026-01-08 10:00 UTC
    End: 2026-01-15 10:00 UTC

Legacy format:
    New Launchpool
    Token: Foo Network (FOO)
    Reward: 2,000,000 FOO
    Duration: 2026-01-08 10:00 UTC - 2026-01-15 10:00 UTC

Both formats are UTC and carry no canonical external link.
"""

import re
from datetime import datetime
from typing import Final

from src.domain.models import EventDraft, RawMessage, SourceKind
from src.domain.parsing_constants import UTC_TIMEZONE_LABEL
from src.parsers.base import SourceParser, name_before_parens, ticker_in_parens
from src.services.date_resolver import UTC_STAMP_PATTERN, parse_utc_stamp
from src.services.quantity_parser import (
    extract_token,
    find_labeled_line,
    parse_quantity,
    parse_quantity_and_token,
)

_QUOTA_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^\s*(\d[\d.,]*\s*[KMB]?)\s+\$?([A-Z0-9_-]{2,})", flags=re.IGNORECASE
)


class LaunchpoolParser(SourceParser):
    """Parser for the current 'Stake X with N% APR' alerts."""

    kind = SourceKind.LAUNCHPOOL
    source = "launchpool_alerts"
    key_prefix = "LAUNCHPOOL"
    event_type = "Launchpool"
    event_type_slug = "launchpool"
    timezone_label = UTC_TIMEZONE_LABEL
    omit_link = True

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        start_at = parse_utc_stamp(find_labeled_line(lines, "Start"))
        if start_at is None:
            return []
        end_at = parse_utc_stamp(find_labeled_line(lines, "End"))

        title = re.sub(r"\s*\(.+$", "", lines[0]).strip()
        if not title:
            return []

        coin_name = None
        coin_quantity = None
        quota = find_labeled_line(lines, "Quota")
        if quota:
            match = _QUOTA_PATTERN.match(quota)
            if match:
                coin_quantity = parse_quantity(match.group(1))
                coin_name = match.group(2).upper()

        description_lines = []
        for label in ("APR", "Period"):
            value = find_labeled_line(lines, label)
            if value:
                description_lines.append(f"{label}: {value}")

        return [
            self.make_draft(
                title=title,
                identity=title,
                start_at=start_at,
                end_at=end_at,
                description_lines=description_lines,
                coin_name=coin_name,
                coin_quantity=coin_quantity,
            )
        ]


class LegacyLaunchpoolParser(SourceParser):
    """Parser for the older labeled 'Token/Reward/Duration' alerts."""

    kind = SourceKind.LAUNCHPOOL_LEGACY
    source = "launchpool_alerts"
    key_prefix = "LAUNCHPOOL"
    event_type = "Launchpool"
    event_type_slug = "launchpool"
    timezone_label = UTC_TIMEZONE_LABEL
    omit_link = True

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        token_line = find_labeled_line(lines, "Token")
        duration = find_labeled_line(lines, "Duration")
        if not token_line or not duration:
            return []

        stamps = [
            parse_utc_stamp(match.group(0))
            for match in UTC_STAMP_PATTERN.finditer(duration)
        ]
        if not stamps or stamps[0] is None:
            return []
        start_at = stamps[0]
        end_at = stamps[1] if len(stamps) > 1 else None

        reward = find_labeled_line(lines, "Reward")
        quantity, reward_token = parse_quantity_and_token(reward)
        ticker = ticker_in_parens(token_line) or reward_token or extract_token(token_line)

        token_name = name_before_parens(token_line)
        title = f"{token_name} Launchpool" if token_name else "Launchpool"

        description_lines = []
        if reward:
            description_lines.append(f"Reward: {reward}")
        description_lines.append(f"Duration: {duration}")

        return [
            self.make_draft(
                title=title,
                start_at=start_at,
                end_at=end_at,
                description_lines=description_lines,
                coin_name=ticker,
                coin_quantity=quantity,
            )
        ]
