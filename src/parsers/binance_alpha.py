"""Binance Alpha airdrop posts.

Example post (after normalization):
    New Binance Alpha Airdrop
    Token: Foo Network (FOO)
    Amount: 320 FOO
    Alpha Points: 220
    Claim starts: Jan 8, 10:00 UTC

A claim time is UTC; a claim date without time means Kyiv midnight.
Claims already in the past (before today's Kyiv midnight) are dropped.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Final

from src.domain.models import EventDraft, RawMessage, SourceKind
from src.domain.parsing_constants import KYIV_TZ
from src.parsers.base import SourceParser, name_before_parens, ticker_in_parens
from src.services.date_resolver import (
    format_local,
    kyiv_today_start,
    parse_month_day,
    resolve_partial_date,
)
from src.services.quantity_parser import (
    find_labeled_line,
    format_quantity,
    parse_quantity_and_token,
)

_AMOUNT_LINE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:Amount\b|You'?ve\s+earned\b)", flags=re.IGNORECASE
)
_CLAIM_LINE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"claim\s+(?:starts|begins)|activity\s+time", flags=re.IGNORECASE
)
_BARE_CLAIM_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\d{1,2}\s+[A-Z][a-z]{2}\s+\d{1,2}:\d{2}\s*UTC", flags=re.IGNORECASE
)
_CLAIM_LABEL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^.*?(?:Claim\s+starts|Claim\s+begins|Activity\s+time)\s*:?\s*",
    flags=re.IGNORECASE,
)


def _clean_claim_line(line: str) -> str:
    cleaned = _CLAIM_LABEL_PATTERN.sub("", line)
    cleaned = re.sub(r"UTC", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\(.*?\)", "", cleaned)
    cleaned = re.sub(r",\s*", " ", cleaned)
    return re.sub(r"\s{2,}", " ", cleaned).strip()


def _find_claim_line(lines: list[str]) -> str | None:
    for line in lines:
        if _CLAIM_LINE_PATTERN.search(line):
            return line
    for line in lines:
        if _BARE_CLAIM_PATTERN.search(line):
            return line
    return None


def _amount_description(quantity: Decimal | None, raw_line: str | None) -> str | None:
    if quantity is not None:
        unit = "token" if quantity == 1 else "tokens"
        return f"Amount: {format_quantity(quantity)} {unit}"
    return raw_line


class BinanceAlphaParser(SourceParser):
    """Parser for Binance Alpha airdrop announcements."""

    kind = SourceKind.BINANCE_ALPHA
    source = "binance_alpha"
    key_prefix = "BINANCE_ALPHA"
    event_type = "Binance Alpha"
    event_type_slug = "binance-alpha"

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        token_line = find_labeled_line(lines, "Token")
        if token_line is None:
            return []

        token_name = name_before_parens(token_line)
        title = (
            f"{token_name} Binance Alpha Airdrop" if token_name else "Binance Alpha Airdrop"
        )

        amount_line = next(
            (
                line
                for line in lines
                if _AMOUNT_LINE_PATTERN.match(line.replace("\u2019", "'"))
            ),
            None,
        )
        quantity, amount_token = parse_quantity_and_token(amount_line)

        claim_line = _find_claim_line(lines)
        if claim_line is None:
            return []
        start_at = resolve_partial_date(
            parse_month_day(_clean_claim_line(claim_line)),
            now=now,
            time_zone="UTC",
            date_only_zone=KYIV_TZ,
        )
        if start_at is None or start_at < kyiv_today_start(now):
            return []

        alpha_points_line = next(
            (line for line in lines if line.lower().startswith("alpha points")), None
        )
        description_lines = [
            part
            for part in (
                _amount_description(quantity, amount_line),
                alpha_points_line,
                f"Date: {format_local(start_at, KYIV_TZ)}",
            )
            if part
        ]

        token = amount_token or ticker_in_parens(token_line)
        return [
            self.make_draft(
                title=title,
                start_at=start_at,
                description_lines=description_lines,
                coin_name=token,
                coin_quantity=quantity,
            )
        ]
