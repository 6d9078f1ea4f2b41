"""OKX Boost X Launch posts.

Example post (after normalization):
    New OKX Boost X Launch Event!
    Vision X Launch
    Total Rewards: 6 170 000 VSNV
    Claim Date: 15.01.2026, 14:00
    X Launch Ends: 22.01.2026, 14:00

Dates are Kyiv wall-clock time. The claim date is the event start.
"""

import re
from datetime import datetime
from typing import Final

from src.domain.models import EventDraft, RawMessage, SourceKind
from src.domain.parsing_constants import KYIV_TZ
from src.parsers.base import SourceParser
from src.services.date_resolver import format_local, parse_dotted_datetime
from src.services.quantity_parser import find_labeled_line, parse_quantity_and_token

_LAUNCH_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bX\s+Launch\b", flags=re.IGNORECASE)
_CLAIM_DATE_PATTERN: Final[re.Pattern[str]] = re.compile(r"Claim\s+Date", flags=re.IGNORECASE)


class OkxBoostParser(SourceParser):
    """Parser for OKX Boost X Launch announcements."""

    kind = SourceKind.OKX_BOOST
    source = "okx_alpha"
    key_prefix = "OKX_ALPHA"
    event_type = "OKX Alpha"
    event_type_slug = "okx-alpha"

    def __init__(self, tz_name: str = KYIV_TZ) -> None:
        self.tz_name = tz_name

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        claim_line = next((line for line in lines if _CLAIM_DATE_PATTERN.search(line)), None)
        start_at = parse_dotted_datetime(claim_line, self.tz_name)
        if start_at is None:
            return []

        # Headline "Vision X Launch", not the "...X Launch Event!" trigger line
        launch_line = next(
            (
                line
                for line in lines
                if _LAUNCH_PATTERN.search(line)
                and "event" not in line.lower()
                and ":" not in line
            ),
            None,
        )
        vision = (
            re.sub(r"\s{2,}", " ", _LAUNCH_PATTERN.sub("", launch_line)).strip()
            if launch_line
            else ""
        )
        title = (
            f"{vision} OKX Boost X Launch Event!" if vision else "OKX Boost X Launch Event!"
        )

        pool_text = find_labeled_line(lines, "Total Rewards")
        quantity, token = parse_quantity_and_token(pool_text)

        end_at = parse_dotted_datetime(
            find_labeled_line(lines, "X Launch Ends"), self.tz_name
        )

        description_lines: list[str] = []
        if pool_text:
            description_lines.append(f"Pool: {pool_text}")
        if end_at:
            description_lines.append(
                f"End Date: {format_local(end_at, self.tz_name, '%d.%m.%Y, %H:%M')}"
            )

        return [
            self.make_draft(
                title=title,
                start_at=start_at,
                end_at=end_at,
                description_lines=description_lines,
                coin_name=token,
                coin_quantity=quantity,
            )
        ]
