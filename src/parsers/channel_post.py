"""Catch-all parser for channels without a dedicated format.

Turns any post into an airdrop draft titled by its first line and dated by
its publish time. Drafts carry no source key, so deduplication falls back to
exact (title, start_at, link) matching.
"""

from datetime import datetime

from src.domain.models import EventDraft, RawMessage, SourceKind
from src.domain.parsing_constants import MAX_TITLE_LENGTH
from src.parsers.base import SourceParser, clean_title
from src.services.quantity_parser import parse_quantity_and_token


class ChannelPostParser(SourceParser):
    """Generic parser keyed on publish timestamp."""

    kind = SourceKind.CHANNEL_POST
    event_type = "Airdrop"
    event_type_slug = "airdrop"

    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        if message.published_at is None:
            return []

        title = clean_title(lines[0])[:MAX_TITLE_LENGTH].rstrip()
        if not title:
            return []

        _, token = parse_quantity_and_token(lines[0])
        return [
            self.make_draft(
                title=title,
                start_at=message.published_at,
                description_lines=lines[1:],
                coin_name=token,
            )
        ]
