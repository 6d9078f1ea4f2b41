"""Common interface and helpers for per-source parsers.

Every parser turns one RawMessage into zero or more EventDrafts. Parsers
never raise: malformed input yields an empty list. `parse_message` also
reports whether the message was addressed to the parser at all, so callers
can tell an unrelated post from one that had to be dropped.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Final

from src.config.logging_config import get_logger
from src.domain.models import (
    CoinEntry,
    EventDraft,
    RawMessage,
    SourceKind,
    TelegramChannelConfig,
)
from src.domain.parsing_constants import DEFAULT_TIMEZONE_LABEL, MAX_DESCRIPTION_LENGTH
from src.services.date_resolver import format_minute, utc_now
from src.services.text_normalizer import ensure_description, normalize_lines
from src.services.trigger_matcher import matches_trigger

logger = get_logger(__name__)

_TITLE_PREFIX_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^A-Za-z0-9]+")
_HASHTAG_PATTERN: Final[re.Pattern[str]] = re.compile(r"#[\w-]+")
_TICKER_IN_PARENS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\(\s*\$?([A-Za-z0-9]{2,})\s*\)"
)


def build_coins(token: str | None, quantity: Decimal | None) -> list[CoinEntry] | None:
    """Single-entry coins list, or None when nothing is known."""
    if token is None and quantity is None:
        return None
    return [CoinEntry(name=token, quantity=quantity)]


def clean_title(raw: str) -> str:
    """Drop leading decorations, hashtags and colons from a headline."""
    title = _HASHTAG_PATTERN.sub("", raw or "")
    title = _TITLE_PREFIX_PATTERN.sub("", title).strip()
    title = re.sub(r"\s*:\s*", " ", title)
    return re.sub(r"\s{2,}", " ", title).strip()


def ticker_in_parens(text: str | None) -> str | None:
    """Ticker written as 'Name (TICKER)' or 'Name ($TICKER)'."""
    if not text:
        return None
    match = _TICKER_IN_PARENS_PATTERN.search(text)
    return match.group(1).upper() if match else None


def name_before_parens(text: str) -> str:
    """'Foo Token (FOO)' -> 'Foo Token'."""
    index = text.find("(")
    return text[:index].strip() if index > 0 else text.strip()


@dataclass(frozen=True)
class ParseResult:
    """Drafts extracted from one message.

    Attributes:
        drafts: Extracted drafts (possibly empty)
        matched: The message passed the parser's trigger gate
    """

    drafts: list[EventDraft] = field(default_factory=list)
    matched: bool = False

    @property
    def dropped(self) -> bool:
        """Message was meant for this parser but yielded nothing usable."""
        return self.matched and not self.drafts


class SourceParser(ABC):
    """Base class for parsers of one content source.

    Subclasses set the class attributes describing the drafts they emit and
    implement `_parse`, which receives normalized lines unless the subclass
    turns `normalizes_text` off (raw HTML pages).
    """

    kind: ClassVar[SourceKind]
    source: ClassVar[str | None] = None
    key_prefix: ClassVar[str | None] = None
    event_type: ClassVar[str]
    event_type_slug: ClassVar[str]
    timezone_label: ClassVar[str] = DEFAULT_TIMEZONE_LABEL
    omit_link: ClassVar[bool] = False
    normalizes_text: ClassVar[bool] = True

    def parse(
        self,
        message: RawMessage,
        channel: TelegramChannelConfig | None = None,
        now: datetime | None = None,
    ) -> list[EventDraft]:
        """Parse one message into drafts; never raises."""
        return self.parse_message(message, channel, now).drafts

    def parse_message(
        self,
        message: RawMessage,
        channel: TelegramChannelConfig | None = None,
        now: datetime | None = None,
    ) -> ParseResult:
        """Parse one message and report whether it passed the trigger gate.

        Args:
            message: Scraped post
            channel: Channel config supplying the trigger (None = trigger-less)
            now: Reference time for year inference and staleness checks

        Returns:
            ParseResult; unparseable input gives matched=True with no drafts
        """
        lines: list[str] = []
        try:
            if self.normalizes_text:
                lines = normalize_lines(message.text)
                if not lines:
                    return ParseResult()
                if not matches_trigger(lines, channel.trigger if channel else None):
                    return ParseResult()
            elif not message.text:
                return ParseResult()
            return ParseResult(self._parse(message, lines, now or utc_now()), matched=True)
        except (ValueError, ArithmeticError, IndexError, TypeError) as e:
            logger.debug(
                "parser_failed",
                parser=self.kind.value,
                channel=message.channel,
                message_id=message.message_id,
                url=message.url,
                error=str(e),
            )
            return ParseResult(matched=True)

    @abstractmethod
    def _parse(
        self, message: RawMessage, lines: list[str], now: datetime
    ) -> list[EventDraft]:
        """Source-specific extraction (lines are empty when normalizes_text is off)."""

    def source_key(self, identity: str, start_at: datetime) -> str | None:
        """Stable dedup key: PREFIX|identity|UTC minute of start."""
        if not self.key_prefix:
            return None
        return f"{self.key_prefix}|{identity}|{format_minute(start_at)}"

    def make_draft(
        self,
        *,
        title: str,
        start_at: datetime,
        identity: str | None = None,
        description_lines: list[str] | None = None,
        end_at: datetime | None = None,
        coin_name: str | None = None,
        coin_quantity: Decimal | None = None,
        link: str | None = None,
    ) -> EventDraft:
        """Assemble a draft carrying this parser's type, slug, source and key."""
        description = ensure_description(
            "\n".join(description_lines or []), MAX_DESCRIPTION_LENGTH
        )
        return EventDraft(
            title=title,
            description=description,
            start_at=start_at,
            end_at=end_at,
            timezone=self.timezone_label,
            type=self.event_type,
            event_type_slug=self.event_type_slug,
            coin_name=coin_name,
            coin_quantity=coin_quantity,
            coins=build_coins(coin_name, coin_quantity),
            link=link,
            source=self.source,
            source_key=self.source_key(identity or coin_name or title, start_at),
            omit_link=self.omit_link,
        )
