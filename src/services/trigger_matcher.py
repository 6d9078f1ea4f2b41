"""Trigger phrase matching for channel posts.

A channel is configured with a phrase that identifies its event posts
(e.g. "new binance alpha airdrop"). Only the opening of a post is searched.
"""

import re
from collections.abc import Sequence
from typing import Final

from src.domain.parsing_constants import TRIGGER_WINDOW_LINES

_PUNCTUATION_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^\w\s]|_")
_WHITESPACE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\s+")


def clean_for_match(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace.

    Example:
        >>> clean_for_match("NEW Token Splash: $ABC!")
        'new token splash abc'
    """
    text = _PUNCTUATION_PATTERN.sub(" ", (text or "").lower())
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def matches_trigger(lines: Sequence[str], trigger: str | None) -> bool:
    """Check whether a trigger phrase occurs within the opening lines.

    Args:
        lines: Normalized post lines
        trigger: Required phrase, or None for catch-all channels

    Returns:
        True if trigger is absent or found in the first TRIGGER_WINDOW_LINES lines
    """
    if not trigger:
        return True

    cleaned_trigger = clean_for_match(trigger)
    if not cleaned_trigger:
        return True

    window = clean_for_match(" ".join(lines[:TRIGGER_WINDOW_LINES]))
    return cleaned_trigger in window
