"""Constants shared by the text normalizer, trigger matcher and date resolver."""

from typing import Final

KYIV_TZ: Final[str] = "Europe/Kyiv"
"""Zone the calendar operates in; OKX and Binance Alpha dates are Kyiv local."""

DEFAULT_TIMEZONE_LABEL: Final[str] = "Kyiv"
"""Display label stored with events whose times are shown in Kyiv time."""

UTC_TIMEZONE_LABEL: Final[str] = "UTC"

TRIGGER_WINDOW_LINES: Final[int] = 5
"""Only the first N normalized lines of a post are searched for a trigger.

Business rule: a trigger phrase mentioned deep inside a post (quotes,
"previous event" footers) must not classify the post.
"""

YEAR_GUESS_STALE_MONTHS: Final[int] = 6
"""A year-less date may lie at most this many months in the past.

Example (now = 2025-01-10):
    - "Dec 1" → 2024-12-01 (40 days ago, within window)
    - "Feb 1" → 2025-02-01 (2024-02-01 would be 11 months stale)
"""

MAX_DESCRIPTION_LENGTH: Final[int] = 4000
"""Descriptions are truncated to this many characters before persistence."""

MAX_TITLE_LENGTH: Final[int] = 140

MONTHS: Final[dict[str, int]] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
"""English month names and abbreviations."""

QUANTITY_MULTIPLIERS: Final[dict[str, int]] = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}
