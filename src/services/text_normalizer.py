"""Text normalization service for scraped posts.

Handles:
- HTML tag stripping (pattern based, no DOM parser)
- HTML entity decoding
- Emoji removal
- Whitespace normalization, one canonical line per visual line
"""

import html
import re
from typing import Final

# Line breaks and block ends become newlines before tags are dropped
_BREAK_TAG_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"<br\s*/?>|</(?:p|div|li|h[1-6])\s*>", flags=re.IGNORECASE
)
_TAG_PATTERN: Final[re.Pattern[str]] = re.compile(r"<[^<>]+>")
_SCRIPT_STYLE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"<(script|style)\b[\s\S]*?</\1\s*>", flags=re.IGNORECASE
)

_EMOJI_PATTERN: Final[re.Pattern[str]] = re.compile(
    "["
    "\U0001f000-\U0001faff"  # mahjong .. symbols & pictographs extended-A
    "\u2600-\u27bf"  # misc symbols, dingbats
    "\u2300-\u23ff"  # misc technical
    "\u2b00-\u2bff"  # arrows, stars
    "\u2190-\u21ff"  # arrows
    "\u25aa-\u25fe"  # geometric shapes
    "\u3030\u303d\u3297\u3299\u2122\u2139"
    "\ufe00-\ufe0f"  # variation selectors
    "\U000e0020-\U000e007f"  # tag characters
    "\u200d"  # zero width joiner
    "\u20e3"  # combining keycap
    "]+"
)

_HORIZONTAL_SPACE_PATTERN: Final[re.Pattern[str]] = re.compile(r"[ \t\f\v]+")
_MAX_DECODE_PASSES: Final[int] = 5


def _decode_and_strip(text: str) -> str:
    """Strip tags and decode entities until the text stops changing."""
    for _ in range(_MAX_DECODE_PASSES):
        decoded = strip_emoji(
            _TAG_PATTERN.sub("", html.unescape(_TAG_PATTERN.sub("", text)))
        )
        if decoded == text:
            break
        text = decoded
    return text


def strip_emoji(text: str) -> str:
    """Remove emoji and pictographic symbols.

    Example:
        >>> strip_emoji("🔥 New Binance Alpha Airdrop")
        ' New Binance Alpha Airdrop'
    """
    return _EMOJI_PATTERN.sub("", text or "")


def normalize_line(line: str) -> str:
    """Normalize a single line (no tag handling)."""
    line = strip_emoji(line).replace("\u00a0", " ")
    return _HORIZONTAL_SPACE_PATTERN.sub(" ", line).strip()


def normalize_lines(raw: str | None) -> list[str]:
    """Normalize raw HTML or plain text into canonical lines.

    Args:
        raw: Raw post body (HTML fragment or plain text)

    Returns:
        Trimmed, single-spaced, emoji-free, entity-decoded non-empty lines

    Example:
        >>> normalize_lines("🚀 <b>Token:</b> Foo&nbsp;(FOO)<br/>  Amount: 10 ")
        ['Token: Foo (FOO)', 'Amount: 10']
    """
    if not raw:
        return []

    text = _BREAK_TAG_PATTERN.sub("\n", raw)
    text = _decode_and_strip(text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    lines: list[str] = []
    for line in text.split("\n"):
        cleaned = normalize_line(line)
        if cleaned:
            lines.append(cleaned)
    return lines


def normalize_text(raw: str | None) -> str:
    """Normalize raw text and join the canonical lines with newlines.

    Idempotent: normalize_text(normalize_text(x)) == normalize_text(x).
    """
    return "\n".join(normalize_lines(raw))


def strip_html(raw: str | None) -> str:
    """Extract single-line text from an HTML page.

    Drops script/style bodies, strips tags, decodes entities and collapses
    all whitespace (including newlines) to single spaces.
    """
    if not raw:
        return ""
    text = _SCRIPT_STYLE_PATTERN.sub(" ", raw)
    text = _TAG_PATTERN.sub(" ", text)
    text = html.unescape(text).replace("\u00a0", " ")
    return re.sub(r"\s+", " ", text).strip()


def ensure_description(text: str | None, max_length: int | None = None) -> str | None:
    """Return trimmed text or None when empty; optionally truncate."""
    if not text:
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    if max_length is not None and len(trimmed) > max_length:
        trimmed = trimmed[:max_length].rstrip()
    return trimmed
