"""Quantity and ticker extraction from reward lines.

Rules:
1. Rightmost number run on a line is the quantity
2. Rightmost uppercase alphanumeric token (>= 2 chars, at least one letter,
   optional $ prefix) is the ticker
3. Thousands separators and K/M/B suffixes are normalized before conversion

Descriptive text usually precedes the value ("Win up to 1,000,000 SHIB"),
hence rightmost wins.
"""

import re
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, Final

from src.domain.parsing_constants import QUANTITY_MULTIPLIERS

NUMBER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?<![\w.])(\d{1,3}(?:[ \u00a0]\d{3})+|\d[\d,.]*)(?:\s?([KMB]))?(?![A-Za-z0-9])"
)
"""Number run: space-grouped thousands or digits with , and . separators."""

TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?<![A-Za-z0-9])\$?([A-Z0-9]{2,})(?![A-Za-z0-9])"
)
"""Ticker candidate: uppercase alphanumeric word, optionally $-prefixed."""

_AMOUNT_LIKE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\d+(?:\.\d+)?[KMB]")
_THOUSANDS_COMMA_PATTERN: Final[re.Pattern[str]] = re.compile(r"\d{1,3}(?:,\d{3})+")


def parse_quantity(text: str | None) -> Decimal | None:
    """Convert a number with separators and optional K/M/B suffix to Decimal.

    Args:
        text: Number text such as "1,000,000", "6 170 000" or "985.5K"

    Returns:
        Decimal value, or None when the text is not a finite number

    Example:
        >>> parse_quantity("985.5K")
        Decimal('985500.0')
    """
    if not text:
        return None

    value = re.sub(r"[\s\u00a0]+", "", text).upper()
    multiplier = 1
    if value and value[-1] in QUANTITY_MULTIPLIERS:
        multiplier = QUANTITY_MULTIPLIERS[value[-1]]
        value = value[:-1]

    value = value.strip(",.")
    if not value or not re.fullmatch(r"[\d.,]+", value):
        return None

    if "," in value and "." in value:
        value = value.replace(",", "")
    elif "," in value:
        if _THOUSANDS_COMMA_PATTERN.fullmatch(value) or value.count(",") > 1:
            value = value.replace(",", "")
        else:
            value = value.replace(",", ".")

    if value.count(".") > 1:
        value = value.replace(".", "")

    try:
        number = Decimal(value)
    except InvalidOperation:
        return None

    if not number.is_finite():
        return None
    return number * multiplier


def extract_quantity(line: str | None) -> Decimal | None:
    """Parse the rightmost number run of a line."""
    if not line:
        return None
    matches = list(NUMBER_PATTERN.finditer(line))
    if not matches:
        return None
    last = matches[-1]
    return parse_quantity(last.group(1) + (last.group(2) or ""))


def extract_token(line: str | None) -> str | None:
    """Return the rightmost ticker-like token of a line."""
    if not line:
        return None
    candidates = [
        match.group(1)
        for match in TOKEN_PATTERN.finditer(line)
        if re.search(r"[A-Z]", match.group(1))
        and not _AMOUNT_LIKE_PATTERN.fullmatch(match.group(1))
    ]
    return candidates[-1] if candidates else None


def parse_quantity_and_token(line: str | None) -> tuple[Decimal | None, str | None]:
    """Extract (quantity, ticker) from a composite reward line.

    Example:
        >>> parse_quantity_and_token("Pool: Win 1,000,000 SHIB and more")
        (Decimal('1000000'), 'SHIB')
    """
    return extract_quantity(line), extract_token(line)


def find_labeled_line(lines: Sequence[str], label: str) -> str | None:
    """Return the value of the first line that starts with "label:".

    Example:
        >>> find_labeled_line(["Token: Foo (FOO)", "Token: Bar"], "Token")
        'Foo (FOO)'
    """
    pattern = re.compile(rf"^{re.escape(label)}\s*:\s*", flags=re.IGNORECASE)
    for line in lines:
        match = pattern.match(line)
        if match:
            return line[match.end() :].strip()
    return None


def format_quantity(quantity: Decimal) -> str:
    """Render a quantity without exponent or trailing zeros.

    Example:
        >>> format_quantity(Decimal("985500.0"))
        '985500'
    """
    return format(quantity.normalize(), "f")


def json_decimal(value: Any) -> Decimal | None:
    """Finite Decimal from a JSON number or numeric string, else None.

    Example:
        >>> json_decimal("0.01234")
        Decimal('0.01234')
        >>> json_decimal(True) is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None
