"""Tests for quantity and ticker extraction."""

from decimal import Decimal

import pytest

from src.services.quantity_parser import (
    extract_quantity,
    extract_token,
    find_labeled_line,
    format_quantity,
    parse_quantity,
    parse_quantity_and_token,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1,000,000", Decimal("1000000")),
        ("6 170 000", Decimal("6170000")),
        ("985.5K", Decimal("985500")),
        ("2M", Decimal("2000000")),
        ("1.5B", Decimal("1500000000")),
        ("12,5", Decimal("12.5")),
        ("1,234.56", Decimal("1234.56")),
        ("320", Decimal("320")),
    ],
)
def test_parse_quantity(text: str, expected: Decimal) -> None:
    assert parse_quantity(text) == expected


@pytest.mark.parametrize("text", [None, "", "abc", "K", "1e5x"])
def test_parse_quantity_rejects_non_numbers(text: str | None) -> None:
    assert parse_quantity(text) is None


def test_extract_quantity_takes_rightmost_number() -> None:
    assert extract_quantity("Top 100 traders win 1,000,000 SHIB") == Decimal("1000000")


def test_extract_token_takes_rightmost_ticker() -> None:
    assert extract_token("Trade BTC and win ETH") == "ETH"
    assert extract_token("Reward: 500 $PEPE") == "PEPE"


def test_extract_token_ignores_amount_like_words() -> None:
    assert extract_token("Pool 100K") is None
    assert extract_token("just lowercase words") is None


def test_parse_quantity_and_token() -> None:
    assert parse_quantity_and_token("Pool: Win 1,000,000 SHIB and more") == (
        Decimal("1000000"),
        "SHIB",
    )
    assert parse_quantity_and_token(None) == (None, None)


def test_find_labeled_line_first_match_case_insensitive() -> None:
    lines = ["Headline", "token: Foo (FOO)", "Token: Bar"]
    assert find_labeled_line(lines, "Token") == "Foo (FOO)"
    assert find_labeled_line(lines, "Reward") is None


def test_format_quantity_drops_trailing_zeros() -> None:
    assert format_quantity(Decimal("985500.0")) == "985500"
    assert format_quantity(Decimal("1E+6")) == "1000000"
    assert format_quantity(Decimal("12.50")) == "12.5"
