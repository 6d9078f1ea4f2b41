"""Tests for date resolution service."""

from datetime import datetime

import pytest
import pytz

from src.services import date_resolver
from src.services.date_resolver import PartialDate


@pytest.fixture
def reference_date() -> datetime:
    """Reference date for testing: Jan 10, 2025, 12:00 UTC."""
    return datetime(2025, 1, 10, 12, 0, tzinfo=pytz.UTC)


def test_to_utc_kyiv_summer_offset() -> None:
    """Test Kyiv summer time is UTC+3."""
    result = date_resolver.to_utc(2025, 7, 1, 12, 0, "Europe/Kyiv")
    assert result == datetime(2025, 7, 1, 9, 0, tzinfo=pytz.UTC)


def test_to_utc_kyiv_winter_offset() -> None:
    """Test Kyiv winter time is UTC+2."""
    result = date_resolver.to_utc(2025, 1, 15, 12, 0, "Europe/Kyiv")
    assert result == datetime(2025, 1, 15, 10, 0, tzinfo=pytz.UTC)


def test_to_utc_invalid_parts() -> None:
    assert date_resolver.to_utc(2025, 2, 30) is None
    assert date_resolver.to_utc(2025, 1, 1, tz_name="Mars/Olympus") is None


def test_parse_utc_stamp_variants() -> None:
    expected = datetime(2026, 1, 8, 10, 0, tzinfo=pytz.UTC)
    assert date_resolver.parse_utc_stamp("Start: 2026-01-08 10:00 UTC") == expected
    assert date_resolver.parse_utc_stamp("2026-01-08 10:00 (UTC)") == expected
    assert date_resolver.parse_utc_stamp("no stamp here") is None
    assert date_resolver.parse_utc_stamp(None) is None


def test_parse_dotted_datetime_kyiv() -> None:
    result = date_resolver.parse_dotted_datetime("Claim Date: 15.01.2026, 14:00")
    assert result == datetime(2026, 1, 15, 12, 0, tzinfo=pytz.UTC)


def test_parse_dotted_datetime_other_zone() -> None:
    result = date_resolver.parse_dotted_datetime("15.01.2026 14:00", "UTC")
    assert result == datetime(2026, 1, 15, 14, 0, tzinfo=pytz.UTC)


def test_parse_dotted_datetime_invalid() -> None:
    assert date_resolver.parse_dotted_datetime("31.02.2026, 10:00") is None
    assert date_resolver.parse_dotted_datetime("tomorrow") is None


def test_parse_month_day_month_first_with_time() -> None:
    result = date_resolver.parse_month_day("Jan 8 10:00")
    assert result == PartialDate(month=1, day=8, hour=10, minute=0)
    assert result is not None and result.has_time


def test_parse_month_day_full_month_and_year() -> None:
    result = date_resolver.parse_month_day("September 21st, 2025")
    assert result == PartialDate(month=9, day=21, year=2025)


def test_parse_month_day_day_first() -> None:
    result = date_resolver.parse_month_day("8 Jan 2026 14:30")
    assert result == PartialDate(month=1, day=8, year=2026, hour=14, minute=30)


def test_parse_month_day_without_date() -> None:
    assert date_resolver.parse_month_day("Claim starts soon") is None


def test_guess_year_recent_past_keeps_last_year(reference_date: datetime) -> None:
    """Test Dec 1 seen in January belongs to last year."""
    assert date_resolver.guess_year(12, 1, reference_date) == 2024


def test_guess_year_upcoming_date(reference_date: datetime) -> None:
    """Test Feb 1 seen in January is this year, not 11 months ago."""
    assert date_resolver.guess_year(2, 1, reference_date) == 2025


def test_guess_year_december_rolls_into_january() -> None:
    """Test Jan 3 seen late in December is next year."""
    now = datetime(2025, 12, 28, 12, 0, tzinfo=pytz.UTC)
    assert date_resolver.guess_year(1, 3, now) == 2026


def test_guess_year_leap_day() -> None:
    now = datetime(2027, 1, 10, tzinfo=pytz.UTC)
    assert date_resolver.guess_year(2, 29, now) == 2028


def test_resolve_partial_date_time_zone_rules(reference_date: datetime) -> None:
    with_time = PartialDate(month=1, day=20, hour=10, minute=0)
    date_only = PartialDate(month=1, day=20)

    assert date_resolver.resolve_partial_date(
        with_time, reference_date, time_zone="UTC", date_only_zone="Europe/Kyiv"
    ) == datetime(2025, 1, 20, 10, 0, tzinfo=pytz.UTC)
    assert date_resolver.resolve_partial_date(
        date_only, reference_date, time_zone="UTC", date_only_zone="Europe/Kyiv"
    ) == datetime(2025, 1, 19, 22, 0, tzinfo=pytz.UTC)
    assert date_resolver.resolve_partial_date(None, reference_date) is None


def test_parse_iso_datetime() -> None:
    assert date_resolver.parse_iso_datetime("2026-01-05T10:00:00+02:00") == datetime(
        2026, 1, 5, 8, 0, tzinfo=pytz.UTC
    )
    assert date_resolver.parse_iso_datetime("2026-01-05T10:00:00") == datetime(
        2026, 1, 5, 10, 0, tzinfo=pytz.UTC
    )
    assert date_resolver.parse_iso_datetime("garbage") is None


def test_format_helpers() -> None:
    instant = datetime(2025, 7, 1, 9, 0, tzinfo=pytz.UTC)
    assert date_resolver.format_minute(instant) == "2025-07-01 09:00"
    assert date_resolver.format_local(instant) == "01.07.2025 12:00"


def test_kyiv_today_start() -> None:
    """Test Kyiv midnight is 22:00 UTC of the previous day in winter."""
    now = datetime(2026, 1, 5, 9, 0, tzinfo=pytz.UTC)
    assert date_resolver.kyiv_today_start(now) == datetime(
        2026, 1, 4, 22, 0, tzinfo=pytz.UTC
    )


def test_days_ago() -> None:
    now = datetime(2026, 3, 1, tzinfo=pytz.UTC)
    assert date_resolver.days_ago(45, now) == datetime(2026, 1, 15, tzinfo=pytz.UTC)
