"""Date and time resolution service.

Handles:
- "YYYY-MM-DD HH:mm UTC" stamps
- "DD.MM.YYYY, HH:mm" in a named zone (Kyiv by default)
- "Month Day[, Year][, HH:mm]" and "Day Month [Year] [HH:mm]" partial dates
- Year inference for year-less dates
- Conversion of every result to an aware UTC datetime

Every parser returns None on unparseable input; callers drop the draft.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final

import pytz
from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from src.domain.parsing_constants import KYIV_TZ, MONTHS, YEAR_GUESS_STALE_MONTHS

# Longest names first so "September" wins over "Sep"
_MONTH_ALTERNATION: Final[str] = "|".join(
    sorted(MONTHS.keys(), key=len, reverse=True)
)

UTC_STAMP_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})\s+(\d{1,2}):(\d{2})\s*\(?\s*UTC\s*\)?",
    flags=re.IGNORECASE,
)
"""Pattern for '2026-01-08 10:00 UTC' and '2026-01-08 10:00 (UTC)'."""

DOTTED_DATETIME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?<!\d)(\d{2})\.(\d{2})\.(\d{4})\s*,?\s*(\d{1,2}):(\d{2})"
)
"""Pattern for '08.01.2026, 14:00' and '08.01.2026 14:00'."""

MONTH_FIRST_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b({_MONTH_ALTERNATION})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?(?![\d:])"
    r"(?:,?\s+(\d{4}))?(?:,?\s+(?:at\s+)?(\d{1,2}):(\d{2}))?",
    flags=re.IGNORECASE,
)
"""Pattern for 'Jan 8', 'January 8, 2026', 'Jan 8 2026 10:00'."""

DAY_FIRST_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_ALTERNATION})\b\.?"
    r"(?:,?\s+(\d{4}))?(?:,?\s+(?:at\s+)?(\d{1,2}):(\d{2}))?",
    flags=re.IGNORECASE,
)
"""Pattern for '8 Jan', '8 January 2026 10:00'."""


@dataclass(frozen=True)
class PartialDate:
    """Date fragments as written in a post; year and time may be absent."""

    month: int
    day: int
    year: int | None = None
    hour: int | None = None
    minute: int | None = None

    @property
    def has_time(self) -> bool:
        return self.hour is not None and self.minute is not None


def utc_now() -> datetime:
    """Current time as aware UTC datetime."""
    return datetime.now(pytz.UTC)


def to_utc(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    tz_name: str = "UTC",
) -> datetime | None:
    """Interpret wall-clock parts in a named zone and convert to UTC.

    The offset in effect at that instant is used, so summer and winter
    Kyiv times resolve to UTC+3 and UTC+2 respectively.

    Example:
        >>> to_utc(2025, 7, 1, 12, 0, "Europe/Kyiv")
        datetime.datetime(2025, 7, 1, 9, 0, tzinfo=<UTC>)
    """
    try:
        naive = datetime(year, month, day, hour, minute)
        zone = pytz.timezone(tz_name)
    except (ValueError, TypeError, OverflowError, pytz.UnknownTimeZoneError):
        return None
    return zone.localize(naive).astimezone(pytz.UTC)


def parse_utc_stamp(text: str | None) -> datetime | None:
    """Parse the first 'YYYY-MM-DD HH:mm UTC' stamp in text.

    Example:
        >>> parse_utc_stamp("Start: 2026-01-08 10:00 UTC")
        datetime.datetime(2026, 1, 8, 10, 0, tzinfo=<UTC>)
    """
    if not text:
        return None
    match = UTC_STAMP_PATTERN.search(text)
    if not match:
        return None
    year, month, day, hour, minute = (int(part) for part in match.groups())
    return to_utc(year, month, day, hour, minute, "UTC")


def parse_dotted_datetime(text: str | None, tz_name: str = KYIV_TZ) -> datetime | None:
    """Parse 'DD.MM.YYYY, HH:mm' interpreted in tz_name.

    Example:
        >>> parse_dotted_datetime("Claim Date: 15.01.2026, 14:00")
        datetime.datetime(2026, 1, 15, 12, 0, tzinfo=<UTC>)
    """
    if not text:
        return None
    match = DOTTED_DATETIME_PATTERN.search(text)
    if not match:
        return None
    day, month, year, hour, minute = (int(part) for part in match.groups())
    return to_utc(year, month, day, hour, minute, tz_name)


def parse_month_day(text: str | None) -> PartialDate | None:
    """Find a month-name date ('Jan 8[, 2026][, 10:00]' or '8 Jan ...').

    Month-first forms win over day-first forms.
    """
    if not text:
        return None

    match = MONTH_FIRST_PATTERN.search(text)
    if match:
        month_name, day_str, year_str, hour_str, minute_str = match.groups()
    else:
        match = DAY_FIRST_PATTERN.search(text)
        if not match:
            return None
        day_str, month_name, year_str, hour_str, minute_str = match.groups()

    month = MONTHS.get(month_name.lower())
    if month is None:
        return None

    has_time = hour_str is not None and minute_str is not None
    return PartialDate(
        month=month,
        day=int(day_str),
        year=int(year_str) if year_str else None,
        hour=int(hour_str) if has_time else None,
        minute=int(minute_str) if has_time else None,
    )


def guess_year(month: int, day: int, now: datetime | None = None) -> int:
    """Infer the year of a year-less date.

    Picks the earliest year starting at last year whose date is not more than
    YEAR_GUESS_STALE_MONTHS months before now.

    Example:
        >>> guess_year(12, 1, datetime(2025, 1, 10, tzinfo=pytz.UTC))
        2024
        >>> guess_year(2, 1, datetime(2025, 1, 10, tzinfo=pytz.UTC))
        2025
    """
    now = now or utc_now()
    threshold = (now - relativedelta(months=YEAR_GUESS_STALE_MONTHS)).date()
    for year in (now.year - 1, now.year, now.year + 1):
        try:
            candidate = datetime(year, month, day).date()
        except ValueError:
            continue
        if candidate >= threshold:
            return year
    return now.year + 1


def resolve_partial_date(
    partial: PartialDate | None,
    now: datetime | None = None,
    time_zone: str = "UTC",
    date_only_zone: str = "UTC",
) -> datetime | None:
    """Resolve a partial date to a UTC instant.

    Args:
        partial: Parsed date fragments
        now: Reference time for year inference
        time_zone: Zone of the wall-clock time when a time is given
        date_only_zone: Zone whose midnight is used when no time is given

    Returns:
        Aware UTC datetime or None
    """
    if partial is None:
        return None

    year = partial.year or guess_year(partial.month, partial.day, now)
    if partial.has_time:
        return to_utc(
            year,
            partial.month,
            partial.day,
            partial.hour or 0,
            partial.minute or 0,
            time_zone,
        )
    return to_utc(year, partial.month, partial.day, 0, 0, date_only_zone)


def parse_iso_datetime(text: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (e.g. <time datetime=...>) into UTC."""
    if not text:
        return None
    try:
        parsed = dateutil_parser.isoparse(text.strip())
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def format_minute(dt: datetime) -> str:
    """Format an instant at minute precision in UTC ('YYYY-MM-DD HH:MM')."""
    return dt.astimezone(pytz.UTC).strftime("%Y-%m-%d %H:%M")


def format_local(dt: datetime, tz_name: str = KYIV_TZ, fmt: str = "%d.%m.%Y %H:%M") -> str:
    """Format an instant as wall-clock time in a named zone."""
    return dt.astimezone(pytz.timezone(tz_name)).strftime(fmt)


def kyiv_today_start(now: datetime | None = None) -> datetime:
    """Start of the current Kyiv day, as UTC."""
    now = now or utc_now()
    zone = pytz.timezone(KYIV_TZ)
    local = now.astimezone(zone)
    midnight = zone.localize(datetime(local.year, local.month, local.day))
    return midnight.astimezone(pytz.UTC)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """UTC instant `days` days before now."""
    return (now or utc_now()) - timedelta(days=days)
