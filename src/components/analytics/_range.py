"""
Range & filter resolution.

Turns the dashboard date filter into a concrete [start, end) interval in the
configured local timezone. Incomplete or invalid input falls back to "today";
the dashboard is never blocked by a bad filter.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo

from .models import AnalyticsEvent, DateRange, FilterParameters

logger = logging.getLogger(__name__)

ALL_COUNTRIES = "all"


def start_of_day(dt: datetime, tz: tzinfo) -> datetime:
    """Local midnight of the calendar day containing dt."""
    local = dt.astimezone(tz)
    return local_midnight(local.date(), tz)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Aware local midnight for a calendar date."""
    return datetime.combine(day, time.min, tzinfo=tz)


def parse_calendar_date(value: date | str | None) -> date | None:
    """Parse a date filter bound. Returns None for empty or unparsable input."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _today(now: datetime, tz: tzinfo) -> DateRange:
    return DateRange(start=start_of_day(now, tz), end=now)


def resolve_date_range(filters: FilterParameters, now: datetime, tz: tzinfo) -> DateRange:
    """
    Resolve the selected date filter to a [start, end) interval.

    Args:
        filters: Operator-selected filters.
        now: Current instant (aware).
        tz: Local timezone for calendar boundaries.

    Returns:
        DateRange; "today" when the filter is incomplete or invalid.
    """
    now = now.astimezone(tz)
    mode = filters.date_filter

    if mode == "today":
        return _today(now, tz)

    if mode == "yesterday":
        today_start = start_of_day(now, tz)
        yesterday = (today_start - timedelta(days=1)).date()
        return DateRange(start=local_midnight(yesterday, tz), end=today_start)

    if mode in ("last7days", "last30days"):
        days = 7 if mode == "last7days" else 30
        first_day = now.date() - timedelta(days=days - 1)
        return DateRange(start=local_midnight(first_day, tz), end=now)

    if mode == "custom":
        start_day = parse_calendar_date(filters.custom_start)
        end_day = parse_calendar_date(filters.custom_end)
        if start_day is None or end_day is None:
            logger.warning("Custom date filter incomplete, falling back to today")
            return _today(now, tz)
        if start_day > end_day:
            logger.warning(
                "Custom date filter reversed (%s > %s), falling back to today", start_day, end_day
            )
            return _today(now, tz)
        return DateRange(
            start=local_midnight(start_day, tz),
            end=local_midnight(end_day + timedelta(days=1), tz),
        )

    logger.warning("Unknown date filter %r, falling back to today", mode)
    return _today(now, tz)


def normalize_country_filter(country_code: str | None) -> str | None:
    """Upper-cased country code, or None when the filter is disabled."""
    if country_code is None:
        return None
    code = country_code.strip()
    if not code or code.lower() == ALL_COUNTRIES:
        return None
    return code.upper()


def filter_events(
    events: Iterable[AnalyticsEvent],
    date_range: DateRange | None = None,
    country_code: str | None = None,
) -> list[AnalyticsEvent]:
    """
    Apply the range and country filters.

    Events without a timestamp cannot be placed in time and are kept only
    when no date range is given.
    """
    code = normalize_country_filter(country_code)
    result = []
    for event in events:
        if date_range is not None:
            if event.timestamp is None or not date_range.contains(event.timestamp):
                continue
        if code is not None and (event.country_code or "").upper() != code:
            continue
        result.append(event)
    return result
