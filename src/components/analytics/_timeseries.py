"""
Time-series bucketing.

Produces the visitor activity series at minute/hour/day/week granularity.
Every slot of the active range yields a point, including empty ones: the
chart relies on positional continuity.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from ._range import local_midnight, start_of_day
from .models import AnalyticsEvent, DateRange, Granularity, TimeBucketPoint

DEFAULT_MINUTE_WINDOW = 60
SUNDAY = 6

_EPSILON = timedelta(microseconds=1)


@dataclass(frozen=True)
class BucketWindow:
    """Counting window [start, end) for one point; start is also the point's position."""

    label: str
    start: datetime
    end: datetime


def _last_instant(date_range: DateRange) -> datetime:
    return max(date_range.start, date_range.end.astimezone(UTC) - _EPSILON)


def minute_windows(
    date_range: DateRange, tz: tzinfo, window_minutes: int = DEFAULT_MINUTE_WINDOW
) -> list[BucketWindow]:
    """One window per minute over the trailing window_minutes, bounded by the range."""
    end = date_range.end.astimezone(UTC)
    begin = max(date_range.start, end - timedelta(minutes=window_minutes))
    cursor = begin.astimezone(UTC).replace(second=0, microsecond=0)
    windows = []
    while cursor < date_range.end:
        nxt = cursor + timedelta(minutes=1)
        label = cursor.astimezone(tz).strftime("%H:%M")
        windows.append(BucketWindow(label=label, start=cursor, end=nxt))
        cursor = nxt
    return windows


def hour_windows(date_range: DateRange, tz: tzinfo) -> list[BucketWindow]:
    """Every local hour of every calendar day the range touches."""
    first = start_of_day(date_range.start, tz)
    last_day = _last_instant(date_range).astimezone(tz).date()
    stop = local_midnight(last_day + timedelta(days=1), tz).astimezone(UTC)
    multi_day = first.date() != last_day
    fmt = "%b %d %H:%M" if multi_day else "%H:%M"

    # Step in UTC so DST transitions neither skip nor repeat an hour.
    cursor = first.astimezone(UTC)
    windows = []
    while cursor < stop:
        nxt = cursor + timedelta(hours=1)
        local = cursor.astimezone(tz)
        windows.append(BucketWindow(label=local.strftime(fmt), start=cursor, end=nxt))
        cursor = nxt
    return windows


def day_windows(date_range: DateRange, tz: tzinfo) -> list[BucketWindow]:
    """One window per local calendar day in range."""
    day = date_range.start.astimezone(tz).date()
    last_day = _last_instant(date_range).astimezone(tz).date()
    windows = []
    while day <= last_day:
        start = local_midnight(day, tz)
        windows.append(
            BucketWindow(
                label=start.strftime("%b %d"),
                start=start.astimezone(UTC),
                end=local_midnight(day + timedelta(days=1), tz).astimezone(UTC),
            )
        )
        day += timedelta(days=1)
    return windows


def week_windows(date_range: DateRange, tz: tzinfo, week_start: int = SUNDAY) -> list[BucketWindow]:
    """
    One window per week beginning on week_start (0 = Monday ... 6 = Sunday).

    Counting windows are clipped to the range; the point position stays on the
    week's first day.
    """
    first_day = date_range.start.astimezone(tz).date()
    week = first_day - timedelta(days=(first_day.weekday() - week_start) % 7)
    last_day = _last_instant(date_range).astimezone(tz).date()
    windows = []
    while week <= last_day:
        start = local_midnight(week, tz)
        end = local_midnight(week + timedelta(days=7), tz)
        windows.append(
            BucketWindow(
                label=start.strftime("%b %d"),
                start=start.astimezone(UTC),
                end=end.astimezone(UTC),
            )
        )
        week += timedelta(days=7)
    return windows


def bucket_windows(
    date_range: DateRange,
    granularity: Granularity,
    tz: tzinfo,
    *,
    week_start: int = SUNDAY,
    minute_window: int = DEFAULT_MINUTE_WINDOW,
) -> list[BucketWindow]:
    """Windows for the requested granularity."""
    if granularity == "minute":
        return minute_windows(date_range, tz, minute_window)
    if granularity == "hour":
        return hour_windows(date_range, tz)
    if granularity == "day":
        return day_windows(date_range, tz)
    if granularity == "week":
        return week_windows(date_range, tz, week_start)
    msg = f"Unknown granularity: {granularity}"
    raise ValueError(msg)


def build_time_series(
    events: Iterable[AnalyticsEvent],
    date_range: DateRange,
    granularity: Granularity,
    tz: tzinfo,
    *,
    week_start: int = SUNDAY,
    minute_window: int = DEFAULT_MINUTE_WINDOW,
) -> tuple[TimeBucketPoint, ...]:
    """
    Count distinct visitors per bucket.

    Events without a visitor id or timestamp are ignored. Week buckets only
    count events inside the active range.
    """
    windows = bucket_windows(
        date_range, granularity, tz, week_start=week_start, minute_window=minute_window
    )
    starts = [w.start for w in windows]
    visitors: list[set[str]] = [set() for _ in windows]
    clip = granularity == "week"

    for event in events:
        if not event.visitor_id or event.timestamp is None:
            continue
        if clip and not date_range.contains(event.timestamp):
            continue
        index = bisect_right(starts, event.timestamp) - 1
        if index < 0 or event.timestamp >= windows[index].end:
            continue
        visitors[index].add(event.visitor_id)

    return tuple(
        TimeBucketPoint(label=w.label, bucket_start=w.start, unique_visitors=len(v))
        for w, v in zip(windows, visitors, strict=True)
    )
