"""
Time-series bucketing tests.

Every slot in range yields a point, DST days keep their real hour count, and
week buckets only count in-range events.
"""

from datetime import UTC, datetime, timedelta

import pytest

from src.components.analytics import FilterParameters, build_time_series, resolve_date_range
from src.components.analytics._timeseries import bucket_windows
from src.components.analytics.models import DateRange
from tests.factories import NOW, PARIS, make_event

MONDAY = 0
SUNDAY = 6


def range_for(date_filter: str, **kwargs) -> DateRange:
    return resolve_date_range(FilterParameters(date_filter=date_filter, **kwargs), NOW, PARIS)


def custom_day(day: str) -> DateRange:
    return range_for("custom", custom_start=day, custom_end=day)


def assert_gapless(date_range: DateRange, granularity: str) -> None:
    windows = bucket_windows(date_range, granularity, PARIS)  # type: ignore[arg-type]
    assert windows
    for current, nxt in zip(windows, windows[1:]):
        assert current.end == nxt.start


class TestHourBuckets:
    def test_today_has_24_hours(self) -> None:
        series = build_time_series([], range_for("today"), "hour", PARIS)
        assert len(series) == 24
        assert series[0].label == "00:00"
        assert series[-1].label == "23:00"
        assert all(p.unique_visitors == 0 for p in series)

    def test_counts_distinct_visitors_per_hour(self) -> None:
        at = NOW - timedelta(minutes=10)  # 15:20 in Paris
        events = [
            make_event(visitor_id="A", at=at),
            make_event(visitor_id="A", at=at + timedelta(minutes=1)),
            make_event(visitor_id="B", at=at),
            make_event(visitor_id=None, at=at),
        ]
        series = build_time_series(events, range_for("today"), "hour", PARIS)
        assert series[15].label == "15:00"
        assert series[15].unique_visitors == 2
        assert sum(p.unique_visitors for p in series) == 2

    def test_multi_day_labels_include_date(self) -> None:
        series = build_time_series([], range_for("last7days"), "hour", PARIS)
        assert len(series) == 7 * 24
        assert series[0].label == "Mar 06 00:00"

    def test_spring_forward_day_has_23_hours(self) -> None:
        series = build_time_series([], custom_day("2025-03-30"), "hour", PARIS)
        assert len(series) == 23
        assert "02:00" not in [p.label for p in series]

    def test_fall_back_day_has_25_hours(self) -> None:
        date_range = custom_day("2025-10-26")
        series = build_time_series([], date_range, "hour", PARIS)
        assert len(series) == 25
        assert [p.label for p in series].count("02:00") == 2

    def test_fall_back_repeated_hour_counts_separately(self) -> None:
        date_range = custom_day("2025-10-26")
        # 02:30 CEST and 02:30 CET are one hour apart in UTC.
        first = datetime(2025, 10, 26, 0, 30, tzinfo=UTC)
        second = datetime(2025, 10, 26, 1, 30, tzinfo=UTC)
        events = [make_event(visitor_id="A", at=first), make_event(visitor_id="B", at=second)]
        series = build_time_series(events, date_range, "hour", PARIS)
        repeated = [p for p in series if p.label == "02:00"]
        assert [p.unique_visitors for p in repeated] == [1, 1]


class TestMinuteBuckets:
    def test_trailing_hour(self) -> None:
        series = build_time_series([], range_for("today"), "minute", PARIS)
        assert len(series) == 60
        assert series[0].label == "14:30"
        assert series[-1].label == "15:29"

    def test_window_is_configurable(self) -> None:
        series = build_time_series([], range_for("today"), "minute", PARIS, minute_window=15)
        assert len(series) == 15

    def test_window_bounded_by_range_start(self) -> None:
        just_after_midnight = datetime(2025, 3, 11, 23, 5, tzinfo=UTC)
        rng = resolve_date_range(FilterParameters(), just_after_midnight, PARIS)
        series = build_time_series([], rng, "minute", PARIS)
        assert len(series) == 5
        assert series[0].label == "00:00"

    def test_trailing_window_across_fall_back(self) -> None:
        # 02:30 CET, thirty minutes after the clocks went back
        end = datetime(2025, 10, 26, 1, 30, tzinfo=UTC).astimezone(PARIS)
        rng = DateRange(start=datetime(2025, 10, 26, tzinfo=PARIS), end=end)
        series = build_time_series([], rng, "minute", PARIS)
        assert len(series) == 60
        assert series[0].bucket_start == datetime(2025, 10, 26, 0, 30, tzinfo=UTC)
        assert series[0].label == "02:30"
        assert series[-1].label == "02:29"

    def test_event_lands_in_its_minute(self) -> None:
        events = [make_event(visitor_id="A", at=NOW - timedelta(seconds=30))]
        series = build_time_series(events, range_for("today"), "minute", PARIS)
        assert series[-1].unique_visitors == 1


class TestDayBuckets:
    def test_last7days_has_seven_points(self) -> None:
        series = build_time_series([], range_for("last7days"), "day", PARIS)
        assert [p.label for p in series] == [
            "Mar 06",
            "Mar 07",
            "Mar 08",
            "Mar 09",
            "Mar 10",
            "Mar 11",
            "Mar 12",
        ]

    def test_custom_range_day_count(self) -> None:
        rng = range_for("custom", custom_start="2025-03-01", custom_end="2025-03-10")
        assert len(build_time_series([], rng, "day", PARIS)) == 10

    def test_visitor_counted_once_per_day(self) -> None:
        events = [
            make_event(visitor_id="A", at=NOW - timedelta(days=1)),
            make_event(visitor_id="A", at=NOW - timedelta(days=1, hours=1)),
            make_event(visitor_id="A", at=NOW - timedelta(minutes=1)),
        ]
        series = build_time_series(events, range_for("last7days"), "day", PARIS)
        assert [p.unique_visitors for p in series][-2:] == [1, 1]


class TestWeekBuckets:
    def test_sunday_weeks(self) -> None:
        # last30days starts Tuesday Feb 11; its week begins Sunday Feb 09.
        series = build_time_series([], range_for("last30days"), "week", PARIS, week_start=SUNDAY)
        assert [p.label for p in series] == ["Feb 09", "Feb 16", "Feb 23", "Mar 02", "Mar 09"]

    def test_monday_weeks(self) -> None:
        series = build_time_series([], range_for("last30days"), "week", PARIS, week_start=MONDAY)
        assert series[0].label == "Feb 10"
        assert series[-1].label == "Mar 10"

    def test_events_before_range_are_clipped(self) -> None:
        rng = range_for("last30days")
        events = [
            make_event(visitor_id="early", at=datetime(2025, 2, 10, 12, tzinfo=UTC)),
            make_event(visitor_id="inside", at=datetime(2025, 2, 12, 12, tzinfo=UTC)),
        ]
        series = build_time_series(events, rng, "week", PARIS, week_start=SUNDAY)
        assert series[0].unique_visitors == 1


class TestContinuity:
    @pytest.mark.parametrize("granularity", ["minute", "hour", "day", "week"])
    @pytest.mark.parametrize("date_filter", ["today", "yesterday", "last7days", "last30days"])
    def test_windows_are_contiguous(self, date_filter: str, granularity: str) -> None:
        assert_gapless(range_for(date_filter), granularity)

    def test_bucket_starts_are_utc(self) -> None:
        for window in bucket_windows(range_for("last7days"), "day", PARIS):
            assert window.start.utcoffset() == timedelta(0)

    def test_unknown_granularity(self) -> None:
        with pytest.raises(ValueError):
            bucket_windows(range_for("today"), "month", PARIS)  # type: ignore[arg-type]
