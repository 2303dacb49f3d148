"""
Local time adapter tests.

Europe/Paris transitions:
- CEST starts: last Sunday in March at 02:00 -> 03:00
- CET resumes: last Sunday in October at 03:00 -> 02:00
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.time_local import FrozenTimeAdapter, LocalTimeAdapter, create_time_adapter


@pytest.fixture
def adapter() -> LocalTimeAdapter:
    return LocalTimeAdapter("Europe/Paris")


class TestLocalTimeAdapter:
    def test_now_utc_is_utc(self, adapter: LocalTimeAdapter) -> None:
        now = adapter.now_utc()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_winter_offset(self, adapter: LocalTimeAdapter) -> None:
        local = adapter.to_local(datetime(2025, 1, 15, 12, 0, tzinfo=UTC))
        assert local.hour == 13

    def test_summer_offset(self, adapter: LocalTimeAdapter) -> None:
        local = adapter.to_local(datetime(2025, 7, 15, 12, 0, tzinfo=UTC))
        assert local.hour == 14

    def test_naive_input_taken_as_utc(self, adapter: LocalTimeAdapter) -> None:
        local = adapter.to_local(datetime(2025, 1, 15, 12, 0))
        assert local.hour == 13

    def test_spring_forward(self, adapter: LocalTimeAdapter) -> None:
        before = adapter.to_local(datetime(2025, 3, 30, 0, 59, tzinfo=UTC))
        after = adapter.to_local(datetime(2025, 3, 30, 1, 0, tzinfo=UTC))
        assert (before.hour, after.hour) == (1, 3)

    def test_timezone_name(self) -> None:
        assert create_time_adapter("America/Montreal").timezone_name == "America/Montreal"


class TestFrozenTimeAdapter:
    def test_frozen_and_advance(self) -> None:
        frozen = FrozenTimeAdapter(datetime(2025, 3, 12, 14, 30, tzinfo=UTC))
        assert frozen.now_utc() == datetime(2025, 3, 12, 14, 30, tzinfo=UTC)

        frozen.advance(timedelta(hours=2))
        assert frozen.now_utc().hour == 16

    def test_naive_frozen_time_is_utc(self) -> None:
        frozen = FrozenTimeAdapter(datetime(2025, 3, 12, 14, 30))
        assert frozen.now_utc().tzinfo is not None
