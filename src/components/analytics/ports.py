"""
Analytics component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, tzinfo
from typing import Protocol

from .models import AnalyticsEvent, FunnelStepDefinition


class EventStoreError(Exception):
    """The event query failed. No partial result is available."""


class EventStorePort(Protocol):
    """Read interface over the append-only analytics event log."""

    def fetch_events(self, start: datetime, end: datetime) -> Sequence[AnalyticsEvent]:
        """
        Return every event with start <= timestamp < end, ordered by timestamp ascending.

        Raises EventStoreError on failure.
        """
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    @property
    def tz(self) -> tzinfo:
        """Timezone used for calendar-day and week boundaries."""
        ...


class RulesPort(Protocol):
    """Port for analytics rules configuration."""

    def get_funnel_steps(self) -> tuple[FunnelStepDefinition, ...]:
        """Get the ordered funnel step definitions."""
        ...

    def get_week_start(self) -> int:
        """Get first day of week (0 = Monday ... 6 = Sunday)."""
        ...

    def get_minute_window(self) -> int:
        """Get the trailing window, in minutes, of the minute-granularity series."""
        ...

    def get_interaction_event_types(self) -> dict[str, str]:
        """Get interaction kind -> event type mapping."""
        ...
