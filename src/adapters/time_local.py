"""
Local Time Adapter.

Implements the analytics TimePort for a configurable IANA timezone.
Calendar-day and week boundaries of the dashboard are computed in this zone.

Key behaviors:
- now_utc: Returns current UTC time
- tz: Local zone used for bucketing
- to_local: Converts UTC to local time (naive input taken as UTC)
- DST transitions handled by zoneinfo
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from src.components.analytics import DEFAULT_TIMEZONE


class LocalTimeAdapter:
    """System clock in a configurable timezone."""

    def __init__(self, tz_name: str = DEFAULT_TIMEZONE) -> None:
        """
        Initialize with specified timezone.

        Args:
            tz_name: IANA timezone name (default: Europe/Paris)
        """
        self._tz_name = tz_name
        self._tz = ZoneInfo(tz_name)

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        return datetime.now(UTC)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def timezone_name(self) -> str:
        """Get the display timezone name."""
        return self._tz_name

    def to_local(self, utc_dt: datetime) -> datetime:
        """Convert UTC to local time. Naive input is assumed to be UTC."""
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=UTC)
        return utc_dt.astimezone(self._tz)


class FrozenTimeAdapter(LocalTimeAdapter):
    """
    Time adapter that returns a fixed time.

    Useful for deterministic testing.
    """

    def __init__(self, frozen_utc: datetime, tz_name: str = DEFAULT_TIMEZONE) -> None:
        super().__init__(tz_name)
        if frozen_utc.tzinfo is None:
            frozen_utc = frozen_utc.replace(tzinfo=UTC)
        self._frozen_utc = frozen_utc.astimezone(UTC)

    def now_utc(self) -> datetime:
        """Get frozen UTC time."""
        return self._frozen_utc

    def advance(self, delta: timedelta) -> None:
        """Advance frozen time by delta (for testing)."""
        self._frozen_utc = self._frozen_utc + delta


def create_time_adapter(tz_name: str = DEFAULT_TIMEZONE) -> LocalTimeAdapter:
    """Factory function to create a time adapter."""
    return LocalTimeAdapter(tz_name)
