from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from src.components.analytics import AnalyticsEvent

PARIS = ZoneInfo("Europe/Paris")

# 2025-03-12 15:30 in Paris (CET, UTC+1)
NOW = datetime(2025, 3, 12, 14, 30, tzinfo=UTC)


def make_event(
    event_type: str = "pageview",
    at: datetime | None = NOW,
    **kwargs,
) -> AnalyticsEvent:
    """Event factory with sensible defaults for tests."""
    return AnalyticsEvent(event_type=event_type, timestamp=at, **kwargs)
