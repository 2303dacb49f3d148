"""
Default in-process adapters for the analytics component.

Used by tests, local development and as the fallback when no database is
configured.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from .models import AnalyticsEvent

DEFAULT_TIMEZONE = "Europe/Paris"


def ensure_utc(ts: datetime) -> datetime:
    """Aware UTC datetime; naive input is taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


class InMemoryEventStore:
    """In-memory event store for testing/dev."""

    def __init__(self, events: Iterable[AnalyticsEvent] = ()) -> None:
        self._events: list[AnalyticsEvent] = []
        self._lock = threading.Lock()
        self.extend(events)

    def append(self, event: AnalyticsEvent) -> None:
        """Append one event. Naive timestamps are taken as UTC."""
        if event.timestamp is not None and event.timestamp.tzinfo is None:
            event = replace(event, timestamp=ensure_utc(event.timestamp))
        with self._lock:
            self._events.append(event)

    def extend(self, events: Iterable[AnalyticsEvent]) -> None:
        for event in events:
            self.append(event)

    def fetch_events(self, start: datetime, end: datetime) -> Sequence[AnalyticsEvent]:
        """Events with start <= timestamp < end, oldest first."""
        with self._lock:
            matching = [
                e
                for e in self._events
                if e.timestamp is not None and start <= e.timestamp < end
            ]
        return sorted(matching, key=lambda e: e.timestamp)  # type: ignore[arg-type, return-value]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
