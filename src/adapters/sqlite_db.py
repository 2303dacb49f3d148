"""
SQLite event store adapter.

Implements EventStorePort over the append-only analytics_events table
(see migrations/). Designed to be Postgres-compatible (standard SQL only).
Timestamps are stored as fixed-width UTC ISO strings so text comparison
orders them chronologically.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from src.components.analytics import (
    AnalyticsEvent,
    EventStoreError,
    RawMetadata,
    StructuredMetadata,
    coerce_metadata,
    ensure_utc,
)

logger = logging.getLogger(__name__)

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"

_COLUMNS = (
    "visitor_id",
    "session_id",
    "event_type",
    "page_path",
    "country_code",
    "country_name",
    "region",
    "city",
    "device_type",
    "browser_name",
    "os_name",
    "language",
    "metadata",
    "created_at",
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_ts(ts: datetime) -> str:
    """Fixed-width UTC text form used for storage and range bounds."""
    return ensure_utc(ts).strftime(_TS_FORMAT)


def parse_ts(value: str | None) -> datetime | None:
    """Parse a stored timestamp. Malformed values yield None."""
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        logger.debug("Unparsable event timestamp ignored: %r", value)
        return None


def _serialize_metadata(event: AnalyticsEvent) -> str | None:
    metadata = event.metadata
    if isinstance(metadata, StructuredMetadata):
        return json.dumps(dict(metadata.data))
    if isinstance(metadata, RawMetadata):
        return metadata.text
    return None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Analytics Event Store
# -----------------------------------------------------------------------------


class SQLiteEventStore(SQLiteRepoBase):
    """SQLite implementation of EventStorePort."""

    def fetch_events(self, start: datetime, end: datetime) -> list[AnalyticsEvent]:
        """Events with start <= created_at < end, oldest first."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise EventStoreError(f"Cannot open event store: {e}") from e

        try:
            rows = conn.execute(
                f"""
                SELECT {", ".join(_COLUMNS)} FROM analytics_events
                WHERE created_at >= ? AND created_at < ?
                ORDER BY created_at ASC, id ASC
                """,
                (format_ts(start), format_ts(end)),
            ).fetchall()
        except sqlite3.Error as e:
            raise EventStoreError(f"Event query failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

        return [self._map_row(_as_dict(row)) for row in rows]

    def append(self, events: Iterable[AnalyticsEvent]) -> int:
        """Insert events. Returns the number of rows written."""
        params = [
            (
                e.visitor_id,
                e.session_id,
                e.event_type,
                e.page_path,
                e.country_code,
                e.country_name,
                e.region,
                e.city,
                e.device_type,
                e.browser_name,
                e.os_name,
                e.language,
                _serialize_metadata(e),
                format_ts(e.timestamp) if e.timestamp is not None else None,
            )
            for e in events
        ]
        conn = self._get_conn()
        try:
            conn.executemany(
                f"""
                INSERT INTO analytics_events ({", ".join(_COLUMNS)})
                VALUES ({", ".join("?" for _ in _COLUMNS)})
                """,
                params,
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()
        return len(params)

    def _map_row(self, row: dict[str, Any]) -> AnalyticsEvent:
        return AnalyticsEvent(
            visitor_id=row["visitor_id"],
            session_id=row["session_id"],
            event_type=row["event_type"],
            page_path=row["page_path"],
            country_code=row["country_code"],
            country_name=row["country_name"],
            region=row["region"],
            city=row["city"],
            device_type=row["device_type"],
            browser_name=row["browser_name"],
            os_name=row["os_name"],
            language=row["language"],
            metadata=coerce_metadata(row["metadata"]),
            timestamp=parse_ts(row["created_at"]),
        )


def _as_dict(row: Any) -> dict[str, Any]:
    """Rows from an externally supplied connection may be tuples or sqlite3.Row."""
    if isinstance(row, dict):
        return row
    if isinstance(row, sqlite3.Row):
        return dict(row)
    return dict(zip(_COLUMNS, row, strict=True))

