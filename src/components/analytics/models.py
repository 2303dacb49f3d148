"""
Analytics component input/output models.

Events are read-only inputs; every other model is derived fresh on each
aggregation pass and published as a whole.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

# --- Enums ---


DateFilter = Literal["today", "yesterday", "last7days", "last30days", "custom"]
Granularity = Literal["minute", "hour", "day", "week"]
PageViewMode = Literal["top", "entry", "exit"]
StepCategory = Literal["awareness", "conversion"]

DATE_FILTERS: tuple[str, ...] = ("today", "yesterday", "last7days", "last30days", "custom")
GRANULARITIES: tuple[str, ...] = ("minute", "hour", "day", "week")
PAGE_VIEW_MODES: tuple[str, ...] = ("top", "entry", "exit")

PAGEVIEW_EVENT = "pageview"


# --- Metadata ---


@dataclass(frozen=True)
class EmptyMetadata:
    """No metadata attached to the event."""


@dataclass(frozen=True)
class StructuredMetadata:
    """Metadata already delivered as a mapping."""

    data: Mapping[str, Any]


@dataclass(frozen=True)
class RawMetadata:
    """Metadata delivered as a serialized string, parsed lazily."""

    text: str


Metadata = EmptyMetadata | StructuredMetadata | RawMetadata

EMPTY_METADATA = EmptyMetadata()


# --- Event Model ---


@dataclass(frozen=True)
class AnalyticsEvent:
    """Visitor interaction event as supplied by the event store."""

    event_type: str
    timestamp: datetime | None
    visitor_id: str | None = None
    session_id: str | None = None
    page_path: str | None = None
    country_code: str | None = None
    country_name: str | None = None
    region: str | None = None
    city: str | None = None
    device_type: str | None = None
    browser_name: str | None = None
    os_name: str | None = None
    language: str | None = None
    metadata: Metadata = EMPTY_METADATA


# --- Input Models ---


@dataclass(frozen=True)
class FilterParameters:
    """Operator-selected dashboard filters."""

    date_filter: DateFilter = "today"
    custom_start: date | str | None = None
    custom_end: date | str | None = None
    country_code: str | None = None
    granularity: Granularity = "hour"
    page_view_mode: PageViewMode = "top"


@dataclass(frozen=True)
class DateRange:
    """Half-open [start, end) interval of aware datetimes."""

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


@dataclass(frozen=True)
class FunnelStepDefinition:
    """Configured funnel step. Order in the list defines the funnel."""

    name: str
    event_type: str
    category: StepCategory = "conversion"
    page_path: str | None = None


# --- Derived Accumulators ---


@dataclass
class SessionAggregate:
    """Per-session accumulator, local to one aggregation pass."""

    session_id: str
    pages: set[str] = field(default_factory=set)
    first_seen: datetime | None = None
    last_seen: datetime | None = None


@dataclass
class VisitorAggregate:
    """Per-visitor accumulator, local to one aggregation pass."""

    visitor_id: str
    sessions: set[str] = field(default_factory=set)
    events: list[AnalyticsEvent] = field(default_factory=list)
    completed_steps: set[int] = field(default_factory=set)
    pageviews: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    country_code: str | None = None
    country_name: str | None = None
    region: str | None = None
    city: str | None = None
    device_type: str | None = None
    browser_name: str | None = None
    os_name: str | None = None
    language: str | None = None

    @property
    def furthest_step_index(self) -> int | None:
        return max(self.completed_steps) if self.completed_steps else None


@dataclass
class Reconstruction:
    """Visitors and sessions rebuilt from one filtered event window."""

    visitors: dict[str, VisitorAggregate]
    sessions: dict[str, SessionAggregate]
    pageviews: int = 0


# --- Output Models ---


@dataclass(frozen=True)
class OverviewMetrics:
    """Headline KPIs."""

    unique_visitors: int
    sessions: int
    pageviews: int
    views_per_visit: float
    bounce_rate: int
    avg_visit_duration_seconds: float
    visit_duration: str

    @classmethod
    def empty(cls) -> OverviewMetrics:
        return cls(
            unique_visitors=0,
            sessions=0,
            pageviews=0,
            views_per_visit=0.0,
            bounce_rate=0,
            avg_visit_duration_seconds=0.0,
            visit_duration="0m 0s",
        )


@dataclass(frozen=True)
class TimeBucketPoint:
    """Single point in the visitor activity series."""

    label: str
    bucket_start: datetime
    unique_visitors: int


@dataclass(frozen=True)
class RollupEntry:
    """Ranked unique-visitor count for one dimension value."""

    key: str
    label: str
    unique_visitors: int
    percentage: float
    country_code: str | None = None
    country_name: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class GeographyRollups:
    countries: tuple[RollupEntry, ...] = ()
    regions: tuple[RollupEntry, ...] = ()
    cities: tuple[RollupEntry, ...] = ()


@dataclass(frozen=True)
class DeviceRollups:
    device_types: tuple[RollupEntry, ...] = ()
    browsers: tuple[RollupEntry, ...] = ()
    operating_systems: tuple[RollupEntry, ...] = ()


@dataclass(frozen=True)
class PageRollup:
    mode: PageViewMode = "top"
    entries: tuple[RollupEntry, ...] = ()


@dataclass(frozen=True)
class FunnelStepMetric:
    """Reach and conversion for one funnel step."""

    name: str
    event_type: str
    category: StepCategory
    order: int
    unique_visitors: int
    conversion_rate: float
    drop_off_rate: float
    event_count: int = 0
    page_path: str | None = None


@dataclass(frozen=True)
class FunnelSummary:
    """Whole-funnel outcome."""

    steps: tuple[FunnelStepMetric, ...] = ()
    entries: int = 0
    conversions: int = 0
    overall_conversion_rate: float = 0.0


@dataclass(frozen=True)
class InteractionEntry:
    """Click-style interaction rollup entry."""

    key: str
    count: int
    unique_visitors: int
    service_id: str | None = None
    service_name: str | None = None


@dataclass(frozen=True)
class ScrollDepthEntry:
    """Scroll-depth marker rollup entry."""

    percentage: float
    count: int
    unique_visitors: int


@dataclass(frozen=True)
class SiteInteractions:
    cta_clicks: tuple[InteractionEntry, ...] = ()
    scroll_depth: tuple[ScrollDepthEntry, ...] = ()
    navigation_clicks: tuple[InteractionEntry, ...] = ()
    service_clicks: tuple[InteractionEntry, ...] = ()


@dataclass(frozen=True)
class VisitorSummary:
    """Row of the visitors table."""

    visitor_id: str
    sessions_count: int
    pageviews: int
    events_count: int
    first_seen: datetime | None
    last_seen: datetime | None
    duration_minutes: int
    country: str
    country_code: str | None = None
    city: str | None = None
    device_type: str | None = None
    browser_name: str | None = None
    os_name: str | None = None
    language: str | None = None
    furthest_step_index: int | None = None
    furthest_step_name: str | None = None
    furthest_step_category: StepCategory | None = None


@dataclass(frozen=True)
class AggregationResult:
    """Every derived view of one aggregation pass."""

    date_range: DateRange
    filters: FilterParameters
    overview: OverviewMetrics
    time_series: tuple[TimeBucketPoint, ...]
    geography: GeographyRollups
    devices: DeviceRollups
    languages: tuple[RollupEntry, ...]
    pages: PageRollup
    funnel: FunnelSummary
    interactions: SiteInteractions
    visitors: tuple[VisitorSummary, ...] = ()
    available_countries: tuple[RollupEntry, ...] = ()
    event_count: int = 0
    pass_id: int = 0
    success: bool = True
    error: str | None = None

    @classmethod
    def empty(
        cls,
        date_range: DateRange,
        filters: FilterParameters,
        *,
        pass_id: int = 0,
        error: str | None = None,
    ) -> AggregationResult:
        """Zero/empty defaults, used when no data is available or the fetch failed."""
        return cls(
            date_range=date_range,
            filters=filters,
            overview=OverviewMetrics.empty(),
            time_series=(),
            geography=GeographyRollups(),
            devices=DeviceRollups(),
            languages=(),
            pages=PageRollup(mode=filters.page_view_mode),
            funnel=FunnelSummary(),
            interactions=SiteInteractions(),
            pass_id=pass_id,
            success=error is None,
            error=error,
        )
