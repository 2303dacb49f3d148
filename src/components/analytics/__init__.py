"""
Analytics component - Event aggregation and conversion funnel.
"""

from ._funnel import compute_funnel, conversion_rate, nearest_reached_step, summarize_funnel
from ._impl import DEFAULT_TIMEZONE, InMemoryEventStore, ensure_utc
from ._interactions import aggregate_interactions
from ._metadata import coerce_metadata, normalize_metadata
from ._range import filter_events, resolve_date_range
from ._rollups import (
    rollup_cities,
    rollup_countries,
    rollup_devices,
    rollup_entry_pages,
    rollup_exit_pages,
    rollup_languages,
    rollup_pages,
    rollup_regions,
    rollup_top_pages,
    rollup_unique,
)
from ._sessions import compute_overview, reconstruct, summarize_visitors
from ._timeseries import build_time_series
from .component import (
    DEFAULT_FUNNEL_STEPS,
    AggregationConfig,
    AnalyticsDashboard,
    aggregate,
    build_config,
    run_aggregate,
)
from .models import (
    AggregationResult,
    AnalyticsEvent,
    DateRange,
    DeviceRollups,
    EmptyMetadata,
    FilterParameters,
    FunnelStepDefinition,
    FunnelStepMetric,
    FunnelSummary,
    GeographyRollups,
    InteractionEntry,
    Metadata,
    OverviewMetrics,
    PageRollup,
    RawMetadata,
    RollupEntry,
    ScrollDepthEntry,
    SiteInteractions,
    StructuredMetadata,
    TimeBucketPoint,
    VisitorSummary,
)
from .ports import EventStoreError, EventStorePort, RulesPort, TimePort

__all__ = [
    # Entry points
    "aggregate",
    "run_aggregate",
    "AnalyticsDashboard",
    "AggregationConfig",
    "DEFAULT_FUNNEL_STEPS",
    "build_config",
    # Engine stages
    "aggregate_interactions",
    "build_time_series",
    "compute_funnel",
    "compute_overview",
    "conversion_rate",
    "filter_events",
    "nearest_reached_step",
    "reconstruct",
    "resolve_date_range",
    "rollup_cities",
    "rollup_countries",
    "rollup_devices",
    "rollup_entry_pages",
    "rollup_exit_pages",
    "rollup_languages",
    "rollup_pages",
    "rollup_regions",
    "rollup_top_pages",
    "rollup_unique",
    "summarize_funnel",
    "summarize_visitors",
    # Metadata
    "coerce_metadata",
    "normalize_metadata",
    "Metadata",
    "EmptyMetadata",
    "RawMetadata",
    "StructuredMetadata",
    # Input models
    "AnalyticsEvent",
    "DateRange",
    "FilterParameters",
    "FunnelStepDefinition",
    # Output models
    "AggregationResult",
    "DeviceRollups",
    "FunnelStepMetric",
    "FunnelSummary",
    "GeographyRollups",
    "InteractionEntry",
    "OverviewMetrics",
    "PageRollup",
    "RollupEntry",
    "ScrollDepthEntry",
    "SiteInteractions",
    "TimeBucketPoint",
    "VisitorSummary",
    # Ports
    "EventStoreError",
    "EventStorePort",
    "RulesPort",
    "TimePort",
    # Default adapters
    "DEFAULT_TIMEZONE",
    "InMemoryEventStore",
    "ensure_utc",
]
