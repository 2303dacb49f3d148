"""
Analytics component - Event aggregation and conversion funnel.

Converts one fetched window of visitor events into every derived dashboard
view: overview KPIs, the activity series, dimensional rollups, the funnel and
the site-interaction rollups.

Invariants:
- aggregate() is pure; visitor/session maps never outlive a pass
- All views of a pass are published together, replacing the previous set
- Only the most recently started pass is ever published
- A failed fetch publishes empty/zero views plus an error notice
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import tzinfo

from ._funnel import compute_funnel, summarize_funnel
from ._interactions import DEFAULT_INTERACTION_EVENT_TYPES, aggregate_interactions
from ._range import filter_events, resolve_date_range
from ._rollups import (
    rollup_countries,
    rollup_devices,
    rollup_geography,
    rollup_languages,
    rollup_pages,
)
from ._sessions import compute_overview, reconstruct, summarize_visitors
from ._timeseries import DEFAULT_MINUTE_WINDOW, SUNDAY, build_time_series
from .models import (
    AggregationResult,
    AnalyticsEvent,
    DateRange,
    FilterParameters,
    FunnelStepDefinition,
)
from .ports import EventStoreError, EventStorePort, RulesPort, TimePort

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Analytics data could not be loaded"


# --- Default Configuration ---

DEFAULT_FUNNEL_STEPS: tuple[FunnelStepDefinition, ...] = (
    FunnelStepDefinition("Formulaire ouvert", "form_opened", "awareness"),
    FunnelStepDefinition("Démarrage du formulaire", "form_start", "awareness"),
    FunnelStepDefinition("Services sélectionnés", "services_selection_completed", "conversion"),
    FunnelStepDefinition("Documents uploadés", "documents_upload_completed", "conversion"),
    FunnelStepDefinition("Signataires complétés", "signatories_completed", "conversion"),
    FunnelStepDefinition("Rendez-vous réservé", "appointment_booked", "conversion"),
    FunnelStepDefinition(
        "Infos personnelles complétées", "personal_info_completed", "conversion"
    ),
    FunnelStepDefinition("Paiement initié", "payment_initiated", "conversion"),
    FunnelStepDefinition("Conversion (Achat)", "purchase", "conversion"),
)


@dataclass(frozen=True)
class AggregationConfig:
    """Static aggregation configuration."""

    funnel_steps: tuple[FunnelStepDefinition, ...] = DEFAULT_FUNNEL_STEPS
    week_start: int = SUNDAY
    minute_window: int = DEFAULT_MINUTE_WINDOW
    interaction_event_types: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_INTERACTION_EVENT_TYPES)
    )


DEFAULT_CONFIG = AggregationConfig()


def build_config(rules: RulesPort | None) -> AggregationConfig:
    """Build aggregation config from rules port."""
    if rules is None:
        return DEFAULT_CONFIG

    return AggregationConfig(
        funnel_steps=rules.get_funnel_steps(),
        week_start=rules.get_week_start(),
        minute_window=rules.get_minute_window(),
        interaction_event_types=rules.get_interaction_event_types(),
    )


# --- Pure Aggregation ---


def aggregate(
    events: Sequence[AnalyticsEvent],
    filters: FilterParameters,
    date_range: DateRange,
    tz: tzinfo,
    config: AggregationConfig | None = None,
) -> AggregationResult:
    """
    Compute every derived view for one fetched event window.

    Args:
        events: Events in date_range, timestamp ascending, country filter not
            yet applied.
        filters: Active dashboard filters.
        date_range: Resolved [start, end) interval the events were fetched for.
        tz: Local timezone for calendar buckets.
        config: Funnel steps and bucketing options.

    Returns:
        AggregationResult with all views recomputed from scratch.
    """
    config = config or DEFAULT_CONFIG

    # Country options come from the unfiltered window so the selector never empties itself.
    available_countries = rollup_countries(events)
    filtered = filter_events(events, country_code=filters.country_code)

    reconstruction = reconstruct(filtered, config.funnel_steps)
    funnel = summarize_funnel(compute_funnel(config.funnel_steps, reconstruction.visitors.values()))

    return AggregationResult(
        date_range=date_range,
        filters=filters,
        overview=compute_overview(reconstruction),
        time_series=build_time_series(
            filtered,
            date_range,
            filters.granularity,
            tz,
            week_start=config.week_start,
            minute_window=config.minute_window,
        ),
        geography=rollup_geography(filtered),
        devices=rollup_devices(filtered),
        languages=rollup_languages(filtered),
        pages=rollup_pages(filtered, filters.page_view_mode),
        funnel=funnel,
        interactions=aggregate_interactions(filtered, config.interaction_event_types),
        visitors=summarize_visitors(reconstruction, config.funnel_steps),
        available_countries=available_countries,
        event_count=len(filtered),
    )


# --- Pass Runner ---


class AnalyticsDashboard:
    """
    Runs aggregation passes and publishes the latest one.

    Every refresh() gets a monotonically increasing pass id. A pass that
    finishes after a newer pass has started is discarded, so a slow fetch can
    never overwrite fresher numbers.
    """

    def __init__(
        self,
        event_store: EventStorePort,
        time_port: TimePort,
        config: AggregationConfig | None = None,
    ) -> None:
        self._event_store = event_store
        self._time_port = time_port
        self._config = config or DEFAULT_CONFIG
        self._lock = threading.Lock()
        self._last_started = 0
        self._published: AggregationResult | None = None

    @property
    def latest(self) -> AggregationResult | None:
        """Most recently published result, if any."""
        with self._lock:
            return self._published

    def _begin_pass(self) -> int:
        with self._lock:
            self._last_started += 1
            return self._last_started

    def _publish(self, result: AggregationResult) -> bool:
        with self._lock:
            if result.pass_id != self._last_started:
                return False
            self._published = result
            return True

    def refresh(self, filters: FilterParameters) -> AggregationResult:
        """
        Fetch the filtered window and recompute every view.

        Returns:
            The result of this pass. It is published only if no newer pass
            started meanwhile; check ``latest`` for what the dashboard shows.
        """
        pass_id = self._begin_pass()
        tz = self._time_port.tz
        date_range = resolve_date_range(filters, self._time_port.now_utc(), tz)

        try:
            events = self._event_store.fetch_events(date_range.start, date_range.end)
        except EventStoreError as e:
            logger.warning("Analytics pass %d fetch failed: %s", pass_id, e)
            result = AggregationResult.empty(
                date_range, filters, pass_id=pass_id, error=FETCH_FAILED_MESSAGE
            )
        else:
            result = replace(
                aggregate(events, filters, date_range, tz, self._config), pass_id=pass_id
            )
            logger.info(
                "Analytics pass %d: %d events between %s and %s",
                pass_id,
                result.event_count,
                date_range.start.isoformat(),
                date_range.end.isoformat(),
            )

        if not self._publish(result):
            logger.debug("Analytics pass %d superseded, result not published", pass_id)
        return result


def run_aggregate(
    filters: FilterParameters,
    *,
    event_store: EventStorePort,
    time_port: TimePort,
    rules: RulesPort | None = None,
) -> AggregationResult:
    """
    Single-shot entry point: resolve, fetch and aggregate once.

    Args:
        filters: Active dashboard filters.
        event_store: Event store port.
        time_port: Time port supplying now and the local timezone.
        rules: Optional rules port for configuration.

    Returns:
        AggregationResult (empty with an error notice when the fetch fails).
    """
    dashboard = AnalyticsDashboard(event_store, time_port, build_config(rules))
    return dashboard.refresh(filters)
