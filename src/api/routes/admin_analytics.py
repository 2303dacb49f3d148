"""
Admin Analytics API.

Serves the notary admin dashboard: one aggregation pass per request over the
selected window, plus the configured funnel definition.

Query parameters mirror the dashboard filter bar:
- date_filter: today, yesterday, last7days, last30days, custom
- start_date / end_date: calendar dates (YYYY-MM-DD) for custom ranges
- country: ISO country code, or "all"
- granularity: minute, hour, day, week
- page_view_mode: top, entry, exit
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from src.api.deps import get_dashboard, get_rules_adapter
from src.components.analytics import (
    AggregationResult,
    AnalyticsDashboard,
    FilterParameters,
)
from src.components.analytics.models import DATE_FILTERS, GRANULARITIES, PAGE_VIEW_MODES
from src.rules.models import RulesAdapter

router = APIRouter()


# --- Response Models ---


class DateRangeResponse(BaseModel):
    start: datetime
    end: datetime


class FiltersResponse(BaseModel):
    date_filter: str
    custom_start: date | str | None = None
    custom_end: date | str | None = None
    country_code: str | None = None
    granularity: str
    page_view_mode: str


class OverviewResponse(BaseModel):
    """Headline KPIs."""

    unique_visitors: int
    sessions: int
    pageviews: int
    views_per_visit: float
    bounce_rate: int
    avg_visit_duration_seconds: float
    visit_duration: str


class TimeBucketResponse(BaseModel):
    label: str
    bucket_start: datetime
    unique_visitors: int


class RollupEntryResponse(BaseModel):
    key: str
    label: str
    unique_visitors: int
    percentage: float
    country_code: str | None = None
    country_name: str | None = None
    region: str | None = None


class GeographyResponse(BaseModel):
    countries: list[RollupEntryResponse]
    regions: list[RollupEntryResponse]
    cities: list[RollupEntryResponse]


class DevicesResponse(BaseModel):
    device_types: list[RollupEntryResponse]
    browsers: list[RollupEntryResponse]
    operating_systems: list[RollupEntryResponse]


class PagesResponse(BaseModel):
    mode: str
    entries: list[RollupEntryResponse]


class FunnelStepResponse(BaseModel):
    name: str
    event_type: str
    category: str
    order: int
    unique_visitors: int
    conversion_rate: float
    drop_off_rate: float
    event_count: int
    page_path: str | None = None


class FunnelResponse(BaseModel):
    steps: list[FunnelStepResponse]
    entries: int
    conversions: int
    overall_conversion_rate: float


class InteractionEntryResponse(BaseModel):
    key: str
    count: int
    unique_visitors: int
    service_id: str | None = None
    service_name: str | None = None


class ScrollDepthResponse(BaseModel):
    percentage: float
    count: int
    unique_visitors: int


class InteractionsResponse(BaseModel):
    cta_clicks: list[InteractionEntryResponse]
    scroll_depth: list[ScrollDepthResponse]
    navigation_clicks: list[InteractionEntryResponse]
    service_clicks: list[InteractionEntryResponse]


class VisitorResponse(BaseModel):
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
    furthest_step_category: str | None = None


class DashboardResponse(BaseModel):
    """Full dashboard payload for one aggregation pass."""

    date_range: DateRangeResponse
    filters: FiltersResponse
    overview: OverviewResponse
    time_series: list[TimeBucketResponse]
    geography: GeographyResponse
    devices: DevicesResponse
    languages: list[RollupEntryResponse]
    pages: PagesResponse
    funnel: FunnelResponse
    interactions: InteractionsResponse
    visitors: list[VisitorResponse]
    available_countries: list[RollupEntryResponse]
    event_count: int
    pass_id: int
    success: bool
    error: str | None = None
    stale: bool = False


class FunnelStepDefinitionResponse(BaseModel):
    order: int
    name: str
    event_type: str
    category: str
    page_path: str | None = None


class FunnelStepsResponse(BaseModel):
    steps: list[FunnelStepDefinitionResponse]


# --- Helper Functions ---


def parse_choice(value: str, choices: tuple[str, ...], label: str) -> str:
    """Validate an enumerated query parameter (case-insensitive)."""
    normalized = value.strip().lower()
    if normalized not in choices:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label}: {value}. Must be one of: {', '.join(choices)}",
        )
    return normalized


def to_response(result: AggregationResult, *, stale: bool = False) -> DashboardResponse:
    response = DashboardResponse.model_validate(result, from_attributes=True)
    response.stale = stale
    return response


# --- Routes ---


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard_view(
    date_filter: str | None = Query(None, description="Preset range or 'custom'"),
    start_date: str | None = Query(None, description="Custom range start (YYYY-MM-DD)"),
    end_date: str | None = Query(None, description="Custom range end (YYYY-MM-DD)"),
    country: str | None = Query(None, description="Country code, or 'all'"),
    granularity: str | None = Query(None, description="minute, hour, day or week"),
    page_view_mode: str = Query("top", description="top, entry or exit"),
    dashboard: AnalyticsDashboard = Depends(get_dashboard),
    rules: RulesAdapter = Depends(get_rules_adapter),
) -> DashboardResponse:
    """
    Run one aggregation pass and return every dashboard view.

    Unparsable custom dates fall back to today. A failed event fetch still
    answers 200 with success=false, zeroed views and an error notice.
    """
    filters = FilterParameters(
        date_filter=parse_choice(  # type: ignore[arg-type]
            date_filter or rules.get_default_date_filter(), DATE_FILTERS, "date_filter"
        ),
        custom_start=start_date,
        custom_end=end_date,
        country_code=country,
        granularity=parse_choice(  # type: ignore[arg-type]
            granularity or rules.get_default_granularity(), GRANULARITIES, "granularity"
        ),
        page_view_mode=parse_choice(  # type: ignore[arg-type]
            page_view_mode, PAGE_VIEW_MODES, "page_view_mode"
        ),
    )

    result = dashboard.refresh(filters)
    latest = dashboard.latest
    return to_response(result, stale=latest is None or latest.pass_id != result.pass_id)


@router.get("/latest", response_model=DashboardResponse)
def get_latest_view(
    dashboard: AnalyticsDashboard = Depends(get_dashboard),
) -> DashboardResponse:
    """Return the most recently published pass without recomputing."""
    latest = dashboard.latest
    if latest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No analytics pass has been published yet",
        )
    return to_response(latest)


@router.get("/funnel/steps", response_model=FunnelStepsResponse)
def get_funnel_steps(
    rules: RulesAdapter = Depends(get_rules_adapter),
) -> FunnelStepsResponse:
    """Configured funnel steps, in order."""
    return FunnelStepsResponse(
        steps=[
            FunnelStepDefinitionResponse(
                order=i + 1,
                name=step.name,
                event_type=step.event_type,
                category=step.category,
                page_path=step.page_path,
            )
            for i, step in enumerate(rules.get_funnel_steps())
        ]
    )
