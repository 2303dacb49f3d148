"""
Session/visitor reconstruction.

Groups one filtered event window into per-visitor and per-session
accumulators in a single pass, then derives the overview KPIs and the
visitors table from them.

Invariants:
- Every event with a session id contributes to exactly one session.
- A visitor's furthest funnel step is the max completed index, never regressed
  by a later lower-index event.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from ._numbers import percentage, ratio, round_half_up
from .models import (
    PAGEVIEW_EVENT,
    AnalyticsEvent,
    FunnelStepDefinition,
    OverviewMetrics,
    Reconstruction,
    SessionAggregate,
    VisitorAggregate,
    VisitorSummary,
)

UNKNOWN_COUNTRY = "Unknown"


def is_pageview(event: AnalyticsEvent) -> bool:
    """Pageview events and any event carrying a page path both count as a pageview."""
    return event.event_type == PAGEVIEW_EVENT or bool(event.page_path)


def matches_step(event: AnalyticsEvent, step: FunnelStepDefinition) -> bool:
    """Whether an event satisfies a funnel step (event type, plus page path if qualified)."""
    if event.event_type != step.event_type:
        return False
    return step.page_path is None or event.page_path == step.page_path


def _widen(
    first: datetime | None, last: datetime | None, ts: datetime | None
) -> tuple[datetime | None, datetime | None]:
    if ts is None:
        return first, last
    if first is None or ts < first:
        first = ts
    if last is None or ts > last:
        last = ts
    return first, last


def _track_visitor(
    visitor: VisitorAggregate,
    event: AnalyticsEvent,
    steps: Sequence[FunnelStepDefinition],
) -> None:
    visitor.first_seen, visitor.last_seen = _widen(
        visitor.first_seen, visitor.last_seen, event.timestamp
    )
    if is_pageview(event):
        visitor.pageviews += 1
    if event.session_id:
        visitor.sessions.add(event.session_id)
    for index, step in enumerate(steps):
        if matches_step(event, step):
            visitor.completed_steps.add(index)
    visitor.events.append(event)

    # Last known non-null attributes win.
    for attr in (
        "country_code",
        "country_name",
        "region",
        "city",
        "device_type",
        "browser_name",
        "os_name",
        "language",
    ):
        value = getattr(event, attr)
        if value:
            setattr(visitor, attr, value)


def _track_session(session: SessionAggregate, event: AnalyticsEvent) -> None:
    session.first_seen, session.last_seen = _widen(
        session.first_seen, session.last_seen, event.timestamp
    )
    if event.page_path:
        session.pages.add(event.page_path)


def reconstruct(
    events: Iterable[AnalyticsEvent],
    steps: Sequence[FunnelStepDefinition] = (),
) -> Reconstruction:
    """
    Build visitor and session accumulators from a filtered event sequence.

    Args:
        events: Events in the active window (country filter already applied).
        steps: Funnel step definitions used to mark completed steps.

    Returns:
        Reconstruction with visitors, sessions and the total pageview count.
    """
    visitors: dict[str, VisitorAggregate] = {}
    sessions: dict[str, SessionAggregate] = {}
    pageviews = 0

    for event in events:
        if is_pageview(event):
            pageviews += 1

        if event.visitor_id:
            visitor = visitors.get(event.visitor_id)
            if visitor is None:
                visitor = visitors[event.visitor_id] = VisitorAggregate(visitor_id=event.visitor_id)
            _track_visitor(visitor, event, steps)

        if event.session_id:
            session = sessions.get(event.session_id)
            if session is None:
                session = sessions[event.session_id] = SessionAggregate(session_id=event.session_id)
            _track_session(session, event)

    return Reconstruction(visitors=visitors, sessions=sessions, pageviews=pageviews)


def bounce_rate(sessions: Iterable[SessionAggregate]) -> int:
    """Share of sessions that touched exactly one distinct page, as a whole percent."""
    session_list = list(sessions)
    bounced = sum(1 for s in session_list if len(s.pages) == 1)
    return int(percentage(bounced, len(session_list), places=0))


def average_duration_seconds(sessions: Iterable[SessionAggregate]) -> float:
    """Mean session length over sessions with at least one timestamp."""
    durations = [
        (s.last_seen - s.first_seen).total_seconds()
        for s in sessions
        if s.first_seen is not None and s.last_seen is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def format_duration(seconds: float) -> str:
    """Render seconds as '<m>m <s>s' with whole minutes and seconds."""
    minutes = int(seconds // 60)
    remainder = int(seconds - minutes * 60)
    return f"{minutes}m {remainder}s"


def compute_overview(reconstruction: Reconstruction) -> OverviewMetrics:
    """Headline KPIs for one reconstructed window."""
    sessions = list(reconstruction.sessions.values())
    session_count = len(sessions)
    avg_seconds = average_duration_seconds(sessions)

    return OverviewMetrics(
        unique_visitors=len(reconstruction.visitors),
        sessions=session_count,
        pageviews=reconstruction.pageviews,
        views_per_visit=ratio(reconstruction.pageviews, session_count),
        bounce_rate=bounce_rate(sessions),
        avg_visit_duration_seconds=round_half_up(avg_seconds, 1),
        visit_duration=format_duration(avg_seconds),
    )


def summarize_visitors(
    reconstruction: Reconstruction,
    steps: Sequence[FunnelStepDefinition] = (),
) -> tuple[VisitorSummary, ...]:
    """Visitors table rows, most recently active first."""
    rows = []
    for visitor in reconstruction.visitors.values():
        furthest = visitor.furthest_step_index
        step = steps[furthest] if furthest is not None and furthest < len(steps) else None

        duration = 0
        if visitor.first_seen is not None and visitor.last_seen is not None:
            elapsed = (visitor.last_seen - visitor.first_seen).total_seconds() / 60
            duration = int(round_half_up(elapsed))

        rows.append(
            VisitorSummary(
                visitor_id=visitor.visitor_id,
                sessions_count=len(visitor.sessions),
                pageviews=visitor.pageviews,
                events_count=len(visitor.events),
                first_seen=visitor.first_seen,
                last_seen=visitor.last_seen,
                duration_minutes=duration,
                country=visitor.country_name or visitor.country_code or UNKNOWN_COUNTRY,
                country_code=visitor.country_code,
                city=visitor.city,
                device_type=visitor.device_type,
                browser_name=visitor.browser_name,
                os_name=visitor.os_name,
                language=visitor.language,
                furthest_step_index=furthest,
                furthest_step_name=step.name if step else None,
                furthest_step_category=step.category if step else None,
            )
        )

    # Visitors without any timestamp sort last.
    rows.sort(
        key=lambda r: (r.last_seen is not None, r.last_seen.timestamp() if r.last_seen else 0.0),
        reverse=True,
    )
    return tuple(rows)
