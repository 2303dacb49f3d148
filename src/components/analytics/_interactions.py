"""
Site-interaction aggregation.

Rolls up ancillary UI events (CTA clicks, scroll-depth markers, navigation
clicks, service clicks) keyed by metadata fields. Metadata may be structured
or serialized; an unparsable payload only loses its attribution, the event is
still counted under "unknown".
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ._metadata import metadata_label, normalize_metadata
from .models import (
    AnalyticsEvent,
    InteractionEntry,
    ScrollDepthEntry,
    SiteInteractions,
)

UNKNOWN_SERVICE = "Unknown Service"

DEFAULT_INTERACTION_EVENT_TYPES: dict[str, str] = {
    "cta_click": "cta_click",
    "scroll_depth": "scroll_depth",
    "navigation_click": "navigation_click",
    "service_click": "service_click",
}


@dataclass
class _Tally:
    count: int = 0
    visitors: set[str] = field(default_factory=set)
    service_id: str | None = None
    service_name: str | None = None

    def add(self, event: AnalyticsEvent) -> None:
        self.count += 1
        if event.visitor_id:
            self.visitors.add(event.visitor_id)


def scroll_percentage(data: Mapping[str, Any]) -> float:
    """Scroll depth from metadata; 0 when absent, not numeric or not finite."""
    for key in ("scroll_percentage", "percentage"):
        value = data.get(key)
        if value is None or value == "":
            continue
        try:
            depth = float(value)
        except (TypeError, ValueError):
            return 0.0
        return depth if math.isfinite(depth) else 0.0
    return 0.0


def _clicks(tallies: dict[str, _Tally]) -> tuple[InteractionEntry, ...]:
    ranked = sorted(tallies.items(), key=lambda item: item[1].count, reverse=True)
    return tuple(
        InteractionEntry(
            key=key,
            count=tally.count,
            unique_visitors=len(tally.visitors),
            service_id=tally.service_id,
            service_name=tally.service_name,
        )
        for key, tally in ranked
    )


def aggregate_interactions(
    events: Iterable[AnalyticsEvent],
    event_types: Mapping[str, str] | None = None,
) -> SiteInteractions:
    """
    Build the four interaction rollups in one pass.

    Args:
        events: Events in the active window.
        event_types: Interaction kind -> event type (defaults to the
            cta_click / scroll_depth / navigation_click / service_click names).

    Returns:
        SiteInteractions with click rollups sorted by count descending and
        scroll depth sorted by percentage ascending.
    """
    types = dict(DEFAULT_INTERACTION_EVENT_TYPES)
    if event_types:
        types.update(event_types)

    cta: dict[str, _Tally] = {}
    scroll: dict[float, _Tally] = {}
    navigation: dict[str, _Tally] = {}
    services: dict[str, _Tally] = {}

    for event in events:
        kind = event.event_type
        if kind not in (
            types["cta_click"],
            types["scroll_depth"],
            types["navigation_click"],
            types["service_click"],
        ):
            continue

        data = normalize_metadata(event.metadata)

        if kind == types["cta_click"]:
            location = metadata_label(data, "cta_location")
            tally = cta.get(location)
            if tally is None:
                service_id = data.get("service_id")
                tally = cta[location] = _Tally(
                    service_id=str(service_id) if service_id else None
                )
            tally.add(event)
        elif kind == types["scroll_depth"]:
            depth = scroll_percentage(data)
            scroll.setdefault(depth, _Tally()).add(event)
        elif kind == types["navigation_click"]:
            destination = metadata_label(data, "destination")
            navigation.setdefault(destination, _Tally()).add(event)
        else:
            service_id = metadata_label(data, "service_id")
            tally = services.get(service_id)
            if tally is None:
                tally = services[service_id] = _Tally(
                    service_id=service_id,
                    service_name=metadata_label(data, "service_name", default=UNKNOWN_SERVICE),
                )
            tally.add(event)

    return SiteInteractions(
        cta_clicks=_clicks(cta),
        scroll_depth=tuple(
            ScrollDepthEntry(
                percentage=depth,
                count=tally.count,
                unique_visitors=len(tally.visitors),
            )
            for depth, tally in sorted(scroll.items())
        ),
        navigation_clicks=_clicks(navigation),
        service_clicks=_clicks(services),
    )

