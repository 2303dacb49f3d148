"""
Dimensional rollups.

One generic pass per dimension: group events by a key, collect the distinct
visitors behind each key, then rank and annotate with share of total.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from ._numbers import percentage
from .models import (
    AnalyticsEvent,
    DeviceRollups,
    GeographyRollups,
    PageRollup,
    PageViewMode,
    RollupEntry,
)

UNKNOWN_COUNTRY = "Unknown"

KeyFn = Callable[[AnalyticsEvent], str | None]


@dataclass
class _Bucket:
    label: str
    members: set[str] = field(default_factory=set)
    country_code: str | None = None
    country_name: str | None = None
    region: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _rank(buckets: dict[str, _Bucket]) -> tuple[RollupEntry, ...]:
    """Sort by member count descending (ties keep first-seen order) and add shares."""
    total = sum(len(b.members) for b in buckets.values())
    ranked = sorted(buckets.items(), key=lambda item: len(item[1].members), reverse=True)
    return tuple(
        RollupEntry(
            key=key,
            label=bucket.label,
            unique_visitors=len(bucket.members),
            percentage=percentage(len(bucket.members), total),
            country_code=bucket.country_code,
            country_name=bucket.country_name,
            region=bucket.region,
        )
        for key, bucket in ranked
    )


def rollup_unique(events: Iterable[AnalyticsEvent], key_fn: KeyFn) -> tuple[RollupEntry, ...]:
    """
    Unique visitors per key.

    Events without a visitor id or whose key is None are skipped.
    """
    buckets: dict[str, _Bucket] = {}
    for event in events:
        if not event.visitor_id:
            continue
        key = key_fn(event)
        if key is None:
            continue
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(label=key)
        bucket.members.add(event.visitor_id)
    return _rank(buckets)


# --- Key extractors ---


def country_key(event: AnalyticsEvent) -> str | None:
    if not event.country_code:
        return None
    return event.country_name or event.country_code


def device_type_key(event: AnalyticsEvent) -> str | None:
    value = _clean(event.device_type)
    return value.lower() if value else None


def browser_key(event: AnalyticsEvent) -> str | None:
    return _clean(event.browser_name)


def os_key(event: AnalyticsEvent) -> str | None:
    return _clean(event.os_name)


def language_key(event: AnalyticsEvent) -> str | None:
    value = _clean(event.language)
    return value.lower() if value else None


def page_key(event: AnalyticsEvent) -> str | None:
    return event.page_path or None


# --- Geography ---


def rollup_countries(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    """Countries keyed by name (falling back to code); events without a code are skipped."""
    buckets: dict[str, _Bucket] = {}
    for event in events:
        if not event.visitor_id:
            continue
        key = country_key(event)
        if key is None:
            continue
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(
                label=key,
                country_code=event.country_code,
                country_name=event.country_name,
            )
        bucket.members.add(event.visitor_id)
    return _rank(buckets)


def _rollup_place(
    events: Iterable[AnalyticsEvent], attr: str
) -> tuple[RollupEntry, ...]:
    """Region or city rollup on a (country_code, name) composite key."""
    buckets: dict[str, _Bucket] = {}
    for event in events:
        if not event.visitor_id:
            continue
        name = _clean(getattr(event, attr))
        if name is None:
            continue
        key = f"{event.country_code or UNKNOWN_COUNTRY}_{name}"
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(
                label=name,
                country_code=event.country_code,
                country_name=event.country_name,
                region=_clean(event.region) if attr == "city" else name,
            )
        bucket.members.add(event.visitor_id)
    return _rank(buckets)


def rollup_regions(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    return _rollup_place(events, "region")


def rollup_cities(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    return _rollup_place(events, "city")


def rollup_geography(events: Sequence[AnalyticsEvent]) -> GeographyRollups:
    return GeographyRollups(
        countries=rollup_countries(events),
        regions=rollup_regions(events),
        cities=rollup_cities(events),
    )


# --- Devices / languages ---


def rollup_devices(events: Sequence[AnalyticsEvent]) -> DeviceRollups:
    return DeviceRollups(
        device_types=rollup_unique(events, device_type_key),
        browsers=rollup_unique(events, browser_key),
        operating_systems=rollup_unique(events, os_key),
    )


def rollup_languages(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    return rollup_unique(events, language_key)


# --- Pages ---


def _session_boundary_pages(
    events: Iterable[AnalyticsEvent], *, last: bool
) -> tuple[RollupEntry, ...]:
    """
    Entry (first) or exit (last) page of each session, counted in sessions.

    Events without a timestamp cannot be ordered and are ignored.
    """
    timed = [e for e in events if e.timestamp is not None and e.session_id and e.page_path]
    timed.sort(key=lambda e: e.timestamp, reverse=last)  # type: ignore[arg-type, return-value]

    seen_sessions: set[str] = set()
    buckets: dict[str, _Bucket] = {}
    for event in timed:
        session_id = event.session_id
        path = event.page_path
        if session_id is None or path is None or session_id in seen_sessions:
            continue
        seen_sessions.add(session_id)
        bucket = buckets.get(path)
        if bucket is None:
            bucket = buckets[path] = _Bucket(label=path)
        bucket.members.add(session_id)
    return _rank(buckets)


def rollup_entry_pages(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    return _session_boundary_pages(events, last=False)


def rollup_exit_pages(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    return _session_boundary_pages(events, last=True)


def rollup_top_pages(events: Iterable[AnalyticsEvent]) -> tuple[RollupEntry, ...]:
    return rollup_unique(events, page_key)


def rollup_pages(events: Sequence[AnalyticsEvent], mode: PageViewMode) -> PageRollup:
    """Pages rollup for the selected page-view mode."""
    if mode == "entry":
        entries = rollup_entry_pages(events)
    elif mode == "exit":
        entries = rollup_exit_pages(events)
    elif mode == "top":
        entries = rollup_top_pages(events)
    else:
        msg = f"Unknown page view mode: {mode}"
        raise ValueError(msg)
    return PageRollup(mode=mode, entries=entries)
