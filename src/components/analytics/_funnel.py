"""
Funnel engine.

Computes per-step unique-visitor reach and step-to-step conversion.

Invariants:
- A visitor counts at most once per step, however often the event fired.
- Step 0 converts at 100% with no drop-off.
- For every later step, drop_off_rate == 100 - conversion_rate.
- Conversion is measured against the nearest preceding step with non-zero
  reach (step 0 when none has any), so optional zero-traffic steps do not
  poison the ratios after them.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from ._numbers import percentage, round_half_up
from ._sessions import matches_step
from .models import (
    FunnelStepDefinition,
    FunnelStepMetric,
    FunnelSummary,
    VisitorAggregate,
)


def reached_visitors(
    step: FunnelStepDefinition, visitors: Iterable[VisitorAggregate]
) -> tuple[set[str], int]:
    """Visitors with at least one event matching the step, and the matching event count."""
    reached: set[str] = set()
    event_count = 0
    for visitor in visitors:
        hits = sum(1 for event in visitor.events if matches_step(event, step))
        if hits:
            reached.add(visitor.visitor_id)
            event_count += hits
    return reached, event_count


def nearest_reached_step(reach: Sequence[int], index: int) -> int:
    """Index of the closest step before index with non-zero reach, or 0."""
    prior = index - 1
    while prior > 0 and reach[prior] == 0:
        prior -= 1
    return max(prior, 0)


def conversion_rate(reach: Sequence[int], index: int) -> float:
    """Conversion into step index, as a percentage with one decimal."""
    if index == 0:
        return 100.0
    denominator = reach[nearest_reached_step(reach, index)]
    return percentage(reach[index], denominator)


def compute_funnel(
    steps: Sequence[FunnelStepDefinition],
    visitors: Iterable[VisitorAggregate],
) -> tuple[FunnelStepMetric, ...]:
    """
    Evaluate every funnel step against the reconstructed visitors.

    Args:
        steps: Ordered step definitions; index 0 is the entry step.
        visitors: Visitors of the current pass.

    Returns:
        One metric per step, in definition order.
    """
    visitor_list = list(visitors)
    reached = [reached_visitors(step, visitor_list) for step in steps]
    reach = [len(members) for members, _ in reached]

    metrics = []
    for index, step in enumerate(steps):
        rate = conversion_rate(reach, index)
        drop_off = round_half_up(100 - rate, 1) if index > 0 else 0.0
        metrics.append(
            FunnelStepMetric(
                name=step.name,
                event_type=step.event_type,
                category=step.category,
                order=index + 1,
                unique_visitors=reach[index],
                conversion_rate=rate,
                drop_off_rate=drop_off,
                event_count=reached[index][1],
                page_path=step.page_path,
            )
        )
    return tuple(metrics)


def summarize_funnel(metrics: Sequence[FunnelStepMetric]) -> FunnelSummary:
    """Entry reach, final conversions and the end-to-end conversion rate."""
    if not metrics:
        return FunnelSummary()
    entries = metrics[0].unique_visitors
    conversions = metrics[-1].unique_visitors
    return FunnelSummary(
        steps=tuple(metrics),
        entries=entries,
        conversions=conversions,
        overall_conversion_rate=percentage(conversions, entries),
    )
