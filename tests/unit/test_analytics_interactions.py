"""
Site-interaction aggregation and metadata normalization tests.
"""

import logging

import pytest

from src.components.analytics import (
    EmptyMetadata,
    RawMetadata,
    StructuredMetadata,
    aggregate_interactions,
    coerce_metadata,
    normalize_metadata,
)
from src.components.analytics._interactions import scroll_percentage
from tests.factories import make_event


class TestMetadata:
    def test_coerce_mapping(self) -> None:
        assert coerce_metadata({"a": 1}) == StructuredMetadata(data={"a": 1})

    def test_coerce_string(self) -> None:
        assert coerce_metadata('{"a": 1}') == RawMetadata(text='{"a": 1}')

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_coerce_empty(self, value) -> None:
        assert isinstance(coerce_metadata(value), EmptyMetadata)

    def test_normalize_raw_json(self) -> None:
        assert normalize_metadata(RawMetadata('{"cta_location": "hero"}')) == {
            "cta_location": "hero"
        }

    def test_normalize_invalid_json_is_empty(self, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="src.components.analytics._metadata"):
            assert normalize_metadata(RawMetadata("not json")) == {}
        assert "Unparsable" in caplog.text

    def test_normalize_deeply_nested_json_is_empty(self) -> None:
        nested = "[" * 100_000 + "]" * 100_000
        assert normalize_metadata(RawMetadata(nested)) == {}

    def test_normalize_non_object_json_is_empty(self) -> None:
        assert normalize_metadata(RawMetadata("[1, 2]")) == {}

    def test_normalize_empty(self) -> None:
        assert normalize_metadata(EmptyMetadata()) == {}


class TestScrollPercentage:
    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            ({"scroll_percentage": 50}, 50.0),
            ({"percentage": "75"}, 75.0),
            ({"scroll_percentage": "lots"}, 0.0),
            ({"scroll_percentage": "NaN"}, 0.0),
            ({"scroll_percentage": "inf"}, 0.0),
            ({"percentage": float("-inf")}, 0.0),
            ({}, 0.0),
        ],
    )
    def test_values(self, data, expected) -> None:
        assert scroll_percentage(data) == expected


def interaction(event_type, visitor_id, metadata=None):
    return make_event(event_type, visitor_id=visitor_id, metadata=coerce_metadata(metadata))


class TestAggregateInteractions:
    def test_unparsable_cta_metadata_lands_in_unknown(self) -> None:
        events = [
            interaction("cta_click", "a", "not json"),
            interaction("cta_click", "b", {"cta_location": "hero", "service_id": "svc-1"}),
            interaction("cta_click", "c", '{"cta_location": "hero"}'),
        ]
        result = aggregate_interactions(events)
        assert [(e.key, e.count) for e in result.cta_clicks] == [("hero", 2), ("unknown", 1)]
        assert result.cta_clicks[0].service_id == "svc-1"

    def test_scroll_depth_sorted_ascending(self) -> None:
        events = [
            interaction("scroll_depth", "a", {"scroll_percentage": 75}),
            interaction("scroll_depth", "a", {"scroll_percentage": 25}),
            interaction("scroll_depth", "b", {"scroll_percentage": 25}),
            interaction("scroll_depth", "c"),
        ]
        result = aggregate_interactions(events)
        assert [(e.percentage, e.count, e.unique_visitors) for e in result.scroll_depth] == [
            (0.0, 1, 1),
            (25.0, 2, 2),
            (75.0, 1, 1),
        ]

    def test_non_finite_scroll_depth_shares_the_zero_bucket(self) -> None:
        events = [
            interaction("scroll_depth", visitor, {"scroll_percentage": "NaN"})
            for visitor in ("a", "b", "c")
        ]
        result = aggregate_interactions(events)
        assert [(e.percentage, e.count, e.unique_visitors) for e in result.scroll_depth] == [
            (0.0, 3, 3),
        ]

    def test_navigation_sorted_by_count(self) -> None:
        events = [
            interaction("navigation_click", "a", {"destination": "/faq"}),
            interaction("navigation_click", "a", {"destination": "/tarifs"}),
            interaction("navigation_click", "b", {"destination": "/tarifs"}),
        ]
        result = aggregate_interactions(events)
        assert [(e.key, e.count, e.unique_visitors) for e in result.navigation_clicks] == [
            ("/tarifs", 2, 2),
            ("/faq", 1, 1),
        ]

    def test_service_clicks_default_name(self) -> None:
        events = [
            interaction(
                "service_click", "a", {"service_id": "apostille", "service_name": "Apostille"}
            ),
            interaction("service_click", "b", {"service_id": "poa"}),
        ]
        result = aggregate_interactions(events)
        names = {e.key: e.service_name for e in result.service_clicks}
        assert names == {"apostille": "Apostille", "poa": "Unknown Service"}

    def test_custom_event_type_names(self) -> None:
        events = [interaction("cta", "a", {"cta_location": "x"})]
        result = aggregate_interactions(events, {"cta_click": "cta"})
        assert result.cta_clicks[0].key == "x"

    def test_other_events_ignored(self) -> None:
        result = aggregate_interactions([make_event("pageview", visitor_id="a")])
        assert result.cta_clicks == ()
        assert result.scroll_depth == ()
