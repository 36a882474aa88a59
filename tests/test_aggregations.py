"""
Aggregator: grouped counts and their output order.
"""

from __future__ import annotations

from aggregations import (
    UNKNOWN_LABEL,
    device_type_statistics,
    event_type_statistics,
    page_statistics,
)

from conftest import make_event


def _urls(*urls):
    return [make_event(i, url=u) for i, u in enumerate(urls)]


class TestPageStatistics:
    def test_sorted_by_count_descending(self) -> None:
        events = _urls(*(["/a"] * 3 + ["/b"] * 5 + ["/c"]))
        stats = page_statistics(events)
        assert list(stats.items()) == [("/b", 5), ("/a", 3), ("/c", 1)]

    def test_ties_keep_first_seen_order(self) -> None:
        events = _urls("/x", "/y", "/z", "/y", "/x", "/z", "/w")
        assert list(page_statistics(events)) == ["/x", "/y", "/z", "/w"]

    def test_interleaved_input(self) -> None:
        events = _urls("/c", "/a", "/b", "/a", "/b", "/b")
        assert list(page_statistics(events).items()) == [("/b", 3), ("/a", 2), ("/c", 1)]

    def test_empty(self) -> None:
        assert page_statistics([]) == {}


class TestEventTypeStatistics:
    def test_missing_type_is_counted_as_unknown(self) -> None:
        events = [make_event(1, event_type="click"), make_event(2, event_type=None)]
        assert event_type_statistics(events) == {"click": 1, "Unknown": 1}
        assert UNKNOWN_LABEL == "Unknown"

    def test_first_seen_order(self) -> None:
        events = [
            make_event(1, event_type="scroll"),
            make_event(2, event_type="click"),
            make_event(3, event_type="click"),
            make_event(4),
        ]
        assert list(event_type_statistics(events).items()) == [
            ("scroll", 1),
            ("click", 2),
            (UNKNOWN_LABEL, 1),
        ]

    def test_empty(self) -> None:
        assert event_type_statistics([]) == {}


class TestDeviceTypeStatistics:
    def test_missing_device_is_excluded(self) -> None:
        events = [make_event(1, device_type="Desktop"), make_event(2, device_type=None)]
        assert device_type_statistics(events) == {"Desktop": 1}

    def test_no_unknown_bucket(self) -> None:
        events = [make_event(1), make_event(2)]
        assert device_type_statistics(events) == {}

    def test_counts(self) -> None:
        events = [
            make_event(1, device_type="Mobile"),
            make_event(2, device_type="Desktop"),
            make_event(3, device_type="Mobile"),
        ]
        assert device_type_statistics(events) == {"Mobile": 2, "Desktop": 1}


class TestPurity:
    def test_inputs_untouched_and_functions_independent(self) -> None:
        events = [make_event(1, url="/a", device_type="Tablet", event_type="click")]
        before = list(events)
        first = (page_statistics(events), event_type_statistics(events), device_type_statistics(events))
        second = (page_statistics(events), event_type_statistics(events), device_type_statistics(events))
        assert events == before
        assert first == second == ({"/a": 1}, {"click": 1}, {"Tablet": 1})
