"""
Tests for the in-memory analytics aggregator.
"""

import threading
from datetime import datetime

import pytest

from app.analytics.aggregator import AnalyticsAggregator, classify_browser
from app.analytics.periods import TrafficPeriod


CHROME_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
EDGE_UA = CHROME_UA + " Edge/120.0"
FIREFOX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15"


class FakeClock:
    """Returns queued datetimes, repeating the last one when exhausted."""

    def __init__(self, *times):
        self._times = list(times)
        self._last = times[0] if times else datetime(2024, 1, 15, 12, 0)

    def __call__(self) -> datetime:
        if self._times:
            self._last = self._times.pop(0)
        return self._last


@pytest.fixture
def aggregator():
    return AnalyticsAggregator()


class TestCounters:
    """All-time page view and visitor counters."""

    def test_page_views_count_every_call(self, aggregator):
        for i in range(25):
            aggregator.record_page_view(page=f"/p{i % 3}", visitor_key=f"10.0.0.{i % 5}")

        assert aggregator.get_overview().total_page_views == 25

    def test_unique_visitors_with_interleaved_keys(self, aggregator):
        keys = ["a", "b", "a", "c", "b", "a", "c", "c"]
        for key in keys:
            aggregator.record_page_view(page="/", visitor_key=key)

        overview = aggregator.get_overview()
        assert overview.total_visitors == 3
        assert overview.unique_visitors == 3
        assert overview.total_visitors <= overview.total_page_views

    def test_missing_visitor_key_counts_as_one_visitor(self, aggregator):
        aggregator.record_page_view(page="/")
        aggregator.record_page_view(page="/", visitor_key=None)

        overview = aggregator.get_overview()
        assert overview.total_page_views == 2
        assert overview.total_visitors == 1

    def test_average_page_views_per_visitor(self, aggregator):
        visitors = ["v1", "v1", "v1", "v2", "v2", "v3", "v3", "v3", "v4", "v4"]
        for key in visitors:
            aggregator.record_page_view(page="/", visitor_key=key)

        overview = aggregator.get_overview()
        assert overview.average_page_views_per_visitor == 2.5
        assert overview.to_dict()["averagePageViewsPerVisitor"] == 2.5

    def test_average_rounds_to_two_decimals(self, aggregator):
        for key in ["a", "a", "b"]:
            aggregator.record_page_view(page="/", visitor_key=key)

        assert aggregator.get_overview().average_page_views_per_visitor == 1.5

        aggregator.record_page_view(page="/", visitor_key="c")
        # 4 / 3
        assert aggregator.get_overview().average_page_views_per_visitor == 1.33

    def test_average_is_zero_without_visitors(self, aggregator):
        overview = aggregator.get_overview()
        assert overview.average_page_views_per_visitor == 0
        assert overview.to_dict() == {
            "totalVisitors": 0,
            "totalPageViews": 0,
            "uniqueVisitors": 0,
            "averagePageViewsPerVisitor": 0,
        }

    def test_empty_page_is_rejected(self, aggregator):
        with pytest.raises(ValueError):
            aggregator.record_page_view(page="", visitor_key="a")

        assert aggregator.get_overview().total_page_views == 0
        assert aggregator.history == []

    @pytest.mark.parametrize("page", ["   ", "\t", "\n "])
    def test_whitespace_page_is_rejected(self, aggregator, page):
        with pytest.raises(ValueError):
            aggregator.record_page_view(page=page, visitor_key="a")

        overview = aggregator.get_overview()
        assert overview.total_page_views == 0
        assert overview.total_visitors == 0
        assert aggregator.history == []


class TestRollingWindow:
    """The capped event history."""

    def test_window_keeps_most_recent_events(self, aggregator):
        for i in range(1500):
            aggregator.record_page_view(page=f"/item/{i}", visitor_key="a")

        history = aggregator.history
        assert len(history) == 1000
        assert [e.page for e in history] == [f"/item/{i}" for i in range(500, 1500)]
        assert aggregator.get_overview().total_page_views == 1500

    def test_percentage_uses_all_time_total(self, aggregator):
        for _ in range(1200):
            aggregator.record_page_view(page="/a", visitor_key="a")

        stats = aggregator.get_page_stats()
        assert len(stats) == 1
        assert stats[0].views == 1000
        assert stats[0].percentage == pytest.approx(83.333, rel=1e-3)
        assert stats[0].to_dict()["percentage"] == "83.33"

    def test_custom_history_limit(self):
        aggregator = AnalyticsAggregator(history_limit=3)
        for page in ["/1", "/2", "/3", "/4"]:
            aggregator.record_page_view(page=page, visitor_key=page)

        assert [e.page for e in aggregator.history] == ["/2", "/3", "/4"]
        # Evicted visitors are still counted
        assert aggregator.get_overview().total_visitors == 4

    def test_invalid_history_limit(self):
        with pytest.raises(ValueError):
            AnalyticsAggregator(history_limit=0)

    def test_history_is_a_copy(self, aggregator):
        aggregator.record_page_view(page="/", visitor_key="a")
        history = aggregator.history
        history.clear()
        assert len(aggregator.history) == 1


class TestPageAndReferrerStats:
    """Grouped page and referrer reports."""

    def test_end_to_end_scenario(self, aggregator):
        aggregator.record_page_view(page="/home", visitor_key="1.1.1.1")
        aggregator.record_page_view(page="/about", visitor_key="2.2.2.2")
        aggregator.record_page_view(page="/home", visitor_key="1.1.1.1")
        aggregator.record_page_view(page="/home", visitor_key="2.2.2.2")

        assert aggregator.get_overview().to_dict() == {
            "totalVisitors": 2,
            "totalPageViews": 4,
            "uniqueVisitors": 2,
            "averagePageViewsPerVisitor": 2.0,
        }
        assert [s.to_dict() for s in aggregator.get_page_stats()] == [
            {"page": "/home", "views": 3, "percentage": "75.00"},
            {"page": "/about", "views": 1, "percentage": "25.00"},
        ]

    def test_page_ties_keep_first_seen_order(self, aggregator):
        for page in ["/b", "/a", "/c", "/a", "/b"]:
            aggregator.record_page_view(page=page, visitor_key="x")

        assert [s.page for s in aggregator.get_page_stats()] == ["/b", "/a", "/c"]

    def test_empty_referrer_reported_as_direct(self, aggregator):
        aggregator.record_page_view(page="/", referrer="", visitor_key="a")
        aggregator.record_page_view(page="/", referrer=None, visitor_key="a")
        aggregator.record_page_view(page="/", referrer="https://google.com/", visitor_key="b")

        stats = [s.to_dict() for s in aggregator.get_referrer_stats()]
        assert stats == [
            {"referrer": "Direct", "count": 2, "percentage": "66.67"},
            {"referrer": "https://google.com/", "count": 1, "percentage": "33.33"},
        ]
        # Stored events keep the raw value
        assert aggregator.history[0].referrer == ""

    def test_reports_empty_when_nothing_recorded(self, aggregator):
        assert aggregator.get_page_stats() == []
        assert aggregator.get_referrer_stats() == []
        assert aggregator.get_traffic_patterns() == []


class TestTrafficPatterns:
    """Time-bucketed traffic."""

    def test_same_hour_buckets(self):
        clock = FakeClock(datetime(2024, 1, 15, 10, 5), datetime(2024, 1, 15, 10, 55))
        aggregator = AnalyticsAggregator(clock=clock)
        aggregator.record_page_view(page="/", visitor_key="a")
        aggregator.record_page_view(page="/", visitor_key="b")

        daily = [b.to_dict() for b in aggregator.get_traffic_patterns("daily")]
        hourly = [b.to_dict() for b in aggregator.get_traffic_patterns("hourly")]

        assert daily == [{"time": "2024-01-15", "count": 2}]
        assert hourly == [{"time": "2024-01-15 10:00", "count": 2}]

    def test_buckets_sorted_chronologically_without_gaps(self):
        clock = FakeClock(
            datetime(2024, 3, 2, 9, 0),
            datetime(2024, 1, 15, 23, 59),
            datetime(2024, 1, 15, 8, 30),
            datetime(2024, 3, 2, 9, 45),
        )
        aggregator = AnalyticsAggregator(clock=clock)
        for _ in range(4):
            aggregator.record_page_view(page="/", visitor_key="a")

        assert [(b.time, b.count) for b in aggregator.get_traffic_patterns("daily")] == [
            ("2024-01-15", 2),
            ("2024-03-02", 2),
        ]
        assert [(b.time, b.count) for b in aggregator.get_traffic_patterns("hourly")] == [
            ("2024-01-15 08:00", 1),
            ("2024-01-15 23:00", 1),
            ("2024-03-02 09:00", 2),
        ]

    @pytest.mark.parametrize("period", ["weekly", "", None, "HOURLY"])
    def test_unknown_period_falls_back_to_daily(self, period):
        clock = FakeClock(datetime(2024, 1, 15, 10, 5), datetime(2024, 1, 16, 11, 0))
        aggregator = AnalyticsAggregator(clock=clock)
        aggregator.record_page_view(page="/", visitor_key="a")
        aggregator.record_page_view(page="/", visitor_key="a")

        assert [b.time for b in aggregator.get_traffic_patterns(period)] == ["2024-01-15", "2024-01-16"]

    def test_period_parsing(self):
        assert TrafficPeriod.parse("hourly") is TrafficPeriod.HOURLY
        assert TrafficPeriod.parse("daily") is TrafficPeriod.DAILY
        assert TrafficPeriod.parse("monthly") is TrafficPeriod.DAILY
        assert not TrafficPeriod.is_valid("monthly")


class TestDeviceStats:
    """Browser classification and raw device tallies."""

    def test_classification_order(self):
        assert classify_browser(EDGE_UA) == "Chrome"
        assert classify_browser("SomeAgent Edge/18.0") == "Edge"
        assert classify_browser(FIREFOX_UA) == "Firefox"
        assert classify_browser(SAFARI_UA) == "Safari"
        assert classify_browser("curl/8.0") == "Unknown"
        assert classify_browser("") == "Unknown"
        assert classify_browser(None) == "Unknown"

    def test_device_stats(self, aggregator):
        aggregator.record_page_view(page="/", user_agent=FIREFOX_UA, screen_resolution="1920x1080",
                                    timezone="Asia/Kolkata", visitor_key="a")
        aggregator.record_page_view(page="/", user_agent=CHROME_UA, screen_resolution="1366x768",
                                    visitor_key="b")
        aggregator.record_page_view(page="/", user_agent=EDGE_UA, screen_resolution="1366x768",
                                    timezone="Europe/Berlin", visitor_key="c")
        aggregator.record_page_view(page="/", visitor_key="d")

        stats = aggregator.get_device_stats().to_dict()
        assert stats["browsers"] == [
            {"browser": "Chrome", "count": 2},
            {"browser": "Firefox", "count": 1},
            {"browser": "Unknown", "count": 1},
        ]
        assert stats["screenResolutions"] == [
            {"resolution": "1366x768", "count": 2},
            {"resolution": "1920x1080", "count": 1},
        ]
        # Events without a timezone are left out rather than counted as unknown
        assert stats["timezones"] == [
            {"timezone": "Asia/Kolkata", "count": 1},
            {"timezone": "Europe/Berlin", "count": 1},
        ]

    def test_device_stats_empty(self, aggregator):
        assert aggregator.get_device_stats().to_dict() == {
            "browsers": [],
            "screenResolutions": [],
            "timezones": [],
        }


class TestReset:
    """Clearing analytics state."""

    def test_reset_is_idempotent(self, aggregator):
        for key in ["a", "b", "a"]:
            aggregator.record_page_view(page="/x", referrer="r", visitor_key=key)

        aggregator.reset()
        first = aggregator.get_overview().to_dict()
        aggregator.reset()
        second = aggregator.get_overview().to_dict()

        assert first == second == {
            "totalVisitors": 0,
            "totalPageViews": 0,
            "uniqueVisitors": 0,
            "averagePageViewsPerVisitor": 0,
        }
        assert aggregator.history == []
        assert aggregator.get_page_stats() == []

    def test_visitors_counted_again_after_reset(self, aggregator):
        aggregator.record_page_view(page="/", visitor_key="a")
        aggregator.reset()
        aggregator.record_page_view(page="/", visitor_key="a")

        overview = aggregator.get_overview()
        assert overview.total_visitors == 1
        assert overview.total_page_views == 1


class TestConcurrency:
    """Concurrent ingestion from request threads."""

    def test_parallel_ingestion_keeps_invariants(self):
        aggregator = AnalyticsAggregator(history_limit=500)

        def worker(thread_index: int):
            for i in range(200):
                aggregator.record_page_view(page=f"/t{thread_index}", visitor_key=f"key-{i % 50}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        total_page_views, total_visitors, unique_visitors, events = aggregator.snapshot()
        assert total_page_views == 1600
        assert total_visitors == unique_visitors == 50
        assert len(events) == 500
