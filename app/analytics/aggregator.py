"""
Analytics Aggregator

In-memory page-view tracking. Keeps all-time page view and visitor counters
plus a rolling window of the most recent events, from which the page,
referrer, traffic pattern and device reports are computed.
"""

import logging
import threading
from collections import Counter, deque
from datetime import datetime
from typing import Callable, Deque, List, Optional, Set, Tuple

from .models import (
    BrowserCount,
    DeviceStats,
    Overview,
    PageStat,
    PageViewEvent,
    ReferrerStat,
    ResolutionCount,
    TimezoneCount,
    TrafficBucket,
)
from .periods import TrafficPeriod

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 1000
DIRECT_REFERRER = "Direct"
UNKNOWN_BROWSER = "Unknown"

# Checked top to bottom, first match wins. Edge and most Chromium user agents
# also contain "Chrome", so they are reported as Chrome.
BROWSER_SIGNATURES: Tuple[Tuple[str, str], ...] = (
    ("Chrome", "Chrome"),
    ("Firefox", "Firefox"),
    ("Safari", "Safari"),
    ("Edge", "Edge"),
)


def classify_browser(user_agent: Optional[str]) -> str:
    """Map a raw user agent string to a browser label."""
    if not user_agent:
        return UNKNOWN_BROWSER
    for signature, label in BROWSER_SIGNATURES:
        if signature in user_agent:
            return label
    return UNKNOWN_BROWSER


def _percentage(count: int, total: int) -> float:
    if total == 0:
        return 0.0
    return count / total * 100


class AnalyticsAggregator:
    """Process-wide page-view aggregator.

    All state is guarded by a single lock. Readers copy the counters and the
    window under the lock and aggregate outside it.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the aggregator.

        Args:
            history_limit: Number of most recent events kept for windowed reports
            clock: Returns the current server-local time (defaults to datetime.now)
        """
        if history_limit < 1:
            raise ValueError(f"history_limit must be positive, got {history_limit}")
        self._clock = clock or datetime.now
        self._lock = threading.Lock()

        self._total_page_views = 0
        self._total_visitors = 0
        # Never trimmed, so total_visitors stays a true cumulative count
        self._seen_visitor_keys: Set[str] = set()
        self._history: Deque[PageViewEvent] = deque(maxlen=history_limit)

    @property
    def history(self) -> List[PageViewEvent]:
        """Events in the rolling window, oldest first."""
        with self._lock:
            return list(self._history)

    def record_page_view(
        self,
        page: str,
        referrer: Optional[str] = "",
        user_agent: Optional[str] = "",
        screen_resolution: Optional[str] = "",
        timezone: Optional[str] = "",
        visitor_key: Optional[str] = "",
    ) -> PageViewEvent:
        """Record one page view.

        Args:
            page: Path that was viewed, must contain non-whitespace characters
            referrer: Referring URL, empty for direct visits
            user_agent: Raw user agent string
            screen_resolution: Screen size reported by the browser
            timezone: Timezone reported by the browser
            visitor_key: Network-address-derived visitor identifier

        Returns:
            The recorded event

        Raises:
            ValueError: If page is empty or whitespace only
        """
        if not page or not page.strip():
            raise ValueError("page is required to record a page view")

        visitor_key = visitor_key or ""

        with self._lock:
            self._total_page_views += 1

            if visitor_key not in self._seen_visitor_keys:
                self._seen_visitor_keys.add(visitor_key)
                self._total_visitors += 1

            event = PageViewEvent(
                page=page,
                visitor_key=visitor_key,
                user_agent=user_agent or "",
                referrer=referrer or "",
                screen_resolution=screen_resolution or "",
                timezone=timezone or "",
                timestamp=self._clock(),
            )
            # deque(maxlen=...) drops from the left on overflow
            self._history.append(event)

        logger.debug(f"Recorded page view: page={page}")
        return event

    def snapshot(self) -> Tuple[int, int, int, List[PageViewEvent]]:
        """Consistent copy of (total_page_views, total_visitors, unique_visitors, events)."""
        with self._lock:
            return (
                self._total_page_views,
                self._total_visitors,
                len(self._seen_visitor_keys),
                list(self._history),
            )

    def get_overview(self) -> Overview:
        """All-time page view and visitor counters."""
        total_page_views, total_visitors, unique_visitors, _ = self.snapshot()

        average = 0
        if unique_visitors > 0:
            average = round(total_page_views / unique_visitors, 2)

        return Overview(
            total_visitors=total_visitors,
            total_page_views=total_page_views,
            unique_visitors=unique_visitors,
            average_page_views_per_visitor=average,
        )

    def get_page_stats(self) -> List[PageStat]:
        """Views per page within the window, most viewed first.

        Percentages are relative to the all-time page view total, so they sum
        to less than 100 once older events have left the window.
        """
        total_page_views, _, _, events = self.snapshot()
        page_counter = Counter(event.page for event in events)
        return [
            PageStat(page=page, views=views, percentage=_percentage(views, total_page_views))
            for page, views in page_counter.most_common()
        ]

    def get_referrer_stats(self) -> List[ReferrerStat]:
        """Visits per referrer within the window, direct visits under 'Direct'."""
        total_page_views, _, _, events = self.snapshot()
        referrer_counter = Counter(event.referrer or DIRECT_REFERRER for event in events)
        return [
            ReferrerStat(referrer=referrer, count=count, percentage=_percentage(count, total_page_views))
            for referrer, count in referrer_counter.most_common()
        ]

    def get_traffic_patterns(self, period: Optional[str] = "daily") -> List[TrafficBucket]:
        """Page views bucketed by day or hour in server-local time.

        Args:
            period: 'daily' or 'hourly'; anything else is treated as 'daily'

        Returns:
            Buckets in chronological order, empty buckets omitted
        """
        traffic_period = TrafficPeriod.parse(period)
        _, _, _, events = self.snapshot()

        bucket_counter = Counter(
            event.timestamp.strftime(traffic_period.bucket_format) for event in events
        )
        # Zero-padded labels sort chronologically as strings
        return [
            TrafficBucket(time=time, count=count)
            for time, count in sorted(bucket_counter.items())
        ]

    def get_device_stats(self) -> DeviceStats:
        """Browser, screen resolution and timezone tallies for the window."""
        _, _, _, events = self.snapshot()

        browser_counter = Counter()
        resolution_counter = Counter()
        timezone_counter = Counter()

        for event in events:
            browser_counter[classify_browser(event.user_agent)] += 1
            if event.screen_resolution:
                resolution_counter[event.screen_resolution] += 1
            if event.timezone:
                timezone_counter[event.timezone] += 1

        return DeviceStats(
            browsers=[
                BrowserCount(browser=browser, count=count)
                for browser, count in browser_counter.most_common()
            ],
            screen_resolutions=[
                ResolutionCount(resolution=resolution, count=count)
                for resolution, count in resolution_counter.most_common()
            ],
            timezones=[
                TimezoneCount(timezone=tz, count=count)
                for tz, count in timezone_counter.most_common()
            ],
        )

    def reset(self) -> None:
        """Drop all events, visitor keys and counters."""
        with self._lock:
            self._total_page_views = 0
            self._total_visitors = 0
            self._seen_visitor_keys.clear()
            self._history.clear()

        logger.info("Analytics state reset")
