"""
Traffic Periods

Bucket granularities accepted by the traffic pattern report.
"""

from enum import Enum
from typing import Optional


class TrafficPeriod(Enum):
    """Granularity used to bucket page views over time."""

    DAILY = "daily"
    HOURLY = "hourly"

    @property
    def bucket_format(self) -> str:
        """strftime pattern producing the bucket label."""
        if self is TrafficPeriod.HOURLY:
            return "%Y-%m-%d %H:00"
        return "%Y-%m-%d"

    @classmethod
    def is_valid(cls, period: str) -> bool:
        """Check if a period string is one of the known periods."""
        try:
            cls(period)
            return True
        except ValueError:
            return False

    @classmethod
    def parse(cls, period: Optional[str]) -> "TrafficPeriod":
        """Resolve a period string, falling back to DAILY for anything unknown."""
        if period is not None and cls.is_valid(period):
            return cls(period)
        return cls.DAILY
