"""
Data Models for Analytics

Defines the page-view event record, the incoming tracking payload and the
report structures returned by the aggregator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _format_percentage(value: float) -> str:
    return f"{value:.2f}"


class TrackPayload(BaseModel):
    """Payload posted by the browser-side tracker."""

    page: str = Field(description="Request path as reported by the client")
    referrer: Optional[str] = Field(default="", description="document.referrer, empty for direct visits")
    userAgent: Optional[str] = Field(default=None, description="navigator.userAgent")
    screenResolution: Optional[str] = Field(default="", description="Screen size such as '1920x1080'")
    timezone: Optional[str] = Field(default="", description="IANA timezone reported by the browser")

    @field_validator("page")
    @classmethod
    def page_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("page must not be empty")
        return value


@dataclass(frozen=True)
class PageViewEvent:
    """A single recorded page view."""

    page: str
    visitor_key: str
    user_agent: str
    referrer: str
    screen_resolution: str
    timezone: str
    timestamp: datetime


@dataclass
class Overview:
    """All-time counters."""

    total_visitors: int = 0
    total_page_views: int = 0
    unique_visitors: int = 0
    average_page_views_per_visitor: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalVisitors": self.total_visitors,
            "totalPageViews": self.total_page_views,
            "uniqueVisitors": self.unique_visitors,
            "averagePageViewsPerVisitor": self.average_page_views_per_visitor,
        }


@dataclass
class PageStat:
    """View count for one page within the rolling window."""

    page: str
    views: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "views": self.views,
            "percentage": _format_percentage(self.percentage),
        }


@dataclass
class ReferrerStat:
    """Visit count for one referrer within the rolling window."""

    referrer: str
    count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "referrer": self.referrer,
            "count": self.count,
            "percentage": _format_percentage(self.percentage),
        }


@dataclass
class TrafficBucket:
    """Number of page views falling in one day or hour."""

    time: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "count": self.count}


@dataclass
class BrowserCount:
    browser: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"browser": self.browser, "count": self.count}


@dataclass
class ResolutionCount:
    resolution: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"resolution": self.resolution, "count": self.count}


@dataclass
class TimezoneCount:
    timezone: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"timezone": self.timezone, "count": self.count}


@dataclass
class DeviceStats:
    """Browser, screen resolution and timezone tallies."""

    browsers: List[BrowserCount] = field(default_factory=list)
    screen_resolutions: List[ResolutionCount] = field(default_factory=list)
    timezones: List[TimezoneCount] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "browsers": [b.to_dict() for b in self.browsers],
            "screenResolutions": [r.to_dict() for r in self.screen_resolutions],
            "timezones": [t.to_dict() for t in self.timezones],
        }
