"""
Analytics Module

In-memory page-view tracking and reporting for the portfolio site.
"""

from .aggregator import AnalyticsAggregator, classify_browser
from .factory import create_analytics_module
from .periods import TrafficPeriod

__all__ = ["AnalyticsAggregator", "TrafficPeriod", "classify_browser", "create_analytics_module"]
