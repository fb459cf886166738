"""
Factory for creating the analytics module.
"""
from datetime import datetime
from typing import Callable, Optional

from .aggregator import AnalyticsAggregator, DEFAULT_HISTORY_LIMIT
from .routes import create_analytics_blueprint


def create_analytics_module(
    user_service,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
    clock: Optional[Callable[[], datetime]] = None
) -> dict:
    """Create analytics module with service and routes.

    Args:
        user_service: User service used to gate admin-only routes
        history_limit: Size of the rolling event window
        clock: Optional time source, mainly for tests

    Returns:
        Dictionary containing the service and blueprint
    """
    aggregator = AnalyticsAggregator(history_limit=history_limit, clock=clock)

    blueprint = create_analytics_blueprint(
        aggregator=aggregator,
        admin_required=user_service.admin_required
    )

    return {
        "service": aggregator,
        "blueprint": blueprint
    }
