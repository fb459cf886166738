"""
Analytics Routes

Flask routes for page-view tracking and analytics reports.
"""

import logging

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from .aggregator import AnalyticsAggregator
from .models import TrackPayload

logger = logging.getLogger(__name__)


def _validation_message(exc: ValidationError) -> str:
    """Name the first payload field that failed validation."""
    errors = exc.errors()
    field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else "payload"
    if field == "page":
        return "Page is required"
    return f"Invalid value for '{field}'"


def create_analytics_blueprint(aggregator: AnalyticsAggregator, admin_required) -> Blueprint:
    """Create the analytics blueprint.

    Args:
        aggregator: The aggregator that owns all analytics state
        admin_required: Decorator restricting a view to admin users

    Returns:
        Flask blueprint with analytics routes
    """
    bp = Blueprint('analytics', __name__, url_prefix='/api/analytics')

    def _failure(message: str, status: int):
        return jsonify({"success": False, "message": message}), status

    @bp.route('/track', methods=['POST'])
    def track_page_view():
        """Track a page view (no login required)."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _failure("No data provided", 400)

        try:
            payload = TrackPayload.model_validate(data)
        except ValidationError as exc:
            logger.debug(f"Rejected tracking payload: {exc}")
            return _failure(_validation_message(exc), 400)

        try:
            aggregator.record_page_view(
                page=payload.page,
                referrer=payload.referrer,
                user_agent=payload.userAgent or request.headers.get('User-Agent', ''),
                screen_resolution=payload.screenResolution,
                timezone=payload.timezone,
                visitor_key=request.remote_addr or "unknown",
            )
        except Exception:
            logger.exception("Track page view error")
            return _failure("Failed to track page view", 500)

        return jsonify({"success": True, "message": "Page view tracked successfully"})

    @bp.route('/overview', methods=['GET'])
    def overview():
        """Visitor and page view counters."""
        try:
            data = aggregator.get_overview().to_dict()
        except Exception:
            logger.exception("Get analytics overview error")
            return _failure("Failed to fetch analytics overview", 500)
        return jsonify({"success": True, "data": data})

    @bp.route('/pages', methods=['GET'])
    def pages():
        """Views per page."""
        try:
            data = [stat.to_dict() for stat in aggregator.get_page_stats()]
        except Exception:
            logger.exception("Get page stats error")
            return _failure("Failed to fetch page statistics", 500)
        return jsonify({"success": True, "data": data})

    @bp.route('/referrers', methods=['GET'])
    def referrers():
        """Visits per referrer."""
        try:
            data = [stat.to_dict() for stat in aggregator.get_referrer_stats()]
        except Exception:
            logger.exception("Get referrer stats error")
            return _failure("Failed to fetch referrer statistics", 500)
        return jsonify({"success": True, "data": data})

    @bp.route('/traffic-patterns', methods=['GET'])
    def traffic_patterns():
        """Daily or hourly traffic."""
        period = request.args.get('period', 'daily')
        try:
            data = [bucket.to_dict() for bucket in aggregator.get_traffic_patterns(period)]
        except Exception:
            logger.exception("Get traffic patterns error")
            return _failure("Failed to fetch traffic patterns", 500)
        return jsonify({"success": True, "data": data})

    @bp.route('/devices', methods=['GET'])
    def devices():
        """Browser, screen resolution and timezone breakdown."""
        try:
            data = aggregator.get_device_stats().to_dict()
        except Exception:
            logger.exception("Get device stats error")
            return _failure("Failed to fetch device statistics", 500)
        return jsonify({"success": True, "data": data})

    @bp.route('/reset', methods=['DELETE'])
    @admin_required
    def reset():
        """Clear all analytics (admin only)."""
        try:
            aggregator.reset()
        except Exception:
            logger.exception("Reset analytics error")
            return _failure("Failed to reset analytics", 500)
        logger.info(f"Analytics reset by {request.cookies.get('uid')}")
        return jsonify({"success": True, "message": "Analytics reset successfully"})

    return bp
