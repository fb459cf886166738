import os
import time
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager
from app.analytics.factory import create_analytics_module
from app.user_management.factory import create_user_management_module

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


def create_app(config_manager: Optional[ConfigManager] = None, clock=None) -> Flask:
    """Build the Flask application.

    Args:
        config_manager: Configuration source; a fresh ConfigManager when omitted
        clock: Optional time source handed to the analytics aggregator

    Returns:
        Configured Flask app. Modules are reachable through app.extensions["modules"].
    """
    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------
    config_manager = config_manager or ConfigManager()
    app_config = config_manager.get_app_config()
    analytics_config = config_manager.get_analytics_config()
    paths_config = config_manager.get_paths_config()

    user_data_dir = Path(paths_config.user_data_dir)
    if not user_data_dir.is_absolute():
        user_data_dir = PROJECT_ROOT / user_data_dir

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,     # visitor keys come from X-Forwarded-For behind one proxy
        x_proto=1,
        x_host=1,
        x_prefix=1)

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------
    user_management_module = create_user_management_module(
        user_data_dir=user_data_dir,
        admin_user_ids=app_config.admin_user_ids
    )

    analytics_module = create_analytics_module(
        user_service=user_management_module["service"],
        history_limit=analytics_config.history_limit,
        clock=clock
    )

    app.register_blueprint(user_management_module["blueprint"])
    app.register_blueprint(analytics_module["blueprint"])

    app.extensions["modules"] = {
        "user_management": user_management_module,
        "analytics": analytics_module,
    }

    started_at = time.monotonic()

    @app.route("/api/health", methods=["GET"])
    def health():
        """Liveness probe."""
        return jsonify({
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": app_config.environment,
            "uptime": round(time.monotonic() - started_at, 3),
            "pid": os.getpid()
        })

    logger.info(
        f"Application created (environment={app_config.environment}, "
        f"history_limit={analytics_config.history_limit}, admins={len(app_config.admin_user_ids)})"
    )
    return app
