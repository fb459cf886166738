"""
User management services for authentication and session management.
"""
import logging
import re
from functools import wraps
from typing import Callable, Optional, List, Tuple

from flask import request, make_response, jsonify
from .models import UserData

logger = logging.getLogger(__name__)

SESSION_MAX_AGE = 60 * 60 * 24 * 365 * 3  # 3-year cookie
_VALID_UID = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")


class UserService:
    """Service for user authentication and session management."""

    def __init__(self, user_data_dir, admin_user_ids: List[str]):
        self.user_data_dir = user_data_dir
        self.admin_user_ids = [uid.strip() for uid in admin_user_ids]

    def get_current_user_id(self) -> Optional[str]:
        """Get the current user ID from cookies."""
        return request.cookies.get("uid")

    def is_admin_user(self, uid: str) -> bool:
        """Check if the user is an admin based on configuration."""
        return uid.strip() in self.admin_user_ids

    @staticmethod
    def is_valid_uid(uid: str) -> bool:
        """User ids double as file names, so only a safe charset is allowed."""
        return bool(_VALID_UID.match(uid or ""))

    def get_user_data(self, uid: str) -> UserData:
        """Get user data object for the given user ID."""
        if not self.is_valid_uid(uid):
            raise ValueError(f"Invalid user id: {uid!r}")
        return UserData(uid, self.user_data_dir)

    def create_user_session(self, uid: str, password: str = None):
        """Log a user in by setting the uid cookie.

        Users with a stored password must supply it.
        """
        if not self.is_valid_uid(uid):
            return jsonify({"success": False, "message": "Invalid user id"}), 400

        user_data = self.get_user_data(uid)
        if user_data.has_password() and not user_data.check_password(password):
            logger.info(f"Rejected login for {uid}: invalid password")
            return jsonify({"success": False, "message": "Invalid credentials"}), 401

        resp = make_response(jsonify({
            "success": True,
            "data": {"uid": uid, "is_admin": self.is_admin_user(uid)}
        }))
        resp.set_cookie("uid", uid, max_age=SESSION_MAX_AGE, httponly=True, samesite="Lax")
        return resp

    def require_auth_json(self) -> Tuple[Optional[str], Optional[dict]]:
        """Require authentication for JSON endpoints, return error if not authenticated."""
        uid = self.get_current_user_id()
        if not uid:
            return None, {"error": "no-uid"}
        return uid, None

    def require_admin_json(self) -> Tuple[Optional[str], Optional[dict], int]:
        """Require an admin session, returning (uid, error, status)."""
        uid, error = self.require_auth_json()
        if error:
            return None, error, 401
        if not self.is_admin_user(uid):
            return uid, {"error": "admin-required"}, 403
        return uid, None, 200

    def admin_required(self, f: Callable) -> Callable:
        """Decorator to require admin access on JSON endpoints."""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            uid, error, status = self.require_admin_json()
            if error:
                logger.warning(f"Denied admin route {request.path} for uid={uid}")
                return jsonify(error), status
            return f(*args, **kwargs)
        return decorated_function

    def set_user_password(self, uid: str, password: str) -> bool:
        """Set password for a user."""
        try:
            self.get_user_data(uid).set_password(password)
            return True
        except (ValueError, OSError):
            logger.exception(f"Failed to set password for {uid}")
            return False

    def change_user_password(self, uid: str, old_password: str, new_password: str) -> bool:
        """Change password for a user, verifying the old one when set."""
        user_data = self.get_user_data(uid)
        if user_data.has_password() and not user_data.check_password(old_password):
            return False
        return self.set_user_password(uid, new_password)
