"""
User management routes for login and password handling.
"""
from flask import Blueprint, request, jsonify
from .services import UserService

MIN_PASSWORD_LENGTH = 6


def create_user_routes(user_service: UserService) -> Blueprint:
    """Create user management routes."""
    bp = Blueprint('user_management', __name__, url_prefix='/api/auth')

    @bp.route("/login", methods=["POST"])
    def login():
        """Log in and set the uid cookie."""
        data = request.get_json(silent=True) or {}
        uid = str(data.get("uid", "")).strip()
        password = str(data.get("password", "")).strip()
        return user_service.create_user_session(uid, password)

    @bp.route("/logout", methods=["POST"])
    def logout():
        """Clear the uid cookie."""
        resp = jsonify({"success": True, "message": "Logged out"})
        resp.delete_cookie("uid")
        return resp

    @bp.route("/me", methods=["GET"])
    def me():
        """Describe the current session."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        has_password = user_service.is_valid_uid(uid) and user_service.get_user_data(uid).has_password()
        return jsonify({
            "success": True,
            "data": {
                "uid": uid,
                "is_admin": user_service.is_admin_user(uid),
                "has_password": has_password
            }
        })

    @bp.route("/password", methods=["POST"])
    def set_password():
        """Set or change the current user's password."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401
        if not user_service.is_valid_uid(uid):
            return jsonify({"error": "Invalid user id"}), 400

        data = request.get_json(silent=True) or {}
        old_password = str(data.get("old_password", "")).strip()
        new_password = str(data.get("new_password", "")).strip()

        if len(new_password) < MIN_PASSWORD_LENGTH:
            return jsonify({
                "error": f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            }), 400

        if user_service.change_user_password(uid, old_password, new_password):
            return jsonify({"success": True})
        return jsonify({"error": "Invalid old password or failed to change password"}), 400

    return bp
