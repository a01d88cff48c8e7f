# backend/tireplan/routes/auth.py
"""
Login, logout and the session phase machine.

Flow for an owner:
    POST /login          -> phase STORE_SELECT, effective role STAFF
    POST /select-store   -> phase APP at one branch or "ALL"
    POST /unlock         -> effective role STORE_ADMIN (password re-check)
    POST /lock           -> back to STAFF
    POST /leave-store    -> back to STORE_SELECT
The super-admin lands directly in phase SUPER_ADMIN.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import auth_service, session_service
from ..services.auth_service import AuthError
from ..services.session_service import SessionError
from ..services.scope_service import visible_stores
from ..decorators import require_auth, require_store_admin, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _context_payload(context) -> dict:
    data = context.to_dict()
    data["stores"] = [
        s.to_dict() for s in visible_stores(context.identity).all()
    ] if not context.identity.is_super_admin else []
    return data


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with login code and password.

    Request body: {"user_id": "250001", "password": "1234"}
    Returns the token plus the session context. Owners receive their
    branches for the store picker.
    """
    try:
        data = request.get_json(silent=True) or {}
        user_id = data.get("user_id") or data.get("id")
        password = data.get("password")

        if not all([user_id, password]):
            return jsonify({"error": "user_id and password required"}), 400

        user = auth_service.authenticate(str(user_id), str(password))
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        _, token = session_service.create_session(user)
        context = session_service.validate_session(token)

        return jsonify({
            "token": token,
            "session": _context_payload(context),
            "message": "Login successful",
        }), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(_context_payload(g.session_context)), 200


@auth_bp.post("/select-store")
@require_auth
def select_store_route():
    """Request body: {"store_id": 3} or {"store_id": "ALL"}"""
    data = request.get_json(silent=True) or {}
    if "store_id" not in data:
        return jsonify({"error": "store_id required"}), 400
    try:
        context = session_service.select_store(g.session_context, data.get("store_id"))
        return jsonify(_context_payload(context)), 200
    except SessionError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400


@auth_bp.post("/unlock")
@require_auth
def unlock_route():
    data = request.get_json(silent=True) or {}
    try:
        context = session_service.unlock_admin(g.session_context, data.get("password") or "")
        return jsonify(_context_payload(context)), 200
    except SessionError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403


@auth_bp.post("/lock")
@require_auth
def lock_route():
    try:
        context = session_service.lock_admin(g.session_context)
        return jsonify(_context_payload(context)), 200
    except SessionError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400


@auth_bp.post("/leave-store")
@require_auth
def leave_store_route():
    try:
        context = session_service.leave_store(g.session_context)
        return jsonify(_context_payload(context)), 200
    except SessionError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400


@auth_bp.post("/password")
@require_auth
@require_store_admin
def change_password_route():
    """
    Request body: {"current_password": str, "new_password": str, "confirm_password": str?}
    """
    data = request.get_json(silent=True) or {}
    new_password = data.get("new_password") or ""
    confirm = data.get("confirm_password")
    if confirm is not None and confirm != new_password:
        return jsonify({"error": "New passwords do not match"}), 400

    try:
        auth_service.change_password(g.current_user, data.get("current_password") or "", new_password)
        db.session.commit()
        return jsonify({"message": "Password changed"}), 200
    except AuthError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
