# backend/tireplan/routes/staff.py
from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import staff_service
from ..services.staff_service import StaffError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..decorators import require_auth, require_app, require_store_admin


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.get("")
@require_auth
@require_app
def list_staff_route():
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404

    active_only = request.args.get("active_only", "false").lower() == "true"
    staff = staff_service.list_staff(g.current_user, store_id, active_only)
    return jsonify({"items": [s.to_dict() for s in staff], "count": len(staff)}), 200


@staff_bp.post("")
@require_auth
@require_store_admin
def add_staff_route():
    """Request body: {"store_id": int (defaults to the selected branch), "name": str}"""
    data = request.get_json(silent=True) or {}
    store_id = data.get("store_id") or g.store_id
    if store_id is None:
        return jsonify({"error": "store_id required"}), 400

    try:
        staff = staff_service.add_staff(g.current_user, store_id, data.get("name"))
        db.session.commit()
        return jsonify(staff.to_dict()), 201
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except StaffError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add staff")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.delete("/<int:staff_id>")
@require_auth
@require_store_admin
def remove_staff_route(staff_id: int):
    try:
        staff_service.remove_staff(g.current_user, staff_id)
        db.session.commit()
        return "", 204
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
