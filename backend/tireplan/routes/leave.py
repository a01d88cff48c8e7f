# backend/tireplan/routes/leave.py
"""Staff leave book. Anyone working a branch may file; owners approve."""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import leave_service
from ..services.leave_service import LeaveError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..validation import ValidationError
from ..decorators import require_auth, require_app, require_store_admin


leave_bp = Blueprint("leave", __name__, url_prefix="/api/leave")


@leave_bp.get("")
@require_auth
@require_app
def list_leave_route():
    """Query params: store_id, date (YYYY-MM-DD), from (YYYY-MM-DD), status."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        leaves = leave_service.list_leave_requests(
            g.current_user,
            store_id,
            date=request.args.get("date"),
            from_date=request.args.get("from"),
            status=request.args.get("status"),
        )
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except LeaveError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"items": [r.to_dict() for r in leaves], "count": len(leaves)}), 200


@leave_bp.post("")
@require_auth
@require_app
def request_leave_route():
    try:
        leave = leave_service.request_leave(g.current_user, request.get_json(silent=True))
        db.session.commit()
        return jsonify(leave.to_dict()), 201
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, LeaveError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to request leave")
        return jsonify({"error": "Internal server error"}), 500


@leave_bp.patch("/<int:leave_id>/status")
@require_auth
@require_store_admin
def set_leave_status_route(leave_id: int):
    """Request body: {"status": "PENDING" | "APPROVED" | "REJECTED"}"""
    data = request.get_json(silent=True) or {}
    try:
        leave = leave_service.set_leave_status(g.current_user, leave_id, data.get("status"))
        db.session.commit()
        return jsonify(leave.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except LeaveError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update leave request %s", leave_id)
        return jsonify({"error": "Internal server error"}), 500


@leave_bp.delete("/<int:leave_id>")
@require_auth
@require_store_admin
def cancel_leave_route(leave_id: int):
    try:
        leave_service.cancel_leave(g.current_user, leave_id)
        db.session.commit()
        return "", 204
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel leave request %s", leave_id)
        return jsonify({"error": "Internal server error"}), 500
