# backend/tireplan/routes/reservations.py
from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import reservation_service
from ..services.reservation_service import ReservationError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..validation import ValidationError
from ..decorators import require_auth, require_app


reservations_bp = Blueprint("reservations", __name__, url_prefix="/api/reservations")


@reservations_bp.get("")
@require_auth
@require_app
def list_reservations_route():
    """Query params: store_id, from, to (YYYY-MM-DD, inclusive)."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        reservations = reservation_service.list_reservations(
            g.current_user,
            store_id=store_id,
            date_from=request.args.get("from"),
            date_to=request.args.get("to"),
        )
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except ReservationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [r.to_dict() for r in reservations], "count": len(reservations)}), 200


@reservations_bp.post("")
@require_auth
@require_app
def create_reservation_route():
    data = request.get_json(silent=True)
    if isinstance(data, dict) and data.get("store_id") is None and g.store_id is not None:
        data["store_id"] = g.store_id

    try:
        reservation = reservation_service.create_reservation(g.current_user, data)
        db.session.commit()
        return jsonify(reservation.to_dict()), 201
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ReservationError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create reservation")
        return jsonify({"error": "Internal server error"}), 500


@reservations_bp.put("/<int:reservation_id>")
@require_auth
@require_app
def update_reservation_route(reservation_id: int):
    data = request.get_json(silent=True)
    try:
        reservation = reservation_service.update_reservation(g.current_user, reservation_id, data)
        db.session.commit()
        return jsonify(reservation.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ReservationError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update reservation")
        return jsonify({"error": "Internal server error"}), 500


@reservations_bp.post("/<int:reservation_id>/status")
@require_auth
@require_app
def set_reservation_status_route(reservation_id: int):
    data = request.get_json(silent=True) or {}
    try:
        reservation = reservation_service.set_status(g.current_user, reservation_id, data.get("status"))
        db.session.commit()
        return jsonify(reservation.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ReservationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400


@reservations_bp.get("/<int:reservation_id>/stock-check")
@require_auth
@require_app
def stock_check_route(reservation_id: int):
    try:
        reservation = reservation_service.get_reservation(g.current_user, reservation_id)
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({
        "reservation_id": reservation.id,
        "stock_status": reservation.stock_status,
        "suggested_stock_status": reservation_service.suggest_stock_status(reservation),
    }), 200


@reservations_bp.delete("/<int:reservation_id>")
@require_auth
@require_app
def delete_reservation_route(reservation_id: int):
    try:
        reservation_service.remove_reservation(g.current_user, reservation_id)
        db.session.commit()
        return "", 204
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
