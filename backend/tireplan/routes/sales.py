# backend/tireplan/routes/sales.py
"""
Register and sales history endpoints.

Sales are never deleted; POST /<id>/cancel flags them instead.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import sales_service
from ..services.sales_service import SaleError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..decorators import require_auth, require_app


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_error(e: SaleError):
    body = {"error": str(e)}
    if e.details:
        body["details"] = e.details
    return jsonify(body), 400


@sales_bp.get("")
@require_auth
@require_app
def list_sales_route():
    """
    Query params: store_id, payment_method, date (YYYY-MM-DD), q,
    include_canceled (default true).
    """
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        include_canceled = request.args.get("include_canceled", "true").lower() != "false"
        sales = sales_service.list_sales(
            g.current_user,
            store_id=store_id,
            payment_method=request.args.get("payment_method"),
            date=request.args.get("date"),
            search=request.args.get("q"),
            include_canceled=include_canceled,
        )
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return _sale_error(e)

    active = [s for s in sales if not s.is_canceled]
    return jsonify({
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "total_amount": sum(s.total_amount for s in active),
    }), 200


@sales_bp.post("")
@require_auth
@require_app
def complete_sale_route():
    data = request.get_json(silent=True)
    if isinstance(data, dict) and data.get("store_id") is None and g.store_id is not None:
        data["store_id"] = g.store_id

    try:
        sale = sales_service.complete_sale(g.current_user, data)
        db.session.commit()
        return jsonify(sale.to_dict()), 201
    except SaleError as e:
        db.session.rollback()
        return _sale_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_app
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.current_user, sale_id)
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(sale.to_dict()), 200


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_app
def update_sale_route(sale_id: int):
    data = request.get_json(silent=True)
    try:
        sale = sales_service.update_sale(g.current_user, sale_id, data)
        db.session.commit()
        return jsonify(sale.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        db.session.rollback()
        return _sale_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_app
def cancel_sale_route(sale_id: int):
    try:
        sale = sales_service.cancel_sale(g.current_user, sale_id)
        db.session.commit()
        return jsonify(sale.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500
