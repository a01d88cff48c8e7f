# backend/tireplan/routes/invoices.py
"""Tax invoice wizard: candidate sales, buyer details, submission."""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import invoice_service
from ..services.invoice_service import InvoiceError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..decorators import require_auth, require_app


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
@require_app
def list_invoice_candidates_route():
    """Query params: store_id, requested_only (true/false)."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404

    requested_only = request.args.get("requested_only", "false").lower() == "true"
    sales = invoice_service.list_invoice_candidates(g.current_user, requested_only, store_id)
    return jsonify({
        "items": [invoice_service.invoice_view(s) for s in sales],
        "count": len(sales),
    }), 200


@invoices_bp.put("/<int:sale_id>/buyer")
@require_auth
@require_app
def update_buyer_route(sale_id: int):
    data = request.get_json(silent=True) or {}
    try:
        sale = invoice_service.update_buyer_details(
            g.current_user,
            sale_id,
            business_number=data.get("business_number"),
            company_name=data.get("company_name"),
            ceo_name=data.get("ceo_name"),
            email=data.get("email"),
        )
        db.session.commit()
        return jsonify(invoice_service.invoice_view(sale)), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update buyer details")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:sale_id>/submit")
@require_auth
@require_app
def submit_invoice_route(sale_id: int):
    """
    Request body:
    {"business_number": str, "company_name": str, "ceo_name": str, "email": str}
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = invoice_service.submit_invoice(g.current_user, sale_id, data)
        db.session.commit()
        return jsonify(invoice_service.invoice_view(sale)), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except InvoiceError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to submit tax invoice")
        return jsonify({"error": "Internal server error"}), 500
