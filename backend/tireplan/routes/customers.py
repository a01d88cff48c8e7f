# backend/tireplan/routes/customers.py
from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import customer_service
from ..services.customer_service import CustomerError
from ..services.scope_service import ScopeError
from ..validation import ValidationError
from ..decorators import require_auth, require_app, require_store_admin


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_app
def list_customers_route():
    customers = customer_service.list_customers(g.current_user, search=request.args.get("q"))
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@customers_bp.patch("/<int:customer_id>")
@require_auth
@require_store_admin
def update_customer_route(customer_id: int):
    data = request.get_json(silent=True)
    try:
        customer = customer_service.update_customer(g.current_user, customer_id, data)
        db.session.commit()
        return jsonify(customer.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, CustomerError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500
