# backend/tireplan/routes/inventory.py
"""
Stock-in and inter-branch transfer endpoints.

purchase_price on stock-in records is only returned in admin mode.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import ROLE_STORE_ADMIN, StockTransferRecord
from ..services import receive_service, transfer_service
from ..services.receive_service import ReceiveError
from ..services.transfer_service import TransferError
from ..services.scope_service import ScopeError, resolve_store_filter, visible_transfers
from ..validation import ValidationError, parse_positive_int
from ..decorators import require_auth, require_app, require_store_admin


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _show_purchase_price() -> bool:
    return g.session_context.effective_role == ROLE_STORE_ADMIN


@inventory_bp.get("/stock-in")
@require_auth
@require_app
def list_stock_in_route():
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404

    records = receive_service.list_stock_in(g.current_user, store_id)
    include = _show_purchase_price()
    return jsonify({
        "items": [r.to_dict(include_purchase_price=include) for r in records],
        "count": len(records),
    }), 200


@inventory_bp.post("/stock-in")
@require_auth
@require_app
def receive_stock_route():
    """
    Request body:
    {
        "store_id": int (defaults to the selected branch),
        "product_name": str, "specification": str?, "brand": str?,
        "category": str?, "supplier": str?, "quantity": int,
        "factory_price": int?, "purchase_price": int?,
        "selling_price": int?, "product_id": int? (force a catalog match),
        "received_at": ISO-8601?
    }
    """
    data = request.get_json(silent=True) or {}
    store_id = data.get("store_id") or g.store_id
    if store_id is None:
        return jsonify({"error": "store_id required"}), 400

    try:
        force_product_id = None
        if data.get("product_id") not in (None, ""):
            force_product_id = parse_positive_int(data["product_id"], "product_id")
        store_id = parse_positive_int(store_id, "store_id")

        # Only the owner may record what they paid
        purchase_price = data.get("purchase_price") if _show_purchase_price() else None

        record = receive_service.receive_stock(
            store_id=store_id,
            product_name=data.get("product_name"),
            quantity=data.get("quantity"),
            specification=data.get("specification"),
            brand=data.get("brand"),
            category=data.get("category"),
            supplier=data.get("supplier"),
            factory_price=data.get("factory_price"),
            purchase_price=purchase_price,
            selling_price=data.get("selling_price"),
            force_product_id=force_product_id,
            received_at=data.get("received_at"),
            identity=g.current_user,
        )
        db.session.commit()
        return jsonify(record.to_dict(include_purchase_price=_show_purchase_price())), 201
    except (ValidationError, ReceiveError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.patch("/stock-in/<int:record_id>")
@require_auth
@require_store_admin
def update_stock_in_route(record_id: int):
    data = request.get_json(silent=True)
    try:
        record = receive_service.update_stock_in_record(g.current_user, record_id, data)
        db.session.commit()
        return jsonify(record.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ReceiveError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update stock-in record")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/transfers")
@require_auth
@require_app
def list_transfers_route():
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404

    query = visible_transfers(g.current_user)
    if store_id is not None:
        query = query.filter(db.or_(
            StockTransferRecord.from_store_id == store_id,
            StockTransferRecord.to_store_id == store_id,
        ))
    records = query.order_by(StockTransferRecord.transferred_at.desc(), StockTransferRecord.id.desc()).all()
    return jsonify({"items": [r.to_dict() for r in records], "count": len(records)}), 200


@inventory_bp.post("/transfers")
@require_auth
@require_app
def transfer_route():
    """
    Request body:
    {
        "product_id": int,
        "from_store_id": int,
        "to_store_id": int,
        "quantity": int,
        "staff_name": str (optional, defaults to the login's name)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        product_id = parse_positive_int(data.get("product_id"), "product_id")
        from_store_id = parse_positive_int(data.get("from_store_id"), "from_store_id")
        to_store_id = parse_positive_int(data.get("to_store_id"), "to_store_id")

        record = transfer_service.transfer_stock(
            product_id,
            from_store_id,
            to_store_id,
            data.get("quantity"),
            staff_name=data.get("staff_name") or g.current_user.name,
            identity=g.current_user,
        )
        db.session.commit()
        return jsonify(record.to_dict()), 201
    except (ValidationError, TransferError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to transfer stock")
        return jsonify({"error": "Internal server error"}), 500
