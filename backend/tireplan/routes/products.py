# backend/tireplan/routes/products.py
"""
Catalog endpoints. Reads are open to the register (STAFF); writes need
admin mode. stock_by_store only lists the caller's own branches.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import Product, PLACEHOLDER_PRODUCT_ID
from ..services import inventory_service, products_service
from ..services.inventory_service import InventoryError
from ..services.scope_service import ScopeError, resolve_store_filter, visible_store_ids
from ..validation import ValidationError
from ..decorators import require_auth, require_app, require_store_admin


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _store_ids_for_request() -> set[int]:
    store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
    if store_id is not None:
        return {store_id}
    return visible_store_ids(g.current_user)


@products_bp.get("")
@require_auth
@require_app
def list_products_route():
    try:
        store_ids = _store_ids_for_request()
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404

    items = inventory_service.list_catalog(
        store_ids,
        category=request.args.get("category"),
        brand=request.args.get("brand"),
        search=request.args.get("q"),
    )
    return jsonify({"items": items, "count": len(items)}), 200


@products_bp.get("/low-stock")
@require_auth
@require_app
def low_stock_route():
    try:
        store_ids = _store_ids_for_request()
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404

    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
    items = inventory_service.list_low_stock(threshold, store_ids)
    return jsonify({"items": items, "count": len(items), "threshold": threshold}), 200


@products_bp.get("/brands")
@require_auth
@require_app
def list_brands_route():
    return jsonify({
        "brands": products_service.list_brands(),
        "categories": products_service.list_categories(),
    }), 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_app
def get_product_route(product_id: int):
    product = db.session.get(Product, product_id)
    if product is None or product_id == PLACEHOLDER_PRODUCT_ID:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict(store_ids=visible_store_ids(g.current_user))), 200


@products_bp.post("")
@require_auth
@require_store_admin
def create_product_route():
    """
    Request body:
    {
        "name": str, "brand": str?, "category": str?, "price": int?,
        "specification": str?, "stock_by_store": {"<store_id>": int}?
    }
    """
    data = request.get_json(silent=True)
    try:
        product = products_service.create_product(g.current_user, data)
        db.session.commit()
        return jsonify(product.to_dict(store_ids=visible_store_ids(g.current_user))), 201
    except (ValidationError, InventoryError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_store_admin
def update_product_route(product_id: int):
    data = request.get_json(silent=True)
    try:
        product = products_service.update_product(g.current_user, product_id, data)
        db.session.commit()
        return jsonify(product.to_dict(store_ids=visible_store_ids(g.current_user))), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, InventoryError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500
