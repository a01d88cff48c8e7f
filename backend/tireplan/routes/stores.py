# backend/tireplan/routes/stores.py

from flask import Blueprint, request, jsonify, g

from ..extensions import db
from ..services import store_service
from ..services.store_service import StoreError
from ..services.scope_service import ScopeError
from ..decorators import require_auth, require_app, require_store_admin


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
@require_auth
@require_app
def list_stores_route():
    active_only = request.args.get("active_only", "false").lower() == "true"
    stores = store_service.list_visible_stores(g.current_user, active_only=active_only)
    return jsonify({"items": [s.to_dict() for s in stores], "count": len(stores)}), 200


@stores_bp.patch("/<int:store_id>")
@require_auth
@require_store_admin
def rename_store_route(store_id: int):
    data = request.get_json(silent=True) or {}
    try:
        store = store_service.rename_store(g.current_user, store_id, data.get("name"))
        db.session.commit()
        return jsonify(store.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except StoreError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
