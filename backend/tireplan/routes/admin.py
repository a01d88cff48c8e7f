# backend/tireplan/routes/admin.py
"""
Super-admin tenant console: owners and their branches.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import tenant_service
from ..services.tenant_service import TenantError
from ..decorators import require_auth, require_super_admin


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/owners")
@require_auth
@require_super_admin
def list_owners_route():
    owners = tenant_service.list_owners()
    return jsonify({"items": owners, "count": len(owners)}), 200


@admin_bp.post("/owners")
@require_auth
@require_super_admin
def create_owner_route():
    """
    Request body:
    {
        "name": str,
        "region": "01".."08",
        "phone_number": str (optional),
        "branch_name": str (optional, default "{name} 1호점")
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        owner, store = tenant_service.create_owner(
            name=data.get("name") or "",
            region=data.get("region"),
            phone_number=data.get("phone_number"),
            branch_name=data.get("branch_name"),
        )
        db.session.commit()
        return jsonify({"owner": owner.to_dict(), "store": store.to_dict()}), 201
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create owner")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/owners/<owner_id>")
@require_auth
@require_super_admin
def update_owner_route(owner_id: str):
    """Request body: any of name, phone_number, password, is_active."""
    data = request.get_json(silent=True) or {}
    is_active = data.get("is_active")
    if is_active is not None and not isinstance(is_active, bool):
        return jsonify({"error": "is_active must be a boolean"}), 400
    try:
        owner = tenant_service.update_owner(
            owner_id,
            name=data.get("name"),
            phone_number=data.get("phone_number"),
            password=data.get("password"),
            is_active=is_active,
        )
        db.session.commit()
        return jsonify(owner.to_dict()), 200
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404 if "not found" in str(e) else 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update owner")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/owners/<owner_id>")
@require_auth
@require_super_admin
def delete_owner_route(owner_id: str):
    try:
        removed = tenant_service.delete_owner(owner_id)
        db.session.commit()
        return jsonify({"deleted": owner_id, "stores_removed": removed}), 200
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete owner")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/owners/<owner_id>/branches")
@require_auth
@require_super_admin
def add_branch_route(owner_id: str):
    """Request body: {"branch_name": str, "region": "01".."08"}"""
    data = request.get_json(silent=True) or {}
    try:
        store = tenant_service.add_branch(owner_id, data.get("branch_name") or "", data.get("region"))
        db.session.commit()
        return jsonify(store.to_dict()), 201
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404 if "not found" in str(e) else 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add branch")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/owners/<owner_id>/reset-password")
@require_auth
@require_super_admin
def reset_password_route(owner_id: str):
    try:
        tenant_service.reset_password(owner_id)
        db.session.commit()
        return jsonify({"message": "Password reset to the default"}), 200
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404


@admin_bp.patch("/stores/<int:store_id>")
@require_auth
@require_super_admin
def rename_store_route(store_id: int):
    data = request.get_json(silent=True) or {}
    try:
        store = tenant_service.rename_store(store_id, data.get("name") or "")
        db.session.commit()
        return jsonify(store.to_dict()), 200
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404 if "not found" in str(e) else 400


@admin_bp.delete("/stores/<int:store_id>")
@require_auth
@require_super_admin
def delete_store_route(store_id: int):
    try:
        tenant_service.delete_store(store_id)
        db.session.commit()
        return jsonify({"deleted": store_id}), 200
    except TenantError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete store")
        return jsonify({"error": "Internal server error"}), 500
