# backend/tireplan/routes/expenses.py
"""Branch expense book. Amounts are whole won."""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import expense_service
from ..services.expense_service import ExpenseError
from ..services.scope_service import ScopeError, resolve_store_filter
from ..validation import ValidationError
from ..decorators import require_auth, require_app


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_app
def list_expenses_route():
    """Query params: store_id, month (YYYY-MM)."""
    try:
        store_id = resolve_store_filter(g.current_user, g.store_id, request.args.get("store_id"))
        expenses = expense_service.list_expenses(g.current_user, store_id, request.args.get("month"))
    except ScopeError as e:
        return jsonify({"error": str(e)}), 404
    except ExpenseError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "items": [e.to_dict() for e in expenses],
        "count": len(expenses),
        "total_amount": expense_service.total_expenses(expenses),
    }), 200


@expenses_bp.post("")
@require_auth
@require_app
def add_expense_route():
    data = request.get_json(silent=True)
    if isinstance(data, dict) and data.get("store_id") is None and g.store_id is not None:
        data["store_id"] = g.store_id

    try:
        expense = expense_service.add_expense(g.current_user, data)
        db.session.commit()
        return jsonify(expense.to_dict()), 201
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ExpenseError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_app
def update_expense_route(expense_id: int):
    data = request.get_json(silent=True)
    try:
        expense = expense_service.update_expense(g.current_user, expense_id, data)
        db.session.commit()
        return jsonify(expense.to_dict()), 200
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, ExpenseError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_app
def delete_expense_route(expense_id: int):
    try:
        expense_service.remove_expense(g.current_user, expense_id)
        db.session.commit()
        return "", 204
    except ScopeError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
