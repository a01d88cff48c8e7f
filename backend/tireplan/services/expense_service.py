"""
Branch expense book (meals, waste-tire disposal, wages ...).

Amounts are whole won. month filters take "YYYY-MM".
"""
from __future__ import annotations

from ..extensions import db
from ..models import ExpenseRecord, User
from ..validation import ModelValidationPolicy, enforce_non_negative_amounts, validate_payload
from .scope_service import require_visible, require_visible_store, visible_expenses
from tireplan.time_utils import month_window


class ExpenseError(Exception):
    pass


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"store_id", "date", "category", "description", "amount", "is_fixed"},
    required_on_create={"store_id", "date", "category", "amount"},
)


def _get(identity: User, expense_id: int) -> ExpenseRecord:
    return require_visible(visible_expenses(identity), ExpenseRecord, expense_id, "Expense")


def add_expense(identity: User, payload: dict) -> ExpenseRecord:
    patch = validate_payload(model=ExpenseRecord, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_non_negative_amounts(patch, "amount")
    require_visible_store(identity, patch["store_id"])
    if patch.get("description") is None:
        patch["description"] = ""

    expense = ExpenseRecord(**patch)
    db.session.add(expense)
    db.session.flush()
    return expense


def update_expense(identity: User, expense_id: int, payload: dict) -> ExpenseRecord:
    expense = _get(identity, expense_id)
    patch = validate_payload(model=ExpenseRecord, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_non_negative_amounts(patch, "amount")
    if "store_id" in patch:
        require_visible_store(identity, patch["store_id"])

    for k, v in patch.items():
        setattr(expense, k, v)
    db.session.flush()
    return expense


def remove_expense(identity: User, expense_id: int) -> None:
    db.session.delete(_get(identity, expense_id))
    db.session.flush()


def list_expenses(identity: User, store_id: int | None = None, month: str | None = None) -> list[ExpenseRecord]:
    query = visible_expenses(identity)
    if store_id is not None:
        query = query.filter(ExpenseRecord.store_id == store_id)
    if month:
        try:
            start, end = month_window(month)
        except ValueError:
            raise ExpenseError("month must be YYYY-MM")
        query = query.filter(ExpenseRecord.date >= start, ExpenseRecord.date < end)
    return query.order_by(ExpenseRecord.date.desc(), ExpenseRecord.id.desc()).all()


def total_expenses(expenses: list[ExpenseRecord]) -> int:
    return sum(e.amount for e in expenses)
