"""
Tenant scoping: which records an identity may see.

SECURITY INVARIANTS:
1. Scoping depends on the login identity only, never on the session's
   effective role. An owner working as STAFF sees exactly what they see
   as STORE_ADMIN.
2. The super-admin is unfiltered.
3. Everyone else sees the branches with Store.owner_id == identity.id and
   the records attached to those branches (customers: owner_id directly).
4. A branch or record outside the tenant is reported as "not found".

USAGE:
    store = require_visible_store(g.current_user, payload["store_id"])
    sales = visible_sales(g.current_user).filter(...).all()
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    User, Store, Sale, ExpenseRecord, Customer, StockInRecord,
    StockTransferRecord, Reservation, Staff, LeaveRequest,
)


class ScopeError(Exception):
    """Raised when a branch or record lies outside the caller's tenant."""
    pass


def visible_store_ids(identity: User) -> set[int]:
    query = db.session.query(Store.id)
    if not identity.is_super_admin:
        query = query.filter(Store.owner_id == identity.id)
    return {row[0] for row in query.all()}


def visible_stores(identity: User):
    query = db.session.query(Store)
    if not identity.is_super_admin:
        query = query.filter(Store.owner_id == identity.id)
    return query.order_by(Store.id)


def require_visible_store(identity: User, store_id) -> Store:
    """Return the branch if the identity may see it, else raise ScopeError."""
    try:
        store_id = int(store_id)
    except (TypeError, ValueError):
        raise ScopeError("Store not found")

    store = db.session.get(Store, store_id)
    if not store:
        raise ScopeError("Store not found")
    if not identity.is_super_admin and store.owner_id != identity.id:
        # Don't reveal it exists in another tenant
        raise ScopeError("Store not found")
    return store


def _by_store(model, identity: User, column=None):
    column = column if column is not None else model.store_id
    query = db.session.query(model)
    if identity.is_super_admin:
        return query
    owned = db.select(Store.id).where(Store.owner_id == identity.id)
    return query.filter(column.in_(owned))


def visible_sales(identity: User):
    return _by_store(Sale, identity)


def visible_expenses(identity: User):
    return _by_store(ExpenseRecord, identity)


def visible_stock_in_records(identity: User):
    return _by_store(StockInRecord, identity)


def visible_reservations(identity: User):
    return _by_store(Reservation, identity)


def visible_leave_requests(identity: User):
    return _by_store(LeaveRequest, identity)


def visible_staff(identity: User):
    return _by_store(Staff, identity)


def visible_customers(identity: User):
    query = db.session.query(Customer)
    if identity.is_super_admin:
        return query
    return query.filter(Customer.owner_id == identity.id)


def visible_transfers(identity: User):
    """A transfer is visible when either endpoint branch is visible."""
    query = db.session.query(StockTransferRecord)
    if identity.is_super_admin:
        return query
    owned = db.select(Store.id).where(Store.owner_id == identity.id)
    return query.filter(db.or_(
        StockTransferRecord.from_store_id.in_(owned),
        StockTransferRecord.to_store_id.in_(owned),
    ))


def require_visible(query, model, record_id: int, label: str):
    """Fetch one record through a scoped query or raise ScopeError."""
    record = query.filter(model.id == record_id).first()
    if not record:
        raise ScopeError(f"{label} not found")
    return record


def resolve_store_filter(identity: User, selected_store_id: int | None, requested=None) -> int | None:
    """
    Branch filter for list endpoints.

    An explicit requested branch wins (and must be visible); otherwise the
    session's selected branch applies. None means all visible branches.
    """
    if requested not in (None, "", "ALL"):
        return require_visible_store(identity, requested).id
    return selected_store_id
