"""Branch staff roster used for sale attribution (staff never log in)."""
from __future__ import annotations

from ..extensions import db
from ..models import Staff, User
from .scope_service import require_visible, require_visible_store, visible_staff


class StaffError(Exception):
    pass


def add_staff(identity: User, store_id: int, name: str) -> Staff:
    if not name or not str(name).strip():
        raise StaffError("Staff name is required")
    store = require_visible_store(identity, store_id)

    staff = Staff(store_id=store.id, name=str(name).strip(), is_active=True)
    db.session.add(staff)
    db.session.flush()
    return staff


def remove_staff(identity: User, staff_id: int) -> None:
    staff = require_visible(visible_staff(identity), Staff, staff_id, "Staff")
    db.session.delete(staff)
    db.session.flush()


def list_staff(identity: User, store_id: int | None = None, active_only: bool = False) -> list[Staff]:
    query = visible_staff(identity)
    if store_id is not None:
        query = query.filter(Staff.store_id == store_id)
    if active_only:
        query = query.filter(Staff.is_active.is_(True))
    return query.order_by(Staff.store_id, Staff.id).all()
