"""
Tenant provisioning for the super-admin console.

An owner (User with role STORE_ADMIN) IS the tenant. Provisioning creates
the owner, their first branch and the zero stock entries that make the
branch visible in every product's stock_by_store.

OWNER IDS: "{yy}{seq:04d}", e.g. 250001 for the first owner created in 2025.
seq is one more than the highest suffix under the same year prefix among
existing users and the owner_id of surviving customer rows, so a deleted
owner's code is reused only when nothing of theirs is keyed by it. The scan
is not safe under concurrent creation; the console is a single writer.

DELETION: deleting a branch or owner leaves stock entries, sales, customers
and other history that reference it in place.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Customer, Staff, Store, User, ROLE_STORE_ADMIN
from . import auth_service, session_service
from .inventory_service import zero_fill_store
from tireplan.time_utils import utcnow

logger = logging.getLogger(__name__)


REGION_NAMES = {
    "01": "서울",
    "02": "경기",
    "03": "인천",
    "04": "강원",
    "05": "충청",
    "06": "전라",
    "07": "경상",
    "08": "제주",
}
DEFAULT_REGION_NAME = "기타"

_OWNER_ID_RE = re.compile(r"^(\d{2})(\d{4})$")


class TenantError(Exception):
    """Raised when a provisioning request is rejected."""
    pass


def region_name_for(region: str | None) -> str:
    return REGION_NAMES.get((region or "").strip(), DEFAULT_REGION_NAME)


def next_owner_id(now: datetime | None = None) -> str:
    """
    Next free login code for the year of `now` (defaults to today).

    Codes still referenced by customers of a deleted owner count as taken,
    so a new owner never picks up another tenant's customer book.
    """
    year_prefix = f"{(now or utcnow()).year % 100:02d}"

    taken = [row[0] for row in db.session.query(User.id).filter(User.id.like(f"{year_prefix}%")).all()]
    taken += [
        row[0] for row in
        db.session.query(Customer.owner_id).filter(Customer.owner_id.like(f"{year_prefix}%")).distinct().all()
    ]

    max_serial = 0
    for user_id in taken:
        match = _OWNER_ID_RE.match(user_id)
        if match and match.group(1) == year_prefix:
            max_serial = max(max_serial, int(match.group(2)))

    if max_serial >= 9999:
        raise TenantError(f"Owner id space for year {year_prefix} is exhausted")
    return f"{year_prefix}{max_serial + 1:04d}"


def _get_owner(owner_id: str) -> User:
    owner = db.session.get(User, str(owner_id))
    if owner is None or owner.role != ROLE_STORE_ADMIN:
        raise TenantError("Owner not found")
    return owner


def _new_branch(owner: User, branch_name: str, region: str | None) -> Store:
    region = (region or "").strip() or "01"
    store = Store(
        owner_id=owner.id,
        name=branch_name,
        region=region,
        region_name=region_name_for(region),
        is_active=True,
    )
    db.session.add(store)
    db.session.flush()
    zero_fill_store(store.id)
    return store


def create_owner(
    name: str,
    region: str | None,
    phone_number: str | None = None,
    branch_name: str | None = None,
    now: datetime | None = None,
) -> tuple[User, Store]:
    """
    Provision an owner and their first branch.

    - login code from next_owner_id
    - password DEFAULT_OWNER_PASSWORD
    - one branch, named branch_name or "{name} 1호점"
    - the owner's name as the branch's first staff member
    - zero stock entries for the branch on every product

    Returns (owner, branch).
    """
    if not name or not name.strip():
        raise TenantError("Owner name is required")
    name = name.strip()
    now = now or utcnow()

    owner = User(
        id=next_owner_id(now),
        name=name,
        role=ROLE_STORE_ADMIN,
        password_hash=auth_service.hash_password(current_app.config["DEFAULT_OWNER_PASSWORD"]),
        phone_number=(phone_number or "").strip() or None,
        is_active=True,
        joined_at=now,
    )
    db.session.add(owner)
    db.session.flush()

    store = _new_branch(owner, (branch_name or "").strip() or f"{name} 1호점", region)
    owner.home_store_id = store.id

    db.session.add(Staff(store_id=store.id, name=name, is_active=True))
    db.session.flush()

    logger.info("Created owner %s (%s) with branch %s", owner.id, owner.name, store.id)
    return owner, store


def update_owner(
    owner_id: str,
    name: str | None = None,
    phone_number: str | None = None,
    password: str | None = None,
    is_active: bool | None = None,
) -> User:
    """
    Console edit of an owner. Blank values leave fields unchanged.

    is_active is applied to the owner and to every branch of the owner.
    """
    owner = _get_owner(owner_id)

    if name and name.strip():
        owner.name = name.strip()
    if phone_number and phone_number.strip():
        owner.phone_number = phone_number.strip()
    if password:
        owner.password_hash = auth_service.hash_password(password)

    if is_active is not None:
        owner.is_active = bool(is_active)
        for store in db.session.query(Store).filter_by(owner_id=owner.id).all():
            store.is_active = bool(is_active)
        if not is_active:
            session_service.revoke_all_user_sessions(owner.id, "Owner deactivated")
        logger.info("Owner %s %s", owner.id, "activated" if is_active else "deactivated")

    db.session.flush()
    return owner


def add_branch(owner_id: str, branch_name: str, region: str | None) -> Store:
    """New branch for an existing owner; the owner id space is untouched."""
    owner = _get_owner(owner_id)
    if not branch_name or not branch_name.strip():
        raise TenantError("Branch name is required")

    store = _new_branch(owner, branch_name.strip(), region)
    if owner.home_store_id is None:
        owner.home_store_id = store.id
    db.session.flush()

    logger.info("Added branch %s to owner %s", store.id, owner.id)
    return store


def rename_store(store_id: int, name: str) -> Store:
    if not name or not name.strip():
        raise TenantError("Branch name is required")
    store = db.session.get(Store, store_id)
    if store is None:
        raise TenantError("Store not found")
    store.name = name.strip()
    db.session.flush()
    return store


def delete_store(store_id: int) -> None:
    """Remove the branch only; its stock entries and history stay."""
    store = db.session.get(Store, store_id)
    if store is None:
        raise TenantError("Store not found")

    owner = store.owner
    if owner is not None and owner.home_store_id == store.id:
        remaining = (
            db.session.query(Store)
            .filter(Store.owner_id == owner.id, Store.id != store.id)
            .order_by(Store.id)
            .first()
        )
        owner.home_store_id = remaining.id if remaining else None

    db.session.delete(store)
    db.session.flush()
    logger.info("Deleted branch %s", store_id)


def delete_owner(owner_id: str) -> int:
    """
    Remove the owner's branches and user record. Returns branches removed.

    Stock entries, sales, customers and other history referencing the owner
    or the removed branches are left in place.
    """
    owner = _get_owner(owner_id)

    stores = db.session.query(Store).filter_by(owner_id=owner.id).all()
    for store in stores:
        db.session.delete(store)

    for token in list(owner.session_tokens):
        db.session.delete(token)

    db.session.delete(owner)
    db.session.flush()

    logger.info("Deleted owner %s and %s branch(es)", owner_id, len(stores))
    return len(stores)


def reset_password(owner_id: str) -> User:
    owner = _get_owner(owner_id)
    owner.password_hash = auth_service.hash_password(current_app.config["DEFAULT_OWNER_PASSWORD"])
    session_service.revoke_all_user_sessions(owner.id, "Password reset")
    db.session.flush()
    logger.info("Password reset for owner %s", owner.id)
    return owner


def list_owners() -> list[dict]:
    owners = (
        db.session.query(User)
        .filter(User.role == ROLE_STORE_ADMIN)
        .order_by(User.id)
        .all()
    )
    result = []
    for owner in owners:
        data = owner.to_dict()
        data["stores"] = [
            s.to_dict() for s in
            db.session.query(Store).filter_by(owner_id=owner.id).order_by(Store.id).all()
        ]
        result.append(data)
    return result
