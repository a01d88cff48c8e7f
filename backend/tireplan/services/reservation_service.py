"""
Reservation book.

Reservations never touch the ledger: stock_status is an advisory label the
staff set after checking shelves (suggest_stock_status offers a guess).
"""
from __future__ import annotations

import re

from ..extensions import db
from ..models import Product, Reservation, User
from ..models.operations import (
    RESERVATION_PENDING, RESERVATION_STATUSES,
    STOCK_CHECKING, STOCK_IN_STOCK, STOCK_OUT_OF_STOCK, STOCK_STATUSES,
)
from ..validation import ModelValidationPolicy, validate_payload
from .inventory_service import get_quantity
from .scope_service import require_visible, require_visible_store, visible_reservations
from tireplan.time_utils import parse_iso_date

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ReservationError(Exception):
    pass


RESERVATION_POLICY = ModelValidationPolicy(
    writable_fields={
        "store_id", "date", "time", "customer_name", "phone_number",
        "vehicle_number", "car_model", "product_name", "specification",
        "brand", "quantity", "status", "stock_status", "memo",
    },
    required_on_create={"store_id", "date", "time", "customer_name", "product_name"},
)


def _check_patch(patch: dict) -> None:
    if "time" in patch and not _TIME_RE.match(patch["time"] or ""):
        raise ReservationError("time must be HH:MM")
    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] <= 0:
        raise ReservationError("quantity must be a positive integer")
    if "status" in patch and patch["status"] not in RESERVATION_STATUSES:
        raise ReservationError(f"status must be one of {', '.join(sorted(RESERVATION_STATUSES))}")
    if "stock_status" in patch and patch["stock_status"] not in STOCK_STATUSES:
        raise ReservationError(f"stock_status must be one of {', '.join(sorted(STOCK_STATUSES))}")


def get_reservation(identity: User, reservation_id: int) -> Reservation:
    return require_visible(visible_reservations(identity), Reservation, reservation_id, "Reservation")


def create_reservation(identity: User, payload: dict) -> Reservation:
    patch = validate_payload(model=Reservation, payload=payload, policy=RESERVATION_POLICY, partial=False)
    _check_patch(patch)
    require_visible_store(identity, patch["store_id"])

    patch.setdefault("status", RESERVATION_PENDING)
    patch.setdefault("stock_status", STOCK_CHECKING)
    if patch.get("quantity") is None:
        patch["quantity"] = 4

    reservation = Reservation(**patch)
    db.session.add(reservation)
    db.session.flush()
    return reservation


def update_reservation(identity: User, reservation_id: int, payload: dict) -> Reservation:
    reservation = get_reservation(identity, reservation_id)
    patch = validate_payload(model=Reservation, payload=payload, policy=RESERVATION_POLICY, partial=True)
    _check_patch(patch)
    if "store_id" in patch:
        require_visible_store(identity, patch["store_id"])

    for k, v in patch.items():
        setattr(reservation, k, v)
    db.session.flush()
    return reservation


def set_status(identity: User, reservation_id: int, status: str) -> Reservation:
    status = (status or "").strip().upper()
    if status not in RESERVATION_STATUSES:
        raise ReservationError(f"status must be one of {', '.join(sorted(RESERVATION_STATUSES))}")
    reservation = get_reservation(identity, reservation_id)
    reservation.status = status
    db.session.flush()
    return reservation


def remove_reservation(identity: User, reservation_id: int) -> None:
    reservation = get_reservation(identity, reservation_id)
    db.session.delete(reservation)
    db.session.flush()


def list_reservations(identity: User, store_id: int | None = None, date_from=None, date_to=None) -> list[Reservation]:
    query = visible_reservations(identity)
    if store_id is not None:
        query = query.filter(Reservation.store_id == store_id)
    try:
        start = parse_iso_date(date_from) if isinstance(date_from, str) else date_from
        end = parse_iso_date(date_to) if isinstance(date_to, str) else date_to
    except ValueError:
        raise ReservationError("date filters must be YYYY-MM-DD")
    if start is not None:
        query = query.filter(Reservation.date >= start)
    if end is not None:
        query = query.filter(Reservation.date <= end)
    return query.order_by(Reservation.date, Reservation.time, Reservation.id).all()


def suggest_stock_status(reservation: Reservation) -> str:
    """
    IN_STOCK when a catalog product with the reserved name (and spec, when
    both carry one) has enough units at the reservation's branch.
    """
    candidates = db.session.query(Product).filter(Product.name == reservation.product_name).all()
    for product in candidates:
        if product.specification and reservation.specification \
                and product.specification != reservation.specification:
            continue
        if get_quantity(product.id, reservation.store_id) >= (reservation.quantity or 0):
            return STOCK_IN_STOCK
    return STOCK_OUT_OF_STOCK
