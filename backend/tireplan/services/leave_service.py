"""
Leave book: days off and half days requested for branch staff.

A request belongs to the branch of its staff member. One request per staff
member per date; new requests start PENDING and an owner approves or
rejects them.
"""
from __future__ import annotations

import logging

from ..extensions import db
from ..models import LeaveRequest, Staff, User
from ..models.operations import LEAVE_FULL, LEAVE_PENDING, LEAVE_STATUSES, LEAVE_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from .scope_service import require_visible, visible_leave_requests, visible_staff
from tireplan.time_utils import parse_iso_date

logger = logging.getLogger(__name__)


class LeaveError(Exception):
    pass


LEAVE_POLICY = ModelValidationPolicy(
    writable_fields={"staff_id", "date", "type", "reason"},
    required_on_create={"staff_id", "date"},
)


def get_leave_request(identity: User, leave_id: int) -> LeaveRequest:
    return require_visible(visible_leave_requests(identity), LeaveRequest, leave_id, "Leave request")


def request_leave(identity: User, payload: dict) -> LeaveRequest:
    """
    Request payload:
    {"staff_id": int, "date": "YYYY-MM-DD", "type": "FULL" | "HALF_AM" | "HALF_PM"?,
     "reason": str?}
    """
    patch = validate_payload(model=LeaveRequest, payload=payload, policy=LEAVE_POLICY, partial=False)
    staff = require_visible(visible_staff(identity), Staff, patch["staff_id"], "Staff")

    leave_type = (patch.get("type") or LEAVE_FULL).upper()
    if leave_type not in LEAVE_TYPES:
        raise LeaveError(f"type must be one of {', '.join(sorted(LEAVE_TYPES))}")

    clash = (
        db.session.query(LeaveRequest.id)
        .filter(LeaveRequest.staff_id == staff.id, LeaveRequest.date == patch["date"])
        .first()
    )
    if clash:
        raise LeaveError(f"{staff.name} already has a leave request on {patch['date'].isoformat()}")

    leave = LeaveRequest(
        store_id=staff.store_id,
        staff_id=staff.id,
        staff_name=staff.name,
        date=patch["date"],
        type=leave_type,
        reason=patch.get("reason") or None,
        status=LEAVE_PENDING,
    )
    db.session.add(leave)
    db.session.flush()
    logger.info("Leave %s requested for staff %s on %s", leave.id, staff.id, leave.date)
    return leave


def set_leave_status(identity: User, leave_id: int, status) -> LeaveRequest:
    leave = get_leave_request(identity, leave_id)
    value = str(status or "").strip().upper()
    if value not in LEAVE_STATUSES:
        raise LeaveError(f"status must be one of {', '.join(sorted(LEAVE_STATUSES))}")
    leave.status = value
    db.session.flush()
    return leave


def cancel_leave(identity: User, leave_id: int) -> None:
    db.session.delete(get_leave_request(identity, leave_id))
    db.session.flush()


def list_leave_requests(
    identity: User,
    store_id: int | None = None,
    date=None,
    from_date=None,
    status: str | None = None,
) -> list[LeaveRequest]:
    """
    Leave requests in date order.

    date picks one day; from_date lists that day and everything after it.
    """
    query = visible_leave_requests(identity)
    if store_id is not None:
        query = query.filter(LeaveRequest.store_id == store_id)
    try:
        day = parse_iso_date(date) if isinstance(date, str) else date
        since = parse_iso_date(from_date) if isinstance(from_date, str) else from_date
    except ValueError:
        raise LeaveError("dates must be YYYY-MM-DD")
    if day is not None:
        query = query.filter(LeaveRequest.date == day)
    if since is not None:
        query = query.filter(LeaveRequest.date >= since)
    if status:
        query = query.filter(LeaveRequest.status == status.strip().upper())
    return query.order_by(LeaveRequest.date, LeaveRequest.id).all()
