from __future__ import annotations

from ..extensions import db
from tireplan.time_utils import to_utc_z, to_iso_date


RESERVATION_PENDING = "PENDING"
RESERVATION_CONFIRMED = "CONFIRMED"
RESERVATION_COMPLETED = "COMPLETED"
RESERVATION_CANCELED = "CANCELED"
RESERVATION_STATUSES = {
    RESERVATION_PENDING,
    RESERVATION_CONFIRMED,
    RESERVATION_COMPLETED,
    RESERVATION_CANCELED,
}

STOCK_IN_STOCK = "IN_STOCK"
STOCK_OUT_OF_STOCK = "OUT_OF_STOCK"
STOCK_ORDERED = "ORDERED"
STOCK_CHECKING = "CHECKING"
STOCK_STATUSES = {STOCK_IN_STOCK, STOCK_OUT_OF_STOCK, STOCK_ORDERED, STOCK_CHECKING}


class Reservation(db.Model):
    """
    Customer booking at one branch.

    stock_status is advisory only; reservations never touch ProductStock.
    """
    __tablename__ = "reservations"
    __table_args__ = (
        db.Index("ix_reservations_store_date", "store_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(5), nullable=False)  # HH:MM

    customer_name = db.Column(db.String(120), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)
    vehicle_number = db.Column(db.String(32), nullable=True)
    car_model = db.Column(db.String(120), nullable=True)

    product_name = db.Column(db.String(255), nullable=False)
    specification = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=4)

    status = db.Column(db.String(16), nullable=False, default=RESERVATION_PENDING, index=True)
    stock_status = db.Column(db.String(16), nullable=False, default=STOCK_CHECKING)
    memo = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "date": to_iso_date(self.date),
            "time": self.time,
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "vehicle_number": self.vehicle_number,
            "car_model": self.car_model,
            "product_name": self.product_name,
            "specification": self.specification,
            "brand": self.brand,
            "quantity": self.quantity,
            "status": self.status,
            "stock_status": self.stock_status,
            "memo": self.memo,
            "created_at": to_utc_z(self.created_at),
        }


class Staff(db.Model):
    """Staff member used for attribution on sales; not a login identity."""
    __tablename__ = "staff"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ExpenseRecord(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_store_date", "store_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=False, default="")
    amount = db.Column(db.Integer, nullable=False)
    is_fixed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "date": to_iso_date(self.date),
            "category": self.category,
            "description": self.description,
            "amount": self.amount,
            "is_fixed": self.is_fixed,
            "created_at": to_utc_z(self.created_at),
        }


LEAVE_FULL = "FULL"
LEAVE_HALF_AM = "HALF_AM"
LEAVE_HALF_PM = "HALF_PM"
LEAVE_TYPES = {LEAVE_FULL, LEAVE_HALF_AM, LEAVE_HALF_PM}

LEAVE_PENDING = "PENDING"
LEAVE_APPROVED = "APPROVED"
LEAVE_REJECTED = "REJECTED"
LEAVE_STATUSES = {LEAVE_PENDING, LEAVE_APPROVED, LEAVE_REJECTED}


class LeaveRequest(db.Model):
    """
    A day off (or half day) requested for a staff member.

    One request per staff member per date. store_id is copied from the
    staff member at creation so scoping follows the branch.
    """
    __tablename__ = "leave_requests"
    __table_args__ = (
        db.UniqueConstraint("staff_id", "date", name="uq_leave_requests_staff_date"),
        db.Index("ix_leave_requests_store_date", "store_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    staff_id = db.Column(db.Integer, nullable=False, index=True)
    staff_name = db.Column(db.String(120), nullable=False)
    date = db.Column(db.Date, nullable=False)
    type = db.Column(db.String(16), nullable=False, default=LEAVE_FULL)
    reason = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=LEAVE_PENDING)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "date": to_iso_date(self.date),
            "type": self.type,
            "reason": self.reason,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
