from __future__ import annotations

from ..extensions import db
from tireplan.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer aggregate, shared by all branches of one owner.

    MULTI-TENANT: Scoped directly by owner_id. Identity for de-duplication is
    (phone_number, owner_id); aggregates are updated on every matching sale.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "phone_number", name="uq_customers_owner_phone"),
        db.Index("ix_customers_owner_id", "owner_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # No FK: customers survive deletion of their owner
    owner_id = db.Column(db.String(16), nullable=False)

    name = db.Column(db.String(120), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False)
    car_model = db.Column(db.String(120), nullable=True)
    vehicle_number = db.Column(db.String(32), nullable=True)

    # Business info for tax invoices
    business_number = db.Column(db.String(32), nullable=True)
    company_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    # Denormalized aggregates (updated when sales are completed)
    total_spent = db.Column(db.Integer, nullable=False, default=0)
    visit_count = db.Column(db.Integer, nullable=False, default=0)
    last_visit_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "phone_number": self.phone_number,
            "car_model": self.car_model,
            "vehicle_number": self.vehicle_number,
            "business_number": self.business_number,
            "company_name": self.company_name,
            "email": self.email,
            "total_spent": self.total_spent,
            "visit_count": self.visit_count,
            "last_visit_at": to_utc_z(self.last_visit_at) if self.last_visit_at else None,
            "created_at": to_utc_z(self.created_at),
        }
