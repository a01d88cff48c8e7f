"""
Customer aggregate maintenance.

Customers belong to an owner (not a branch) and are de-duplicated by
(phone_number, owner_id). Every completed sale carrying a phone number
feeds the aggregate: visit_count, total_spent and last_visit_at.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Customer, Sale, User
from ..validation import ModelValidationPolicy, validate_payload
from .scope_service import require_visible, visible_customers


class CustomerError(Exception):
    pass


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "phone_number", "car_model", "vehicle_number",
        "business_number", "company_name", "email",
    },
)


def upsert_customer_from_sale(sale: Sale, owner_id: str) -> Customer | None:
    """
    Create or update the owner's customer matching the sale's phone number.

    Sales without a phone number leave customers untouched.
    """
    phone = (sale.customer_phone or "").strip()
    if not phone:
        return None

    customer = (
        db.session.query(Customer)
        .filter_by(owner_id=owner_id, phone_number=phone)
        .first()
    )
    if customer is None:
        customer = Customer(
            owner_id=owner_id,
            name=sale.customer_name or phone,
            phone_number=phone,
            car_model=sale.car_model,
            vehicle_number=sale.vehicle_number,
            business_number=sale.business_number,
            company_name=sale.company_name,
            email=sale.customer_email,
            total_spent=sale.total_amount,
            visit_count=1,
            last_visit_at=sale.sold_at,
        )
        db.session.add(customer)
    else:
        customer.total_spent = (customer.total_spent or 0) + sale.total_amount
        customer.visit_count = (customer.visit_count or 0) + 1
        customer.last_visit_at = sale.sold_at

    db.session.flush()
    return customer


def list_customers(identity: User, search: str | None = None) -> list[Customer]:
    query = visible_customers(identity)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Customer.name.ilike(like),
            Customer.phone_number.ilike(like),
            Customer.vehicle_number.ilike(like),
        ))
    return query.order_by(Customer.last_visit_at.desc(), Customer.id.desc()).all()


def update_customer(identity: User, customer_id: int, payload: dict) -> Customer:
    customer = require_visible(visible_customers(identity), Customer, customer_id, "Customer")

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)

    new_phone = patch.get("phone_number")
    if new_phone and new_phone != customer.phone_number:
        clash = (
            db.session.query(Customer)
            .filter_by(owner_id=customer.owner_id, phone_number=new_phone)
            .first()
        )
        if clash is not None:
            raise CustomerError("Another customer already uses this phone number")

    for k, v in patch.items():
        setattr(customer, k, v)
    db.session.flush()
    return customer
