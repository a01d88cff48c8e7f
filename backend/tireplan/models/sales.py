from __future__ import annotations

from ..extensions import db
from tireplan.time_utils import to_utc_z


PAYMENT_CARD = "CARD"
PAYMENT_CASH = "CASH"
PAYMENT_TRANSFER = "TRANSFER"
PAYMENT_METHODS = {PAYMENT_CARD, PAYMENT_CASH, PAYMENT_TRANSFER}


class Sale(db.Model):
    """
    Completed POS sale.

    total_amount is caller-supplied and trusted (it may include a discount).
    Sales are never deleted: they are edited (is_edited) or cancelled
    (is_canceled + canceled_at). Cancelling does not restore stock.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_store_sold_at", "store_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    total_amount = db.Column(db.Integer, nullable=False)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, index=True)
    staff_name = db.Column(db.String(120), nullable=False)

    # Customer snapshot taken at checkout (independent of the Customer aggregate)
    customer_name = db.Column(db.String(120), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True, index=True)
    car_model = db.Column(db.String(120), nullable=True)
    vehicle_number = db.Column(db.String(32), nullable=True, index=True)
    business_number = db.Column(db.String(32), nullable=True)
    company_name = db.Column(db.String(120), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)

    memo = db.Column(db.Text, nullable=True)

    is_tax_invoice_requested = db.Column(db.Boolean, nullable=False, default=False)
    tax_invoice_issued_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_canceled = db.Column(db.Boolean, nullable=False, default=False, index=True)
    canceled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_edited = db.Column(db.Boolean, nullable=False, default=False)

    # False for back-dated entries recorded without touching branch stock
    inventory_adjusted = db.Column(db.Boolean, nullable=False, default=True)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )

    @property
    def has_customer(self) -> bool:
        return bool(self.customer_name or self.customer_phone)

    def quantities_by_product(self) -> dict[int, int]:
        totals: dict[int, int] = {}
        for item in self.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        return totals

    def customer_dict(self) -> dict | None:
        if not self.has_customer:
            return None
        return {
            "name": self.customer_name,
            "phone_number": self.customer_phone,
            "car_model": self.car_model,
            "vehicle_number": self.vehicle_number,
            "business_number": self.business_number,
            "company_name": self.company_name,
            "email": self.customer_email,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "sold_at": to_utc_z(self.sold_at),
            "total_amount": self.total_amount,
            "discount_amount": self.discount_amount,
            "payment_method": self.payment_method,
            "staff_name": self.staff_name,
            "customer": self.customer_dict(),
            "vehicle_number": self.vehicle_number,
            "memo": self.memo,
            "items": [item.to_dict() for item in self.items],
            "is_tax_invoice_requested": self.is_tax_invoice_requested,
            "tax_invoice_issued_at": to_utc_z(self.tax_invoice_issued_at) if self.tax_invoice_issued_at else None,
            "is_canceled": self.is_canceled,
            "canceled_at": to_utc_z(self.canceled_at) if self.canceled_at else None,
            "is_edited": self.is_edited,
            "inventory_adjusted": self.inventory_adjusted,
        }


class SaleItem(db.Model):
    """Line item; name/spec/brand are copied so history survives catalog edits."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale = db.Column(db.Integer, nullable=False)
    specification = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(64), nullable=True)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_at_sale": self.price_at_sale,
            "specification": self.specification,
            "brand": self.brand,
        }
