"""
POS sales: checkout, edit, cancel, history.

A sale is created complete (there is no draft). Completing a sale
decrements the branch's stock (clamped at zero, placeholder and service
items skipped) and feeds the owner's customer aggregate.

total_amount is trusted as given by the register; it may already include
a discount. When omitted it defaults to the sum of the lines.

Sales are never deleted. An edit replaces items and details, reconciles
stock by per-product delta and marks the sale is_edited. A cancel only
flags the sale; stock is not restored.
"""

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import Product, Sale, SaleItem, User, PAYMENT_METHODS
from ..validation import (
    ValidationError, optional_text, parse_amount, parse_positive_int,
)
from .concurrency import run_with_retry
from .customer_service import upsert_customer_from_sale
from .inventory_service import apply_sale, apply_sale_edit
from .scope_service import ScopeError, require_visible, require_visible_store, visible_sales
from tireplan.time_utils import day_window, parse_iso_date, parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


CUSTOMER_FIELDS = {
    # payload key -> Sale column
    "name": "customer_name",
    "phone_number": "customer_phone",
    "car_model": "car_model",
    "vehicle_number": "vehicle_number",
    "business_number": "business_number",
    "company_name": "company_name",
    "email": "customer_email",
}


def _build_items(raw_items) -> list[SaleItem]:
    if not isinstance(raw_items, list) or not raw_items:
        raise SaleError("A sale needs at least one item")

    items = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise SaleError(f"items[{idx}] must be an object")
        try:
            product_id = parse_positive_int(raw.get("product_id"), f"items[{idx}].product_id")
            quantity = parse_positive_int(raw.get("quantity"), f"items[{idx}].quantity")
        except ValidationError as e:
            raise SaleError(str(e))

        product = db.session.get(Product, product_id)
        if product is None:
            raise SaleError(f"Product {product_id} not found", details={"product_id": product_id})

        try:
            price = parse_amount(raw["price_at_sale"], f"items[{idx}].price_at_sale") \
                if raw.get("price_at_sale") is not None else product.price
        except ValidationError as e:
            raise SaleError(str(e))

        items.append(SaleItem(
            product_id=product.id,
            # The placeholder line carries the name typed at the register
            product_name=optional_text(raw.get("product_name")) or product.name,
            quantity=quantity,
            price_at_sale=price,
            specification=optional_text(raw.get("specification")) or product.specification,
            brand=optional_text(raw.get("brand")) or product.brand,
        ))
    return items


def _line_total(items: list[SaleItem]) -> int:
    return sum(item.price_at_sale * item.quantity for item in items)


def _apply_details(sale: Sale, payload: dict) -> None:
    """Payment, staff, amounts, customer snapshot and memo from a payload."""
    if "payment_method" in payload:
        method = str(payload.get("payment_method") or "").strip().upper()
        if method not in PAYMENT_METHODS:
            raise SaleError(f"payment_method must be one of {', '.join(sorted(PAYMENT_METHODS))}")
        sale.payment_method = method

    if "staff_name" in payload:
        staff_name = optional_text(payload.get("staff_name"))
        if not staff_name:
            raise SaleError("staff_name is required")
        sale.staff_name = staff_name

    try:
        if payload.get("discount_amount") is not None:
            sale.discount_amount = parse_amount(payload["discount_amount"], "discount_amount")
        if payload.get("total_amount") is not None:
            sale.total_amount = parse_amount(payload["total_amount"], "total_amount")
    except ValidationError as e:
        raise SaleError(str(e))

    if "customer" in payload:
        customer = payload.get("customer") or {}
        if not isinstance(customer, dict):
            raise SaleError("customer must be an object")
        for key, column in CUSTOMER_FIELDS.items():
            setattr(sale, column, optional_text(customer.get(key)))

    if "vehicle_number" in payload:
        sale.vehicle_number = optional_text(payload.get("vehicle_number"))
    if "memo" in payload:
        sale.memo = optional_text(payload.get("memo"))
    if "is_tax_invoice_requested" in payload:
        sale.is_tax_invoice_requested = bool(payload.get("is_tax_invoice_requested"))
    for key in ("inventory_adjusted", "adjust_inventory"):
        if key in payload:
            sale.inventory_adjusted = payload.get(key) is not False


def complete_sale(identity: User, payload: dict) -> Sale:
    """
    Checkout at the register.

    Request payload:
    {
        "store_id": int,
        "items": [{"product_id": int, "quantity": int, "price_at_sale": int?,
                   "product_name": str?}],
        "payment_method": "CARD" | "CASH" | "TRANSFER",
        "staff_name": str,
        "total_amount": int?,        # trusted; defaults to the line sum
        "discount_amount": int?,
        "customer": {"name", "phone_number", "car_model", "vehicle_number",
                     "business_number", "company_name", "email"}?,
        "vehicle_number": str?, "memo": str?, "is_tax_invoice_requested": bool?,
        "inventory_adjusted": bool?,  # false records the sale without touching stock
        "sold_at": ISO-8601?
    }
    """
    def _op():
        if not isinstance(payload, dict):
            raise SaleError("Invalid JSON payload")
        try:
            store = require_visible_store(identity, payload.get("store_id"))
        except ScopeError as e:
            raise SaleError(str(e))

        for required in ("payment_method", "staff_name"):
            if not payload.get(required):
                raise SaleError(f"{required} is required")

        items = _build_items(payload.get("items"))

        sold_at = utcnow()
        if payload.get("sold_at"):
            try:
                sold_at = parse_iso_datetime(payload["sold_at"])
            except ValueError:
                raise SaleError("sold_at must be an ISO-8601 datetime")

        sale = Sale(store_id=store.id, sold_at=sold_at, discount_amount=0, items=items)
        _apply_details(sale, payload)
        if sale.total_amount is None:
            sale.total_amount = max(0, _line_total(items) - (sale.discount_amount or 0))

        db.session.add(sale)
        db.session.flush()

        apply_sale(sale)
        upsert_customer_from_sale(sale, store.owner_id)

        logger.info("Sale %s completed at branch %s: %s won", sale.id, store.id, sale.total_amount)
        return sale

    return run_with_retry(_op)


def get_sale(identity: User, sale_id: int) -> Sale:
    return require_visible(visible_sales(identity), Sale, sale_id, "Sale")


def update_sale(identity: User, sale_id: int, payload: dict) -> Sale:
    """
    Replace a sale's editable details and, when given, its items.

    Stock is reconciled by per-product delta at the sale's branch, also when
    inventory_adjusted is switched. Moving a sale to another branch is
    rejected. Canceled sales can still be edited.
    """
    def _op():
        if not isinstance(payload, dict):
            raise SaleError("Invalid JSON payload")
        sale = get_sale(identity, sale_id)

        if payload.get("store_id") is not None and str(payload["store_id"]) != str(sale.store_id):
            raise SaleError("A sale cannot be moved to another branch")

        previous = sale.quantities_by_product()
        previously_adjusted = sale.inventory_adjusted

        _apply_details(sale, payload)

        if "items" in payload:
            new_items = _build_items(payload.get("items"))
            sale.items.clear()
            db.session.flush()
            sale.items.extend(new_items)
            if payload.get("total_amount") is None:
                sale.total_amount = max(0, _line_total(new_items) - (sale.discount_amount or 0))

        sale.is_edited = True
        db.session.flush()

        if "items" in payload or sale.inventory_adjusted != previously_adjusted:
            apply_sale_edit(previous, sale, previously_adjusted)

        return sale

    return run_with_retry(_op)


def cancel_sale(identity: User, sale_id: int) -> Sale:
    """Flag the sale canceled. A second cancel changes nothing. Stock is not restored."""
    sale = get_sale(identity, sale_id)
    if sale.is_canceled:
        return sale
    sale.is_canceled = True
    sale.canceled_at = utcnow()
    db.session.flush()
    logger.info("Sale %s canceled", sale.id)
    return sale


def list_sales(
    identity: User,
    store_id: int | None = None,
    payment_method: str | None = None,
    date=None,
    search: str | None = None,
    include_canceled: bool = True,
) -> list[Sale]:
    """
    Sales history, newest first.

    date filters by business day (YYYY-MM-DD in BUSINESS_TIMEZONE); search
    matches the customer name, phone or vehicle number.
    """
    query = visible_sales(identity)
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)
    if payment_method:
        query = query.filter(Sale.payment_method == payment_method.strip().upper())
    if date:
        try:
            day = parse_iso_date(date) if isinstance(date, str) else date
        except ValueError:
            raise SaleError("date must be YYYY-MM-DD")
        if day is not None:
            start, end = day_window(day, current_app.config.get("BUSINESS_TIMEZONE"))
            query = query.filter(Sale.sold_at >= start, Sale.sold_at < end)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Sale.customer_name.ilike(like),
            Sale.customer_phone.ilike(like),
            Sale.vehicle_number.ilike(like),
        ))
    if not include_canceled:
        query = query.filter(Sale.is_canceled.is_(False))
    return query.order_by(Sale.sold_at.desc(), Sale.id.desc()).all()
