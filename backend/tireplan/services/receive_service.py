"""
Stock-in (receiving) service.

Receiving stock always does two things in one transaction:
1. Appends a StockInRecord (the receiving log)
2. Increments ProductStock at the receiving branch

PRODUCT MATCHING (first rule that applies):
- forced product id: the caller picked a catalog product explicitly
- name + specification: when both the product and the receipt carry a spec
- name only: otherwise

Without a match a new product is created with a zero entry for every known
branch and the received quantity at the receiving branch.

Brands not yet in the global brand list are appended to it.

IMMUTABLE: quantity and branch of a StockInRecord cannot be edited after
the fact, because the stock has already been applied.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Brand, Product, StockInRecord, User
from .concurrency import run_with_retry
from .inventory_service import get_stock_row, zero_fill_product
from .scope_service import ScopeError, require_visible, require_visible_store, visible_stock_in_records
from ..validation import (
    ModelValidationPolicy, ValidationError, enforce_non_negative_amounts,
    parse_amount, parse_positive_int, validate_payload,
)
from tireplan.time_utils import parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)


class ReceiveError(Exception):
    """Raised when stock-in data fails validation."""
    pass


STOCK_IN_EDIT_POLICY = ModelValidationPolicy(
    writable_fields={
        "supplier", "category", "brand", "factory_price", "purchase_price",
        "received_at", "specification", "product_name",
    },
)


def ensure_brand(name: str | None) -> Brand | None:
    """Append a brand to the global list if it is new."""
    if not name or not name.strip():
        return None
    name = name.strip()
    brand = db.session.query(Brand).filter_by(name=name).first()
    if brand is None:
        brand = Brand(name=name)
        db.session.add(brand)
        db.session.flush()
    return brand


def find_matching_product(
    product_name: str,
    specification: str | None,
    force_product_id: int | None = None,
) -> Product | None:
    if force_product_id is not None:
        return db.session.get(Product, force_product_id)

    candidates = (
        db.session.query(Product)
        .filter(Product.name == product_name)
        .order_by(Product.id)
        .all()
    )
    for product in candidates:
        if product.specification and specification:
            if product.specification == specification:
                return product
        else:
            return product
    return None


def receive_stock(
    *,
    store_id: int,
    product_name: str,
    quantity,
    specification: str | None = None,
    brand: str | None = None,
    category: str | None = None,
    supplier: str | None = None,
    factory_price=None,
    purchase_price=None,
    selling_price=None,
    force_product_id: int | None = None,
    received_at=None,
    identity: User | None = None,
) -> StockInRecord:
    """
    Receive stock into one branch.

    Returns:
        StockInRecord: the appended log row (product_id set to the matched or
        created product)

    Raises:
        ReceiveError: bad quantity, missing name, invisible branch, or a
            forced product id that does not exist
    """
    def _op():
        if not product_name or not str(product_name).strip():
            raise ReceiveError("product_name is required")
        name = str(product_name).strip()
        spec = (specification or "").strip() or None

        try:
            qty = parse_positive_int(quantity, "quantity")
            factory = parse_amount(factory_price, "factory_price") if factory_price not in (None, "") else None
            purchase = parse_amount(purchase_price, "purchase_price") if purchase_price not in (None, "") else None
            selling = parse_amount(selling_price, "selling_price") if selling_price not in (None, "") else 0
        except ValidationError as e:
            raise ReceiveError(str(e))

        if identity is not None:
            try:
                require_visible_store(identity, store_id)
            except ScopeError as e:
                raise ReceiveError(str(e))

        if isinstance(received_at, str):
            try:
                occurred = parse_iso_datetime(received_at) or utcnow()
            except ValueError:
                raise ReceiveError("received_at must be an ISO-8601 datetime")
        else:
            occurred = received_at or utcnow()

        product = find_matching_product(name, spec, force_product_id)
        if force_product_id is not None and product is None:
            raise ReceiveError(f"Product {force_product_id} not found")

        if product is None:
            product = Product(
                name=name,
                brand=(brand or "").strip() or None,
                category=(category or "").strip() or "타이어",
                price=selling,
                specification=spec,
            )
            db.session.add(product)
            zero_fill_product(product)
            db.session.flush()
            logger.info("Stock-in created product %s (%s %s)", product.id, name, spec or "")

        row = get_stock_row(product, int(store_id), lock=True)
        row.quantity += qty

        ensure_brand(brand)

        record = StockInRecord(
            store_id=int(store_id),
            product_id=product.id,
            received_at=occurred,
            supplier=(supplier or "").strip(),
            category=(category or "").strip() or product.category,
            brand=(brand or "").strip() or product.brand,
            product_name=name,
            specification=spec,
            quantity=qty,
            factory_price=factory,
            purchase_price=purchase,
        )
        db.session.add(record)
        db.session.flush()
        return record

    return run_with_retry(_op)


def list_stock_in(identity: User, store_id: int | None = None) -> list[StockInRecord]:
    query = visible_stock_in_records(identity)
    if store_id is not None:
        query = query.filter(StockInRecord.store_id == store_id)
    return query.order_by(StockInRecord.received_at.desc(), StockInRecord.id.desc()).all()


def update_stock_in_record(identity: User, record_id: int, payload: dict) -> StockInRecord:
    """
    Edit audit fields of a receiving log row.

    quantity, store_id and product_id are rejected: stock was already applied.
    """
    record = require_visible(visible_stock_in_records(identity), StockInRecord, record_id, "Stock-in record")

    for locked in ("quantity", "store_id", "product_id"):
        if payload and locked in payload:
            raise ReceiveError(f"{locked} cannot be changed after stock-in")

    patch = validate_payload(
        model=StockInRecord,
        payload=payload,
        policy=STOCK_IN_EDIT_POLICY,
        partial=True,
    )
    enforce_non_negative_amounts(patch, "factory_price", "purchase_price")

    for k, v in patch.items():
        setattr(record, k, v)

    if patch.get("brand"):
        ensure_brand(patch["brand"])

    db.session.flush()
    return record
