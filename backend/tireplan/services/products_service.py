# backend/tireplan/services/products_service.py
"""
Catalog maintenance.

The catalog is shared by every branch; what a tenant sees is restricted to
its own branches' entries in stock_by_store. Direct stock edits are an
owner's manual correction of the counts at their own branches and are
clamped to whole, non-negative numbers.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Brand, Product, User, PLACEHOLDER_PRODUCT_ID
from ..validation import (
    ModelValidationPolicy, ValidationError, enforce_non_negative_amounts,
    parse_int, validate_payload,
)
from .inventory_service import InventoryError, get_stock_row, zero_fill_product
from .receive_service import ensure_brand
from .scope_service import ScopeError, require_visible_store

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "brand", "category", "price", "specification"},
    required_on_create={"name"},
)


def _split_stock(payload: dict | None) -> tuple[dict, dict | None]:
    payload = dict(payload or {})
    stock = payload.pop("stock_by_store", None)
    if stock is not None and not isinstance(stock, dict):
        raise ValidationError("stock_by_store must be an object of branch id -> quantity")
    return payload, stock


def _apply_stock(identity: User, product: Product, stock: dict) -> None:
    for raw_store_id, raw_qty in stock.items():
        try:
            store = require_visible_store(identity, raw_store_id)
        except ScopeError as e:
            raise InventoryError(str(e))
        qty = parse_int(raw_qty, f"stock_by_store[{raw_store_id}]")
        if qty < 0:
            raise InventoryError("Stock quantities cannot be negative")
        get_stock_row(product, store.id, lock=True).quantity = qty


def create_product(identity: User, payload: dict) -> Product:
    payload, stock = _split_stock(payload)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_non_negative_amounts(patch, "price")
    if not patch.get("specification"):
        patch["specification"] = None

    product = Product(**patch)
    db.session.add(product)
    zero_fill_product(product)
    db.session.flush()

    if stock:
        _apply_stock(identity, product, stock)
    ensure_brand(product.brand)
    db.session.flush()
    return product


def update_product(identity: User, product_id: int, payload: dict) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or product.id == PLACEHOLDER_PRODUCT_ID:
        raise ScopeError("Product not found")

    payload, stock = _split_stock(payload)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_non_negative_amounts(patch, "price")

    for k, v in patch.items():
        setattr(product, k, v)
    if stock:
        _apply_stock(identity, product, stock)
    if "brand" in patch:
        ensure_brand(product.brand)

    db.session.flush()
    return product


def list_brands() -> list[str]:
    return [b.name for b in db.session.query(Brand).order_by(Brand.id).all()]


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.id != PLACEHOLDER_PRODUCT_ID)
        .distinct()
        .order_by(Product.category)
        .all()
    )
    return [r[0] for r in rows]
