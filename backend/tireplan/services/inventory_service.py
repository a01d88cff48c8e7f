# backend/tireplan/services/inventory_service.py
"""
Inventory ledger invariants (authoritative)

Inventory model:
- Per-branch quantities live in ProductStock rows, one per (product, branch).
- Product.stock is derived as SUM(ProductStock.quantity); it is never stored.
- No branch quantity is ever below zero (also enforced by a CHECK constraint).

Who writes ProductStock:
- apply_sale / apply_sale_edit (this module) when sales are completed or edited
- receive_service.receive_stock when stock arrives
- transfer_service.transfer_stock when stock moves between branches
- zero_fill_store when a branch is provisioned

Sale semantics:
- The placeholder product (PLACEHOLDER_PRODUCT_ID) is never decremented.
- Service items (branch quantity > SERVICE_STOCK_THRESHOLD) are never decremented.
- Sales clamp at zero instead of rejecting for insufficient stock.
- Cancelling a sale does not restore stock.
- Sales with inventory_adjusted=False never touch stock; toggling the flag
  on an edit sells or returns the whole sale.
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    Product, ProductStock, Store, Sale,
    PLACEHOLDER_PRODUCT_ID, SERVICE_STOCK_THRESHOLD,
)
from .concurrency import lock_for_update


class InventoryError(Exception):
    """Raised when a ledger operation is rejected."""
    pass


def get_stock_row(product: Product, store_id: int, *, lock: bool = False) -> ProductStock:
    """
    Return the (product, branch) row, creating it at zero when missing.

    New rows are attached through product.stocks so the derived totals on an
    already-loaded Product stay current within the transaction.
    """
    query = db.session.query(ProductStock).filter_by(product_id=product.id, store_id=store_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        row = ProductStock(store_id=store_id, quantity=0)
        product.stocks.append(row)
        db.session.flush()
    return row


def get_quantity(product_id: int, store_id: int) -> int:
    row = db.session.query(ProductStock).filter_by(product_id=product_id, store_id=store_id).first()
    return row.quantity if row else 0


def _decrement_clamped(product: Product, store_id: int, quantity: int) -> int:
    """Subtract quantity (negative adds), never below zero. Returns the new quantity."""
    row = get_stock_row(product, store_id, lock=True)
    row.quantity = max(0, row.quantity - quantity)
    return row.quantity


def is_low_stock(product: Product, threshold: int, store_ids=None) -> bool:
    """
    Low-stock flag on the total over store_ids (None means every branch).

    Service items and the placeholder are never low. Branches outside
    store_ids do not count toward the total or the service check.
    """
    if product.id == PLACEHOLDER_PRODUCT_ID or product.is_service_in(store_ids):
        return False
    return sum(product.scoped_stock(store_ids).values()) <= threshold


def apply_sale(sale: Sale) -> None:
    """
    Decrement the sale's branch for every sold product.

    Duplicate lines of one product are summed. Lines for the placeholder,
    for unknown products, and for service items are skipped. A sale
    recorded with inventory_adjusted=False leaves stock untouched.
    """
    if not sale.inventory_adjusted:
        return
    store_id = sale.store_id
    for product_id, quantity in sale.quantities_by_product().items():
        if product_id == PLACEHOLDER_PRODUCT_ID:
            continue
        product = db.session.get(Product, product_id)
        if product is None:
            continue
        row = get_stock_row(product, store_id, lock=True)
        if row.quantity > SERVICE_STOCK_THRESHOLD:
            continue
        row.quantity = max(0, row.quantity - quantity)
    db.session.flush()


def apply_sale_edit(previous_quantities: dict[int, int], sale: Sale,
                    previously_adjusted: bool = True) -> dict[int, int]:
    """
    Reconcile stock after a sale's items or inventory_adjusted flag changed.

    delta = new - old per product (duplicate lines summed). A version of the
    sale that was not inventory-adjusted counts as zero quantities, so
    switching the flag on sells the whole sale and switching it off returns
    it. A positive delta decrements; a negative delta returns stock. Results
    clamp at zero. Only the placeholder is skipped, and the branch is
    assumed to be unchanged between the two versions of the sale.

    Returns the applied deltas keyed by product id.
    """
    if not previously_adjusted and not sale.inventory_adjusted:
        return {}
    old_quantities = previous_quantities if previously_adjusted else {}
    new_quantities = sale.quantities_by_product() if sale.inventory_adjusted else {}
    deltas: dict[int, int] = {}

    for product_id in sorted(set(old_quantities) | set(new_quantities)):
        if product_id == PLACEHOLDER_PRODUCT_ID:
            continue
        product = db.session.get(Product, product_id)
        if product is None:
            continue
        delta = new_quantities.get(product_id, 0) - old_quantities.get(product_id, 0)
        if delta == 0:
            continue
        _decrement_clamped(product, sale.store_id, delta)
        deltas[product_id] = delta

    db.session.flush()
    return deltas


def zero_fill_store(store_id: int) -> int:
    """Give every product a zero entry for the branch. Returns rows added."""
    existing = {
        row[0] for row in
        db.session.query(ProductStock.product_id).filter_by(store_id=store_id).all()
    }
    added = 0
    for (product_id,) in db.session.query(Product.id).order_by(Product.id).all():
        if product_id in existing:
            continue
        product = db.session.get(Product, product_id)
        product.stocks.append(ProductStock(store_id=store_id, quantity=0))
        added += 1
    db.session.flush()
    return added


def zero_fill_product(product: Product) -> None:
    """Give a new product a zero entry for every known branch."""
    known = {row.store_id for row in product.stocks}
    for (store_id,) in db.session.query(Store.id).order_by(Store.id).all():
        if store_id not in known:
            product.stocks.append(ProductStock(store_id=store_id, quantity=0))


def list_catalog(store_ids=None, *, category: str | None = None, brand: str | None = None,
                 search: str | None = None) -> list[dict]:
    """
    Catalog listing (placeholder excluded), with per-branch stock restricted
    to store_ids when given.
    """
    query = db.session.query(Product).filter(Product.id != PLACEHOLDER_PRODUCT_ID)
    if category:
        query = query.filter(Product.category == category)
    if brand:
        query = query.filter(Product.brand == brand)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(like), Product.specification.ilike(like)))

    products = query.order_by(Product.id).all()
    return [p.to_dict(store_ids=store_ids) for p in products]


def list_low_stock(threshold: int, store_ids=None) -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.id != PLACEHOLDER_PRODUCT_ID)
        .order_by(Product.id)
        .all()
    )
    return [p.to_dict(store_ids=store_ids) for p in products if is_low_stock(p, threshold, store_ids)]


def ensure_placeholder_product() -> Product:
    """The reserved priority-payment line must exist for the register to use it."""
    product = db.session.get(Product, PLACEHOLDER_PRODUCT_ID)
    if product is None:
        product = Product(
            id=PLACEHOLDER_PRODUCT_ID,
            name="우선결제_임시",
            brand="기타",
            category="기타",
            price=0,
            specification="규격미정",
        )
        db.session.add(product)
        zero_fill_product(product)
        db.session.flush()
    return product
