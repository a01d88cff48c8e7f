# backend/tireplan/services/transfer_service.py
"""
Inter-branch stock transfer.

A transfer is a single immediate movement of one product between two
branches of the same tenant. Total stock is conserved. Unlike sales, a
transfer never clamps: it is rejected outright (no state change) when the
source branch holds less than the requested quantity.

Each successful transfer appends a StockTransferRecord.
"""
from __future__ import annotations

import logging
import math

from ..extensions import db
from ..models import Product, StockTransferRecord, User
from .concurrency import run_with_retry
from .inventory_service import get_stock_row
from .scope_service import ScopeError, require_visible_store

logger = logging.getLogger(__name__)


class TransferError(Exception):
    """Raised when a transfer is rejected."""
    pass


def _parse_quantity(quantity) -> int:
    if isinstance(quantity, bool):
        raise TransferError("Quantity must be a positive integer")
    if isinstance(quantity, float):
        if not math.isfinite(quantity) or not quantity.is_integer():
            raise TransferError("Quantity must be a positive integer")
        quantity = int(quantity)
    if isinstance(quantity, str):
        try:
            quantity = int(quantity.strip())
        except ValueError:
            raise TransferError("Quantity must be a positive integer")
    if not isinstance(quantity, int) or quantity <= 0:
        raise TransferError("Quantity must be a positive integer")
    return quantity


def transfer_stock(
    product_id: int,
    from_store_id: int,
    to_store_id: int,
    quantity,
    staff_name: str = "",
    identity: User | None = None,
) -> StockTransferRecord:
    """
    Move quantity of a product from one branch to another.

    Args:
        product_id: Catalog product to move
        from_store_id: Source branch
        to_store_id: Destination branch
        quantity: Positive whole number of units
        staff_name: Who performed the move (audit only)
        identity: When given, both branches must be visible to it

    Returns:
        StockTransferRecord: The appended audit record

    Raises:
        TransferError: Same branch, bad quantity, unknown product or
            insufficient stock at the source
    """
    def _op():
        if from_store_id is None or to_store_id is None:
            raise TransferError("Both source and destination branches are required")
        if int(from_store_id) == int(to_store_id):
            raise TransferError("Cannot transfer to the same branch")

        qty = _parse_quantity(quantity)

        if identity is not None:
            try:
                require_visible_store(identity, from_store_id)
                require_visible_store(identity, to_store_id)
            except ScopeError as e:
                raise TransferError(str(e))

        product = db.session.get(Product, product_id)
        if product is None:
            raise TransferError(f"Product {product_id} not found")

        source = get_stock_row(product, int(from_store_id), lock=True)
        if source.quantity < qty:
            logger.info(
                "Transfer rejected: product %s has %s at branch %s, requested %s",
                product_id, source.quantity, from_store_id, qty,
            )
            raise TransferError(
                f"Insufficient stock for product {product_id}. "
                f"On-hand: {source.quantity}, requested: {qty}"
            )

        destination = get_stock_row(product, int(to_store_id), lock=True)
        source.quantity -= qty
        destination.quantity += qty

        record = StockTransferRecord(
            product_id=product.id,
            product_name=product.name,
            from_store_id=int(from_store_id),
            to_store_id=int(to_store_id),
            quantity=qty,
            staff_name=(staff_name or "").strip(),
        )
        db.session.add(record)
        db.session.flush()

        logger.info(
            "Transferred %s x product %s from branch %s to branch %s",
            qty, product.id, from_store_id, to_store_id,
        )
        return record

    return run_with_retry(_op)
