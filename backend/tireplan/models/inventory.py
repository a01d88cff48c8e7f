from __future__ import annotations

from ..extensions import db
from tireplan.time_utils import to_utc_z


# Reserved "priority payment" line recorded before the real catalog item is known
PLACEHOLDER_PRODUCT_ID = 99999

# Any branch quantity above this marks an unlimited service item (labour etc.)
SERVICE_STOCK_THRESHOLD = 900


class Product(db.Model):
    """
    Catalog item shared by all branches.

    INVENTORY: Quantities live in ProductStock, one row per (product, branch).
    Product.stock is derived from those rows and never stored, so
    stock == sum(stock_by_store.values()) holds by construction.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name_spec", "name", "specification"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(64), nullable=False, default="타이어")

    # Selling price in won
    price = db.Column(db.Integer, nullable=False, default=0)

    # Tire size, e.g. 245/45R18 (None for parts and services)
    specification = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stocks = db.relationship(
        "ProductStock",
        back_populates="product",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} spec={self.specification!r}>"

    @property
    def stock_by_store(self) -> dict[int, int]:
        return {row.store_id: row.quantity for row in self.stocks}

    @property
    def stock(self) -> int:
        return sum(row.quantity for row in self.stocks)

    @property
    def is_placeholder(self) -> bool:
        return self.id == PLACEHOLDER_PRODUCT_ID

    @property
    def is_service(self) -> bool:
        return self.is_service_in(None)

    def scoped_stock(self, store_ids=None) -> dict[int, int]:
        """stock_by_store restricted to store_ids (None means every branch)."""
        by_store = self.stock_by_store
        if store_ids is None:
            return by_store
        return {sid: qty for sid, qty in by_store.items() if sid in store_ids}

    def is_service_in(self, store_ids=None) -> bool:
        return any(qty > SERVICE_STOCK_THRESHOLD for qty in self.scoped_stock(store_ids).values())

    def to_dict(self, store_ids: set[int] | None = None) -> dict:
        by_store = self.scoped_stock(store_ids)
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "price": self.price,
            "specification": self.specification,
            # JSON object keys are strings
            "stock_by_store": {str(sid): qty for sid, qty in sorted(by_store.items())},
            "stock": sum(by_store.values()),
            "is_service": self.is_service_in(store_ids),
            "created_at": to_utc_z(self.created_at),
        }


class ProductStock(db.Model):
    """
    Per-branch quantity of one product ("stockByStore" entry).

    Mutated only by inventory_service / transfer_service / receive_service.
    store_id has no FK: entries outlive a deleted branch.
    """
    __tablename__ = "product_stocks"
    __table_args__ = (
        db.UniqueConstraint("product_id", "store_id", name="uq_product_stocks_product_store"),
        db.CheckConstraint("quantity >= 0", name="ck_product_stocks_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="stocks")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "store_id": self.store_id,
            "quantity": self.quantity,
        }


class Brand(db.Model):
    """Global brand list used for catalog browsing."""
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class StockInRecord(db.Model):
    """
    Append-only receiving log. Each row was applied to ProductStock when created.
    """
    __tablename__ = "stock_in_records"
    __table_args__ = (
        db.Index("ix_stock_in_store_received", "store_id", "received_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    received_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.Column(db.String(120), nullable=False, default="")
    category = db.Column(db.String(64), nullable=False, default="타이어")
    brand = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=False)
    specification = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)

    # Factory price is entered at registration; purchase price is owner-only
    factory_price = db.Column(db.Integer, nullable=True)
    purchase_price = db.Column(db.Integer, nullable=True)

    product = db.relationship("Product")

    def to_dict(self, include_purchase_price: bool = True) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "received_at": to_utc_z(self.received_at),
            "supplier": self.supplier,
            "category": self.category,
            "brand": self.brand,
            "product_name": self.product_name,
            "specification": self.specification,
            "quantity": self.quantity,
            "factory_price": self.factory_price,
        }
        if include_purchase_price:
            data["purchase_price"] = self.purchase_price
        return data


class StockTransferRecord(db.Model):
    """Append-only audit row written with every successful inter-branch transfer."""
    __tablename__ = "stock_transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    from_store_id = db.Column(db.Integer, nullable=False, index=True)
    to_store_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    staff_name = db.Column(db.String(120), nullable=False, default="")
    transferred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "from_store_id": self.from_store_id,
            "to_store_id": self.to_store_id,
            "quantity": self.quantity,
            "staff_name": self.staff_name,
            "transferred_at": to_utc_z(self.transferred_at),
        }
