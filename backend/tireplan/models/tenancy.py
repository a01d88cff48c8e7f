from __future__ import annotations

from ..extensions import db
from tireplan.time_utils import to_utc_z


ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_STORE_ADMIN = "STORE_ADMIN"
ROLE_STAFF = "STAFF"


class User(db.Model):
    """
    Login identity: a tenant owner (STORE_ADMIN) or the platform super-admin.

    MULTI-TENANT: An owner IS the tenant. Branches point at the owner via
    Store.owner_id, and every tenant-scoped record is reachable from there.

    The id is the human login code ({yy}{seq:04d} for owners, e.g. "250001").
    STAFF is never stored here; staff operate the owner's account under a
    downgraded session (see session_service).
    """
    __tablename__ = "users"

    id = db.Column(db.String(16), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(16), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    phone_number = db.Column(db.String(32), nullable=True)

    # Primary branch (set on provisioning); nullable for the super-admin
    home_store_id = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id!r} role={self.role}>"

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "phone_number": self.phone_number,
            "home_store_id": self.home_store_id,
            "is_active": self.is_active,
            "joined_at": to_utc_z(self.joined_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class Store(db.Model):
    """
    Branch ("store account") belonging to exactly one owner.

    Inventory is tracked per branch (ProductStock.store_id).
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.Index("ix_stores_owner_id", "owner_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=False)
    name = db.Column(db.String(120), nullable=False)

    # Two-digit region code ('01' Seoul ...) and its display name
    region = db.Column(db.String(8), nullable=False, default="01")
    region_name = db.Column(db.String(32), nullable=False, default="기타")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("stores", lazy=True))

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} owner_id={self.owner_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "region": self.region,
            "region_name": self.region_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
