from __future__ import annotations

from ..extensions import db
from tireplan.time_utils import to_utc_z


PHASE_STORE_SELECT = "STORE_SELECT"
PHASE_APP = "APP"
PHASE_SUPER_ADMIN = "SUPER_ADMIN"


class SessionToken(db.Model):
    """
    Session token carrying identity and effective capability separately.

    user_id is WHO logged in (identity; drives data scoping).
    effective_role is WHAT the session may do right now (drives gating):
    an owner's session starts as STAFF and is only raised to STORE_ADMIN by
    an explicit password unlock.

    phase tracks the login flow: STORE_SELECT -> APP for owners,
    SUPER_ADMIN for the console. store_id None in phase APP means "ALL".

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=False, index=True)

    phase = db.Column(db.String(16), nullable=False)
    effective_role = db.Column(db.String(16), nullable=False)
    store_id = db.Column(db.Integer, nullable=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Session metadata
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Revocation support
    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "phase": self.phase,
            "effective_role": self.effective_role,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
