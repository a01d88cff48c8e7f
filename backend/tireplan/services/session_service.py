"""
Session token management and the login phase machine.

A session carries two orthogonal facts:

- identity (session.user): WHO logged in. Drives data scoping.
- effective_role: WHAT the session may do right now. Drives capability
  gating. An owner works under STAFF until they unlock admin mode with
  their password, and drops back to STAFF on lock or on leaving the branch.

Phases:

    owner:        STORE_SELECT --select_store--> APP <--leave_store--
    super-admin:  SUPER_ADMIN (branch selection bypassed, store "ALL")

In phase APP a store_id of None means "ALL branches".

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout, owner deletion or password reset
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import (
    SessionToken, User, Store,
    ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_STAFF,
    PHASE_STORE_SELECT, PHASE_APP, PHASE_SUPER_ADMIN,
)
from . import auth_service
from tireplan.time_utils import utcnow

logger = logging.getLogger(__name__)


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

ALL_STORES = "ALL"


class SessionError(Exception):
    """Raised when a phase or capability transition is not allowed."""
    pass


@dataclass
class SessionContext:
    """Resolved view of a valid session, built by validate_session."""
    identity: User
    session: SessionToken
    effective_role: str
    phase: str
    store_id: int | None  # None in phase APP means "ALL"

    @property
    def is_all_stores(self) -> bool:
        return self.phase == PHASE_APP and self.store_id is None

    def to_dict(self) -> dict:
        return {
            "identity": self.identity.to_dict(),
            "effective_role": self.effective_role,
            "phase": self.phase,
            "store_id": self.store_id if self.store_id is not None else ALL_STORES,
            "expires_at": self.session.to_dict()["expires_at"],
        }


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user: User) -> tuple[SessionToken, str]:
    """
    Create a session for an authenticated user.

    Owners start in STORE_SELECT with effective role STAFF and no branch.
    The super-admin goes straight to the console with branch "ALL".

    Returns (session_record, plaintext_token).
    """
    if user.role == ROLE_SUPER_ADMIN:
        phase, effective_role = PHASE_SUPER_ADMIN, ROLE_SUPER_ADMIN
    elif user.role == ROLE_STORE_ADMIN:
        phase, effective_role = PHASE_STORE_SELECT, ROLE_STAFF
    else:
        raise SessionError(f"Unsupported role for login: {user.role}")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        phase=phase,
        effective_role=effective_role,
        store_id=None,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now=None) -> None:
    session.is_revoked = True
    session.revoked_at = now or utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, or None when the token is
    unknown, revoked, expired, idle too long, or its user is deactivated.

    Updates last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout", now)
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        identity=user,
        session=session,
        effective_role=session.effective_role,
        phase=session.phase,
        store_id=session.store_id,
    )


def _sync(context: SessionContext) -> SessionContext:
    context.effective_role = context.session.effective_role
    context.phase = context.session.phase
    context.store_id = context.session.store_id
    return context


def select_store(context: SessionContext, store_id) -> SessionContext:
    """
    Enter the app at one branch, or at "ALL" branches.

    Allowed from STORE_SELECT, and from APP to switch branch. The branch must
    belong to the identity and be active. The effective role is always reset
    to STAFF: switching branch relocks admin mode.
    """
    if context.phase not in (PHASE_STORE_SELECT, PHASE_APP):
        raise SessionError("Branch selection is not available in this session")

    if store_id is None or str(store_id).upper() == ALL_STORES:
        selected = None
    else:
        try:
            selected = int(store_id)
        except (TypeError, ValueError):
            raise SessionError("store_id must be a branch id or 'ALL'")
        store = db.session.query(Store).filter_by(
            id=selected, owner_id=context.identity.id
        ).first()
        if not store:
            raise SessionError("Store not found")
        if not store.is_active:
            raise SessionError("Store is inactive")

    session = context.session
    session.phase = PHASE_APP
    session.store_id = selected
    session.effective_role = ROLE_STAFF
    db.session.commit()
    return _sync(context)


def unlock_admin(context: SessionContext, password: str) -> SessionContext:
    """Raise the effective role to STORE_ADMIN after re-checking the password."""
    if context.phase != PHASE_APP:
        raise SessionError("Select a branch before unlocking admin mode")
    if context.identity.role != ROLE_STORE_ADMIN:
        raise SessionError("Only owners can unlock admin mode")
    if not auth_service.verify_user_password(context.identity, password):
        logger.warning("Rejected admin unlock for %s", context.identity.id)
        raise SessionError("Password does not match")

    context.session.effective_role = ROLE_STORE_ADMIN
    db.session.commit()
    return _sync(context)


def lock_admin(context: SessionContext) -> SessionContext:
    if context.phase != PHASE_APP:
        raise SessionError("Admin mode is only available inside the app")
    context.session.effective_role = ROLE_STAFF
    db.session.commit()
    return _sync(context)


def leave_store(context: SessionContext) -> SessionContext:
    """Owner returns to the branch picker; branch cleared, role back to STAFF."""
    if context.identity.role != ROLE_STORE_ADMIN or context.phase != PHASE_APP:
        raise SessionError("Only an owner inside the app can leave the branch")

    session = context.session
    session.phase = PHASE_STORE_SELECT
    session.store_id = None
    session.effective_role = ROLE_STAFF
    db.session.commit()
    return _sync(context)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: str, reason: str = "Revoke all sessions") -> int:
    """Revoke every live session of a user. Does not commit."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        _revoke(session, reason, now)
    return len(sessions)
