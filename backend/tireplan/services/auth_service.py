"""
Password authentication for owners and the super-admin.

Owners log in with their numeric login code (e.g. "250001"); there is no
username/email. Passwords are bcrypt hashes. New owners start on the
configured default password and change it from their settings screen,
where the strength rule applies.

SECURITY NOTES:
- bcrypt cost factor from BCRYPT_ROUNDS (12 in production)
- No lockout or throttling: a wrong password simply returns None
- Session tokens are managed separately (see session_service.py)
"""

import logging
import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from tireplan.time_utils import utcnow

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when a credential operation is rejected."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements for a password chosen by an owner:
    - At least 6 characters
    - At least one digit and at least one letter
    """
    if len(password) < 6:
        raise AuthError("Password must be at least 6 characters long")
    if not re.search(r"[0-9]", password) or not re.search(r"[A-Za-z]", password):
        raise AuthError("Password must combine letters and digits")


def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; malformed hashes count as a mismatch."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def verify_user_password(user: User, password: str) -> bool:
    return verify_password(password, user.password_hash)


def authenticate(user_id: str, password: str) -> User | None:
    """
    Returns the User when the login code exists, the account is active and
    the password matches. Otherwise None, with no state change.

    Updates last_login_at on success.
    """
    if not user_id or not password:
        return None

    user = db.session.query(User).filter_by(id=str(user_id).strip()).first()
    if not user or not user.is_active:
        logger.warning("Rejected login for %s: unknown or inactive account", user_id)
        return None

    if not verify_password(password, user.password_hash):
        logger.warning("Rejected login for %s: wrong password", user_id)
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> User:
    """
    Owner-initiated password change.

    The current password must match, and the new one must pass the strength
    rule and differ from the current one. Existing sessions stay valid.
    """
    if not verify_password(current_password, user.password_hash):
        raise AuthError("Current password does not match")
    if not new_password:
        raise AuthError("New password is required")
    validate_password_strength(new_password)
    if new_password == current_password:
        raise AuthError("New password must differ from the current password")

    user.password_hash = hash_password(new_password)
    db.session.flush()
    return user
