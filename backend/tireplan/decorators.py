# Overview: Request and capability decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models import PHASE_APP, ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_STAFF
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a live session.

    Sets the following Flask g attributes:
    - g.current_user: the login identity (drives data scoping)
    - g.session_context: the SessionContext (effective role, phase, branch)
    - g.store_id: the selected branch, None for "ALL" or before selection

    Returns 401 if the Authorization header is missing, or the token is
    invalid, expired, revoked, or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.identity
        g.session_context = context
        g.store_id = context.store_id

        return f(*args, **kwargs)

    return decorated_function


def require_capability(*roles: str):
    """
    Require the session's EFFECTIVE role to be one of roles.

    Gating never looks at the identity's stored role: an owner who has not
    unlocked admin mode is STAFF here.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            context = g.session_context
            if context.effective_role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "effective_role": context.effective_role,
                }), 403

            if ROLE_SUPER_ADMIN not in roles and context.phase != PHASE_APP:
                return jsonify({"error": "Select a branch first"}), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


# Shorthands for the three capability tiers
require_app = require_capability(ROLE_STAFF, ROLE_STORE_ADMIN)
require_store_admin = require_capability(ROLE_STORE_ADMIN)
require_super_admin = require_capability(ROLE_SUPER_ADMIN)
