# Overview: Pytest coverage for login, the phase machine and admin unlock.

"""
Session tests.

Verifies:
- identity and effective role are separate: owners work as STAFF until they
  unlock admin mode with their password
- phases: STORE_SELECT -> APP (branch or ALL) -> STORE_SELECT
- capability gating uses the effective role only
- timeouts, logout and deactivation end sessions
"""

from datetime import timedelta

import pytest

from tireplan.models import (
    PHASE_APP, PHASE_STORE_SELECT, PHASE_SUPER_ADMIN,
    ROLE_STAFF, ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN,
)
from tireplan.services import auth_service, session_service
from tireplan.services.auth_service import AuthError
from tireplan.services.session_service import SessionError
from tireplan.time_utils import utcnow

from conftest import OWNER_PASSWORD


def _context(user):
    _, token = session_service.create_session(user)
    return session_service.validate_session(token), token


class TestAuthenticate:

    def test_valid_credentials(self, db_session, owner_a):
        user = auth_service.authenticate(owner_a.id, OWNER_PASSWORD)
        assert user is not None
        assert user.last_login_at is not None

    def test_wrong_password(self, db_session, owner_a):
        assert auth_service.authenticate(owner_a.id, "wrong") is None

    def test_unknown_login_code(self, db_session):
        assert auth_service.authenticate("259999", OWNER_PASSWORD) is None

    def test_inactive_owner(self, db_session, owner_a):
        owner_a.is_active = False
        db_session.commit()
        assert auth_service.authenticate(owner_a.id, OWNER_PASSWORD) is None


class TestPhaseMachine:

    def test_owner_starts_at_store_select_as_staff(self, db_session, owner_a):
        context, _ = _context(owner_a)
        assert context.phase == PHASE_STORE_SELECT
        assert context.effective_role == ROLE_STAFF
        assert context.store_id is None

    def test_super_admin_skips_store_select(self, db_session, super_admin):
        context, _ = _context(super_admin)
        assert context.phase == PHASE_SUPER_ADMIN
        assert context.effective_role == ROLE_SUPER_ADMIN
        assert context.to_dict()["store_id"] == "ALL"

    def test_select_branch(self, db_session, owner_a, store_a1):
        context, _ = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        assert context.phase == PHASE_APP
        assert context.store_id == store_a1.id
        assert context.effective_role == ROLE_STAFF

    def test_select_all(self, db_session, owner_a, store_a1):
        context, _ = _context(owner_a)
        session_service.select_store(context, "ALL")
        assert context.phase == PHASE_APP
        assert context.is_all_stores

    def test_cannot_select_foreign_branch(self, db_session, owner_a, store_b1):
        context, _ = _context(owner_a)
        with pytest.raises(SessionError, match="Store not found"):
            session_service.select_store(context, store_b1.id)

    def test_cannot_select_inactive_branch(self, db_session, owner_a, store_a1):
        store_a1.is_active = False
        db_session.commit()
        context, _ = _context(owner_a)
        with pytest.raises(SessionError, match="inactive"):
            session_service.select_store(context, store_a1.id)

    def test_leave_store_resets(self, db_session, owner_a, store_a1):
        context, _ = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        session_service.unlock_admin(context, OWNER_PASSWORD)
        session_service.leave_store(context)
        assert context.phase == PHASE_STORE_SELECT
        assert context.store_id is None
        assert context.effective_role == ROLE_STAFF

    def test_switching_branch_relocks(self, db_session, owner_a, store_a1, store_a2):
        context, _ = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        session_service.unlock_admin(context, OWNER_PASSWORD)
        session_service.select_store(context, store_a2.id)
        assert context.effective_role == ROLE_STAFF

    def test_state_persists_across_requests(self, db_session, owner_a, store_a1):
        context, token = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        session_service.unlock_admin(context, OWNER_PASSWORD)

        again = session_service.validate_session(token)
        assert again.phase == PHASE_APP
        assert again.store_id == store_a1.id
        assert again.effective_role == ROLE_STORE_ADMIN


class TestAdminUnlock:

    def test_unlock_with_password(self, db_session, owner_a, store_a1):
        context, _ = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        session_service.unlock_admin(context, OWNER_PASSWORD)
        assert context.effective_role == ROLE_STORE_ADMIN

    def test_wrong_password_keeps_staff(self, db_session, owner_a, store_a1):
        context, _ = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        with pytest.raises(SessionError, match="does not match"):
            session_service.unlock_admin(context, "nope")
        assert context.effective_role == ROLE_STAFF

    def test_unlock_requires_app_phase(self, db_session, owner_a):
        context, _ = _context(owner_a)
        with pytest.raises(SessionError):
            session_service.unlock_admin(context, OWNER_PASSWORD)

    def test_lock_returns_to_staff(self, db_session, owner_a, store_a1):
        context, _ = _context(owner_a)
        session_service.select_store(context, store_a1.id)
        session_service.unlock_admin(context, OWNER_PASSWORD)
        session_service.lock_admin(context)
        assert context.effective_role == ROLE_STAFF


class TestSessionLifetime:

    def test_logout_revokes(self, db_session, owner_a):
        _, token = _context(owner_a)
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_absolute_expiry(self, db_session, owner_a):
        context, token = _context(owner_a)
        context.session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_timeout(self, db_session, owner_a):
        context, token = _context(owner_a)
        context.session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_deactivated_owner_loses_session(self, db_session, owner_a):
        _, token = _context(owner_a)
        owner_a.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("not-a-token") is None


class TestChangePassword:

    def test_change_password(self, db_session, owner_a):
        auth_service.change_password(owner_a, OWNER_PASSWORD, "tire2025")
        db_session.commit()
        assert auth_service.authenticate(owner_a.id, "tire2025") is not None
        assert auth_service.authenticate(owner_a.id, OWNER_PASSWORD) is None

    @pytest.mark.parametrize("new_password", ["ab12", "abcdefgh", "12345678"])
    def test_weak_password_rejected(self, db_session, owner_a, new_password):
        with pytest.raises(AuthError):
            auth_service.change_password(owner_a, OWNER_PASSWORD, new_password)

    def test_current_password_must_match(self, db_session, owner_a):
        with pytest.raises(AuthError, match="Current password"):
            auth_service.change_password(owner_a, "wrong", "tire2025")

    def test_new_password_must_differ(self, db_session, owner_a):
        auth_service.change_password(owner_a, OWNER_PASSWORD, "tire2025")
        db_session.commit()
        with pytest.raises(AuthError, match="differ"):
            auth_service.change_password(owner_a, "tire2025", "tire2025")
