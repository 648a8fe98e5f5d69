"""
Tests for login lockout, token rotation and password reset.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, func

from branch_finance.exceptions import AuthError, ForbiddenError
from branch_finance.models.base import utcnow
from branch_finance.models.user import LoginHistory, RefreshToken, PasswordResetToken
from branch_finance.schemas.user import UserUpdate
from branch_finance.services.auth_service import AuthService, LoginOutcome
from branch_finance.services.security import TokenStatus, hash_token
from branch_finance.services.user_service import UserService

from tests.conftest import TEST_PASSWORD, actor_for


def history_count(db, user, success=None):
    stmt = select(func.count(LoginHistory.id)).where(LoginHistory.user_id == user.id)
    if success is not None:
        stmt = stmt.where(LoginHistory.success == success)
    return db.execute(stmt).scalar_one()


class TestLogin:

    def test_successful_login_issues_tokens(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        result = service.login("cashier1", TEST_PASSWORD)
        db_session.commit()

        assert result.ok
        assert result.tokens.access_token
        assert result.tokens.refresh_token
        user = world["users"]["cashier"]
        assert user.attempts == 0
        assert user.last_login is not None
        assert history_count(db_session, user, success=True) == 1

    def test_unknown_user_gets_generic_message(self, world, db_session, settings):
        result = AuthService(db_session, settings).login("nobody", TEST_PASSWORD)
        assert result.outcome is LoginOutcome.INVALID_CREDENTIALS
        assert isinstance(result.error(), AuthError)
        assert result.error().message == "Invalid username or password."

    def test_wrong_password_counts_attempts(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        result = service.login("cashier1", "wrong-password")
        db_session.commit()

        user = world["users"]["cashier"]
        assert not result.ok
        assert user.attempts == 1
        assert not user.locked
        assert history_count(db_session, user, success=False) == 1

    def test_fifth_failure_locks_account(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        for _ in range(4):
            service.login("cashier1", "wrong-password")
        result = service.login("cashier1", "wrong-password")
        db_session.commit()

        user = world["users"]["cashier"]
        assert result.outcome is LoginOutcome.LOCKED
        assert "multiple failed attempts" in result.message
        assert user.locked
        assert user.attempts == 5

        # Correct password no longer helps.
        result = service.login("cashier1", TEST_PASSWORD)
        assert result.outcome is LoginOutcome.LOCKED
        assert isinstance(result.error(), ForbiddenError)

    def test_admin_unlock_resets_attempts(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        for _ in range(5):
            service.login("cashier1", "wrong-password")
        db_session.commit()

        cashier = world["users"]["cashier"]
        UserService(db_session, settings).update_user(
            actor_for(world["users"]["admin"]), cashier.id, UserUpdate(locked=False)
        )
        db_session.commit()

        assert not cashier.locked
        assert cashier.attempts == 0
        assert service.login("cashier1", TEST_PASSWORD).ok

    def test_inactive_user_rejected(self, world, db_session, settings):
        world["users"]["cashier"].is_active = False
        db_session.commit()
        result = AuthService(db_session, settings).login("cashier1", TEST_PASSWORD)
        assert result.outcome is LoginOutcome.INACTIVE

    def test_inactive_role_rejected(self, world, db_session, settings):
        world["roles"]["cashier"].is_active = False
        db_session.commit()
        result = AuthService(db_session, settings).login("cashier1", TEST_PASSWORD)
        assert result.outcome is LoginOutcome.ROLE_INVALID


class TestRefreshTokens:

    def test_refresh_rotates_token(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        tokens = service.login("cashier1", TEST_PASSWORD).tokens
        db_session.commit()

        result = service.refresh(tokens.refresh_token)
        db_session.commit()
        assert result.ok
        assert result.tokens.refresh_token != tokens.refresh_token

        # The old token was consumed.
        replay = service.refresh(tokens.refresh_token)
        assert replay.status is TokenStatus.INVALID

    def test_expired_refresh_token(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        tokens = service.login("cashier1", TEST_PASSWORD).tokens
        stored = db_session.execute(
            select(RefreshToken).where(
                RefreshToken.token == hash_token(tokens.refresh_token)
            )
        ).scalar_one()
        stored.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        result = service.refresh(tokens.refresh_token)
        assert result.status is TokenStatus.EXPIRED
        assert result.error().code == "TOKEN_EXPIRED"

    def test_refresh_refused_for_locked_user(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        tokens = service.login("cashier1", TEST_PASSWORD).tokens
        world["users"]["cashier"].locked = True
        db_session.commit()

        assert service.refresh(tokens.refresh_token).status is TokenStatus.INVALID

    def test_logout_revokes_only_presented_token(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        first = service.login("cashier1", TEST_PASSWORD).tokens
        second = service.login("cashier1", TEST_PASSWORD).tokens
        db_session.commit()

        user = world["users"]["cashier"]
        assert service.logout(user.id, first.refresh_token) == 1
        db_session.commit()

        assert not service.refresh(first.refresh_token).ok
        assert service.refresh(second.refresh_token).ok


class TestAuthenticate:

    def test_valid_access_token_resolves_user(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        tokens = service.login("cashier1", TEST_PASSWORD).tokens
        assert service.authenticate(tokens.access_token).username == "cashier1"

    def test_garbage_token_rejected(self, world, db_session, settings):
        with pytest.raises(AuthError, match="Invalid access token"):
            AuthService(db_session, settings).authenticate("not-a-jwt")

    def test_locked_user_rejected(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        tokens = service.login("cashier1", TEST_PASSWORD).tokens
        world["users"]["cashier"].locked = True
        db_session.commit()
        with pytest.raises(ForbiddenError, match="locked"):
            service.authenticate(tokens.access_token)


class TestPasswordReset:

    def test_unknown_username_returns_none(self, world, db_session, settings):
        assert AuthService(db_session, settings).request_password_reset("ghost") is None

    def test_new_request_replaces_old_token(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        _, first = service.request_password_reset("cashier1")
        _, second = service.request_password_reset("cashier1")
        db_session.commit()

        assert len(second) == 64
        tokens = db_session.execute(select(PasswordResetToken)).scalars().all()
        assert [t.token for t in tokens] == [hash_token(second)]

    def test_reset_unlocks_and_changes_password(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        for _ in range(5):
            service.login("cashier1", "wrong-password")
        _, token = service.request_password_reset("cashier1")
        db_session.commit()

        service.reset_password(token, "N3w-Passw0rd!")
        db_session.commit()

        user = world["users"]["cashier"]
        assert not user.locked
        assert user.attempts == 0
        assert service.login("cashier1", "N3w-Passw0rd!").ok
        with pytest.raises(AuthError):
            service.reset_password(token, "An0ther-Pass!")

    def test_expired_reset_token_rejected(self, world, db_session, settings):
        service = AuthService(db_session, settings)
        _, token = service.request_password_reset("cashier1")
        entry = db_session.execute(select(PasswordResetToken)).scalar_one()
        entry.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        with pytest.raises(AuthError, match="invalid or has expired"):
            service.reset_password(token, "N3w-Passw0rd!")
