"""
Day Planner Backend — Token Service Unit Tests
===============================================

What we test:
    ✅ Activation code range and activation token round trip
    ✅ Wrong code, expired token and forged token are rejected with 400-class errors
    ✅ Access/refresh tokens carry the user id and are not interchangeable
    ✅ Cookie options follow the token lifetimes
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from dayplanner.config import settings
from dayplanner.exceptions import AuthenticationError, ValidationError
from dayplanner.schemas.user import PendingUser
from dayplanner.services.token_service import (
    EXPIRED_MESSAGE,
    INVALID_MESSAGE,
    TokenService,
)


@pytest.fixture
def service():
    return TokenService()


@pytest.fixture
def pending_user():
    return PendingUser(name="Ada", email="ada@example.com", password_hash="$2b$12$hash")


class TestActivationTokens:

    def test_activation_code_is_four_digits(self, service):
        for _ in range(200):
            code = service.generate_activation_code()
            assert len(code) == 4
            assert 1000 <= int(code) <= 9999

    def test_round_trip_returns_pending_user(self, service, pending_user):
        activation = service.create_activation_token(pending_user)
        restored = service.verify_activation_token(activation.token, activation.activation_code)
        assert restored == pending_user

    def test_token_never_contains_plain_password(self, service, pending_user):
        activation = service.create_activation_token(pending_user)
        claims = jwt.get_unverified_claims(activation.token)
        assert "password" not in claims["user"]
        assert claims["user"]["password_hash"] == pending_user.password_hash

    def test_wrong_code_rejected(self, service, pending_user):
        activation = service.create_activation_token(pending_user)
        wrong = "1000" if activation.activation_code != "1000" else "1001"
        with pytest.raises(ValidationError) as exc_info:
            service.verify_activation_token(activation.token, wrong)
        assert exc_info.value.message == "Invalid Activation Code"

    def test_expired_token_rejected(self, service, pending_user):
        token = jwt.encode(
            {
                "user": pending_user.model_dump(),
                "activationCode": "1234",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
            },
            settings.activation_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(ValidationError) as exc_info:
            service.verify_activation_token(token, "1234")
        assert "expired" in exc_info.value.message

    def test_token_signed_with_other_secret_rejected(self, service, pending_user):
        token = jwt.encode(
            {"user": pending_user.model_dump(), "activationCode": "1234"},
            "some-other-secret",
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(ValidationError) as exc_info:
            service.verify_activation_token(token, "1234")
        assert exc_info.value.message == INVALID_MESSAGE


class TestSessionTokens:

    def test_access_token_round_trip(self, service):
        token = service.create_access_token("user-1")
        assert service.decode_access_token(token) == "user-1"

    def test_refresh_token_round_trip(self, service):
        token = service.create_refresh_token("user-1")
        assert service.decode_refresh_token(token) == "user-1"

    def test_refresh_token_is_not_an_access_token(self, service):
        token = service.create_refresh_token("user-1")
        with pytest.raises(AuthenticationError):
            service.decode_access_token(token)

    def test_type_claim_is_enforced_with_shared_secret(self, service):
        # Same secret as access tokens but the wrong type claim
        token = jwt.encode(
            {"id": "user-1", "type": "refresh"},
            settings.access_token_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError) as exc_info:
            service.decode_access_token(token)
        assert exc_info.value.message == INVALID_MESSAGE

    def test_expired_access_token(self, service):
        token = jwt.encode(
            {
                "id": "user-1",
                "type": "access",
                "exp": datetime.now(timezone.utc) - timedelta(seconds=5),
            },
            settings.access_token_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError) as exc_info:
            service.decode_access_token(token)
        assert exc_info.value.message == EXPIRED_MESSAGE

    def test_garbage_token(self, service):
        with pytest.raises(AuthenticationError) as exc_info:
            service.decode_access_token("not.a.jwt")
        assert exc_info.value.message == INVALID_MESSAGE


class TestCookieOptions:

    def test_access_cookie(self, service):
        options = service.cookie_options("access")
        assert options["max_age"] == settings.access_token_expire_minutes * 60
        assert options["httponly"] is True
        assert options["samesite"] == "lax"
        assert options["secure"] is False  # test environment

    def test_refresh_cookie(self, service):
        options = service.cookie_options("refresh")
        assert options["max_age"] == settings.refresh_token_expire_days * 86400

    def test_unknown_kind(self, service):
        with pytest.raises(ValueError):
            service.cookie_options("bogus")
