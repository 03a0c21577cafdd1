"""
Day Planner Backend — User Service Unit Tests
==============================================

What:  The account lifecycle with mock DB sessions and patched collaborators
       (mail, session cache). Tokens are real.

What we test:
    ✅ Registration validation messages and the activation email
    ✅ Activation creates the row and re-checks the email
    ✅ Login issues both tokens and caches the session
    ✅ Logout, refresh and /me against the session cache
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from dayplanner.exceptions import (
    AuthenticationError,
    DatabaseError,
    EmailDeliveryError,
    NotFoundError,
    ValidationError,
)
from dayplanner.schemas.user import PendingUser
from dayplanner.security import verify_password
from dayplanner.services.token_service import token_service
from dayplanner.services.user_service import (
    INVALID_CREDENTIALS_MESSAGE,
    WEAK_PASSWORD_MESSAGE,
    UserService,
)


@pytest.fixture
def service():
    return UserService()


@pytest.fixture
def mock_mail():
    with patch("dayplanner.services.user_service.mail_service") as mail:
        mail.send_mail = AsyncMock()
        yield mail


@pytest.fixture
def mock_cache():
    with patch("dayplanner.services.user_service.session_cache") as cache:
        cache.set = AsyncMock()
        cache.get = AsyncMock(return_value=None)
        cache.delete = AsyncMock(return_value=True)
        yield cache


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_sends_activation_code(
        self, service, mock_db_session, scalar_result, mock_mail, sample_password
    ):
        mock_db_session.execute.return_value = scalar_result(None)

        result = await service.register(
            mock_db_session, name="Ada", email="Ada@Example.com", password=sample_password
        )

        assert result.message == "Activation code sent to ada@example.com"
        mock_mail.send_mail.assert_awaited_once()
        kwargs = mock_mail.send_mail.call_args.kwargs
        assert kwargs["template"] == "activation.html"
        assert kwargs["email"] == "ada@example.com"
        assert kwargs["subject"] == "Account Activation"
        assert kwargs["data"]["user"] == {"name": "Ada"}

        # The emailed code unlocks the returned token
        code = kwargs["data"]["activationCode"]
        pending = token_service.verify_activation_token(result.activation_token, code)
        assert pending.email == "ada@example.com"
        assert verify_password(sample_password, pending.password_hash)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,email,password",
        [("", "ada@example.com", "Str0ng!Pass"), ("Ada", None, "Str0ng!Pass"), ("Ada", "ada@example.com", "")],
    )
    async def test_missing_fields(self, service, mock_db_session, mock_mail, name, email, password):
        with pytest.raises(ValidationError) as exc_info:
            await service.register(mock_db_session, name=name, email=email, password=password)
        assert exc_info.value.message == "Please enter all fields"
        mock_mail.send_mail.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_email(self, service, mock_db_session, mock_mail, sample_password):
        with pytest.raises(ValidationError) as exc_info:
            await service.register(mock_db_session, name="Ada", email="not-an-email", password=sample_password)
        assert exc_info.value.message == "Invalid Email"

    @pytest.mark.asyncio
    async def test_weak_password(self, service, mock_db_session, mock_mail):
        with pytest.raises(ValidationError) as exc_info:
            await service.register(mock_db_session, name="Ada", email="ada@example.com", password="password")
        assert exc_info.value.message == WEAK_PASSWORD_MESSAGE

    @pytest.mark.asyncio
    async def test_duplicate_email(
        self, service, mock_db_session, scalar_result, mock_mail, sample_user, sample_password
    ):
        mock_db_session.execute.return_value = scalar_result(sample_user)
        with pytest.raises(ValidationError) as exc_info:
            await service.register(mock_db_session, name="Ada", email="ada@example.com", password=sample_password)
        assert exc_info.value.message == "Email already exists"
        mock_mail.send_mail.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_email_failure_propagates(
        self, service, mock_db_session, scalar_result, mock_mail, sample_password
    ):
        mock_db_session.execute.return_value = scalar_result(None)
        mock_mail.send_mail = AsyncMock(side_effect=EmailDeliveryError("Failed to send email"))
        with pytest.raises(EmailDeliveryError):
            await service.register(mock_db_session, name="Ada", email="ada@example.com", password=sample_password)


class TestActivate:

    @staticmethod
    def _issue(email="ada@example.com"):
        pending = PendingUser(name="Ada", email=email, password_hash="$2b$12$stored")
        return token_service.create_activation_token(pending)

    @pytest.mark.asyncio
    async def test_activate_creates_user(self, service, mock_db_session, scalar_result):
        mock_db_session.execute.return_value = scalar_result(None)
        activation = self._issue()

        # What the INSERT would fill in from column defaults
        async def assign_defaults():
            added = mock_db_session.add.call_args.args[0]
            added.id = uuid.uuid4()
            added.role = "user"

        mock_db_session.flush = AsyncMock(side_effect=assign_defaults)

        result = await service.activate(mock_db_session, activation.token, activation.activation_code)

        added = mock_db_session.add.call_args.args[0]
        assert added.email == "ada@example.com"
        assert added.password_hash == "$2b$12$stored"
        assert added.is_verified is True
        assert result.user.email == "ada@example.com"
        assert result.user.id == added.id

    @pytest.mark.asyncio
    async def test_wrong_code(self, service, mock_db_session):
        activation = self._issue()
        wrong = "9999" if activation.activation_code != "9999" else "1000"
        with pytest.raises(ValidationError) as exc_info:
            await service.activate(mock_db_session, activation.token, wrong)
        assert exc_info.value.message == "Invalid Activation Code"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_taken_since_registration(
        self, service, mock_db_session, scalar_result, sample_user
    ):
        mock_db_session.execute.return_value = scalar_result(sample_user)
        activation = self._issue()
        with pytest.raises(ValidationError) as exc_info:
            await service.activate(mock_db_session, activation.token, activation.activation_code)
        assert exc_info.value.message == "Email already exists"

    @pytest.mark.asyncio
    async def test_unique_violation_on_insert(self, service, mock_db_session, scalar_result):
        mock_db_session.execute.return_value = scalar_result(None)
        mock_db_session.flush = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("uq_users_email"))
        )
        activation = self._issue()
        with pytest.raises(ValidationError) as exc_info:
            await service.activate(mock_db_session, activation.token, activation.activation_code)
        assert exc_info.value.message == "Email already exists"
        mock_db_session.rollback.assert_awaited_once()


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(
        self, service, mock_db_session, scalar_result, mock_cache, sample_user, sample_password
    ):
        mock_db_session.execute.return_value = scalar_result(sample_user)

        session = await service.login(mock_db_session, email="ADA@example.com", password=sample_password)

        assert session.user["id"] == str(sample_user.id)
        assert "password_hash" not in session.user
        assert token_service.decode_access_token(session.access_token) == str(sample_user.id)
        assert token_service.decode_refresh_token(session.refresh_token) == str(sample_user.id)
        mock_cache.set.assert_awaited_once_with(str(sample_user.id), session.user)

    @pytest.mark.asyncio
    async def test_missing_fields(self, service, mock_db_session, mock_cache):
        with pytest.raises(ValidationError) as exc_info:
            await service.login(mock_db_session, email="ada@example.com", password=None)
        assert exc_info.value.message == "Please provide all the fields"

    @pytest.mark.asyncio
    async def test_unknown_email(self, service, mock_db_session, scalar_result, mock_cache):
        mock_db_session.execute.return_value = scalar_result(None)
        with pytest.raises(ValidationError) as exc_info:
            await service.login(mock_db_session, email="nobody@example.com", password="Str0ng!Pass")
        assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE
        mock_cache.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_password(self, service, mock_db_session, scalar_result, mock_cache, sample_user):
        mock_db_session.execute.return_value = scalar_result(sample_user)
        with pytest.raises(ValidationError) as exc_info:
            await service.login(mock_db_session, email="ada@example.com", password="Wr0ng!Pass")
        assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE

    @pytest.mark.asyncio
    async def test_database_failure(self, service, mock_db_session, mock_cache):
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )
        with pytest.raises(DatabaseError):
            await service.login(mock_db_session, email="ada@example.com", password="Str0ng!Pass")


class TestSessionLifecycle:

    @pytest.mark.asyncio
    async def test_logout_deletes_session(self, service, mock_cache):
        result = await service.logout("user-1")
        assert result.message == "User logged out"
        mock_cache.delete.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_logout_without_session_still_succeeds(self, service, mock_cache):
        mock_cache.delete = AsyncMock(return_value=False)
        result = await service.logout("user-1")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, service, mock_cache, sample_session):
        mock_cache.get = AsyncMock(return_value=sample_session)
        old_refresh = token_service.create_refresh_token(sample_session["id"])

        session = await service.refresh(old_refresh)

        assert session.user == sample_session
        assert token_service.decode_access_token(session.access_token) == sample_session["id"]
        mock_cache.set.assert_awaited_once_with(sample_session["id"], sample_session)

    @pytest.mark.asyncio
    async def test_refresh_without_cookie(self, service, mock_cache):
        with pytest.raises(AuthenticationError) as exc_info:
            await service.refresh(None)
        assert exc_info.value.message == "Refresh token not found"

    @pytest.mark.asyncio
    async def test_refresh_after_logout(self, service, mock_cache):
        token = token_service.create_refresh_token("user-1")
        with pytest.raises(AuthenticationError) as exc_info:
            await service.refresh(token)
        assert exc_info.value.message == "Please login to access this resource"

    @pytest.mark.asyncio
    async def test_refresh_with_access_token_rejected(self, service, mock_cache):
        with pytest.raises(AuthenticationError):
            await service.refresh(token_service.create_access_token("user-1"))
        mock_cache.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_user_info(self, service, mock_cache, sample_session):
        mock_cache.get = AsyncMock(return_value=sample_session)
        result = await service.get_user_info(sample_session["id"])
        assert result.user == sample_session

    @pytest.mark.asyncio
    async def test_user_info_missing(self, service, mock_cache):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_user_info("user-1")
        assert exc_info.value.message == "user: user-1 not found"


class TestLookups:

    @pytest.mark.asyncio
    async def test_get_user_by_id_rejects_non_uuid(self, service, mock_db_session):
        assert await service.get_user_by_id(mock_db_session, "not-a-uuid") is None
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, service, mock_db_session, scalar_result, sample_user):
        mock_db_session.execute.return_value = scalar_result(sample_user)
        assert await service.get_user_by_id(mock_db_session, str(sample_user.id)) is sample_user
