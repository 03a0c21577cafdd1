"""
Day Planner Backend — User Service (Authentication Lifecycle)
==============================================================

What:  Registration, activation, login, logout, token refresh and the
       "who am I" lookup.
How:   Composes TokenService (JWTs), SessionCache (redis), MailService
       (activation email) and the users table.
Who:   Called by the auth route handlers; cookie handling stays in the routes.

Lifecycle:
    ┌──────────────┐  email code  ┌──────────────┐          ┌─────────┐
    │ registration │─────────────▶│  activation  │─────────▶│  users  │
    │ (token only) │              │ (token+code) │  INSERT  │  table  │
    └──────────────┘              └──────────────┘          └────┬────┘
                                                                 │ login
    ┌──────────────┐   refresh    ┌──────────────┐   SET    ┌────▼────┐
    │ new access + │◀─────────────│ session      │◀─────────│ tokens  │
    │ refresh pair │   (cookie)   │ cache (redis)│          │ issued  │
    └──────────────┘              └──────┬───────┘          └─────────┘
                                         │ logout: DEL
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dayplanner.exceptions import (
    AuthenticationError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from dayplanner.models.user import User
from dayplanner.schemas.user import (
    ActivationResponse,
    MessageResponse,
    PendingUser,
    RegisterResponse,
    UserInfoResponse,
    UserPublic,
)
from dayplanner.security import (
    hash_password,
    is_strong_password,
    is_valid_email,
    verify_password,
)
from dayplanner.services.mail_service import mail_service
from dayplanner.services.session_cache import session_cache
from dayplanner.services.token_service import token_service

logger = logging.getLogger(__name__)

WEAK_PASSWORD_MESSAGE = (
    "Password must be at least 8 characters long and contain at least "
    "1 lowercase, 1 uppercase, 1 number and 1 special character"
)
INVALID_CREDENTIALS_MESSAGE = "email or password is invalid"


@dataclass
class AuthSession:
    """Tokens issued by login/refresh plus the session snapshot they belong to."""
    user: Dict[str, Any]
    access_token: str
    refresh_token: str


class UserService:
    """
    Business logic for the account lifecycle.

    Error Handling Strategy:
        Business-rule failures raise ValidationError / AuthenticationError /
        NotFoundError with the user-facing messages. Unexpected SQLAlchemy
        failures are wrapped in DatabaseError (generic message, details logged).
    """

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(
                select(User).where(User.email == self._normalize_email(email))
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", e)
            raise DatabaseError(context={"op": "get_user_by_email"})

    async def get_user_by_id(self, db: AsyncSession, user_id: Any) -> Optional[User]:
        """Returns None for unknown ids and for values that are not UUIDs."""
        try:
            key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except (TypeError, ValueError):
            return None
        try:
            result = await db.execute(select(User).where(User.id == key))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %s: %s", user_id, e)
            raise DatabaseError(context={"op": "get_user_by_id", "user_id": str(user_id)})

    # ── Registration ──────────────────────────────────────────────────────

    async def register(
        self,
        db: AsyncSession,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> RegisterResponse:
        """
        Validates the sign-up form and emails a 4-digit activation code.

        Nothing is written to the database here; the pending account travels
        inside the returned activation token until POST /activate-user.

        Raises:
            ValidationError: missing field, invalid email, weak password,
                             email already registered
            EmailDeliveryError: activation email could not be sent (→ 500)
        """
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email or not password:
            raise ValidationError(message="Please enter all fields")

        if not is_valid_email(email):
            raise ValidationError(message="Invalid Email", field="email")

        if not is_strong_password(password):
            raise ValidationError(message=WEAK_PASSWORD_MESSAGE, field="password")

        email = self._normalize_email(email)
        if await self.get_user_by_email(db, email) is not None:
            raise ValidationError(message="Email already exists", field="email")

        pending = PendingUser(name=name, email=email, password_hash=hash_password(password))
        activation = token_service.create_activation_token(pending)

        await mail_service.send_mail(
            template="activation.html",
            email=email,
            subject="Account Activation",
            data={"user": {"name": name}, "activationCode": activation.activation_code},
        )
        logger.info("Activation code issued for %s", email)

        return RegisterResponse(
            message=f"Activation code sent to {email}",
            activation_token=activation.token,
        )

    async def activate(
        self, db: AsyncSession, activation_token: str, activation_code: str
    ) -> ActivationResponse:
        """
        Confirms the activation code and creates the user row.

        The email is checked again because two registrations for the same
        address may both have been issued tokens.
        """
        pending = token_service.verify_activation_token(activation_token, activation_code)

        if await self.get_user_by_email(db, pending.email) is not None:
            raise ValidationError(message="Email already exists", field="email")

        user = User(
            name=pending.name,
            email=self._normalize_email(pending.email),
            password_hash=pending.password_hash,
            is_verified=True,
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ValidationError(message="Email already exists", field="email")
        except SQLAlchemyError as e:
            logger.error("Failed to create user %s: %s", pending.email, e)
            raise DatabaseError(context={"op": "activate"})

        logger.info("User %s activated (%s)", user.id, user.email)
        return ActivationResponse(user=UserPublic.model_validate(user))

    # ── Login / Logout ────────────────────────────────────────────────────

    async def login(
        self, db: AsyncSession, email: Optional[str], password: Optional[str]
    ) -> AuthSession:
        """
        Checks credentials, issues the token pair and caches the session.

        Unknown email and wrong password produce the same message.
        """
        if not email or not password:
            raise ValidationError(message="Please provide all the fields")

        user = await self.get_user_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            raise ValidationError(message=INVALID_CREDENTIALS_MESSAGE)

        return await self._start_session(UserPublic.model_validate(user).model_dump(mode="json"))

    async def logout(self, user_id: Optional[str]) -> MessageResponse:
        """Drops the cached session; tokens still in flight stop working."""
        if user_id and await session_cache.delete(user_id):
            logger.info("User session %s deleted from cache", user_id)
        else:
            logger.info("user: %s not found in session cache", user_id)
        return MessageResponse(message="User logged out")

    # ── Token Rotation ────────────────────────────────────────────────────

    async def refresh(self, refresh_token: Optional[str]) -> AuthSession:
        """
        Rotates both tokens for a still-cached session.

        Raises:
            AuthenticationError: cookie missing, token invalid/expired, or the
                                 session was evicted (logout, TTL)
        """
        if not refresh_token:
            raise AuthenticationError(message="Refresh token not found")

        user_id = token_service.decode_refresh_token(refresh_token)
        session = await session_cache.get(user_id)
        if session is None:
            raise AuthenticationError(message="Please login to access this resource")

        return await self._start_session(session)

    async def get_user_info(self, user_id: str) -> UserInfoResponse:
        session = await session_cache.get(user_id)
        if not session:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return UserInfoResponse(user=session)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _start_session(self, session: Dict[str, Any]) -> AuthSession:
        user_id = session["id"]
        access_token = token_service.create_access_token(user_id)
        refresh_token = token_service.create_refresh_token(user_id)
        await session_cache.set(user_id, session)
        return AuthSession(user=session, access_token=access_token, refresh_token=refresh_token)


user_service = UserService()
