"""
Day Planner Backend — Token Service
====================================

What:  Issues and validates the three kinds of JWT the API uses.
How:   python-jose HS256 tokens, each family signed with its own secret.
Who:   UserService (register, activate, login, refresh) and the
       get_current_user dependency.

Token families:
    ┌────────────┬──────────────────────┬──────────┬──────────────────────────┐
    │ Kind       │ Secret               │ Lifetime │ Payload                  │
    ├────────────┼──────────────────────┼──────────┼──────────────────────────┤
    │ activation │ ACTIVATION_SECRET    │ 5 min    │ user (pending), code     │
    │ access     │ ACCESS_TOKEN_SECRET  │ 5 min    │ id, type="access"        │
    │ refresh    │ REFRESH_TOKEN_SECRET │ 7 days   │ id, type="refresh"       │
    └────────────┴──────────────────────┴──────────┴──────────────────────────┘

    Access and refresh tokens are both delivered as httpOnly cookies; the
    access token is also returned in the response body for clients that
    prefer an Authorization header.
"""

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from dayplanner.config import settings
from dayplanner.exceptions import AuthenticationError, ValidationError
from dayplanner.schemas.user import PendingUser

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

EXPIRED_MESSAGE = "Json web token is expired, try again"
INVALID_MESSAGE = "Json web token is invalid, try again"


@dataclass(frozen=True)
class ActivationToken:
    activation_code: str
    token: str


class TokenService:
    """Stateless JWT issuer/validator. Reads secrets from settings on each call."""

    # ── Activation ────────────────────────────────────────────────────────

    @staticmethod
    def generate_activation_code() -> str:
        """Random 4-digit code in 1000-9999."""
        return str(secrets.randbelow(9000) + 1000)

    def create_activation_token(self, pending_user: PendingUser) -> ActivationToken:
        """
        Signs the pending registration together with a fresh activation code.

        The code is both embedded in the token and emailed to the user;
        activation succeeds only if the client presents both halves.
        """
        activation_code = self.generate_activation_code()
        expire = self._now() + timedelta(minutes=settings.activation_token_expire_minutes)
        payload = {
            "user": pending_user.model_dump(),
            "activationCode": activation_code,
            "exp": expire,
        }
        token = jwt.encode(payload, settings.activation_secret, algorithm=settings.jwt_algorithm)
        return ActivationToken(activation_code=activation_code, token=token)

    def verify_activation_token(self, token: str, activation_code: str) -> PendingUser:
        """
        Validates the token signature/expiry and compares the activation code.

        Raises:
            ValidationError: expired or forged token, wrong code, or a payload
                             that does not describe a pending user.
        """
        try:
            payload = jwt.decode(
                token, settings.activation_secret, algorithms=[settings.jwt_algorithm]
            )
        except ExpiredSignatureError:
            raise ValidationError(
                message="Activation token has expired, please register again",
                field="activation_token",
            )
        except JWTError:
            raise ValidationError(message=INVALID_MESSAGE, field="activation_token")

        expected = str(payload.get("activationCode", ""))
        if not hmac.compare_digest(expected.encode(), str(activation_code).encode()):
            raise ValidationError(message="Invalid Activation Code", field="activation_code")

        try:
            return PendingUser.model_validate(payload.get("user") or {})
        except PydanticValidationError:
            raise ValidationError(message=INVALID_MESSAGE, field="activation_token")

    # ── Access / Refresh ──────────────────────────────────────────────────

    def create_access_token(self, user_id: Any) -> str:
        return self._sign_session_token(
            user_id,
            kind="access",
            secret=settings.access_token_secret,
            lifetime=timedelta(minutes=settings.access_token_expire_minutes),
        )

    def create_refresh_token(self, user_id: Any) -> str:
        return self._sign_session_token(
            user_id,
            kind="refresh",
            secret=settings.refresh_token_secret,
            lifetime=timedelta(days=settings.refresh_token_expire_days),
        )

    def decode_access_token(self, token: str) -> str:
        """Returns the user id carried by a valid access token."""
        return self._decode_session_token(token, "access", settings.access_token_secret)

    def decode_refresh_token(self, token: str) -> str:
        """Returns the user id carried by a valid refresh token."""
        return self._decode_session_token(token, "refresh", settings.refresh_token_secret)

    # ── Cookies ───────────────────────────────────────────────────────────

    def cookie_options(self, kind: str) -> Dict[str, Any]:
        """
        Keyword arguments for Response.set_cookie().

        max_age matches the token lifetime so the browser drops the cookie
        when the token would be rejected anyway.
        """
        if kind == "access":
            max_age = settings.access_token_expire_minutes * 60
        elif kind == "refresh":
            max_age = settings.refresh_token_expire_days * 24 * 60 * 60
        else:
            raise ValueError(f"Unknown cookie kind '{kind}'")
        return {
            "max_age": max_age,
            "httponly": True,
            "samesite": "lax",
            "secure": settings.is_production,
        }

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _sign_session_token(
        self, user_id: Any, kind: str, secret: str, lifetime: timedelta
    ) -> str:
        now = self._now()
        payload = {
            "id": str(user_id),
            "type": kind,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)

    def _decode_session_token(self, token: str, kind: str, secret: str) -> str:
        try:
            payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
        except ExpiredSignatureError:
            raise AuthenticationError(message=EXPIRED_MESSAGE)
        except JWTError:
            raise AuthenticationError(message=INVALID_MESSAGE)

        # A refresh token must never pass as an access token, even if both
        # secrets were accidentally configured to the same value
        if payload.get("type") != kind or not payload.get("id"):
            logger.warning("Rejected %s token with type=%r", kind, payload.get("type"))
            raise AuthenticationError(message=INVALID_MESSAGE)
        return str(payload["id"])


token_service = TokenService()
