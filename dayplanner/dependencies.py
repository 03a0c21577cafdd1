"""
Day Planner Backend — Request Dependencies
===========================================

What:  FastAPI dependencies shared by several routers.

    get_current_user    → the cached session of the caller (401 otherwise)
    require_job_token   → guards the reminder trigger with X-Job-Token
"""

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import Header, Request

from dayplanner.config import settings
from dayplanner.exceptions import AuthenticationError
from dayplanner.services.session_cache import session_cache
from dayplanner.services.token_service import ACCESS_COOKIE, token_service

logger = logging.getLogger(__name__)


def _extract_access_token(request: Request) -> Optional[str]:
    """Cookie first; `Authorization: Bearer <token>` for non-browser clients."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    scheme, _, credentials = auth.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Resolves the caller from the access token and the session cache.

    The session, not the database row, is the source of truth here: a
    logged-out user keeps a valid-looking token until it expires, but the
    missing cache entry rejects it immediately.
    """
    token = _extract_access_token(request)
    if not token:
        raise AuthenticationError(message="Please login to access this resource")

    user_id = token_service.decode_access_token(token)
    session = await session_cache.get(user_id)
    if session is None:
        raise AuthenticationError(message="Please login to access this resource")

    request.state.user_id = user_id
    return session


async def require_job_token(x_job_token: Optional[str] = Header(default=None)) -> None:
    """No-op when REMINDER_JOB_TOKEN is unset; otherwise the header must match."""
    expected = settings.reminder_job_token
    if not expected:
        return
    if not x_job_token or not hmac.compare_digest(x_job_token.encode(), expected.encode()):
        logger.warning("Rejected reminder trigger with missing or wrong X-Job-Token")
        raise AuthenticationError(message="Invalid job token")
