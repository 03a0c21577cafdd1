"""
Day Planner Backend — Authentication Route Handlers
====================================================

What:  Registration, activation, login, logout, token refresh and /me.
How:   Validates the body shape, delegates to UserService, and owns the
       cookie side of the protocol (set on login/refresh, cleared on logout).

Route Inventory (prefix /api/v1):
    POST /registration    → 201 {success, message, activationToken}
    POST /activate-user   → 201 {success, user, message}
    POST /login           → 200 {success, user, accessToken} + cookies
    GET  /logout          → 200 {success, message}, cookies cleared
    GET  /refresh         → 200 {success, accessToken} + rotated cookies
    GET  /me              → 200 {success, user}
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from dayplanner.database import get_db_session
from dayplanner.dependencies import get_current_user
from dayplanner.schemas.user import (
    ActivationRequest,
    ActivationResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfoResponse,
)
from dayplanner.services.token_service import ACCESS_COOKIE, REFRESH_COOKIE, token_service
from dayplanner.services.user_service import AuthSession, user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Auth"])


def set_auth_cookies(response: Response, session: AuthSession) -> None:
    response.set_cookie(ACCESS_COOKIE, session.access_token, **token_service.cookie_options("access"))
    response.set_cookie(REFRESH_COOKIE, session.refresh_token, **token_service.cookie_options("refresh"))


def clear_auth_cookies(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.set_cookie(name, "", max_age=1, httponly=True, samesite="lax")


@router.post(
    "/registration",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid input or email taken", "model": ErrorResponse},
        500: {"description": "Activation email could not be sent", "model": ErrorResponse},
    },
    summary="Register and receive an activation code by email",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    return await user_service.register(
        db=db, name=body.name, email=body.email, password=body.password
    )


@router.post(
    "/activate-user",
    response_model=ActivationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid or expired code", "model": ErrorResponse}},
    summary="Confirm the activation code and create the account",
)
async def activate_user(
    body: ActivationRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ActivationResponse:
    return await user_service.activate(
        db=db,
        activation_token=body.activation_token,
        activation_code=body.activation_code,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in and receive access/refresh cookies",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    session = await user_service.login(db=db, email=body.email, password=body.password)
    set_auth_cookies(response, session)
    return LoginResponse(user=session.user, access_token=session.access_token)


@router.get(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"description": "Not logged in", "model": ErrorResponse}},
    summary="Log out and revoke the cached session",
)
async def logout(
    response: Response,
    current_user: Dict[str, Any] = Depends(get_current_user),
) -> MessageResponse:
    clear_auth_cookies(response)
    return await user_service.logout(current_user.get("id"))


@router.get(
    "/refresh",
    response_model=RefreshResponse,
    responses={401: {"description": "Refresh token missing or invalid", "model": ErrorResponse}},
    summary="Rotate the access and refresh tokens",
)
async def refresh_token(request: Request, response: Response) -> RefreshResponse:
    session = await user_service.refresh(request.cookies.get(REFRESH_COOKIE))
    set_auth_cookies(response, session)
    return RefreshResponse(access_token=session.access_token)


@router.get(
    "/me",
    response_model=UserInfoResponse,
    responses={
        401: {"description": "Not logged in", "model": ErrorResponse},
        404: {"description": "Session not found", "model": ErrorResponse},
    },
    summary="Return the cached session of the current user",
)
async def get_user_info(
    response: Response,
    current_user: Dict[str, Any] = Depends(get_current_user),
) -> UserInfoResponse:
    response.headers["Cache-Control"] = "no-store"
    return await user_service.get_user_info(current_user["id"])
