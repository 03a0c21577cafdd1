"""
Day Planner Backend — Pydantic Request/Response Schemas
========================================================

What:  Pydantic models defining the API contract between frontend and backend.
How:   FastAPI uses these models to validate request bodies, serialize responses,
       and generate OpenAPI documentation.

Naming:
    Request bodies use the snake_case keys the frontend already sends
    (`activation_token`, `activation_code`). A few response keys keep the
    camelCase names the frontend reads (`activationToken`, `accessToken`);
    those are declared with `serialization_alias`, which FastAPI applies
    when rendering a response_model.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """
    Body of POST /api/v1/registration.

    Every field is optional at the schema level so that the service can
    answer a missing field with the same 400 "Please enter all fields"
    message the frontend already displays, instead of FastAPI's 422.
    """
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)


class ActivationRequest(BaseModel):
    """Body of POST /api/v1/activate-user."""
    activation_token: str = Field(description="Token returned by the registration call")
    activation_code: str = Field(description="4-digit code sent by email")


class LoginRequest(BaseModel):
    """Body of POST /api/v1/login."""
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)


# ══════════════════════════════════════════════════════════════════════════
# Domain Models — Values passed between services
# ══════════════════════════════════════════════════════════════════════════


class PendingUser(BaseModel):
    """
    A registration awaiting its activation code.

    Carried inside the signed activation token. Holds the password HASH;
    the plain password never leaves the registration request.
    """
    name: str
    email: str
    password_hash: str


class UserPublic(BaseModel):
    """
    What:  The user as exposed to clients and as stored in the session cache.
    How:   Built from the ORM row with from_attributes; never includes the hash.
    """
    id: uuid.UUID
    name: str
    email: str
    role: str = "user"
    is_verified: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    activation_token: str = Field(serialization_alias="activationToken")


class ActivationResponse(BaseModel):
    success: bool = True
    user: UserPublic
    message: str = "Account activated successfully"


class LoginResponse(BaseModel):
    success: bool = True
    user: UserPublic
    access_token: str = Field(serialization_alias="accessToken")


class RefreshResponse(BaseModel):
    success: bool = True
    access_token: str = Field(serialization_alias="accessToken")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserInfoResponse(BaseModel):
    success: bool = True
    user: Dict[str, Any] = Field(description="Session snapshot of the user")


class ReminderDispatchResponse(BaseModel):
    """
    What:  Outcome of one pass of the reminder job.

    Counters:
        sent:    reminders emailed and marked as sent in the CMS
        skipped: reminders with a dangling event/user reference
        failed:  reminders whose email or CMS patch failed; retried next pass
    """
    success: bool = True
    message: str
    sent: int = 0
    skipped: int = 0
    failed: int = 0


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "error": "validation_error",
            "message": "Invalid Email",
            "details": {"field": "email"},
            "request_id": "a1b2c3d4"
        }
    """
    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    cache: str = Field(description="Session cache connectivity: connected, disconnected")
    cms: str = Field(description="CMS status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
