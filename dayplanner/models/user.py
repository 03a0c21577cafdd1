"""
Day Planner Backend — User SQLAlchemy Model
============================================

What:  ORM model representing the `users` table.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by UserService (register/activate/login) and ReminderService
       (looking up the addressee of a reminder).

Lifecycle:
    A row is only inserted once the activation code has been confirmed.
    Until then the pending registration lives inside the signed activation
    token, so unconfirmed sign-ups never touch the table.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from dayplanner.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered, activated day-planner user.

    Query Patterns:
        - Login / duplicate check: SELECT ... WHERE email = :email
          → unique index uq_users_email
        - Reminder lookup: SELECT ... WHERE id = :uuid → primary key
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
        comment="Unique identifier; also the session cache key",
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Display name used in emails",
    )

    # Always stored lowercased; see UserService._normalize_email
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Login identifier, lowercased",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash produced by passlib",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="user",
        server_default=text("'user'"),
    )

    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Set once the activation code has been confirmed",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("uq_users_email", "email", unique=True),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
