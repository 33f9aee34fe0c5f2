"""
X Tracking API — User SQLAlchemy Model
========================================

What:  ORM model for the `users` table: identity, role, password hash and
       report/notification preferences.

Table Design:
    - email is unique; lookups on login go through its unique index
    - password_hash is never serialized (schemas only expose public fields)
    - preferences is JSONB: the shape is owned by schemas.auth.UserPreferences
      and is always written fully (defaults applied) by the service layer
"""

import uuid
from typing import Any, Dict

from sqlalchemy import CheckConstraint, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, TimestampMixin

USER_ROLES = ("user", "admin")
DEFAULT_ROLE = "user"


class User(TimestampMixin, Base):
    """A registered user of the tracking dashboard."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_ROLE,
        server_default=text("'user'"),
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    preferences: Mapped[Dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
