"""
X Tracking API — Category SQLAlchemy Model
============================================

What:  ORM model for the `categories` table: named groups of tracked accounts
       with a display color and an aggregate sentiment reading.

account_count is denormalized: the category service recomputes it from
`account_categories` every time accounts are attached or detached.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Float, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, TimestampMixin

DEFAULT_CATEGORY_COLOR = "#3498db"


class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=DEFAULT_CATEGORY_COLOR,
        server_default=text(f"'{DEFAULT_CATEGORY_COLOR}'"),
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    account_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    sentiment_score: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )
    sentiment_confidence: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )

    __table_args__ = (
        CheckConstraint(
            "sentiment_score BETWEEN -100 AND 100", name="ck_categories_sentiment_score"
        ),
        CheckConstraint(
            "sentiment_confidence BETWEEN 0 AND 100",
            name="ck_categories_sentiment_confidence",
        ),
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}', accounts={self.account_count})>"
