"""
X Tracking API — Tracked Account SQLAlchemy Model
===================================================

What:  ORM model for `accounts` (the social accounts being tracked) and the
       `account_categories` association table linking them to categories.

Scraping cadence:
    scraping_frequency (minutes) follows priority whenever priority is
    assigned. Higher priority accounts are scraped more often:

        priority  5    4    3    2    1
        minutes   60   180  360  720  1440
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.database import Base, TimestampMixin

DEFAULT_PRIORITY = 3
DEFAULT_SCRAPING_FREQUENCY = 360

SCRAPING_FREQUENCY_BY_PRIORITY = {
    5: 60,
    4: 180,
    3: 360,
    2: 720,
    1: 1440,
}


def scraping_frequency_for_priority(priority: int) -> int:
    """Minutes between scrapes for a priority level (unknown levels → 6 hours)."""
    return SCRAPING_FREQUENCY_BY_PRIORITY.get(priority, DEFAULT_SCRAPING_FREQUENCY)


# Many-to-many: an account may sit in several categories.
# ON DELETE CASCADE on both sides so deleting either end drops the links.
account_categories = Table(
    "account_categories",
    Base.metadata,
    Column(
        "account_id",
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Account(TimestampMixin, Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    follower_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    following_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_PRIORITY,
        server_default=text(str(DEFAULT_PRIORITY)),
    )
    last_scraped: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, default=None
    )
    scraping_frequency: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_SCRAPING_FREQUENCY,
        server_default=text(str(DEFAULT_SCRAPING_FREQUENCY)),
        comment="Minutes between scrapes, derived from priority",
    )
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    accuracy_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=50, server_default=text("50")
    )

    __table_args__ = (
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_accounts_priority"),
        CheckConstraint("accuracy_score BETWEEN 0 AND 100", name="ck_accounts_accuracy_score"),
    )

    @validates("priority")
    def _sync_scraping_frequency(self, key: str, priority: int) -> int:
        self.scraping_frequency = scraping_frequency_for_priority(priority)
        return priority

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username='{self.username}', priority={self.priority})>"
