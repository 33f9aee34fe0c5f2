"""
X Tracking API — Tracked Account Schemas
==========================================

What:  Request payloads, list query and response shapes for tracked accounts.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import Field, StringConstraints

from app.models.account import DEFAULT_PRIORITY
from app.schemas.common import CamelModel

Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Priority = Annotated[int, Field(ge=1, le=5)]


class AccountCreate(CamelModel):
    username: Username
    display_name: Optional[str] = Field(default=None, max_length=255)
    profile_image_url: Optional[str] = None
    bio: Optional[str] = None
    priority: Priority = DEFAULT_PRIORITY
    active: bool = True
    notes: Optional[str] = None
    categories: List[uuid.UUID] = Field(default_factory=list)


class AccountUpdate(CamelModel):
    """
    Partial update: only keys present in the body are applied.

    `categories`, when present, replaces the account's category list.
    """
    username: Optional[Username] = None
    display_name: Optional[str] = Field(default=None, max_length=255)
    profile_image_url: Optional[str] = None
    bio: Optional[str] = None
    priority: Optional[Priority] = None
    active: Optional[bool] = None
    notes: Optional[str] = None
    accuracy_score: Optional[int] = Field(default=None, ge=0, le=100)
    categories: Optional[List[uuid.UUID]] = None


class AccountListQuery(CamelModel):
    """Query string of GET /api/accounts."""
    category: Optional[uuid.UUID] = None
    priority: Optional[Priority] = None
    search: Optional[str] = Field(default=None, max_length=255)
    sort: Optional[str] = Field(default=None, description='"field" or "field:desc"')
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class AccountResponse(CamelModel):
    id: uuid.UUID
    username: str
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    bio: Optional[str] = None
    follower_count: int
    following_count: int
    priority: int
    last_scraped: Optional[datetime] = None
    scraping_frequency: int
    active: bool
    notes: Optional[str] = None
    accuracy_score: int
    created_at: datetime
    updated_at: datetime


class CategorySummary(CamelModel):
    id: uuid.UUID
    name: str
    color: str
