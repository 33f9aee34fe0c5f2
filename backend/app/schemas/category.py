"""
X Tracking API — Category Schemas
==================================
"""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field, StringConstraints

from app.models.category import DEFAULT_CATEGORY_COLOR
from app.schemas.common import CamelModel

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
OptionalText = Annotated[str, StringConstraints(strip_whitespace=True)]


class CategoryCreate(CamelModel):
    name: CategoryName
    description: Optional[OptionalText] = None
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, max_length=32)
    is_default: bool = False


class CategoryUpdate(CamelModel):
    """Partial update: only keys present in the body are applied."""
    name: Optional[CategoryName] = None
    description: Optional[OptionalText] = None
    color: Optional[str] = Field(default=None, max_length=32)
    is_default: Optional[bool] = None
    sentiment_score: Optional[float] = Field(default=None, ge=-100, le=100)
    sentiment_confidence: Optional[float] = Field(default=None, ge=0, le=100)


class CategoryResponse(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    color: str
    is_default: bool
    account_count: int
    sentiment_score: float
    sentiment_confidence: float
    created_at: datetime
    updated_at: datetime

