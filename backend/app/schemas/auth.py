"""
X Tracking API — User & Auth Schemas
======================================

What:  Public user representation, token response, and the preferences
       document stored on each user.

Preferences defaults:
    reportDeliveryTime   "06:00"
    reportType           "standard"  (brief | standard | comprehensive)
    notificationSettings.email  dailyReport, sentimentAlerts, highPriorityPosts on;
                                trendingTopics off
    notificationSettings.inApp  everything on
    focusCategories      []
"""

import uuid
from datetime import datetime
from typing import List, Literal

from pydantic import Field

from app.schemas.common import CamelModel


class EmailNotificationSettings(CamelModel):
    daily_report: bool = True
    sentiment_alerts: bool = True
    trending_topics: bool = False
    high_priority_posts: bool = True


class InAppNotificationSettings(CamelModel):
    daily_report: bool = True
    sentiment_alerts: bool = True
    trending_topics: bool = True
    high_priority_posts: bool = True


class NotificationSettings(CamelModel):
    email: EmailNotificationSettings = Field(default_factory=EmailNotificationSettings)
    in_app: InAppNotificationSettings = Field(default_factory=InAppNotificationSettings)


class UserPreferences(CamelModel):
    report_delivery_time: str = Field(
        default="06:00",
        pattern=r"^([01]\d|2[0-3]):[0-5]\d$",
        description="Daily report delivery time, 24h HH:MM",
    )
    report_type: Literal["brief", "standard", "comprehensive"] = "standard"
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    focus_categories: List[uuid.UUID] = Field(default_factory=list)


class UserResponse(CamelModel):
    """Public view of a user. The password hash is deliberately absent."""
    id: uuid.UUID
    name: str
    email: str
    role: str
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: datetime
    updated_at: datetime


class TokenResponse(CamelModel):
    success: bool = True
    token: str
