"""
Pydantic schemas for notifications.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional, List
from datetime import datetime
from renteasy.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    actor_id: Optional[str] = None
    type: NotificationType
    title: str
    body: str = ""
    link: str
    is_read: bool
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]


class UnreadCountResponse(BaseModel):
    unread_count: int = Field(..., description="Number of unread notifications")
