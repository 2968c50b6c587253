from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from .pagination import Pagination

NOTIFICATION_TYPES = ("general", "alert", "warning")


class Notification(BaseModel):
    id: int
    from_user_id: Optional[int] = None
    from_username: Optional[str] = None
    to_user_id: Optional[int] = None
    to_username: Optional[str] = None
    title: str = ""
    message: str = ""
    type: str = "general"
    created_at: Optional[str] = None


class NotificationPage(BaseModel):
    notifications: list[Notification] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class NotificationPayload(BaseModel):
    """Body of the send call. The backend takes no sender id."""

    to_user_id: int
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = "general"


class SendResult(BaseModel):
    ok: bool
    message: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)
