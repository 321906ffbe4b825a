from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: str
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="payload")
    is_read: bool
    created_at: str

    model_config = {"from_attributes": True}


class NotificationFeed(BaseModel):
    unread: int
    items: list[NotificationOut]


class ActivityItem(BaseModel):
    activity_id: str
    activity_type: Literal["loan", "return"]
    activity_time: str
    device_id: Optional[str] = None
    user_name: str
    user_email: str
    created_by: Optional[str] = None
