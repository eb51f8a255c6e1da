"""
Notification schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer

from app.utils.datetime_utils import iso_8601_utc


class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    entity_id: Optional[int] = None
    entity_type: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> Optional[str]:
        return iso_8601_utc(dt)
