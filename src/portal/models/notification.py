# File: src/portal/models/notification.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from src.portal.utils.time import get_current_time


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    recipient_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    title: str
    message: str
    type: str = Field(default="general")
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=get_current_time)
