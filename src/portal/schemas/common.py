# src/portal/schemas/common.py
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: uuid.UUID
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogRead(BaseModel):
    id: uuid.UUID
    admin_id: Optional[uuid.UUID] = None
    action_type: str
    target_type: str
    target_id: str
    details: Dict[str, Any]
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
