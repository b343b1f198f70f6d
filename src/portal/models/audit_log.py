# File: src/portal/models/audit_log.py
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import SQLModel, Field, JSON

from src.portal.utils.time import get_current_time


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    admin_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    action_type: str = Field(index=True)
    target_type: str
    target_id: str
    details: Dict[str, Any] = Field(sa_type=JSON, default_factory=dict)
    ip_address: Optional[str] = None
    created_at: datetime = Field(default_factory=get_current_time)
