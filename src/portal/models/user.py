# File: src/portal/models/user.py
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from src.portal.utils.time import get_current_time


class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(index=True, unique=True)
    full_name: Optional[str] = None
    role: str = Field(default="student")  # student, admin
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=get_current_time)
