# File: src/portal/models/document.py
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from src.portal.utils.time import get_current_time


class Document(SQLModel, table=True):
    __tablename__ = "documents"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    application_id: uuid.UUID = Field(foreign_key="internship_applications.id", unique=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    verification_id: str = Field(index=True, unique=True)

    offer_letter_url: Optional[str] = None
    offer_letter_public_id: Optional[str] = None
    offer_letter_visible: bool = Field(default=False)

    certificate_url: Optional[str] = None
    certificate_public_id: Optional[str] = None
    certificate_visible: bool = Field(default=False)

    loc_url: Optional[str] = None
    loc_public_id: Optional[str] = None
    loc_visible: bool = Field(default=False)

    payment_slip_url: Optional[str] = None
    payment_slip_public_id: Optional[str] = None
    payment_slip_visible: bool = Field(default=False)

    issued_on: datetime = Field(default_factory=get_current_time)
    updated_at: datetime = Field(default_factory=get_current_time)
