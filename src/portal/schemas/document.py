# src/portal/schemas/document.py
import uuid
from datetime import date, datetime
from typing import Dict, Optional

from pydantic import BaseModel


class DocumentIssueResponse(BaseModel):
    application_id: uuid.UUID
    kind: str
    url: str
    verification_id: str
    regenerated: bool = False
    already_existed: bool = False


class BulkIssueResponse(BaseModel):
    application_id: uuid.UUID
    verification_id: str
    results: Dict[str, str]
    urls: Dict[str, Optional[str]]
    status: str


class VisibilityUpdate(BaseModel):
    visible: bool


class DocumentRead(BaseModel):
    id: uuid.UUID
    application_id: uuid.UUID
    verification_id: str
    offer_letter_url: Optional[str] = None
    certificate_url: Optional[str] = None
    loc_url: Optional[str] = None
    payment_slip_url: Optional[str] = None
    offer_letter_visible: bool
    certificate_visible: bool
    loc_visible: bool
    payment_slip_visible: bool
    issued_on: datetime

    class Config:
        from_attributes = True


class DocumentVerificationRead(BaseModel):
    verification_id: str
    name: str
    domain: str
    college: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    issued_on: datetime
    # Only artifacts the admin has published
    documents: Dict[str, str]
