# src/portal/schemas/application.py
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from src.portal.models.application import ApplicationStatus, PaymentStatus


class ApplicationBase(BaseModel):
    name: str
    email: EmailStr
    phone: str
    college: str
    course: Optional[str] = None
    year: Optional[str] = None
    skills: Optional[str] = None
    experience: Optional[str] = None
    preferred_domain: str
    duration: int = Field(default=1, ge=1)


class ApplicationCreate(ApplicationBase):
    amount: Optional[int] = Field(default=None, ge=0)


class ApplicationStatusUpdate(BaseModel):
    status: Optional[ApplicationStatus] = None
    payment_status: Optional[PaymentStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    document_issue_date: Optional[date] = None


class ApplicationRead(ApplicationBase):
    id: uuid.UUID
    user_id: uuid.UUID
    amount: int
    status: ApplicationStatus
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    document_issue_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApplicationDocumentsRead(BaseModel):
    verification_id: Optional[str] = None
    offer_letter_url: Optional[str] = None
    certificate_url: Optional[str] = None
    loc_url: Optional[str] = None
    payment_slip_url: Optional[str] = None
    offer_letter_visible: bool = False
    certificate_visible: bool = False
    loc_visible: bool = False
    payment_slip_visible: bool = False


class ApplicationWithDocuments(ApplicationRead):
    documents: Optional[ApplicationDocumentsRead] = None
    is_eligible_for_certificate: bool = False


class EligibilityUpdate(BaseModel):
    is_eligible_for_certificate: bool
    admin_manually_completed: bool = False


class EligibilityRead(BaseModel):
    application_id: uuid.UUID
    progress_percentage: int = 0
    completed_tasks_count: int = 0
    is_eligible_for_certificate: bool
    admin_manually_completed: bool
    last_updated_by: Optional[uuid.UUID] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class DashboardStats(BaseModel):
    total_applications: int
    pending_reviews: int
    verified_payments: int
    by_status: Dict[str, int]
    recent_applications: List[ApplicationRead]


class DeleteSummary(BaseModel):
    application_id: uuid.UUID
    deleted: Dict[str, int]
