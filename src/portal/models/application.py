# File: src/portal/models/application.py
import enum
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Enum as SQLAlchemyEnum
from sqlmodel import SQLModel, Field, Column

from src.portal.utils.time import get_current_time


class ApplicationStatus(str, enum.Enum):
    NEW = "New"
    REVIEWED = "Reviewed"
    CONTACTED = "Contacted"
    SELECTED = "Selected"
    REJECTED = "Rejected"
    APPROVED = "Approved"
    COMPLETED = "Completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    VERIFIED = "Verified"
    FAILED = "Failed"


# Statuses that block a second application for the same domain
ACTIVE_APPLICATION_STATUSES = (
    ApplicationStatus.NEW,
    ApplicationStatus.REVIEWED,
    ApplicationStatus.CONTACTED,
    ApplicationStatus.SELECTED,
    ApplicationStatus.APPROVED,
)


class InternshipApplication(SQLModel, table=True):
    __tablename__ = "internship_applications"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    name: str
    email: str
    phone: str
    college: str
    course: Optional[str] = None
    year: Optional[str] = None
    skills: Optional[str] = None
    experience: Optional[str] = None
    preferred_domain: str = Field(index=True)
    duration: int = Field(default=1)  # months
    amount: int = Field(default=0)

    status: ApplicationStatus = Field(
        default=ApplicationStatus.NEW,
        sa_column=Column(SQLAlchemyEnum(ApplicationStatus), nullable=False),
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        sa_column=Column(SQLAlchemyEnum(PaymentStatus), nullable=False),
    )

    razorpay_order_id: Optional[str] = Field(default=None, index=True)
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    transaction_id: Optional[str] = None

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    document_issue_date: Optional[date] = None

    created_at: datetime = Field(default_factory=get_current_time)
    updated_at: datetime = Field(default_factory=get_current_time)
