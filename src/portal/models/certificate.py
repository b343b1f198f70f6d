# File: src/portal/models/certificate.py
import enum
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Enum as SQLAlchemyEnum
from sqlmodel import SQLModel, Field, Column, JSON

from src.portal.utils.time import get_current_time


class CertificateStatus(str, enum.Enum):
    ISSUED = "Issued"
    REVOKED = "Revoked"


class LMSCertificate(SQLModel, table=True):
    __tablename__ = "lms_certificates"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    enrollment_id: uuid.UUID = Field(foreign_key="enrollments.id", unique=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    program_id: uuid.UUID = Field(foreign_key="programs.id", index=True)
    certificate_id: str = Field(index=True, unique=True)  # Human readable, used for verification
    issue_date: datetime = Field(default_factory=get_current_time)
    status: CertificateStatus = Field(
        default=CertificateStatus.ISSUED,
        sa_column=Column(SQLAlchemyEnum(CertificateStatus), nullable=False),
    )
    approved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    verification_url: Optional[str] = None
    # marks_obtained, total_marks, percentage
    score_summary: Dict[str, Any] = Field(sa_type=JSON, default_factory=dict)
