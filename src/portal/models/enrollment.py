# File: src/portal/models/enrollment.py
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Enum as SQLAlchemyEnum, UniqueConstraint
from sqlmodel import SQLModel, Field, Column

from src.portal.utils.time import get_current_time


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    DROPPED = "Dropped"
    LOCKED = "Locked"


class Enrollment(SQLModel, table=True):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "program_id", name="uq_enrollment_user_program"),
        {"extend_existing": True},
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    program_id: uuid.UUID = Field(foreign_key="programs.id", index=True)
    application_id: Optional[uuid.UUID] = Field(default=None, foreign_key="internship_applications.id")
    progress: int = Field(default=0)  # 0..100, derived
    status: EnrollmentStatus = Field(
        default=EnrollmentStatus.ACTIVE,
        sa_column=Column(SQLAlchemyEnum(EnrollmentStatus), nullable=False),
    )
    enrolled_at: datetime = Field(default_factory=get_current_time)
    completed_at: Optional[datetime] = None
    is_certificate_issued: bool = Field(default=False)
