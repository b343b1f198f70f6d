# File: src/portal/models/task.py
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Enum as SQLAlchemyEnum, UniqueConstraint
from sqlmodel import SQLModel, Field, Column

from src.portal.utils.time import get_current_time


class TaskType(str, enum.Enum):
    MCQ = "MCQ"
    FILE = "File"
    LINK = "Link"
    TEXT = "Text"


class SubmissionStatus(str, enum.Enum):
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    RESUBMISSION_REQUIRED = "Resubmission Required"


class InternshipTask(SQLModel, table=True):
    """Assignment given to every intern of a domain, outside the LMS programs."""

    __tablename__ = "internship_tasks"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    description: str
    type: TaskType = Field(sa_column=Column(SQLAlchemyEnum(TaskType), nullable=False))
    internship_domain: str = Field(index=True)
    max_marks: int = Field(default=100)
    passing_marks: int = Field(default=40)
    deadline: Optional[datetime] = None
    created_by: uuid.UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=get_current_time)
    updated_at: datetime = Field(default_factory=get_current_time)


class TaskSubmission(SQLModel, table=True):
    __tablename__ = "task_submissions"
    __table_args__ = (
        UniqueConstraint("task_id", "application_id", name="uq_task_submission_task_application"),
        {"extend_existing": True},
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="internship_tasks.id", index=True)
    student_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    application_id: uuid.UUID = Field(foreign_key="internship_applications.id", index=True)
    content: str  # text answer, file URL or link
    status: SubmissionStatus = Field(
        default=SubmissionStatus.SUBMITTED,
        sa_column=Column(SQLAlchemyEnum(SubmissionStatus), nullable=False),
    )
    marks: int = Field(default=0)
    admin_remarks: Optional[str] = None
    evaluated_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    evaluated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=get_current_time)
    updated_at: datetime = Field(default_factory=get_current_time)
