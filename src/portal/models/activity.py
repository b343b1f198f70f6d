# File: src/portal/models/activity.py
import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Enum as SQLAlchemyEnum, UniqueConstraint
from sqlmodel import SQLModel, Field, Column, JSON

from src.portal.utils.time import get_current_time


class ActivityType(str, enum.Enum):
    VIDEO = "Video"
    PDF = "PDF"
    TEXT = "Text"
    EXTERNAL_LINK = "ExternalLink"
    QUIZ = "Quiz"
    ASSIGNMENT = "Assignment"
    REFLECTION = "Reflection"


class ActivityStatus(str, enum.Enum):
    STARTED = "Started"
    SUBMITTED = "Submitted"
    PENDING_APPROVAL = "Pending Approval"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class Activity(SQLModel, table=True):
    __tablename__ = "activities"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lesson_id: uuid.UUID = Field(foreign_key="lessons.id", index=True)
    title: str
    type: ActivityType = Field(sa_column=Column(SQLAlchemyEnum(ActivityType), nullable=False))
    content: Optional[str] = None
    # [{question, options, correct_answer, explanation, question_type}]
    quiz_data: List[Dict[str, Any]] = Field(sa_type=JSON, default_factory=list)
    order: int = Field(default=0)
    is_required: bool = Field(default=True)
    passing_score: int = Field(default=0)
    max_marks: int = Field(default=100)
    is_published: bool = Field(default=True)


class ActivityProgress(SQLModel, table=True):
    __tablename__ = "activity_progress"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "activity_id", name="uq_activity_progress_enrollment_activity"),
        {"extend_existing": True},
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    enrollment_id: uuid.UUID = Field(foreign_key="enrollments.id", index=True)
    activity_id: uuid.UUID = Field(foreign_key="activities.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    status: ActivityStatus = Field(
        default=ActivityStatus.STARTED,
        sa_column=Column(SQLAlchemyEnum(ActivityStatus), nullable=False),
    )
    # watch_time, percentage_watched, quiz_attempts, last_attempt_date, quiz_score
    progress_data: Dict[str, Any] = Field(sa_type=JSON, default_factory=dict)
    submission_content: Optional[str] = None
    marks: Optional[int] = None
    # is_approved, approved_by, approved_at, remarks
    admin_approval: Dict[str, Any] = Field(sa_type=JSON, default_factory=dict)
    updated_at: datetime = Field(default_factory=get_current_time)
