# src/portal/schemas/lms.py
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.portal.models.activity import ActivityStatus, ActivityType
from src.portal.models.certificate import CertificateStatus
from src.portal.models.enrollment import EnrollmentStatus


# --- Program Schemas ---

class ProgramBase(BaseModel):
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[str] = None
    internship_domain: str


class ProgramCreate(ProgramBase):
    is_published: bool = False


class ProgramUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[str] = None
    internship_domain: Optional[str] = None
    is_published: Optional[bool] = None


class ProgramRead(ProgramBase):
    id: uuid.UUID
    is_published: bool
    created_at: datetime

    class Config:
        from_attributes = True


# --- Course / Module / Lesson Schemas ---

class ContentNodeCreate(BaseModel):
    title: str
    description: Optional[str] = None
    order: int = 0
    is_published: Optional[bool] = None


class ContentNodeRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    order: int
    is_published: bool

    class Config:
        from_attributes = True


# --- Activity Schemas ---

class QuizQuestion(BaseModel):
    question: str
    options: List[str] = []
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    question_type: str = "mcq"


class ActivityCreate(BaseModel):
    title: str
    type: ActivityType
    content: Optional[str] = None
    quiz_data: List[QuizQuestion] = []
    order: int = 0
    is_required: bool = True
    passing_score: int = 0
    max_marks: int = 100
    is_published: bool = True


class ActivityRead(BaseModel):
    id: uuid.UUID
    lesson_id: uuid.UUID
    title: str
    type: ActivityType
    content: Optional[str] = None
    order: int
    is_required: bool
    passing_score: int
    max_marks: int
    is_published: bool

    class Config:
        from_attributes = True


# --- Progress Schemas ---

class ActivityProgressUpdate(BaseModel):
    status: ActivityStatus = ActivityStatus.STARTED
    submission_content: Optional[str] = None
    progress_data: Dict[str, Any] = {}


class QuizAnswers(BaseModel):
    answers: List[str]


class ActivityApproval(BaseModel):
    status: ActivityStatus
    marks: Optional[int] = Field(default=None, ge=0)
    remarks: Optional[str] = None


class ActivityProgressRead(BaseModel):
    id: uuid.UUID
    enrollment_id: uuid.UUID
    activity_id: uuid.UUID
    user_id: uuid.UUID
    status: ActivityStatus
    marks: Optional[int] = None
    submission_content: Optional[str] = None
    progress_data: Dict[str, Any]
    admin_approval: Dict[str, Any]
    updated_at: datetime

    class Config:
        from_attributes = True


class EnrollmentRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    program_id: uuid.UUID
    application_id: Optional[uuid.UUID] = None
    progress: int
    status: EnrollmentStatus
    enrolled_at: datetime
    completed_at: Optional[datetime] = None
    is_certificate_issued: bool

    class Config:
        from_attributes = True


class LMSCertificateRead(BaseModel):
    id: uuid.UUID
    enrollment_id: uuid.UUID
    user_id: uuid.UUID
    program_id: uuid.UUID
    certificate_id: str
    issue_date: datetime
    status: CertificateStatus
    approved_by: Optional[uuid.UUID] = None
    verification_url: Optional[str] = None
    score_summary: Dict[str, Any]

    class Config:
        from_attributes = True


class CascadeDeleteSummary(BaseModel):
    target_id: uuid.UUID
    deleted: Dict[str, int]
