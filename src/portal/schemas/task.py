# src/portal/schemas/task.py
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.portal.models.task import SubmissionStatus, TaskType


class TaskBase(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: TaskType
    internship_domain: str = Field(min_length=1)
    max_marks: int = Field(default=100, gt=0)
    passing_marks: int = Field(default=40, ge=0)
    deadline: Optional[datetime] = None


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[TaskType] = None
    internship_domain: Optional[str] = None
    max_marks: Optional[int] = Field(default=None, gt=0)
    passing_marks: Optional[int] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None


class TaskRead(TaskBase):
    id: uuid.UUID
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SubmissionCreate(BaseModel):
    task_id: uuid.UUID
    application_id: uuid.UUID
    content: str = Field(min_length=1)


class SubmissionEvaluate(BaseModel):
    status: Optional[SubmissionStatus] = None
    marks: Optional[int] = Field(default=None, ge=0)
    admin_remarks: Optional[str] = None


class SubmissionRead(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    student_id: uuid.UUID
    application_id: uuid.UUID
    content: str
    status: SubmissionStatus
    marks: int
    admin_remarks: Optional[str] = None
    evaluated_by: Optional[uuid.UUID] = None
    evaluated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
