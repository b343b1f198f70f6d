# File: src/portal/models/application_progress.py
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from src.portal.utils.time import get_current_time


class ApplicationProgress(SQLModel, table=True):
    """
    Task progress and certificate eligibility for an internship application.

    Progress follows task evaluations; eligibility only changes by admin action.
    """

    __tablename__ = "application_progress"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    application_id: uuid.UUID = Field(foreign_key="internship_applications.id", unique=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    progress_percentage: int = Field(default=0)
    completed_tasks_count: int = Field(default=0)
    is_eligible_for_certificate: bool = Field(default=False)
    admin_manually_completed: bool = Field(default=False)
    last_updated_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    updated_at: datetime = Field(default_factory=get_current_time)
