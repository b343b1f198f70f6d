# File: src/portal/models/program.py
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from src.portal.utils.time import get_current_time


class Program(SQLModel, table=True):
    __tablename__ = "programs"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[str] = None  # e.g. "4 Weeks"
    internship_domain: str = Field(index=True)
    is_published: bool = Field(default=False)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=get_current_time)


class ProgramCourse(SQLModel, table=True):
    __tablename__ = "program_courses"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    program_id: uuid.UUID = Field(foreign_key="programs.id", index=True)
    title: str
    description: Optional[str] = None
    order: int = Field(default=0)
    is_published: bool = Field(default=True)


class CourseModule(SQLModel, table=True):
    __tablename__ = "course_modules"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    course_id: uuid.UUID = Field(foreign_key="program_courses.id", index=True)
    title: str
    description: Optional[str] = None
    order: int = Field(default=0)
    is_published: bool = Field(default=True)


class Lesson(SQLModel, table=True):
    __tablename__ = "lessons"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    module_id: uuid.UUID = Field(foreign_key="course_modules.id", index=True)
    title: str
    description: Optional[str] = None
    order: int = Field(default=0)
    is_published: bool = Field(default=False)
