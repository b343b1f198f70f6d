# File: src/portal/routers/task_router.py
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from src.portal.controllers import task_controller
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.routers.admin_router import client_ip
from src.portal.schemas.application import EligibilityRead
from src.portal.schemas.task import (
    SubmissionCreate,
    SubmissionEvaluate,
    SubmissionRead,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from src.portal.utils.dependencies import get_current_admin_user, get_current_user

router = APIRouter(tags=["Internship Tasks"])


# ─── Tasks ─────────────────────────────────────────────────────

@router.post("/tasks", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return task_controller.create_task(db, payload, admin.id)


@router.get("/tasks", response_model=List[TaskRead])
async def list_tasks(
    domain: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return task_controller.list_tasks(db, domain)


@router.put("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return task_controller.update_task(db, task_id, payload, admin.id)


@router.delete("/tasks/{task_id}", response_model=Dict[str, int])
async def delete_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return task_controller.delete_task(db, task_id, admin.id)


# ─── Submissions ───────────────────────────────────────────────

@router.post("/submissions", response_model=SubmissionRead, status_code=status.HTTP_201_CREATED)
async def submit_task(
    payload: SubmissionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return task_controller.submit_task(db, payload, current_user)


@router.get("/submissions", response_model=List[SubmissionRead])
async def list_submissions(
    task_id: Optional[uuid.UUID] = None,
    application_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return task_controller.list_submissions(db, current_user, task_id, application_id)


@router.put("/submissions/{submission_id}/evaluate", response_model=SubmissionRead)
async def evaluate_submission(
    submission_id: uuid.UUID,
    payload: SubmissionEvaluate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return task_controller.evaluate_submission(db, submission_id, payload, admin.id, client_ip(request))


# ─── Progress ──────────────────────────────────────────────────

@router.get("/progress/{application_id}", response_model=EligibilityRead)
async def get_progress(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Task progress and eligibility; eligibility itself is set under /api/admin."""
    return task_controller.get_progress(db, application_id, current_user)
