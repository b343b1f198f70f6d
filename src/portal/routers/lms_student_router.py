# File: src/portal/routers/lms_student_router.py
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from src.portal.controllers import lms_controller
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.schemas.lms import (
    ActivityProgressRead,
    ActivityProgressUpdate,
    EnrollmentRead,
    LMSCertificateRead,
    QuizAnswers,
)
from src.portal.utils.dependencies import get_current_user

router = APIRouter(tags=["LMS Student"])


@router.get("/enrollments", response_model=List[EnrollmentRead])
async def my_enrollments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return lms_controller.list_my_enrollments(db, current_user.id)


@router.get("/programs/{program_id}")
async def program_content(
    program_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return lms_controller.get_program_content(db, current_user, program_id)


@router.put("/activities/{activity_id}/progress", response_model=ActivityProgressRead)
async def update_activity_progress(
    activity_id: uuid.UUID,
    payload: ActivityProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return lms_controller.update_my_activity_progress(db, current_user, activity_id, payload)


@router.post("/activities/{activity_id}/quiz", response_model=ActivityProgressRead)
async def submit_quiz(
    activity_id: uuid.UUID,
    payload: QuizAnswers,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return lms_controller.submit_quiz(db, current_user, activity_id, payload.answers)


@router.get("/certificates", response_model=List[LMSCertificateRead])
async def my_certificates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return lms_controller.list_my_certificates(db, current_user.id)


# ─── Public ────────────────────────────────────────────────────

public_router = APIRouter(tags=["Verification"])


@public_router.get("/verify-lms/{certificate_id}")
async def verify_lms_certificate(certificate_id: str, db: Session = Depends(get_db)):
    return lms_controller.verify_lms_certificate(db, certificate_id)
