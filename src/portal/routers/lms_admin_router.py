# File: src/portal/routers/lms_admin_router.py
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from src.portal.controllers import lms_content_controller, lms_controller
from src.portal.db.session import get_db
from src.portal.models.activity import ActivityStatus
from src.portal.models.user import User
from src.portal.routers.admin_router import client_ip
from src.portal.schemas.lms import (
    ActivityApproval,
    ActivityCreate,
    ActivityProgressRead,
    ActivityRead,
    CascadeDeleteSummary,
    ContentNodeCreate,
    ContentNodeRead,
    EnrollmentRead,
    LMSCertificateRead,
    ProgramCreate,
    ProgramRead,
    ProgramUpdate,
)
from src.portal.utils.dependencies import get_current_admin_user

router = APIRouter(tags=["LMS Admin"])


# ─── Programs ──────────────────────────────────────────────────

@router.post("/programs", response_model=ProgramRead, status_code=status.HTTP_201_CREATED)
async def create_program(
    payload: ProgramCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.create_program(db, payload, admin.id)


@router.get("/programs", response_model=List[ProgramRead])
async def list_programs(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.list_programs(db)


@router.patch("/programs/{program_id}", response_model=ProgramRead)
async def update_program(
    program_id: uuid.UUID,
    payload: ProgramUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.update_program(db, program_id, payload, admin.id)


@router.delete("/programs/{program_id}", response_model=CascadeDeleteSummary)
async def delete_program(
    program_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    deleted = lms_content_controller.delete_program(db, program_id, admin.id, client_ip(request))
    return CascadeDeleteSummary(target_id=program_id, deleted=deleted)


# ─── Content tree ──────────────────────────────────────────────

@router.post("/programs/{program_id}/courses", response_model=ContentNodeRead, status_code=status.HTTP_201_CREATED)
async def create_course(
    program_id: uuid.UUID,
    payload: ContentNodeCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.create_course(db, program_id, payload, admin.id)


@router.get("/programs/{program_id}/courses", response_model=List[ContentNodeRead])
async def list_courses(
    program_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.list_courses(db, program_id)


@router.delete("/courses/{course_id}", response_model=CascadeDeleteSummary)
async def delete_course(
    course_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    deleted = lms_content_controller.delete_course(db, course_id, admin.id, client_ip(request))
    return CascadeDeleteSummary(target_id=course_id, deleted=deleted)


@router.post("/courses/{course_id}/modules", response_model=ContentNodeRead, status_code=status.HTTP_201_CREATED)
async def create_module(
    course_id: uuid.UUID,
    payload: ContentNodeCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.create_module(db, course_id, payload, admin.id)


@router.get("/courses/{course_id}/modules", response_model=List[ContentNodeRead])
async def list_modules(
    course_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.list_modules(db, course_id)


@router.delete("/modules/{module_id}", response_model=CascadeDeleteSummary)
async def delete_module(
    module_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    deleted = lms_content_controller.delete_module(db, module_id, admin.id, client_ip(request))
    return CascadeDeleteSummary(target_id=module_id, deleted=deleted)


@router.post("/modules/{module_id}/lessons", response_model=ContentNodeRead, status_code=status.HTTP_201_CREATED)
async def create_lesson(
    module_id: uuid.UUID,
    payload: ContentNodeCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.create_lesson(db, module_id, payload, admin.id)


@router.get("/modules/{module_id}/lessons", response_model=List[ContentNodeRead])
async def list_lessons(
    module_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.list_lessons(db, module_id)


@router.patch("/lessons/{lesson_id}/publish", response_model=ContentNodeRead)
async def publish_lesson(
    lesson_id: uuid.UUID,
    is_published: bool = True,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.set_lesson_published(db, lesson_id, is_published, admin.id)


@router.delete("/lessons/{lesson_id}", response_model=CascadeDeleteSummary)
async def delete_lesson(
    lesson_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    deleted = lms_content_controller.delete_lesson(db, lesson_id, admin.id, client_ip(request))
    return CascadeDeleteSummary(target_id=lesson_id, deleted=deleted)


@router.post("/lessons/{lesson_id}/activities", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
async def create_activity(
    lesson_id: uuid.UUID,
    payload: ActivityCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.create_activity(db, lesson_id, payload, admin.id)


@router.get("/lessons/{lesson_id}/activities", response_model=List[ActivityRead])
async def list_activities(
    lesson_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_content_controller.list_activities(db, lesson_id)


@router.delete("/activities/{activity_id}", response_model=CascadeDeleteSummary)
async def delete_activity(
    activity_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    deleted = lms_content_controller.delete_activity(db, activity_id, admin.id, client_ip(request))
    return CascadeDeleteSummary(target_id=activity_id, deleted=deleted)


# ─── Enrollments, approvals, certificates ──────────────────────

@router.get("/enrollments", response_model=List[EnrollmentRead])
async def list_enrollments(
    program_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_controller.list_enrollments(db, program_id)


@router.post("/enrollments/{enrollment_id}/recompute")
async def recompute_progress(
    enrollment_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return {"enrollment_id": enrollment_id, "progress": lms_controller.recompute_progress(db, enrollment_id)}


@router.get("/submissions", response_model=List[ActivityProgressRead])
async def list_submissions(
    status_filter: Optional[ActivityStatus] = ActivityStatus.PENDING_APPROVAL,
    program_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_controller.list_activity_submissions(db, status_filter, program_id)


@router.patch("/submissions/{progress_id}", response_model=ActivityProgressRead)
async def approve_submission(
    progress_id: uuid.UUID,
    payload: ActivityApproval,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_controller.approve_activity_progress(db, progress_id, payload, admin.id, client_ip(request))


@router.post(
    "/enrollments/{enrollment_id}/certificate",
    response_model=LMSCertificateRead,
    status_code=status.HTTP_201_CREATED,
)
async def issue_certificate(
    enrollment_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_controller.issue_lms_certificate(db, enrollment_id, admin.id, client_ip(request))


@router.post("/certificates/{certificate_id}/revoke", response_model=LMSCertificateRead)
async def revoke_certificate(
    certificate_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return lms_controller.revoke_lms_certificate(db, certificate_id, admin.id, client_ip(request))
