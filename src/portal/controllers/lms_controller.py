# File: src/portal/controllers/lms_controller.py
import logging
import secrets
import string
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from src.portal.config.settings import FRONTEND_URL, LMS_CERTIFICATE_PREFIX
from src.portal.controllers.audit_controller import record_audit
from src.portal.controllers.notification_controller import notify_user
from src.portal.models.activity import Activity, ActivityProgress, ActivityStatus, ActivityType
from src.portal.models.certificate import CertificateStatus, LMSCertificate
from src.portal.models.enrollment import Enrollment, EnrollmentStatus
from src.portal.models.program import CourseModule, Lesson, Program, ProgramCourse
from src.portal.models.user import User
from src.portal.schemas.lms import ActivityApproval, ActivityProgressUpdate
from src.portal.utils.exceptions import (
    AuthorizationException,
    CertificateAlreadyIssued,
    ConflictException,
    NotFoundException,
    PersistenceException,
    ProgramIncomplete,
    ValidationException,
)
from src.portal.utils.time import get_current_time

logger = logging.getLogger(__name__)

STUDENT_SETTABLE_STATUSES = (
    ActivityStatus.STARTED,
    ActivityStatus.SUBMITTED,
    ActivityStatus.PENDING_APPROVAL,
)

CERTIFICATE_ID_ALPHABET = string.digits + string.ascii_uppercase


# ─── Enrollment ────────────────────────────────────────────────

def find_program_for_domain(db: Session, domain: str) -> Optional[Program]:
    return db.exec(
        select(Program)
        .where(
            func.lower(Program.internship_domain) == (domain or "").strip().lower(),
            Program.is_published == True,
        )
        .order_by(Program.created_at)
    ).first()


def auto_enroll(
    db: Session,
    user_id: uuid.UUID,
    domain: str,
    application_id: Optional[uuid.UUID] = None,
) -> Optional[Enrollment]:
    """
    Enroll a student into the published program of their internship domain.

    Returns the existing enrollment when there is one, and None when no
    published program exists for the domain.
    """
    program = find_program_for_domain(db, domain)
    if not program:
        logger.warning(f"No published program for domain '{domain}', user {user_id} not enrolled")
        return None

    stmt = select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.program_id == program.id)
    existing = db.exec(stmt).first()
    if existing:
        if existing.application_id is None and application_id is not None:
            existing.application_id = application_id
            db.add(existing)
            db.commit()
            db.refresh(existing)
        return existing

    enrollment = Enrollment(user_id=user_id, program_id=program.id, application_id=application_id)
    db.add(enrollment)
    try:
        db.commit()
    except IntegrityError:
        # Another request enrolled the same user first
        db.rollback()
        logger.warning(f"Concurrent enrollment detected for user {user_id} in program {program.id}")
        return db.exec(stmt).first()

    db.refresh(enrollment)
    logger.info(f"User {user_id} auto-enrolled in program {program.id} ({program.title})")
    notify_user(
        db,
        user_id,
        "Enrolled in Program",
        f"You have been enrolled in {program.title}. Start learning from your dashboard.",
        type="lms_enrollment",
    )
    return enrollment


def get_enrollment(db: Session, enrollment_id: uuid.UUID) -> Enrollment:
    enrollment = db.get(Enrollment, enrollment_id)
    if not enrollment:
        raise NotFoundException("Enrollment not found")
    return enrollment


def list_enrollments(db: Session, program_id: Optional[uuid.UUID] = None) -> List[Enrollment]:
    stmt = select(Enrollment)
    if program_id:
        stmt = stmt.where(Enrollment.program_id == program_id)
    return db.exec(stmt.order_by(Enrollment.enrolled_at.desc())).all()


def list_my_enrollments(db: Session, user_id: uuid.UUID) -> List[Enrollment]:
    return db.exec(
        select(Enrollment).where(Enrollment.user_id == user_id).order_by(Enrollment.enrolled_at.desc())
    ).all()


def _program_for_activity(db: Session, activity_id: uuid.UUID) -> uuid.UUID:
    program_id = db.exec(
        select(ProgramCourse.program_id)
        .join(CourseModule, CourseModule.course_id == ProgramCourse.id)
        .join(Lesson, Lesson.module_id == CourseModule.id)
        .join(Activity, Activity.lesson_id == Lesson.id)
        .where(Activity.id == activity_id)
    ).first()
    if program_id is None:
        raise NotFoundException("Activity not found")
    return program_id


def _student_enrollment(db: Session, user_id: uuid.UUID, program_id: uuid.UUID) -> Enrollment:
    enrollment = db.exec(
        select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.program_id == program_id)
    ).first()
    if not enrollment:
        raise AuthorizationException("You are not enrolled in this program")
    if enrollment.status in (EnrollmentStatus.LOCKED, EnrollmentStatus.DROPPED):
        raise AuthorizationException(f"Enrollment is {enrollment.status.value}")
    return enrollment


# ─── Progress ──────────────────────────────────────────────────

def required_activity_ids(db: Session, program_id: uuid.UUID) -> List[uuid.UUID]:
    """Required activities visible to students: every level up to the course must be published."""
    return db.exec(
        select(Activity.id)
        .join(Lesson, Activity.lesson_id == Lesson.id)
        .join(CourseModule, Lesson.module_id == CourseModule.id)
        .join(ProgramCourse, CourseModule.course_id == ProgramCourse.id)
        .where(
            ProgramCourse.program_id == program_id,
            ProgramCourse.is_published == True,
            CourseModule.is_published == True,
            Lesson.is_published == True,
            Activity.is_published == True,
            Activity.is_required == True,
        )
    ).all()


def calculate_progress(completed: int, total: int) -> int:
    # Integer half-up rounding of 100 * completed / total
    if total <= 0:
        return 0
    return max(0, min(100, (200 * completed + total) // (2 * total)))


def _apply_progress(db: Session, enrollment: Enrollment) -> int:
    required = required_activity_ids(db, enrollment.program_id)
    completed = 0
    if required:
        completed = db.exec(
            select(func.count(ActivityProgress.id)).where(
                ActivityProgress.enrollment_id == enrollment.id,
                ActivityProgress.activity_id.in_(required),
                ActivityProgress.status == ActivityStatus.COMPLETED,
            )
        ).one()
    enrollment.progress = calculate_progress(completed, len(required))
    db.add(enrollment)
    return enrollment.progress


def recompute_progress(db: Session, enrollment_id: uuid.UUID) -> int:
    """Recalculate and store the completion percentage. Enrollment status is left alone."""
    enrollment = get_enrollment(db, enrollment_id)
    progress = _apply_progress(db, enrollment)
    db.commit()
    logger.info(f"Enrollment {enrollment_id} progress recomputed: {progress}%")
    return progress


def refresh_program_progress(db: Session, program_id: uuid.UUID) -> int:
    """
    Recalculate stored progress for every open enrollment in `program_id`.

    Called after content is added, removed or unpublished, since that changes
    the set of required activities. Enrollments that already hold a
    certificate keep their final progress. The caller commits.
    """
    enrollments = db.exec(
        select(Enrollment).where(
            Enrollment.program_id == program_id,
            Enrollment.is_certificate_issued == False,
        )
    ).all()
    for enrollment in enrollments:
        _apply_progress(db, enrollment)
    if enrollments:
        logger.info(f"Progress refreshed for {len(enrollments)} enrollment(s) in program {program_id}")
    return len(enrollments)


def record_activity_result(
    db: Session,
    enrollment_id: uuid.UUID,
    activity_id: uuid.UUID,
    status: ActivityStatus,
    marks: Optional[int] = None,
    approver_id: Optional[uuid.UUID] = None,
    submission_content: Optional[str] = None,
    progress_data: Optional[Dict[str, Any]] = None,
    remarks: Optional[str] = None,
) -> ActivityProgress:
    """
    Create or update the progress row of one activity in an enrollment.

    Only an approving admin may move a row into or out of Completed.
    """
    enrollment = get_enrollment(db, enrollment_id)
    activity = db.get(Activity, activity_id)
    if not activity:
        raise NotFoundException("Activity not found")

    row = db.exec(
        select(ActivityProgress).where(
            ActivityProgress.enrollment_id == enrollment.id,
            ActivityProgress.activity_id == activity.id,
        )
    ).first()
    previous_status = row.status if row else None

    if approver_id is None:
        if status not in STUDENT_SETTABLE_STATUSES:
            raise AuthorizationException("Only an admin can mark an activity as completed")
        if previous_status == ActivityStatus.COMPLETED:
            raise ConflictException("Activity has already been completed")

    if marks is not None and not 0 <= marks <= activity.max_marks:
        raise ValidationException(f"Marks must be between 0 and {activity.max_marks}")

    if row is None:
        row = ActivityProgress(enrollment_id=enrollment.id, activity_id=activity.id, user_id=enrollment.user_id)

    row.status = status
    if marks is not None:
        row.marks = marks
    if submission_content is not None:
        row.submission_content = submission_content
    if progress_data:
        row.progress_data = {**(row.progress_data or {}), **progress_data}
    if approver_id is not None:
        row.admin_approval = {
            "is_approved": status == ActivityStatus.COMPLETED,
            "approved_by": str(approver_id),
            "approved_at": get_current_time().isoformat(),
            "remarks": remarks,
        }
    row.updated_at = get_current_time()
    db.add(row)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictException("Progress for this activity was updated concurrently, please retry")

    if ActivityStatus.COMPLETED in (previous_status, status):
        _apply_progress(db, enrollment)
    db.commit()
    db.refresh(row)
    return row


def approve_activity_progress(
    db: Session,
    progress_id: uuid.UUID,
    payload: ActivityApproval,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> ActivityProgress:
    row = db.get(ActivityProgress, progress_id)
    if not row:
        raise NotFoundException("Activity progress not found")
    row = record_activity_result(
        db,
        row.enrollment_id,
        row.activity_id,
        payload.status,
        marks=payload.marks,
        approver_id=admin_id,
        remarks=payload.remarks,
    )
    record_audit(
        db, admin_id, "APPROVE_LMS_ACTIVITY", "ActivityProgress", row.id,
        {"status": payload.status.value, "marks": payload.marks, "remarks": payload.remarks},
        ip_address,
    )
    db.commit()
    db.refresh(row)
    return row


def list_activity_submissions(
    db: Session,
    status: Optional[ActivityStatus] = ActivityStatus.PENDING_APPROVAL,
    program_id: Optional[uuid.UUID] = None,
) -> List[ActivityProgress]:
    stmt = select(ActivityProgress)
    if status:
        stmt = stmt.where(ActivityProgress.status == status)
    if program_id:
        stmt = stmt.join(Enrollment, Enrollment.id == ActivityProgress.enrollment_id).where(
            Enrollment.program_id == program_id
        )
    return db.exec(stmt.order_by(ActivityProgress.updated_at.desc())).all()


# ─── Student side ──────────────────────────────────────────────

def update_my_activity_progress(
    db: Session, user: User, activity_id: uuid.UUID, payload: ActivityProgressUpdate
) -> ActivityProgress:
    enrollment = _student_enrollment(db, user.id, _program_for_activity(db, activity_id))
    return record_activity_result(
        db,
        enrollment.id,
        activity_id,
        payload.status,
        submission_content=payload.submission_content,
        progress_data=payload.progress_data,
    )


def submit_quiz(db: Session, user: User, activity_id: uuid.UUID, answers: List[str]) -> ActivityProgress:
    activity = db.get(Activity, activity_id)
    if not activity or activity.type != ActivityType.QUIZ:
        raise NotFoundException("Quiz not found")
    enrollment = _student_enrollment(db, user.id, _program_for_activity(db, activity_id))

    questions = activity.quiz_data or []
    if not questions:
        raise ValidationException("Quiz has no questions")
    correct = sum(
        1
        for index, question in enumerate(questions)
        if index < len(answers) and answers[index] == question.get("correct_answer")
    )
    score = round(correct / len(questions) * 100)

    existing = db.exec(
        select(ActivityProgress).where(
            ActivityProgress.enrollment_id == enrollment.id,
            ActivityProgress.activity_id == activity.id,
        )
    ).first()
    attempts = (existing.progress_data or {}).get("quiz_attempts", 0) if existing else 0

    logger.info(f"User {user.id} scored {score}% on quiz {activity_id}")
    return record_activity_result(
        db,
        enrollment.id,
        activity.id,
        ActivityStatus.PENDING_APPROVAL,
        marks=round(score * activity.max_marks / 100),
        progress_data={
            "quiz_attempts": attempts + 1,
            "quiz_score": score,
            "last_attempt_date": get_current_time().isoformat(),
            "answers": answers,
        },
    )


def get_program_content(db: Session, user: User, program_id: uuid.UUID) -> Dict[str, Any]:
    """Published course tree of a program with the student's status on each activity."""
    program = db.get(Program, program_id)
    if not program or not program.is_published:
        raise NotFoundException("Program not found")
    enrollment = _student_enrollment(db, user.id, program.id)

    progress_rows = db.exec(
        select(ActivityProgress).where(ActivityProgress.enrollment_id == enrollment.id)
    ).all()
    progress_by_activity = {row.activity_id: row for row in progress_rows}

    courses = db.exec(
        select(ProgramCourse)
        .where(ProgramCourse.program_id == program.id, ProgramCourse.is_published == True)
        .order_by(ProgramCourse.order)
    ).all()
    tree = []
    for course in courses:
        modules = db.exec(
            select(CourseModule)
            .where(CourseModule.course_id == course.id, CourseModule.is_published == True)
            .order_by(CourseModule.order)
        ).all()
        module_nodes = []
        for module in modules:
            lessons = db.exec(
                select(Lesson)
                .where(Lesson.module_id == module.id, Lesson.is_published == True)
                .order_by(Lesson.order)
            ).all()
            lesson_nodes = []
            for lesson in lessons:
                activities = db.exec(
                    select(Activity)
                    .where(Activity.lesson_id == lesson.id, Activity.is_published == True)
                    .order_by(Activity.order)
                ).all()
                lesson_nodes.append({
                    "id": lesson.id,
                    "title": lesson.title,
                    "activities": [
                        {
                            "id": activity.id,
                            "title": activity.title,
                            "type": activity.type.value,
                            "content": activity.content,
                            "is_required": activity.is_required,
                            "max_marks": activity.max_marks,
                            # Answers stay server-side
                            "questions": [
                                {"question": q.get("question"), "options": q.get("options", [])}
                                for q in (activity.quiz_data or [])
                            ],
                            "status": (
                                progress_by_activity[activity.id].status.value
                                if activity.id in progress_by_activity else None
                            ),
                        }
                        for activity in activities
                    ],
                })
            module_nodes.append({"id": module.id, "title": module.title, "lessons": lesson_nodes})
        tree.append({"id": course.id, "title": course.title, "modules": module_nodes})

    return {
        "program": {"id": program.id, "title": program.title, "description": program.description},
        "enrollment": {"id": enrollment.id, "progress": enrollment.progress, "status": enrollment.status.value},
        "courses": tree,
    }


# ─── Certificates ──────────────────────────────────────────────

def generate_certificate_id(db: Session, attempts: int = 5) -> str:
    year = get_current_time().year
    for _ in range(attempts):
        suffix = "".join(secrets.choice(CERTIFICATE_ID_ALPHABET) for _ in range(6))
        candidate = f"{LMS_CERTIFICATE_PREFIX}-{year}-{suffix}"
        if not db.exec(select(LMSCertificate.id).where(LMSCertificate.certificate_id == candidate)).first():
            return candidate
    raise PersistenceException("Could not allocate a unique certificate id")


def _score_summary(db: Session, enrollment: Enrollment) -> Dict[str, Any]:
    required = required_activity_ids(db, enrollment.program_id)
    if not required:
        return {"marks_obtained": 0, "total_marks": 0, "percentage": 0}
    rows = db.exec(
        select(ActivityProgress, Activity.max_marks)
        .join(Activity, Activity.id == ActivityProgress.activity_id)
        .where(
            ActivityProgress.enrollment_id == enrollment.id,
            ActivityProgress.activity_id.in_(required),
        )
    ).all()
    obtained = sum(row.marks or 0 for row, _ in rows)
    total = db.exec(select(func.sum(Activity.max_marks)).where(Activity.id.in_(required))).one() or 0
    percentage = round(obtained / total * 100, 2) if total else 0
    return {"marks_obtained": obtained, "total_marks": total, "percentage": percentage}


def issue_lms_certificate(
    db: Session,
    enrollment_id: uuid.UUID,
    approver_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> LMSCertificate:
    enrollment = get_enrollment(db, enrollment_id)
    if enrollment.progress < 100:
        raise ProgramIncomplete(
            "Program not yet completed", details={"progress": enrollment.progress}
        )

    existing = db.exec(select(LMSCertificate).where(LMSCertificate.enrollment_id == enrollment.id)).first()
    if existing or enrollment.is_certificate_issued:
        raise CertificateAlreadyIssued("Certificate already issued for this enrollment")

    certificate_id = generate_certificate_id(db)
    certificate = LMSCertificate(
        enrollment_id=enrollment.id,
        user_id=enrollment.user_id,
        program_id=enrollment.program_id,
        certificate_id=certificate_id,
        approved_by=approver_id,
        verification_url=f"{FRONTEND_URL}/verify-lms/{certificate_id}",
        score_summary=_score_summary(db, enrollment),
    )
    db.add(certificate)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        if db.exec(select(LMSCertificate.id).where(LMSCertificate.enrollment_id == enrollment_id)).first():
            raise CertificateAlreadyIssued("Certificate already issued for this enrollment")
        raise PersistenceException("Certificate could not be stored, please retry")

    # Flags are set only once the certificate row exists
    enrollment.is_certificate_issued = True
    enrollment.status = EnrollmentStatus.COMPLETED
    enrollment.completed_at = get_current_time()
    db.add(enrollment)
    record_audit(
        db, approver_id, "ISSUE_LMS_CERTIFICATE", "Enrollment", enrollment.id,
        {"certificate_id": certificate_id}, ip_address,
    )
    db.commit()
    db.refresh(certificate)
    logger.info(f"LMS certificate {certificate_id} issued for enrollment {enrollment.id}")

    notify_user(
        db,
        enrollment.user_id,
        "Certificate Issued",
        f"Congratulations! Your program certificate {certificate_id} has been issued.",
        type="lms_certificate",
    )
    return certificate


def revoke_lms_certificate(
    db: Session,
    certificate_id: str,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> LMSCertificate:
    certificate = db.exec(select(LMSCertificate).where(LMSCertificate.certificate_id == certificate_id)).first()
    if not certificate:
        raise NotFoundException("Certificate not found")
    if certificate.status == CertificateStatus.REVOKED:
        return certificate
    certificate.status = CertificateStatus.REVOKED
    db.add(certificate)
    record_audit(db, admin_id, "REVOKE_LMS_CERTIFICATE", "LMSCertificate", certificate.id,
                 {"certificate_id": certificate_id}, ip_address)
    db.commit()
    db.refresh(certificate)
    return certificate


def list_my_certificates(db: Session, user_id: uuid.UUID) -> List[LMSCertificate]:
    return db.exec(select(LMSCertificate).where(LMSCertificate.user_id == user_id)).all()


def verify_lms_certificate(db: Session, certificate_id: str) -> Dict[str, Any]:
    certificate = db.exec(select(LMSCertificate).where(LMSCertificate.certificate_id == certificate_id)).first()
    if not certificate:
        raise NotFoundException("Certificate not found")
    user = db.get(User, certificate.user_id)
    program = db.get(Program, certificate.program_id)
    return {
        "certificate_id": certificate.certificate_id,
        "status": certificate.status.value,
        "issue_date": certificate.issue_date,
        "student_name": user.full_name if user else None,
        "program_title": program.title if program else None,
        "score_summary": certificate.score_summary,
    }
