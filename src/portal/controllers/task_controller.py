# File: src/portal/controllers/task_controller.py
"""
Internship tasks and their submissions.

Admins publish tasks per internship domain. Students submit work against
their own application, admins evaluate it, and every evaluation recomputes
the application's task progress. Certificate eligibility stays a separate
admin decision (see application_controller.update_eligibility).
"""
import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, func
from sqlmodel import Session, select

from src.portal.controllers.application_controller import get_application
from src.portal.controllers.audit_controller import record_audit
from src.portal.controllers.lms_controller import calculate_progress
from src.portal.controllers.notification_controller import notify_user
from src.portal.models.application import InternshipApplication
from src.portal.models.application_progress import ApplicationProgress
from src.portal.models.task import InternshipTask, SubmissionStatus, TaskSubmission
from src.portal.models.user import User
from src.portal.schemas.task import SubmissionCreate, SubmissionEvaluate, TaskCreate, TaskUpdate
from src.portal.utils.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from src.portal.utils.time import get_current_time

logger = logging.getLogger(__name__)

# A student may only replace a submission an admin has sent back
RESUBMITTABLE_STATUSES = (SubmissionStatus.REJECTED, SubmissionStatus.RESUBMISSION_REQUIRED)


def _domain_key(domain: Optional[str]) -> str:
    return (domain or "").strip().lower()


def _domain_matches(column, domain: str):
    return func.lower(func.trim(column)) == _domain_key(domain)


# ─── Progress ──────────────────────────────────────────────────

def _apply_task_progress(db: Session, application: InternshipApplication) -> ApplicationProgress:
    total = db.exec(
        select(func.count(InternshipTask.id)).where(
            _domain_matches(InternshipTask.internship_domain, application.preferred_domain)
        )
    ).one()
    approved = db.exec(
        select(func.count(TaskSubmission.id))
        .join(InternshipTask, TaskSubmission.task_id == InternshipTask.id)
        .where(
            TaskSubmission.application_id == application.id,
            TaskSubmission.status == SubmissionStatus.APPROVED,
            _domain_matches(InternshipTask.internship_domain, application.preferred_domain),
        )
    ).one()

    progress = db.exec(
        select(ApplicationProgress).where(ApplicationProgress.application_id == application.id)
    ).first()
    if not progress:
        progress = ApplicationProgress(application_id=application.id, user_id=application.user_id)
    progress.progress_percentage = calculate_progress(approved, total)
    progress.completed_tasks_count = approved
    progress.updated_at = get_current_time()
    db.add(progress)
    return progress


def _refresh_domain_progress(db: Session, domain: str) -> int:
    """Recompute stored progress rows for a domain whose task list changed. The caller commits."""
    applications = db.exec(
        select(InternshipApplication)
        .join(ApplicationProgress, ApplicationProgress.application_id == InternshipApplication.id)
        .where(_domain_matches(InternshipApplication.preferred_domain, domain))
    ).all()
    for application in applications:
        _apply_task_progress(db, application)
    return len(applications)


def get_progress(db: Session, application_id: uuid.UUID, user: User) -> ApplicationProgress:
    application = get_application(db, application_id)
    if application.user_id != user.id and user.role != "admin":
        raise AuthorizationException("You can only view progress of your own application")
    progress = db.exec(
        select(ApplicationProgress).where(ApplicationProgress.application_id == application.id)
    ).first()
    # Nothing evaluated yet: report zero progress without creating a row
    return progress or ApplicationProgress(application_id=application.id, user_id=application.user_id)


# ─── Tasks (admin) ─────────────────────────────────────────────

def create_task(db: Session, payload: TaskCreate, admin_id: uuid.UUID) -> InternshipTask:
    if payload.passing_marks > payload.max_marks:
        raise ValidationException("Passing marks cannot exceed maximum marks")
    task = InternshipTask(
        **payload.model_dump(exclude={"internship_domain"}),
        internship_domain=payload.internship_domain.strip(),
        created_by=admin_id,
    )
    db.add(task)
    record_audit(
        db, admin_id, "CREATE_TASK", "InternshipTask", task.id,
        {"title": task.title, "internship_domain": task.internship_domain},
    )
    db.flush()
    _refresh_domain_progress(db, task.internship_domain)
    db.commit()
    db.refresh(task)
    logger.info(f"Task '{task.title}' created for domain {task.internship_domain}")
    return task


def list_tasks(db: Session, domain: Optional[str] = None) -> List[InternshipTask]:
    stmt = select(InternshipTask)
    if domain:
        stmt = stmt.where(_domain_matches(InternshipTask.internship_domain, domain))
    return db.exec(stmt.order_by(InternshipTask.created_at.desc())).all()


def get_task(db: Session, task_id: uuid.UUID) -> InternshipTask:
    task = db.get(InternshipTask, task_id)
    if not task:
        raise NotFoundException("Task not found")
    return task


def update_task(db: Session, task_id: uuid.UUID, payload: TaskUpdate, admin_id: uuid.UUID) -> InternshipTask:
    task = get_task(db, task_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "internship_domain" in changes:
        changes["internship_domain"] = changes["internship_domain"].strip()
    if changes.get("passing_marks", task.passing_marks) > changes.get("max_marks", task.max_marks):
        raise ValidationException("Passing marks cannot exceed maximum marks")

    old_domain = task.internship_domain
    for key, value in changes.items():
        setattr(task, key, value)
    task.updated_at = get_current_time()
    db.add(task)
    record_audit(db, admin_id, "UPDATE_TASK", "InternshipTask", task.id, {"title": task.title})
    if _domain_key(old_domain) != _domain_key(task.internship_domain):
        db.flush()
        _refresh_domain_progress(db, old_domain)
        _refresh_domain_progress(db, task.internship_domain)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task_id: uuid.UUID, admin_id: uuid.UUID) -> Dict[str, int]:
    task = get_task(db, task_id)
    domain = task.internship_domain
    deleted = {
        "submissions": db.exec(delete(TaskSubmission).where(TaskSubmission.task_id == task.id)).rowcount,
    }
    db.delete(task)
    db.flush()
    deleted["tasks"] = 1
    _refresh_domain_progress(db, domain)
    record_audit(db, admin_id, "DELETE_TASK", "InternshipTask", task_id, deleted)
    db.commit()
    logger.info(f"Task {task_id} deleted by admin {admin_id}: {deleted}")
    return deleted


# ─── Submissions ───────────────────────────────────────────────

def submit_task(db: Session, payload: SubmissionCreate, user: User) -> TaskSubmission:
    application = db.get(InternshipApplication, payload.application_id)
    if not application or application.user_id != user.id:
        raise NotFoundException("Internship application not found")
    task = get_task(db, payload.task_id)
    if _domain_key(task.internship_domain) != _domain_key(application.preferred_domain):
        raise ValidationException("Task does not belong to this internship's domain")

    submission = db.exec(
        select(TaskSubmission).where(
            TaskSubmission.task_id == task.id,
            TaskSubmission.application_id == application.id,
        )
    ).first()
    if submission and submission.status not in RESUBMITTABLE_STATUSES:
        raise ConflictException("Task already submitted or approved")

    if submission:
        submission.content = payload.content
        submission.status = SubmissionStatus.SUBMITTED
        submission.updated_at = get_current_time()
    else:
        submission = TaskSubmission(
            task_id=task.id,
            student_id=user.id,
            application_id=application.id,
            content=payload.content,
        )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info(f"Submission {submission.id} for task {task.id} received from user {user.id}")
    return submission


def list_submissions(
    db: Session,
    user: User,
    task_id: Optional[uuid.UUID] = None,
    application_id: Optional[uuid.UUID] = None,
) -> List[TaskSubmission]:
    """Admins see every submission; students only their own."""
    stmt = select(TaskSubmission)
    if user.role == "admin":
        if task_id:
            stmt = stmt.where(TaskSubmission.task_id == task_id)
    else:
        stmt = stmt.where(TaskSubmission.student_id == user.id)
    if application_id:
        stmt = stmt.where(TaskSubmission.application_id == application_id)
    return db.exec(stmt.order_by(TaskSubmission.created_at.desc())).all()


def evaluate_submission(
    db: Session,
    submission_id: uuid.UUID,
    payload: SubmissionEvaluate,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> TaskSubmission:
    submission = db.get(TaskSubmission, submission_id)
    if not submission:
        raise NotFoundException("Submission not found")
    task = get_task(db, submission.task_id)
    if payload.marks is not None and payload.marks > task.max_marks:
        raise ValidationException(f"Marks must be between 0 and {task.max_marks}")

    if payload.status is not None:
        submission.status = payload.status
    if payload.marks is not None:
        submission.marks = payload.marks
    if payload.admin_remarks:
        submission.admin_remarks = payload.admin_remarks
    submission.evaluated_by = admin_id
    submission.evaluated_at = get_current_time()
    submission.updated_at = submission.evaluated_at
    db.add(submission)
    db.flush()

    application = get_application(db, submission.application_id)
    progress = _apply_task_progress(db, application)
    record_audit(
        db, admin_id, "EVALUATE_SUBMISSION", "TaskSubmission", submission.id,
        {"status": submission.status.value, "marks": submission.marks}, ip_address,
    )
    db.commit()
    db.refresh(submission)
    logger.info(
        f"Submission {submission.id} evaluated as {submission.status.value}; "
        f"application {application.id} at {progress.progress_percentage}%"
    )

    notify_user(
        db,
        submission.student_id,
        "Task Evaluated",
        f"Your submission for '{task.title}' is now {submission.status.value}",
        type="task_evaluation",
    )
    return submission
