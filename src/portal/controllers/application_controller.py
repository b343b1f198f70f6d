# File: src/portal/controllers/application_controller.py
import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, func, update
from sqlmodel import Session, select

from src.portal.controllers import lms_controller
from src.portal.controllers.audit_controller import record_audit
from src.portal.controllers.notification_controller import notify_user
from src.portal.models.application import (
    ACTIVE_APPLICATION_STATUSES,
    ApplicationStatus,
    InternshipApplication,
    PaymentStatus,
)
from src.portal.models.application_progress import ApplicationProgress
from src.portal.models.document import Document
from src.portal.models.enrollment import Enrollment
from src.portal.models.payment import Payment
from src.portal.models.task import TaskSubmission
from src.portal.models.user import User
from src.portal.schemas.application import (
    ApplicationCreate,
    ApplicationDocumentsRead,
    ApplicationRead,
    ApplicationStatusUpdate,
    ApplicationWithDocuments,
    DashboardStats,
    EligibilityUpdate,
)
from src.portal.utils.exceptions import DuplicateActiveApplication, NotFoundException
from src.portal.utils.time import get_current_time

logger = logging.getLogger(__name__)

# Statuses that put the student into the LMS program of their domain
ENROLLING_STATUSES = (ApplicationStatus.APPROVED, ApplicationStatus.SELECTED)

DOCUMENT_URL_FIELDS = ("offer_letter", "certificate", "loc", "payment_slip")


def default_amount(duration: int) -> int:
    """Plan price for a duration in months."""
    if duration == 1:
        return 399
    if duration == 3:
        return 599
    return 999


def get_application(db: Session, application_id: uuid.UUID) -> InternshipApplication:
    application = db.get(InternshipApplication, application_id)
    if not application:
        raise NotFoundException("Application not found")
    return application


def submit_application(db: Session, payload: ApplicationCreate, user: User) -> InternshipApplication:
    duplicate = db.exec(
        select(InternshipApplication).where(
            InternshipApplication.user_id == user.id,
            InternshipApplication.preferred_domain == payload.preferred_domain,
            InternshipApplication.status.in_(ACTIVE_APPLICATION_STATUSES),
        )
    ).first()
    if duplicate:
        raise DuplicateActiveApplication(
            f"You already have an active application for {payload.preferred_domain}",
            details={"application_id": str(duplicate.id)},
        )

    data = payload.model_dump(exclude={"amount"})
    amount = payload.amount if payload.amount else default_amount(payload.duration)
    application = InternshipApplication(**data, amount=amount, user_id=user.id)
    db.add(application)
    db.commit()
    db.refresh(application)
    logger.info(f"Application {application.id} submitted by user {user.id} for {application.preferred_domain}")
    return application


# ─── Read models ───────────────────────────────────────────────

def _documents_view(document: Optional[Document], visible_only: bool) -> Optional[ApplicationDocumentsRead]:
    if document is None:
        return None
    view = {"verification_id": document.verification_id}
    for field in DOCUMENT_URL_FIELDS:
        visible = getattr(document, f"{field}_visible")
        url = getattr(document, f"{field}_url")
        view[f"{field}_visible"] = visible
        view[f"{field}_url"] = url if (visible or not visible_only) else None
    return ApplicationDocumentsRead(**view)


def _with_documents(db: Session, applications: List[InternshipApplication], visible_only: bool) -> List[ApplicationWithDocuments]:
    ids = [a.id for a in applications]
    if not ids:
        return []
    documents = {d.application_id: d for d in db.exec(select(Document).where(Document.application_id.in_(ids))).all()}
    progress = {
        p.application_id: p
        for p in db.exec(select(ApplicationProgress).where(ApplicationProgress.application_id.in_(ids))).all()
    }
    results = []
    for application in applications:
        base = ApplicationRead.model_validate(application).model_dump()
        eligibility = progress.get(application.id)
        results.append(
            ApplicationWithDocuments(
                **base,
                documents=_documents_view(documents.get(application.id), visible_only),
                is_eligible_for_certificate=bool(eligibility and eligibility.is_eligible_for_certificate),
            )
        )
    return results


def list_applications(db: Session, status: Optional[ApplicationStatus] = None) -> List[ApplicationWithDocuments]:
    stmt = select(InternshipApplication)
    if status:
        stmt = stmt.where(InternshipApplication.status == status)
    applications = db.exec(stmt.order_by(InternshipApplication.created_at.desc())).all()
    return _with_documents(db, applications, visible_only=False)


def list_my_applications(db: Session, user_id: uuid.UUID) -> List[ApplicationWithDocuments]:
    applications = db.exec(
        select(InternshipApplication)
        .where(InternshipApplication.user_id == user_id)
        .order_by(InternshipApplication.created_at.desc())
    ).all()
    return _with_documents(db, applications, visible_only=True)


def dashboard_stats(db: Session) -> DashboardStats:
    counts = dict(
        db.exec(
            select(InternshipApplication.status, func.count(InternshipApplication.id))
            .group_by(InternshipApplication.status)
        ).all()
    )
    by_status = {status.value: counts.get(status, 0) for status in ApplicationStatus}
    verified = db.exec(
        select(func.count(InternshipApplication.id)).where(
            InternshipApplication.payment_status == PaymentStatus.VERIFIED
        )
    ).one()
    recent = db.exec(
        select(InternshipApplication).order_by(InternshipApplication.created_at.desc()).limit(5)
    ).all()
    return DashboardStats(
        total_applications=sum(by_status.values()),
        pending_reviews=by_status[ApplicationStatus.NEW.value],
        verified_payments=verified,
        by_status=by_status,
        recent_applications=[ApplicationRead.model_validate(a) for a in recent],
    )


# ─── Admin transitions ─────────────────────────────────────────

def after_status_change(db: Session, application: InternshipApplication, previous: ApplicationStatus):
    """Side effects of a committed status change: LMS enrollment, then the student notification."""
    if application.status in ENROLLING_STATUSES:
        lms_controller.auto_enroll(db, application.user_id, application.preferred_domain, application.id)
    notify_user(
        db,
        application.user_id,
        "Application Status Updated",
        f"Your application for {application.preferred_domain} has been updated to {application.status.value}",
        type="application_status",
    )
    logger.info(f"Application {application.id} moved from {previous.value} to {application.status.value}")


def update_status(
    db: Session,
    application_id: uuid.UUID,
    payload: ApplicationStatusUpdate,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> InternshipApplication:
    application = get_application(db, application_id)
    previous_status = application.status
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    for key, value in changes.items():
        setattr(application, key, value)
    application.updated_at = get_current_time()
    db.add(application)
    record_audit(
        db, admin_id, "UPDATE_APPLICATION_STATUS", "InternshipApplication", application.id,
        {
            "previous_status": previous_status.value,
            **{key: (value.value if hasattr(value, "value") else str(value)) for key, value in changes.items()},
        },
        ip_address,
    )
    db.commit()
    db.refresh(application)

    if application.status != previous_status:
        after_status_change(db, application, previous_status)
    return application


def update_eligibility(
    db: Session,
    application_id: uuid.UUID,
    payload: EligibilityUpdate,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> ApplicationProgress:
    application = get_application(db, application_id)
    progress = db.exec(
        select(ApplicationProgress).where(ApplicationProgress.application_id == application.id)
    ).first()
    if not progress:
        progress = ApplicationProgress(application_id=application.id, user_id=application.user_id)

    progress.is_eligible_for_certificate = payload.is_eligible_for_certificate
    progress.admin_manually_completed = payload.admin_manually_completed
    progress.last_updated_by = admin_id
    progress.updated_at = get_current_time()
    db.add(progress)
    record_audit(
        db, admin_id, "UPDATE_ELIGIBILITY", "InternshipApplication", application.id,
        payload.model_dump(), ip_address,
    )
    db.commit()
    db.refresh(progress)
    return progress


def delete_application(
    db: Session,
    application_id: uuid.UUID,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> Dict[str, int]:
    """
    Hard-delete an application with everything it owns.

    Coupon usage rows are kept so per-user caps still count them. LMS
    enrollments survive and only lose their link to the application.
    """
    application = get_application(db, application_id)
    deleted = {
        "documents": db.exec(delete(Document).where(Document.application_id == application.id)).rowcount,
        "payments": db.exec(delete(Payment).where(Payment.application_id == application.id)).rowcount,
        "submissions": db.exec(
            delete(TaskSubmission).where(TaskSubmission.application_id == application.id)
        ).rowcount,
        "progress": db.exec(
            delete(ApplicationProgress).where(ApplicationProgress.application_id == application.id)
        ).rowcount,
    }
    db.exec(update(Enrollment).where(Enrollment.application_id == application.id).values(application_id=None))
    record_audit(
        db, admin_id, "DELETE_APPLICATION", "InternshipApplication", application.id,
        {"email": application.email, "domain": application.preferred_domain, **deleted},
        ip_address,
    )
    db.delete(application)
    db.commit()
    deleted["applications"] = 1
    logger.info(f"Application {application_id} deleted by admin {admin_id}: {deleted}")
    return deleted
