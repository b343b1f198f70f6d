from datetime import date

import pytest
from sqlmodel import select

from src.portal.controllers import application_controller, coupon_controller
from src.portal.models.application import ApplicationStatus, InternshipApplication, PaymentStatus
from src.portal.models.application_progress import ApplicationProgress
from src.portal.models.audit_log import AuditLog
from src.portal.models.coupon import CouponUsage
from src.portal.models.document import Document
from src.portal.models.enrollment import Enrollment
from src.portal.models.notification import Notification
from src.portal.models.payment import Payment
from src.portal.schemas.application import ApplicationCreate, ApplicationStatusUpdate, EligibilityUpdate
from src.portal.utils.exceptions import DuplicateActiveApplication, NotFoundException


def _payload(**overrides):
    data = dict(
        name="Asha Rao",
        email="asha@example.com",
        phone="9876543210",
        college="City Engineering College",
        preferred_domain="Web Development",
        duration=1,
    )
    data.update(overrides)
    return ApplicationCreate(**data)


@pytest.mark.parametrize("duration, amount", [(1, 399), (3, 599), (6, 999), (2, 999)])
def test_default_amount(duration, amount):
    assert application_controller.default_amount(duration) == amount


def test_submit_uses_plan_price_when_amount_missing(session, student):
    application = application_controller.submit_application(session, _payload(duration=3), student)
    assert application.amount == 599
    assert application.status == ApplicationStatus.NEW
    assert application.payment_status == PaymentStatus.PENDING


def test_submit_keeps_explicit_amount(session, student):
    application = application_controller.submit_application(session, _payload(amount=1200), student)
    assert application.amount == 1200


def test_duplicate_active_application_is_rejected(session, student):
    application_controller.submit_application(session, _payload(), student)
    with pytest.raises(DuplicateActiveApplication):
        application_controller.submit_application(session, _payload(), student)

    # A different domain is fine
    application_controller.submit_application(session, _payload(preferred_domain="Data Science"), student)


def test_rejected_application_allows_reapplying(session, student, make_application):
    make_application(student, status=ApplicationStatus.REJECTED)
    application = application_controller.submit_application(session, _payload(), student)
    assert application.status == ApplicationStatus.NEW


def test_selecting_enrolls_once(session, admin, student, make_application, make_program):
    program, _, _ = make_program("Web Development")
    application = make_application(student)

    update = ApplicationStatusUpdate(status=ApplicationStatus.SELECTED)
    application_controller.update_status(session, application.id, update, admin.id, "10.0.0.1")
    application_controller.update_status(session, application.id, update, admin.id)

    enrollments = session.exec(select(Enrollment).where(Enrollment.user_id == student.id)).all()
    assert len(enrollments) == 1
    assert enrollments[0].program_id == program.id
    assert enrollments[0].application_id == application.id

    audits = session.exec(select(AuditLog).where(AuditLog.action_type == "UPDATE_APPLICATION_STATUS")).all()
    assert {a.details["previous_status"] for a in audits} == {"New", "Selected"}


def test_status_change_notifies_student(session, admin, student, make_application):
    application = make_application(student)
    application_controller.update_status(
        session, application.id, ApplicationStatusUpdate(status=ApplicationStatus.REVIEWED), admin.id
    )

    notification = session.exec(select(Notification).where(Notification.recipient_id == student.id)).one()
    assert notification.title == "Application Status Updated"
    assert "Reviewed" in notification.message


def test_selection_without_program_still_succeeds(session, admin, student, make_application):
    application = make_application(student, preferred_domain="Underwater Basketry")
    updated = application_controller.update_status(
        session, application.id, ApplicationStatusUpdate(status=ApplicationStatus.SELECTED), admin.id
    )
    assert updated.status == ApplicationStatus.SELECTED
    assert session.exec(select(Enrollment)).all() == []


def test_partial_update_keeps_other_fields(session, admin, student, make_application):
    application = make_application(student, status=ApplicationStatus.CONTACTED)
    updated = application_controller.update_status(
        session, application.id, ApplicationStatusUpdate(document_issue_date=date(2025, 3, 1)), admin.id
    )
    assert updated.status == ApplicationStatus.CONTACTED
    assert updated.document_issue_date == date(2025, 3, 1)


def test_update_eligibility_upserts(session, admin, student, make_application):
    application = make_application(student)
    application_controller.update_eligibility(
        session, application.id, EligibilityUpdate(is_eligible_for_certificate=True), admin.id
    )
    progress = application_controller.update_eligibility(
        session, application.id, EligibilityUpdate(is_eligible_for_certificate=False), admin.id
    )
    assert progress.is_eligible_for_certificate is False
    assert progress.last_updated_by == admin.id
    assert len(session.exec(select(ApplicationProgress)).all()) == 1


def test_delete_application_cascades(session, admin, student, make_application, make_program, make_coupon):
    make_program("Web Development")
    coupon = make_coupon("SAVE10")
    application = make_application(student)
    application_controller.update_status(
        session, application.id, ApplicationStatusUpdate(status=ApplicationStatus.SELECTED), admin.id
    )
    session.add(Document(application_id=application.id, user_id=student.id, verification_id="COS-1-001"))
    session.add(Payment(
        application_id=application.id, user_id=student.id, razorpay_order_id="order_1",
        amount=360, original_amount=399, discount_amount=39, coupon_id=coupon.id,
    ))
    session.add(ApplicationProgress(application_id=application.id, user_id=student.id))
    session.commit()
    coupon_controller.redeem_coupon(session, coupon, student.id, application.id, 39)
    session.commit()

    deleted = application_controller.delete_application(session, application.id, admin.id)

    assert deleted == {"documents": 1, "payments": 1, "submissions": 0, "progress": 1, "applications": 1}
    assert session.get(InternshipApplication, application.id) is None
    # The ledger keeps its row and the LMS enrollment survives unlinked
    assert len(session.exec(select(CouponUsage)).all()) == 1
    enrollment = session.exec(select(Enrollment)).one()
    assert enrollment.application_id is None

    with pytest.raises(NotFoundException):
        application_controller.delete_application(session, application.id, admin.id)


def test_student_view_hides_unpublished_documents(session, student, make_application):
    application = make_application(student)
    session.add(Document(
        application_id=application.id,
        user_id=student.id,
        verification_id="COS-2-002",
        offer_letter_url="https://cdn.test/offer.pdf",
        offer_letter_visible=True,
        loc_url="https://cdn.test/loc.pdf",
    ))
    session.commit()

    mine = application_controller.list_my_applications(session, student.id)[0]
    assert mine.documents.offer_letter_url == "https://cdn.test/offer.pdf"
    assert mine.documents.loc_url is None

    admin_view = application_controller.list_applications(session)[0]
    assert admin_view.documents.loc_url == "https://cdn.test/loc.pdf"


def test_dashboard_stats(session, student, other_student, make_application):
    make_application(student)
    make_application(other_student, status=ApplicationStatus.APPROVED, payment_status=PaymentStatus.VERIFIED)

    stats = application_controller.dashboard_stats(session)
    assert stats.total_applications == 2
    assert stats.pending_reviews == 1
    assert stats.verified_payments == 1
    assert stats.by_status["Approved"] == 1
    assert len(stats.recent_applications) == 2
