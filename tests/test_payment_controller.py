import json
from datetime import timedelta

import pytest
from sqlmodel import select

from src.portal.controllers import payment_controller
from src.portal.models.application import ApplicationStatus, PaymentStatus
from src.portal.models.coupon import CouponUsage, DiscountType
from src.portal.models.enrollment import Enrollment
from src.portal.models.payment import Payment, PaymentState
from src.portal.utils.exceptions import (
    AuthorizationException,
    CouponExpired,
    PaymentNotAllowed,
    SignatureException,
    ValidationException,
)
from src.portal.utils.time import get_current_time

from tests.conftest import sign_payment, sign_webhook


def _captured_event(order_id: str, payment_id: str, event: str = "payment.captured") -> bytes:
    return json.dumps({
        "event": event,
        "payload": {"payment": {"entity": {"id": payment_id, "order_id": order_id, "status": "captured"}}},
    }).encode()


# ─── Order creation ────────────────────────────────────────────

async def test_order_requires_selected_application(session, gateway, student, make_application):
    application = make_application(student, status=ApplicationStatus.REVIEWED)
    with pytest.raises(PaymentNotAllowed):
        await payment_controller.create_order(session, gateway, application.id, student)
    assert gateway.orders == []


async def test_selection_gate_can_be_disabled(session, gateway, student, make_application, monkeypatch):
    monkeypatch.setattr(payment_controller, "REQUIRE_SELECTED_FOR_PAYMENT", False)
    application = make_application(student, status=ApplicationStatus.REVIEWED)
    response = await payment_controller.create_order(session, gateway, application.id, student)
    assert response.final_amount == 399


async def test_order_applies_coupon_without_touching_status(
    session, gateway, student, selected_application, make_coupon
):
    make_coupon("SAVE10")
    response = await payment_controller.create_order(
        session, gateway, selected_application.id, student, "save10"
    )

    assert (response.original_amount, response.discount_amount, response.final_amount) == (999, 99, 900)
    assert response.amount == 90000
    assert response.coupon_code == "SAVE10"
    assert gateway.orders[0].receipt == f"receipt_{selected_application.id}"

    payment = session.exec(select(Payment)).one()
    assert payment.amount == 900
    assert payment.status == PaymentState.CREATED
    session.refresh(selected_application)
    assert selected_application.status == ApplicationStatus.SELECTED
    assert selected_application.payment_status == PaymentStatus.PENDING
    # Nothing is redeemed until the payment is captured
    assert session.exec(select(CouponUsage)).all() == []


async def test_order_fills_in_missing_amount(session, gateway, student, make_application):
    application = make_application(student, status=ApplicationStatus.SELECTED, duration=3, amount=0)
    response = await payment_controller.create_order(session, gateway, application.id, student)
    assert response.final_amount == 599
    session.refresh(application)
    assert application.amount == 599


async def test_order_rejects_zero_final_amount(session, gateway, student, selected_application, make_coupon):
    make_coupon("FREE", discount_type=DiscountType.FLAT, discount_value=999)
    with pytest.raises(ValidationException):
        await payment_controller.create_order(session, gateway, selected_application.id, student, "FREE")
    assert gateway.orders == []


async def test_order_surfaces_coupon_errors(session, gateway, student, selected_application, make_coupon):
    make_coupon("GONE", expiry_date=get_current_time() - timedelta(hours=1))
    with pytest.raises(CouponExpired):
        await payment_controller.create_order(session, gateway, selected_application.id, student, "GONE")


async def test_order_for_someone_elses_application(session, gateway, other_student, selected_application):
    with pytest.raises(AuthorizationException):
        await payment_controller.create_order(session, gateway, selected_application.id, other_student)


async def test_no_order_after_verification(session, gateway, student, make_application):
    application = make_application(
        student, status=ApplicationStatus.APPROVED, payment_status=PaymentStatus.VERIFIED
    )
    with pytest.raises(PaymentNotAllowed):
        await payment_controller.create_order(session, gateway, application.id, student)


# ─── Verification ──────────────────────────────────────────────

async def test_verify_twice_transitions_once(
    session, gateway, student, selected_application, make_coupon, make_program
):
    make_program("Web Development")
    coupon = make_coupon("SAVE10", max_uses=10)
    order = await payment_controller.create_order(session, gateway, selected_application.id, student, "SAVE10")
    signature = sign_payment(order.order_id, "pay_001")

    first = payment_controller.verify_payment(session, gateway, order.order_id, "pay_001", signature, student)
    second = payment_controller.verify_payment(session, gateway, order.order_id, "pay_001", signature, student)

    assert first.already_verified is False
    assert first.payment_status == PaymentStatus.VERIFIED
    assert first.status == ApplicationStatus.APPROVED
    assert first.transaction_id == "pay_001"
    assert second.already_verified is True
    assert second.payment_status == PaymentStatus.VERIFIED

    session.refresh(coupon)
    assert coupon.current_uses == 1
    usage = session.exec(select(CouponUsage)).one()
    assert usage.discount_amount == 99
    assert len(session.exec(select(Enrollment)).all()) == 1


async def test_bad_signature_marks_payment_failed(session, gateway, student, selected_application):
    order = await payment_controller.create_order(session, gateway, selected_application.id, student)

    with pytest.raises(SignatureException):
        payment_controller.verify_payment(session, gateway, order.order_id, "pay_002", "forged", student)

    payment = session.exec(select(Payment)).one()
    session.refresh(payment)
    assert payment.status == PaymentState.FAILED
    session.refresh(selected_application)
    assert selected_application.payment_status == PaymentStatus.PENDING
    assert selected_application.status == ApplicationStatus.SELECTED


async def test_capture_keeps_payment_when_coupon_ran_out(
    session, gateway, student, selected_application, make_coupon
):
    coupon = make_coupon("LAST", max_uses=1)
    order = await payment_controller.create_order(session, gateway, selected_application.id, student, "LAST")
    # Someone else used the last slot between checkout and capture
    coupon.current_uses = 1
    session.add(coupon)
    session.commit()

    result = payment_controller.verify_payment(
        session, gateway, order.order_id, "pay_003", sign_payment(order.order_id, "pay_003"), student
    )
    assert result.payment_status == PaymentStatus.VERIFIED
    assert session.exec(select(CouponUsage)).all() == []
    session.refresh(coupon)
    assert coupon.current_uses == 1


async def test_two_orders_cannot_exceed_per_user_limit(session, gateway, student, make_application, make_coupon):
    coupon = make_coupon("ONCE", max_uses_per_user=1)
    applications = [
        make_application(student, status=ApplicationStatus.SELECTED, preferred_domain=domain)
        for domain in ("Web Development", "Data Science")
    ]
    # Both orders pass validation because neither has been paid yet
    orders = [
        await payment_controller.create_order(session, gateway, application.id, student, "ONCE")
        for application in applications
    ]

    for index, order in enumerate(orders):
        payment_id = f"pay_10{index}"
        result = payment_controller.verify_payment(
            session, gateway, order.order_id, payment_id, sign_payment(order.order_id, payment_id), student
        )
        assert result.payment_status == PaymentStatus.VERIFIED

    usages = session.exec(select(CouponUsage).where(CouponUsage.user_id == student.id)).all()
    assert [usage.application_id for usage in usages] == [applications[0].id]
    session.refresh(coupon)
    assert coupon.current_uses == 1


# ─── Webhook ───────────────────────────────────────────────────

async def test_webhook_captures_once(session, gateway, student, selected_application):
    order = await payment_controller.create_order(session, gateway, selected_application.id, student)
    body = _captured_event(order.order_id, "pay_004")

    assert payment_controller.handle_webhook(session, gateway, body, sign_webhook(body)) == {
        "status": "ok", "processed": True,
    }
    assert payment_controller.handle_webhook(session, gateway, body, sign_webhook(body))["processed"] is False

    # The client callback arriving later sees the verified state
    result = payment_controller.verify_payment(
        session, gateway, order.order_id, "pay_004", sign_payment(order.order_id, "pay_004"), student
    )
    assert result.already_verified is True
    assert result.status == ApplicationStatus.APPROVED


def test_webhook_rejects_bad_signature(session, gateway):
    body = _captured_event("order_x", "pay_x")
    with pytest.raises(SignatureException):
        payment_controller.handle_webhook(session, gateway, body, "not-a-signature")
    with pytest.raises(SignatureException):
        payment_controller.handle_webhook(session, gateway, body, None)


def test_webhook_ignores_other_events(session, gateway):
    body = _captured_event("order_x", "pay_x", event="payment.failed")
    assert payment_controller.handle_webhook(session, gateway, body, sign_webhook(body))["processed"] is False


def test_webhook_for_unknown_order(session, gateway):
    body = _captured_event("order_missing", "pay_x")
    assert payment_controller.handle_webhook(session, gateway, body, sign_webhook(body))["processed"] is False


def test_webhook_rejects_malformed_json(session, gateway):
    body = b"{not json"
    with pytest.raises(ValidationException):
        payment_controller.handle_webhook(session, gateway, body, sign_webhook(body))


def test_preview_coupon(session, student, make_coupon):
    coupon = make_coupon("SAVE10")
    preview = payment_controller.preview_coupon(session, "save10", student, 599)
    assert preview["discount_amount"] == 59
    assert preview["final_amount"] == 540
    session.refresh(coupon)
    assert coupon.current_uses == 0
