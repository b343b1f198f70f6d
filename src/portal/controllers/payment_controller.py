# File: src/portal/controllers/payment_controller.py
import json
import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from src.portal.config.settings import CURRENCY, REQUIRE_SELECTED_FOR_PAYMENT
from src.portal.controllers import application_controller, coupon_controller
from src.portal.models.application import ApplicationStatus, InternshipApplication, PaymentStatus
from src.portal.models.coupon import Coupon
from src.portal.models.payment import Payment, PaymentState
from src.portal.models.user import User
from src.portal.schemas.payment import CreateOrderResponse, VerifyPaymentResponse
from src.portal.utils.exceptions import (
    AuthorizationException,
    CouponAlreadyUsed,
    CouponExhausted,
    NotFoundException,
    PaymentNotAllowed,
    SignatureException,
    ValidationException,
)
from src.portal.utils.payment_gateway import RazorpayGateway
from src.portal.utils.time import get_current_time

logger = logging.getLogger(__name__)


def _owned_application(db: Session, application_id: uuid.UUID, user: User) -> InternshipApplication:
    application = application_controller.get_application(db, application_id)
    if application.user_id != user.id and user.role != "admin":
        raise AuthorizationException("You can only pay for your own application")
    return application


def preview_coupon(db: Session, code: str, user: User, amount: int) -> Dict[str, Any]:
    coupon = coupon_controller.validate_coupon(db, code, user.id, amount)
    discount, final_amount = coupon_controller.compute_discount(coupon, amount)
    return {
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "discount_amount": discount,
        "original_amount": amount,
        "final_amount": final_amount,
    }


async def create_order(
    db: Session,
    gateway: RazorpayGateway,
    application_id: uuid.UUID,
    user: User,
    coupon_code: Optional[str] = None,
) -> CreateOrderResponse:
    """
    Open a gateway order for an application's fee.

    The application status is never changed here; only payment
    verification moves it forward.
    """
    application = _owned_application(db, application_id, user)

    if application.payment_status == PaymentStatus.VERIFIED:
        raise PaymentNotAllowed("Payment has already been verified for this application")
    if REQUIRE_SELECTED_FOR_PAYMENT and application.status != ApplicationStatus.SELECTED:
        raise PaymentNotAllowed(
            "Payment is only available once your application has been selected",
            details={"status": application.status.value},
        )

    if not application.amount:
        application.amount = application_controller.default_amount(application.duration)
        db.add(application)
        db.commit()
        db.refresh(application)
    base_amount = application.amount

    coupon: Optional[Coupon] = None
    discount, final_amount = 0, base_amount
    if coupon_code:
        coupon = coupon_controller.validate_coupon(db, coupon_code, application.user_id, base_amount)
        discount, final_amount = coupon_controller.compute_discount(coupon, base_amount)

    if final_amount <= 0:
        raise ValidationException("Final amount must be greater than zero")

    order = await gateway.create_order(
        amount_minor=final_amount * 100,
        currency=CURRENCY,
        receipt=f"receipt_{application.id}",
        notes={
            "applicationId": str(application.id),
            "couponId": str(coupon.id) if coupon else "",
        },
    )

    payment = Payment(
        application_id=application.id,
        user_id=application.user_id,
        razorpay_order_id=order.id,
        amount=final_amount,
        original_amount=base_amount,
        discount_amount=discount,
        currency=order.currency,
        coupon_id=coupon.id if coupon else None,
    )
    application.razorpay_order_id = order.id
    application.updated_at = get_current_time()
    db.add(payment)
    db.add(application)
    db.commit()
    logger.info(
        f"Order {order.id} created for application {application.id}: "
        f"{base_amount} - {discount} = {final_amount} {order.currency}"
    )

    return CreateOrderResponse(
        order_id=order.id,
        amount=order.amount,
        currency=order.currency,
        key_id=gateway.key_id,
        original_amount=base_amount,
        discount_amount=discount,
        final_amount=final_amount,
        coupon_code=coupon.code if coupon else None,
    )


def _verification_result(application: InternshipApplication, already_verified: bool) -> VerifyPaymentResponse:
    return VerifyPaymentResponse(
        success=True,
        already_verified=already_verified,
        application_id=application.id,
        payment_status=application.payment_status,
        status=application.status,
        transaction_id=application.transaction_id,
    )


def capture_payment(
    db: Session,
    order_id: str,
    payment_id: str,
    signature: Optional[str] = None,
) -> bool:
    """
    Move the order's Payment to captured and the application to Verified.

    Both steps are compare-and-set updates, so of several concurrent
    callers (client callback, webhook, retries) only one performs the
    transition. Returns True for that caller and False for the rest.
    """
    payment = db.exec(select(Payment).where(Payment.razorpay_order_id == order_id)).first()
    if not payment:
        raise NotFoundException("Payment order not found")
    previous_status = db.get(InternshipApplication, payment.application_id).status

    captured = db.exec(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status != PaymentState.CAPTURED)
        .values(
            status=PaymentState.CAPTURED,
            razorpay_payment_id=payment_id,
            razorpay_signature=signature,
            captured_at=get_current_time(),
        )
    )
    if captured.rowcount == 0:
        db.rollback()
        logger.warning(f"Order {order_id} already captured, ignoring duplicate verification")
        return False

    verified = db.exec(
        update(InternshipApplication)
        .where(
            InternshipApplication.id == payment.application_id,
            InternshipApplication.payment_status != PaymentStatus.VERIFIED,
        )
        .values(
            payment_status=PaymentStatus.VERIFIED,
            status=ApplicationStatus.APPROVED,
            razorpay_order_id=order_id,
            razorpay_payment_id=payment_id,
            razorpay_signature=signature,
            transaction_id=payment_id,
            updated_at=get_current_time(),
        )
    )
    if verified.rowcount == 0:
        # A different order already paid for this application; keep the capture record only
        logger.warning(f"Application {payment.application_id} already verified, order {order_id} recorded only")
        db.commit()
        return False

    coupon = db.get(Coupon, payment.coupon_id) if payment.coupon_id else None
    if coupon:
        try:
            coupon_controller.redeem_coupon(
                db, coupon, payment.user_id, payment.application_id, payment.discount_amount
            )
        except (CouponExhausted, CouponAlreadyUsed) as e:
            # Money was taken at the discounted price; the capture stands
            logger.error(
                f"Coupon {coupon.code} not redeemed while capturing order {order_id} ({e.message}); "
                f"payment kept, manual review needed"
            )

    db.commit()
    application = db.get(InternshipApplication, payment.application_id)
    db.refresh(application)
    logger.info(f"Payment {payment_id} captured for application {application.id}")

    application_controller.after_status_change(db, application, previous_status)
    return True


def verify_payment(
    db: Session,
    gateway: RazorpayGateway,
    order_id: str,
    payment_id: str,
    signature: str,
    user: User,
) -> VerifyPaymentResponse:
    payment = db.exec(select(Payment).where(Payment.razorpay_order_id == order_id)).first()
    if not payment:
        raise NotFoundException("Payment order not found")
    application = _owned_application(db, payment.application_id, user)

    if not gateway.verify_payment_signature(order_id, payment_id, signature):
        db.exec(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status != PaymentState.CAPTURED)
            .values(status=PaymentState.FAILED, razorpay_payment_id=payment_id)
        )
        db.commit()
        logger.warning(f"Signature mismatch for order {order_id}, application {application.id}")
        raise SignatureException("Payment verification failed")

    transitioned = capture_payment(db, order_id, payment_id, signature)
    db.refresh(application)
    return _verification_result(application, already_verified=not transitioned)


def handle_webhook(
    db: Session,
    gateway: RazorpayGateway,
    raw_body: bytes,
    signature: Optional[str],
) -> Dict[str, Any]:
    if not gateway.verify_webhook_signature(raw_body, signature):
        logger.warning("Rejected webhook with invalid signature")
        raise SignatureException("Invalid webhook signature")

    try:
        event = json.loads(raw_body)
    except ValueError:
        raise ValidationException("Webhook body is not valid JSON")

    if event.get("event") != "payment.captured":
        logger.info(f"Ignoring webhook event {event.get('event')}")
        return {"status": "ok", "processed": False}

    entity = (((event.get("payload") or {}).get("payment") or {}).get("entity")) or {}
    order_id, payment_id = entity.get("order_id"), entity.get("id")
    if not order_id or not payment_id:
        logger.warning("payment.captured webhook without order or payment id")
        return {"status": "ok", "processed": False}

    try:
        processed = capture_payment(db, order_id, payment_id)
    except NotFoundException:
        logger.warning(f"Webhook for unknown order {order_id}")
        return {"status": "ok", "processed": False}
    return {"status": "ok", "processed": processed}
