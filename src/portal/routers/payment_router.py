# File: src/portal/routers/payment_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlmodel import Session

from src.portal.controllers import payment_controller
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.schemas.coupon import CouponValidateRequest, CouponValidateResponse
from src.portal.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from src.portal.utils.dependencies import get_current_user, get_payment_gateway
from src.portal.utils.payment_gateway import RazorpayGateway

router = APIRouter(tags=["Payments"])


@router.post("/validate-coupon", response_model=CouponValidateResponse)
async def validate_coupon(
    payload: CouponValidateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return payment_controller.preview_coupon(db, payload.code, current_user, payload.amount)


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    payload: CreateOrderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return await payment_controller.create_order(
        db, gateway, payload.application_id, current_user, payload.coupon_code
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return payment_controller.verify_payment(
        db,
        gateway,
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
        current_user,
    )


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    # Signature is computed over the exact bytes Razorpay sent
    raw_body = await request.body()
    return payment_controller.handle_webhook(db, gateway, raw_body, x_razorpay_signature)
