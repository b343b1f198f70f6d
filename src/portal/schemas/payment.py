# src/portal/schemas/payment.py
import uuid
from typing import Optional

from pydantic import BaseModel

from src.portal.models.application import ApplicationStatus, PaymentStatus


class CreateOrderRequest(BaseModel):
    application_id: uuid.UUID
    coupon_code: Optional[str] = None


class CreateOrderResponse(BaseModel):
    order_id: str
    amount: int  # minor units, as expected by the checkout widget
    currency: str
    key_id: Optional[str] = None
    original_amount: int
    discount_amount: int
    final_amount: int
    coupon_code: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class VerifyPaymentResponse(BaseModel):
    success: bool
    already_verified: bool = False
    application_id: uuid.UUID
    payment_status: PaymentStatus
    status: ApplicationStatus
    transaction_id: Optional[str] = None
