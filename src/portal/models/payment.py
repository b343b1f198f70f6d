# File: src/portal/models/payment.py
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Enum as SQLAlchemyEnum
from sqlmodel import SQLModel, Field, Column

from src.portal.utils.time import get_current_time


class PaymentState(str, enum.Enum):
    CREATED = "created"
    CAPTURED = "captured"
    FAILED = "failed"


class Payment(SQLModel, table=True):
    __tablename__ = "payments"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    application_id: uuid.UUID = Field(foreign_key="internship_applications.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    razorpay_order_id: str = Field(index=True, unique=True)
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    amount: int  # amount charged, after discount
    original_amount: int
    discount_amount: int = Field(default=0)
    currency: str = Field(default="INR")
    coupon_id: Optional[uuid.UUID] = Field(default=None, foreign_key="coupons.id")
    status: PaymentState = Field(
        default=PaymentState.CREATED,
        sa_column=Column(SQLAlchemyEnum(PaymentState), nullable=False),
    )
    created_at: datetime = Field(default_factory=get_current_time)
    captured_at: Optional[datetime] = None
