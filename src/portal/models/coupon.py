# File: src/portal/models/coupon.py
import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Enum as SQLAlchemyEnum
from sqlmodel import SQLModel, Field, Column, JSON

from src.portal.utils.time import get_current_time


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


class CouponStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Coupon(SQLModel, table=True):
    __tablename__ = "coupons"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(index=True, unique=True)  # stored upper-cased
    discount_type: DiscountType = Field(sa_column=Column(SQLAlchemyEnum(DiscountType), nullable=False))
    discount_value: int
    max_uses: int = Field(default=0)  # 0 = unlimited
    max_uses_per_user: int = Field(default=1)  # 0 = unlimited
    current_uses: int = Field(default=0)
    expiry_date: datetime
    status: CouponStatus = Field(
        default=CouponStatus.ACTIVE,
        sa_column=Column(SQLAlchemyEnum(CouponStatus), nullable=False),
    )
    # Plan amounts the coupon applies to; empty means every plan
    applicable_plans: List[int] = Field(sa_type=JSON, default_factory=list)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=get_current_time)


class CouponUsage(SQLModel, table=True):
    __tablename__ = "coupon_usages"
    __table_args__ = {"extend_existing": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    coupon_id: uuid.UUID = Field(foreign_key="coupons.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    # Plain column so the ledger row outlives a deleted application
    application_id: uuid.UUID = Field(unique=True)
    discount_amount: int
    applied_at: datetime = Field(default_factory=get_current_time)
