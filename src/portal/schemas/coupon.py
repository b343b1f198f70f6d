# src/portal/schemas/coupon.py
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.portal.models.coupon import DiscountType, CouponStatus


class CouponBase(BaseModel):
    code: str
    discount_type: DiscountType
    discount_value: int = Field(gt=0)
    max_uses: int = Field(default=0, ge=0)
    max_uses_per_user: int = Field(default=1, ge=0)
    expiry_date: datetime
    status: CouponStatus = CouponStatus.ACTIVE
    applicable_plans: List[int] = []


class CouponCreate(CouponBase):
    pass


class CouponUpdate(BaseModel):
    code: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = Field(default=None, gt=0)
    max_uses: Optional[int] = Field(default=None, ge=0)
    max_uses_per_user: Optional[int] = Field(default=None, ge=0)
    expiry_date: Optional[datetime] = None
    status: Optional[CouponStatus] = None
    applicable_plans: Optional[List[int]] = None


class CouponRead(CouponBase):
    id: uuid.UUID
    current_uses: int
    created_at: datetime

    class Config:
        from_attributes = True


class CouponUsageRead(BaseModel):
    id: uuid.UUID
    coupon_id: uuid.UUID
    user_id: uuid.UUID
    application_id: uuid.UUID
    discount_amount: int
    applied_at: datetime

    class Config:
        from_attributes = True


class CouponValidateRequest(BaseModel):
    code: str
    amount: int = Field(gt=0)


class CouponValidateResponse(BaseModel):
    code: str
    discount_type: DiscountType
    discount_value: int
    discount_amount: int
    original_amount: int
    final_amount: int
