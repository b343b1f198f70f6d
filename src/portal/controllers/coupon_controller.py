# File: src/portal/controllers/coupon_controller.py
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from src.portal.controllers.audit_controller import record_audit
from src.portal.models.coupon import Coupon, CouponUsage, CouponStatus, DiscountType
from src.portal.models.payment import Payment
from src.portal.schemas.coupon import CouponCreate, CouponUpdate
from src.portal.utils.exceptions import (
    ConflictException,
    CouponAlreadyUsed,
    CouponExhausted,
    CouponExpired,
    CouponNotApplicable,
    CouponNotFound,
    NotFoundException,
    ValidationException,
)
from src.portal.utils.time import ensure_utc, get_current_time

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


# ─── Discount policy ───────────────────────────────────────────

def compute_discount(coupon: Coupon, base_amount: int) -> Tuple[int, int]:
    """Return (discount, final_amount) for `base_amount`. Final amount never goes below zero."""
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = base_amount * coupon.discount_value // 100
    else:
        discount = coupon.discount_value
    final_amount = max(base_amount - discount, 0)
    return base_amount - final_amount, final_amount


def _user_limit_reached(db: Session, coupon: Coupon, user_id: uuid.UUID) -> bool:
    if coupon.max_uses_per_user <= 0:
        return False
    used_by_user = db.exec(
        select(func.count(CouponUsage.id)).where(
            CouponUsage.coupon_id == coupon.id, CouponUsage.user_id == user_id
        )
    ).one()
    return used_by_user >= coupon.max_uses_per_user


def validate_coupon(db: Session, code: str, user_id: uuid.UUID, amount: int) -> Coupon:
    """
    Check that `code` can be applied by `user_id` to a plan of `amount`.

    Checks run in a fixed order and the first failure is raised.
    Nothing is written.
    """
    coupon = db.exec(
        select(Coupon).where(Coupon.code == normalize_code(code), Coupon.status == CouponStatus.ACTIVE)
    ).first()
    if not coupon:
        raise CouponNotFound("Invalid or inactive coupon code")

    if ensure_utc(coupon.expiry_date) < get_current_time():
        raise CouponExpired("Coupon has expired")

    if coupon.max_uses > 0 and coupon.current_uses >= coupon.max_uses:
        raise CouponExhausted("Coupon usage limit reached")

    if _user_limit_reached(db, coupon, user_id):
        raise CouponAlreadyUsed("You have already used this coupon")

    if coupon.applicable_plans and amount not in coupon.applicable_plans:
        raise CouponNotApplicable("Coupon is not applicable for this plan")

    return coupon


def redeem_coupon(
    db: Session,
    coupon: Coupon,
    user_id: uuid.UUID,
    application_id: uuid.UUID,
    discount_amount: int,
) -> CouponUsage:
    """
    Consume one use of `coupon` for `application_id`.

    Idempotent per application: an existing ledger row is returned as is.
    The per-user limit is checked again against the ledger, since two orders
    created before either was paid both passed validation.
    The counter is bumped with a conditional UPDATE so concurrent redemptions
    can never push it past max_uses. The caller commits.
    """
    existing = db.exec(select(CouponUsage).where(CouponUsage.application_id == application_id)).first()
    if existing:
        logger.warning(f"Coupon already redeemed for application {application_id}, skipping")
        return existing

    if _user_limit_reached(db, coupon, user_id):
        raise CouponAlreadyUsed("You have already used this coupon")

    result = db.exec(
        update(Coupon)
        .where(Coupon.id == coupon.id, or_(Coupon.max_uses == 0, Coupon.current_uses < Coupon.max_uses))
        .values(current_uses=Coupon.current_uses + 1)
    )
    if result.rowcount == 0:
        raise CouponExhausted("Coupon usage limit reached")

    usage = CouponUsage(
        coupon_id=coupon.id,
        user_id=user_id,
        application_id=application_id,
        discount_amount=discount_amount,
    )
    db.add(usage)
    db.flush()
    logger.info(f"Coupon {coupon.code} redeemed for application {application_id} (discount {discount_amount})")
    return usage


# ─── Admin management ──────────────────────────────────────────

def create_coupon(db: Session, payload: CouponCreate, admin_id: uuid.UUID) -> Coupon:
    code = normalize_code(payload.code)
    if not code:
        raise ValidationException("Coupon code is required")
    if payload.discount_type == DiscountType.PERCENTAGE and not 0 < payload.discount_value <= 100:
        raise ValidationException("Percentage discount must be between 1 and 100")
    if db.exec(select(Coupon).where(Coupon.code == code)).first():
        raise ConflictException("Coupon code already exists")

    coupon = Coupon(**payload.model_dump(exclude={"code"}), code=code, created_by=admin_id)
    db.add(coupon)
    record_audit(db, admin_id, "CREATE_COUPON", "Coupon", coupon.id, {"code": code})
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictException("Coupon code already exists")
    db.refresh(coupon)
    return coupon


def list_coupons(db: Session) -> List[Coupon]:
    return db.exec(select(Coupon).order_by(Coupon.created_at.desc())).all()


def get_coupon(db: Session, coupon_id: uuid.UUID) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundException("Coupon not found")
    return coupon


def update_coupon(db: Session, coupon_id: uuid.UUID, payload: CouponUpdate, admin_id: uuid.UUID) -> Coupon:
    coupon = get_coupon(db, coupon_id)
    changes = payload.model_dump(exclude_unset=True)
    if "code" in changes:
        changes["code"] = normalize_code(changes["code"])
        clash = db.exec(
            select(Coupon).where(Coupon.code == changes["code"], Coupon.id != coupon_id)
        ).first()
        if clash:
            raise ConflictException("Coupon code already exists")
    for key, value in changes.items():
        setattr(coupon, key, value)
    db.add(coupon)
    record_audit(
        db, admin_id, "UPDATE_COUPON", "Coupon", coupon.id,
        {key: str(value) for key, value in changes.items()},
    )
    db.commit()
    db.refresh(coupon)
    return coupon


def delete_coupon(db: Session, coupon_id: uuid.UUID, admin_id: uuid.UUID) -> None:
    coupon = get_coupon(db, coupon_id)
    if coupon.current_uses > 0:
        # Redeemed coupons stay referenced by the ledger; deactivate instead
        coupon.status = CouponStatus.INACTIVE
        db.add(coupon)
        record_audit(db, admin_id, "DEACTIVATE_COUPON", "Coupon", coupon.id, {"code": coupon.code})
    else:
        db.exec(update(Payment).where(Payment.coupon_id == coupon.id).values(coupon_id=None))
        db.delete(coupon)
        record_audit(db, admin_id, "DELETE_COUPON", "Coupon", coupon.id, {"code": coupon.code})
    db.commit()


def list_coupon_usages(db: Session, coupon_id: Optional[uuid.UUID] = None) -> List[CouponUsage]:
    stmt = select(CouponUsage)
    if coupon_id:
        stmt = stmt.where(CouponUsage.coupon_id == coupon_id)
    return db.exec(stmt.order_by(CouponUsage.applied_at.desc())).all()
