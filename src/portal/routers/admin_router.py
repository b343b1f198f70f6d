# File: src/portal/routers/admin_router.py
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from src.portal.controllers import application_controller, audit_controller, coupon_controller
from src.portal.db.session import get_db
from src.portal.models.application import ApplicationStatus
from src.portal.models.user import User
from src.portal.schemas.application import (
    ApplicationRead,
    ApplicationStatusUpdate,
    ApplicationWithDocuments,
    DashboardStats,
    DeleteSummary,
    EligibilityRead,
    EligibilityUpdate,
)
from src.portal.schemas.common import AuditLogRead
from src.portal.schemas.coupon import CouponCreate, CouponRead, CouponUpdate, CouponUsageRead
from src.portal.utils.dependencies import get_current_admin_user

router = APIRouter(tags=["Admin"])


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# ─── Applications ──────────────────────────────────────────────

@router.get("/applications", response_model=List[ApplicationWithDocuments])
async def list_applications(
    status_filter: Optional[ApplicationStatus] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return application_controller.list_applications(db, status_filter)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return application_controller.dashboard_stats(db)


@router.patch("/applications/{application_id}", response_model=ApplicationRead)
async def update_application_status(
    application_id: uuid.UUID,
    payload: ApplicationStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return application_controller.update_status(db, application_id, payload, admin.id, client_ip(request))


@router.delete("/applications/{application_id}", response_model=DeleteSummary)
async def delete_application(
    application_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    deleted = application_controller.delete_application(db, application_id, admin.id, client_ip(request))
    return DeleteSummary(application_id=application_id, deleted=deleted)


@router.put("/applications/{application_id}/eligibility", response_model=EligibilityRead)
async def update_eligibility(
    application_id: uuid.UUID,
    payload: EligibilityUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return application_controller.update_eligibility(db, application_id, payload, admin.id, client_ip(request))


# ─── Coupons ───────────────────────────────────────────────────

@router.post("/coupons", response_model=CouponRead, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    payload: CouponCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return coupon_controller.create_coupon(db, payload, admin.id)


@router.get("/coupons", response_model=List[CouponRead])
async def list_coupons(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return coupon_controller.list_coupons(db)


@router.get("/coupons/usage", response_model=List[CouponUsageRead])
async def coupon_usage_history(
    coupon_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return coupon_controller.list_coupon_usages(db, coupon_id)


@router.get("/coupons/{coupon_id}", response_model=CouponRead)
async def get_coupon(
    coupon_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return coupon_controller.get_coupon(db, coupon_id)


@router.patch("/coupons/{coupon_id}", response_model=CouponRead)
async def update_coupon(
    coupon_id: uuid.UUID,
    payload: CouponUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return coupon_controller.update_coupon(db, coupon_id, payload, admin.id)


@router.delete("/coupons/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_coupon(
    coupon_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    coupon_controller.delete_coupon(db, coupon_id, admin.id)


# ─── Audit ─────────────────────────────────────────────────────

@router.get("/audit-logs", response_model=List[AuditLogRead])
async def list_audit_logs(
    action_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return audit_controller.list_audit_logs(db, action_type, target_id, min(limit, 500))
