# File: src/portal/routers/notification_router.py
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from src.portal.controllers import notification_controller
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.schemas.common import NotificationRead
from src.portal.utils.dependencies import get_current_user

router = APIRouter(tags=["Notifications"])


@router.get("", response_model=List[NotificationRead])
async def my_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notification_controller.list_notifications(db, current_user.id)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notification_controller.mark_as_read(db, notification_id, current_user.id)


@router.delete("")
async def clear_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cleared = notification_controller.clear_notifications(db, current_user.id)
    return {"cleared": cleared}
