# File: src/portal/controllers/notification_controller.py
import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from src.portal.models.notification import Notification
from src.portal.utils.exceptions import NotFoundException, PortalException

logger = logging.getLogger(__name__)


def notify_user(
    db: Session,
    recipient_id: uuid.UUID,
    title: str,
    message: str,
    type: str = "general",
) -> Optional[Notification]:
    """
    Store a notification for a user.

    Called after the business transaction has committed. A failure here is
    logged and never propagated to the caller.
    """
    try:
        notification = Notification(recipient_id=recipient_id, title=title, message=message, type=type)
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create notification for user {recipient_id}: {e}", exc_info=True)
        return None


def list_notifications(db: Session, user_id: uuid.UUID) -> List[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.recipient_id == user_id)
        .order_by(Notification.created_at.desc())
    )
    return db.exec(stmt).all()


def mark_as_read(db: Session, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFoundException("Notification not found")
    if notification.recipient_id != user_id:
        raise PortalException("Not authorized", status_code=401, error_code="NOT_OWNER")
    notification.is_read = True
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def clear_notifications(db: Session, user_id: uuid.UUID) -> int:
    result = db.exec(delete(Notification).where(Notification.recipient_id == user_id))
    db.commit()
    logger.info(f"Cleared {result.rowcount} notifications for user {user_id}")
    return result.rowcount
