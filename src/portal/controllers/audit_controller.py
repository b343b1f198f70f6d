# File: src/portal/controllers/audit_controller.py
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from src.portal.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    admin_id: Optional[uuid.UUID],
    action_type: str,
    target_type: str,
    target_id: Any,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """Append an audit record to the caller's transaction. The caller commits."""
    entry = AuditLog(
        admin_id=admin_id,
        action_type=action_type,
        target_type=target_type,
        target_id=str(target_id),
        details=details or {},
        ip_address=ip_address,
    )
    db.add(entry)
    logger.info(f"Audit {action_type} on {target_type} {target_id} by {admin_id}")
    return entry


def list_audit_logs(
    db: Session,
    action_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    stmt = select(AuditLog)
    if action_type:
        stmt = stmt.where(AuditLog.action_type == action_type)
    if target_id:
        stmt = stmt.where(AuditLog.target_id == target_id)
    stmt = stmt.order_by(AuditLog.created_at.desc()).limit(limit)
    return db.exec(stmt).all()
