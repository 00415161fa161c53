"""
Audit logging service
"""
import logging
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import to_json_safe
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Create an audit log entry

    Call only after the business transaction has been committed: the entry
    is committed on its own, and a failure here is logged and swallowed so
    auditing never fails the request it describes.

    Args:
        db: Database session
        actor_id: ID of the user performing the action (None for anonymous)
        action: Action type (e.g., "USER_CREATE", "AUTH_LOGIN_SUCCESS")
        entity_type: Type of entity (e.g., "user", "viewer_access", "report")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)

    Returns:
        Created AuditLog instance, or None if it could not be written
    """
    safe_meta = to_json_safe(meta) if meta is not None else None

    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=safe_meta,
        created_at=now_utc()
    )
    try:
        db.add(audit_log)
        db.commit()
        db.refresh(audit_log)
    except Exception as e:
        db.rollback()
        logger.warning("Failed to write audit log %s: %s", action, e)
        return None
    return audit_log
