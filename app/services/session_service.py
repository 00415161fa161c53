"""
Session registry backed by the sessions table

Sessions survive restarts because they live in the database. Expiry is
checked lazily on lookup; purge_expired_sessions only reclaims storage.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.session import UserSession
from app.models.user import User
from app.schemas.auth import SessionUser
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


def build_snapshot(user: User) -> SessionUser:
    """Identity snapshot captured at login"""
    employee = user.employee
    return SessionUser(
        id=user.id,
        username=user.username,
        role=user.role_enum,
        employee_id=user.employee_id,
        employee_name=employee.name if employee else None,
        employee_email=employee.email if employee else None,
        employee_role=employee.role if employee else None,
    )


def create_session(db: Session, user: User) -> Tuple[str, SessionUser, datetime]:
    """
    Persist a new session for a freshly authenticated user

    Returns:
        (session id, identity snapshot, expiry)
    """
    snapshot = build_snapshot(user)
    now = now_utc()
    expires_at = now + timedelta(days=settings.SESSION_TTL_DAYS)
    sid = secrets.token_urlsafe(32)

    record = UserSession(
        sid=sid,
        user_id=user.id,
        sess={"user": snapshot.model_dump(mode="json")},
        created_at=now,
        expire=expires_at,
    )
    db.add(record)
    db.commit()
    return sid, snapshot, expires_at


def load_session(db: Session, sid: Optional[str], now: Optional[datetime] = None) -> Optional[UserSession]:
    """Return the live session for sid, or None when unknown or expired"""
    if not sid:
        return None
    record = db.query(UserSession).filter(UserSession.sid == sid).first()
    if record is None:
        return None
    now = ensure_utc(now) if now else now_utc()
    if ensure_utc(record.expire) <= now:
        return None
    return record


def destroy_session(db: Session, sid: Optional[str]) -> None:
    """Delete a session; a missing session is not an error"""
    if not sid:
        return
    db.query(UserSession).filter(UserSession.sid == sid).delete(synchronize_session=False)
    db.commit()


def destroy_user_sessions(db: Session, user_id: int) -> int:
    """Delete every session of one identity without committing"""
    return db.query(UserSession).filter(UserSession.user_id == user_id).delete(synchronize_session=False)


def purge_expired_sessions(db: Session) -> int:
    """Reclaim rows of sessions past their expiry"""
    removed = db.query(UserSession).filter(UserSession.expire <= now_utc()).delete(synchronize_session=False)
    db.commit()
    if removed:
        logger.info("Purged %d expired sessions", removed)
    return removed
