"""
Authorization guard

Pure decisions over an already-resolved session or identity. Nothing here
mutates state; every rejection raises the specific error from
app.core.errors so the caller can tell the failure modes apart.
"""
from datetime import datetime
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.errors import Forbidden, ForbiddenReason, Unauthenticated, ViewerExpired
from app.models.session import UserSession
from app.models.user import Role
from app.models.viewer_access import ViewerAccess
from app.schemas.auth import SessionUser
from app.utils.datetime_utils import ensure_utc, now_utc

GRANT_ACTIVE = "active"
GRANT_EXPIRED = "expired"
GRANT_REVOKED = "revoked"


def require_authenticated(session: Optional[UserSession]) -> SessionUser:
    """Return the identity bound to the session or raise Unauthenticated"""
    if session is None or not isinstance(session.sess, dict):
        raise Unauthenticated()
    snapshot = session.sess.get("user")
    if not snapshot:
        raise Unauthenticated()
    try:
        return SessionUser.model_validate(snapshot)
    except ValidationError:
        raise Unauthenticated("Session is no longer valid, please log in again")


def ensure_role(user: SessionUser, allowed_roles: Iterable[Role]) -> SessionUser:
    """Reject an authenticated user whose role is not allowed"""
    allowed = set(allowed_roles)
    if user.role not in allowed:
        raise Forbidden(
            f"Access denied. Required roles: {sorted(r.value for r in allowed)}",
            reason=ForbiddenReason.INSUFFICIENT_ROLE,
        )
    return user


def require_role(session: Optional[UserSession], allowed_roles: Iterable[Role]) -> SessionUser:
    """Unauthenticated if there is no identity, Forbidden if its role is not allowed"""
    return ensure_role(require_authenticated(session), allowed_roles)


def latest_viewer_grant(db: Session, user_id: int) -> Optional[ViewerAccess]:
    """Most recently created grant for the identity; older grants are never consulted"""
    return (
        db.query(ViewerAccess)
        .filter(ViewerAccess.user_id == user_id)
        .order_by(ViewerAccess.created_at.desc(), ViewerAccess.id.desc())
        .first()
    )


def is_grant_valid(grant: Optional[ViewerAccess], now: Optional[datetime] = None) -> bool:
    if grant is None or grant.revoked_at is not None:
        return False
    now = ensure_utc(now) if now else now_utc()
    return now < ensure_utc(grant.expires_at)


def grant_status(grant: ViewerAccess, now: Optional[datetime] = None) -> str:
    """Derived status shown to admins; revocation wins over expiry"""
    if grant.revoked_at is not None:
        return GRANT_REVOKED
    if not is_grant_valid(grant, now):
        return GRANT_EXPIRED
    return GRANT_ACTIVE


def require_viewer_grant_valid(db: Session, user_id: int, now: Optional[datetime] = None) -> None:
    """Raise ViewerExpired unless the identity's latest grant is unrevoked and unexpired"""
    grant = latest_viewer_grant(db, user_id)
    if grant is None:
        raise ViewerExpired("No viewer access has been granted for this account")
    if grant.revoked_at is not None:
        raise ViewerExpired("Viewer access has been revoked")
    if not is_grant_valid(grant, now):
        raise ViewerExpired("Viewer access has expired")
