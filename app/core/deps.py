"""
Dependencies and guards for FastAPI endpoints
"""
from typing import Generator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Forbidden, ForbiddenReason, Unauthenticated
from app.core.security import decode_session_token
from app.db.session import SessionLocal
from app.models.session import UserSession
from app.models.user import Role, User
from app.schemas.auth import SessionUser
from app.services.access_service import ensure_role, require_authenticated, require_viewer_grant_valid
from app.services.session_service import load_session


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_id(request: Request) -> Optional[str]:
    """Opaque session id from the signed session cookie, if any"""
    return decode_session_token(request.cookies.get(settings.SESSION_COOKIE_NAME))


def get_current_session(request: Request, db: Session = Depends(get_db)) -> Optional[UserSession]:
    return load_session(db, get_session_id(request))


def _active_identity(session: Optional[UserSession], db: Session) -> SessionUser:
    user = require_authenticated(session)
    identity = db.query(User.id, User.is_active).filter(User.id == user.id).first()
    if identity is None or not identity.is_active:
        raise Unauthenticated("Account is no longer active, please log in again")
    return user


def get_current_user(
    session: Optional[UserSession] = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> SessionUser:
    """
    Resolve the session cookie to the identity snapshot taken at login

    The snapshot is not refreshed, but the account must still exist and be
    active, and a viewer must still hold a valid grant, on every request.
    """
    user = _active_identity(session, db)
    if user.role == Role.VIEWER and settings.ENFORCE_VIEWER_GRANT_ON_REQUEST:
        require_viewer_grant_valid(db, user.id)
    return user


def get_mutating_user(
    session: Optional[UserSession] = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> SessionUser:
    """
    Identity for routes that change reports

    Viewers are rejected as read-only before their grant is looked at, so a
    viewer mutation is FORBIDDEN whether or not the grant is still valid.
    """
    user = _active_identity(session, db)
    if user.role == Role.VIEWER:
        raise Forbidden("Viewers cannot change reports", reason=ForbiddenReason.VIEWER_READ_ONLY)
    return user


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/admin-only")
        async def admin_endpoint(user: SessionUser = Depends(require_roles(Role.ADMIN))):
            ...
    """
    def role_checker(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
        return ensure_role(current_user, allowed_roles)
    return role_checker
