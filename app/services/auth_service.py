"""
Credential checks: login, logout and self-service password change
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import InvalidCredentials, WeakPassword
from app.core.security import burn_password_check, hash_password, validate_password, verify_password
from app.models.user import Role, User
from app.schemas.auth import SessionUser
from app.services.access_service import require_viewer_grant_valid
from app.services.audit_service import log_audit
from app.services.session_service import create_session, destroy_session

logger = logging.getLogger(__name__)


def login(db: Session, username: str, password: str) -> Tuple[str, SessionUser, datetime]:
    """
    Authenticate credentials and open a session

    Unknown usernames and wrong passwords fail identically so that usernames
    cannot be enumerated. Viewers additionally need a valid grant, and that
    failure is reported as such.

    Returns:
        (session id, identity snapshot, session expiry)

    Raises:
        InvalidCredentials: unknown/inactive user or wrong password
        ViewerExpired: viewer without a valid grant
    """
    user = (
        db.query(User)
        .filter(User.username == username, User.is_active == True)  # noqa: E712
        .first()
    )
    if user is None:
        burn_password_check(password)
        logger.info("Login failed for unknown or inactive username")
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        logger.info("Login failed for user id=%s: wrong password", user.id)
        raise InvalidCredentials()

    if user.role_enum == Role.VIEWER:
        require_viewer_grant_valid(db, user.id)

    sid, snapshot, expires_at = create_session(db, user)
    logger.info("User id=%s (%s) logged in", user.id, user.role)
    log_audit(
        db=db,
        actor_id=user.id,
        action="AUTH_LOGIN_SUCCESS",
        entity_type="auth",
        meta={"username": user.username, "role": user.role},
    )
    return sid, snapshot, expires_at


def logout(db: Session, sid: Optional[str], user_id: Optional[int] = None) -> None:
    """Destroy the session; calling it again is harmless"""
    destroy_session(db, sid)
    if user_id is not None:
        log_audit(db=db, actor_id=user_id, action="AUTH_LOGOUT", entity_type="auth")


def change_password(db: Session, current_user: SessionUser, current_password: str, new_password: str) -> None:
    """
    Change the caller's own password

    Raises:
        InvalidCredentials: current password does not match
        WeakPassword: new password fails the length rules
    """
    user = db.query(User).filter(User.id == current_user.id).first()
    if user is None or not verify_password(current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")

    try:
        validate_password(new_password)
    except ValueError as e:
        raise WeakPassword(str(e))

    user.password_hash = hash_password(new_password)
    db.commit()
    log_audit(db=db, actor_id=user.id, action="AUTH_PASSWORD_CHANGE", entity_type="user", entity_id=user.id)
