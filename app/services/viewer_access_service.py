"""
Viewer access service - temporary read-only accounts

A viewer identity and its first grant are created in one transaction. Grants
are revoked by timestamp and never deleted, so the ledger doubles as the
history of who could look at the data and until when.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.errors import DuplicateUsername, NotFound, ValidationFailed, WeakPassword
from app.core.security import hash_password, validate_password
from app.models.user import Role, User
from app.models.viewer_access import ViewerAccess
from app.schemas.auth import SessionUser
from app.schemas.viewer_access import ViewerAccessCreate, ViewerAccessOut
from app.services.access_service import grant_status
from app.services.audit_service import log_audit
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _new_viewer_grant(user: User, actor_id: int, notes: Optional[str], now: datetime) -> ViewerAccess:
    return ViewerAccess(
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(days=settings.VIEWER_ACCESS_DAYS),
        created_by=actor_id,
        notes=notes,
    )


def create_viewer_access(db: Session, data: ViewerAccessCreate, actor: SessionUser) -> ViewerAccess:
    """
    Create a viewer identity and its grant atomically

    Either both rows are committed or neither is; a failure after the
    identity insert rolls the identity back too.

    Raises:
        DuplicateUsername: username already in use
        WeakPassword: password shorter than 6 characters
    """
    username = data.username.strip()
    if not username:
        raise ValidationFailed("Username is required")
    try:
        validate_password(data.password)
    except ValueError as e:
        raise WeakPassword(str(e))

    if db.query(User.id).filter(User.username == username).first() is not None:
        raise DuplicateUsername()

    now = now_utc()
    try:
        user = User(
            username=username,
            password_hash=hash_password(data.password),
            role=Role.VIEWER.value,
            employee_id=None,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()

        grant = _new_viewer_grant(user, actor.id, data.notes, now)
        db.add(grant)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateUsername()
    except Exception:
        db.rollback()
        logger.exception("Creating viewer access for %s failed, rolled back", username)
        raise
    db.refresh(grant)

    logger.info("Admin id=%s granted viewer access to %s until %s", actor.id, username, grant.expires_at)
    log_audit(
        db=db,
        actor_id=actor.id,
        action="VIEWER_ACCESS_CREATE",
        entity_type="viewer_access",
        entity_id=grant.id,
        meta={"username": username, "expires_at": grant.expires_at},
    )
    return grant


def grant_to_out(grant: ViewerAccess, now: Optional[datetime] = None) -> ViewerAccessOut:
    return ViewerAccessOut(
        id=grant.id,
        user_id=grant.user_id,
        username=grant.user.username,
        is_active=grant.user.is_active,
        created_at=grant.created_at,
        expires_at=grant.expires_at,
        revoked_at=grant.revoked_at,
        created_by=grant.created_by,
        created_by_username=grant.creator.username if grant.creator else None,
        notes=grant.notes,
        status=grant_status(grant, now),
    )


def list_viewer_access(db: Session, now: Optional[datetime] = None) -> List[ViewerAccessOut]:
    """All grants, newest first, each with its derived status"""
    now = now or now_utc()
    grants = (
        db.query(ViewerAccess)
        .options(joinedload(ViewerAccess.user), joinedload(ViewerAccess.creator))
        .order_by(ViewerAccess.created_at.desc(), ViewerAccess.id.desc())
        .all()
    )
    return [grant_to_out(grant, now) for grant in grants]


def revoke_viewer_access(db: Session, grant_id: int, actor: SessionUser) -> ViewerAccess:
    """
    Stamp revoked_at on a grant

    The viewer identity stays active and listed; it just cannot log in any
    more. Revoking an already revoked grant keeps the original timestamp.
    """
    grant = db.query(ViewerAccess).filter(ViewerAccess.id == grant_id).first()
    if grant is None:
        raise NotFound(f"Viewer access with id {grant_id} not found")

    if grant.revoked_at is None:
        grant.revoked_at = now_utc()
        db.commit()
        db.refresh(grant)
        logger.info("Admin id=%s revoked viewer access id=%s", actor.id, grant.id)
        log_audit(
            db=db,
            actor_id=actor.id,
            action="VIEWER_ACCESS_REVOKE",
            entity_type="viewer_access",
            entity_id=grant.id,
            meta={"user_id": grant.user_id},
        )
    return grant
