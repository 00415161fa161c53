"""
User service - admin management of login identities
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import CannotDeleteSelf, DuplicateUsername, NotFound, ValidationFailed, WeakPassword
from app.core.security import hash_password, validate_password
from app.models.employee import Employee
from app.models.user import Role, User
from app.schemas.auth import SessionUser
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services.audit_service import log_audit
from app.services.session_service import destroy_user_sessions

logger = logging.getLogger(__name__)


def user_to_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        role=user.role_enum,
        employee_id=user.employee_id,
        employee_name=user.employee.name if user.employee else None,
        is_active=user.is_active,
        created_at=user.created_at,
    )


def _check_password(password: Optional[str]) -> str:
    try:
        return validate_password(password)
    except ValueError as e:
        raise WeakPassword(str(e))


def _resolve_employee_link(db: Session, role: Role, employee_id: Optional[int]) -> Optional[int]:
    """
    Employee identities must point at an existing employee; the link is
    dropped for admin and viewer identities.
    """
    if role != Role.EMPLOYEE:
        return None
    if employee_id is None:
        raise ValidationFailed("employee_id is required for employee users")
    if db.query(Employee.id).filter(Employee.id == employee_id).first() is None:
        raise ValidationFailed(f"Employee with id {employee_id} not found")
    return employee_id


def _username_taken(db: Session, username: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def create_user(db: Session, data: UserCreate, actor: SessionUser) -> User:
    """
    Create a login identity

    Raises:
        DuplicateUsername: username already in use
        WeakPassword: password shorter than 6 characters
        ValidationFailed: employee role without a valid employee_id
    """
    username = data.username.strip()
    if not username:
        raise ValidationFailed("Username is required")
    password = _check_password(data.password)
    employee_id = _resolve_employee_link(db, data.role, data.employee_id)

    if _username_taken(db, username):
        raise DuplicateUsername()

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=data.role.value,
        employee_id=employee_id,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateUsername()
    db.refresh(user)

    logger.info("Admin id=%s created user id=%s (%s)", actor.id, user.id, user.role)
    log_audit(
        db=db,
        actor_id=actor.id,
        action="USER_CREATE",
        entity_type="user",
        entity_id=user.id,
        meta={"username": user.username, "role": user.role, "employee_id": employee_id},
    )
    return user


def list_users(db: Session) -> List[User]:
    return (
        db.query(User)
        .options(joinedload(User.employee))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


def update_user(db: Session, user_id: int, data: UserUpdate, actor: SessionUser) -> User:
    """
    Partially update an identity; an omitted password leaves the hash alone

    The resulting role/employee combination is validated as a whole, so
    switching a viewer to employee requires an employee_id in the same call
    (or an existing link).
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound(f"User with id {user_id} not found")

    changes = data.model_dump(exclude_unset=True)

    if changes.get("username") is not None:
        username = changes["username"].strip()
        if not username:
            raise ValidationFailed("Username is required")
        if _username_taken(db, username, exclude_id=user.id):
            raise DuplicateUsername()
        user.username = username

    if changes.get("password"):
        user.password_hash = hash_password(_check_password(changes["password"]))

    role = changes.get("role") or user.role_enum
    employee_id = changes["employee_id"] if "employee_id" in changes else user.employee_id
    user.employee_id = _resolve_employee_link(db, role, employee_id)
    user.role = role.value

    if changes.get("is_active") is not None:
        user.is_active = changes["is_active"]

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateUsername()
    db.refresh(user)

    audit_meta = {k: v for k, v in changes.items() if k != "password"}
    audit_meta["password_changed"] = bool(changes.get("password"))
    log_audit(
        db=db,
        actor_id=actor.id,
        action="USER_UPDATE",
        entity_type="user",
        entity_id=user.id,
        meta=audit_meta,
    )
    return user


def delete_user(db: Session, user_id: int, actor: SessionUser) -> None:
    """
    Delete an identity together with its grants and sessions

    Raises:
        CannotDeleteSelf: the acting admin targets their own account
        NotFound: no such identity
    """
    if user_id == actor.id:
        raise CannotDeleteSelf()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound(f"User with id {user_id} not found")

    username = user.username
    destroy_user_sessions(db, user.id)
    db.delete(user)
    db.commit()

    logger.info("Admin id=%s deleted user id=%s", actor.id, user_id)
    log_audit(
        db=db,
        actor_id=actor.id,
        action="USER_DELETE",
        entity_type="user",
        entity_id=user_id,
        meta={"username": username},
    )
