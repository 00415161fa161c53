"""
Employee service - business logic for employee management
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFound, ValidationFailed
from app.models.employee import Employee
from app.models.report import EodReport
from app.models.user import User
from app.schemas.auth import SessionUser
from app.schemas.employee import EmployeeCreate, EmployeeUpdate
from app.services.audit_service import log_audit
from app.services.scope_service import ensure_can_read_employee, visible_employee_id
from app.services.storage import BlobStorage
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Employee.id).filter(Employee.email == email)
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    return query.first() is not None


def list_employees(db: Session, user: SessionUser) -> List[Employee]:
    """All employees for admins and viewers; an employee sees only their own record"""
    query = db.query(Employee)
    scoped_id = visible_employee_id(user)
    if scoped_id is not None:
        query = query.filter(Employee.id == scoped_id)
    return query.order_by(Employee.name).all()


def get_employee(db: Session, user: SessionUser, employee_id: int) -> Employee:
    ensure_can_read_employee(user, employee_id)
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee with id {employee_id} not found")
    return employee


def create_employee(db: Session, data: EmployeeCreate, actor: SessionUser) -> Employee:
    """
    Create a new employee

    Raises:
        ValidationFailed: email already in use
    """
    email = data.email.strip().lower()
    if _email_taken(db, email):
        raise ValidationFailed("Email already exists")

    employee = Employee(
        name=data.name.strip(),
        email=email,
        role=data.role.strip(),
        hourly_rate=data.hourly_rate,
        created_at=now_utc(),
    )
    db.add(employee)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationFailed("Email already exists")
    db.refresh(employee)

    log_audit(
        db=db,
        actor_id=actor.id,
        action="EMPLOYEE_CREATE",
        entity_type="employee",
        entity_id=employee.id,
        meta={"name": employee.name, "email": employee.email},
    )
    return employee


def update_employee(db: Session, employee_id: int, data: EmployeeUpdate, actor: SessionUser) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee with id {employee_id} not found")

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].strip().lower()
        if _email_taken(db, changes["email"], exclude_id=employee.id):
            raise ValidationFailed("Email already exists")
    for field, value in changes.items():
        setattr(employee, field, value.strip() if isinstance(value, str) else value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationFailed("Email already exists")
    db.refresh(employee)

    log_audit(
        db=db,
        actor_id=actor.id,
        action="EMPLOYEE_UPDATE",
        entity_type="employee",
        entity_id=employee.id,
        meta=changes,
    )
    return employee


def delete_employee(db: Session, employee_id: int, actor: SessionUser, storage: BlobStorage) -> None:
    """
    Delete an employee with all their reports and screenshot blobs

    Refused while a login identity is still linked to the employee, since
    that identity would be left pointing at nothing.
    """
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee with id {employee_id} not found")

    if db.query(User.id).filter(User.employee_id == employee_id).first() is not None:
        raise ValidationFailed("Employee is linked to a user account; delete or relink the user first")

    reports = (
        db.query(EodReport)
        .options(selectinload(EodReport.screenshots))
        .filter(EodReport.employee_id == employee_id)
        .all()
    )
    urls = [s.filepath for r in reports for s in r.screenshots]

    db.delete(employee)
    db.commit()
    storage.delete_many(urls)

    logger.info("Admin id=%s deleted employee id=%s with %d reports", actor.id, employee_id, len(reports))
    log_audit(
        db=db,
        actor_id=actor.id,
        action="EMPLOYEE_DELETE",
        entity_type="employee",
        entity_id=employee_id,
        meta={"reports_deleted": len(reports)},
    )
