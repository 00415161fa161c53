"""
Report visibility scoping

Admins and viewers see every employee's data and may narrow it with an
employee_id filter. Employees see only their own data; whatever employee_id
they send is replaced by their own.
"""
from typing import Optional

from sqlalchemy.orm import Query

from app.core.errors import Forbidden, ForbiddenReason
from app.models.report import EodReport
from app.models.user import Role
from app.schemas.auth import SessionUser


def visible_employee_id(user: SessionUser, requested_employee_id: Optional[int] = None) -> Optional[int]:
    """
    Employee filter to apply for this user

    Returns:
        The employee id to filter on, or None for "all employees"
    """
    if user.role == Role.ADMIN or user.role == Role.VIEWER:
        return requested_employee_id
    if user.role == Role.EMPLOYEE:
        # An employee identity without a link sees nothing
        return user.employee_id if user.employee_id is not None else -1
    raise ValueError(f"Unhandled role {user.role!r}")


def scope_reports(query: Query, user: SessionUser, requested_employee_id: Optional[int] = None) -> Query:
    """Narrow any query over eod_reports to what the user may see"""
    employee_id = visible_employee_id(user, requested_employee_id)
    if employee_id is not None:
        query = query.filter(EodReport.employee_id == employee_id)
    return query


def can_see_employee(user: SessionUser, employee_id: int) -> bool:
    scoped = visible_employee_id(user, employee_id)
    return scoped is None or scoped == employee_id


def ensure_can_read_employee(user: SessionUser, employee_id: int) -> None:
    """Reject an employee asking for somebody else's data"""
    if not can_see_employee(user, employee_id):
        raise Forbidden("You can only view your own reports", reason=ForbiddenReason.NOT_OWNER)
