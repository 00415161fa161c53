"""
Employee endpoints

Anyone logged in may read within their scope; changes are admin-only.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_roles
from app.models.user import Role
from app.schemas.auth import MessageResponse, SessionUser
from app.schemas.employee import EmployeeCreate, EmployeeOut, EmployeeUpdate
from app.schemas.report import ReportOut
from app.services.employee_service import (
    create_employee,
    delete_employee,
    get_employee,
    list_employees,
    update_employee,
)
from app.services.report_service import get_last_report
from app.services.storage import BlobStorage, get_storage

router = APIRouter()


@router.get("", response_model=List[EmployeeOut])
async def list_employees_endpoint(
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    return list_employees(db, current_user)


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
async def create_employee_endpoint(
    employee_data: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """Create a new employee (ADMIN-only)"""
    return create_employee(db, employee_data, current_user)


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    return get_employee(db, current_user, employee_id)


@router.get("/{employee_id}/last-report", response_model=Optional[ReportOut])
async def last_report_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    """Most recent report of the employee, or null when there is none"""
    return get_last_report(db, current_user, employee_id)


@router.put("/{employee_id}", response_model=EmployeeOut)
async def update_employee_endpoint(
    employee_id: int,
    employee_data: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """Update an employee (ADMIN-only)"""
    return update_employee(db, employee_id, employee_data, current_user)


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """
    Delete an employee and their reports (ADMIN-only)

    Refused while a login identity is still linked to the employee.
    """
    delete_employee(db, employee_id, current_user, storage)
    return MessageResponse(message="Employee deleted successfully")
