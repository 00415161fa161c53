"""
Login identity management endpoints (admin-only)
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.models.user import Role
from app.schemas.auth import MessageResponse, SessionUser
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services.user_service import create_user, delete_user, list_users, update_user, user_to_out

router = APIRouter()


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """Create a login identity. role=employee requires employee_id."""
    return user_to_out(create_user(db, user_data, current_user))


@router.get("", response_model=List[UserOut])
async def list_users_endpoint(
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    return [user_to_out(u) for u in list_users(db)]


@router.put("/{user_id}", response_model=UserOut)
async def update_user_endpoint(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """
    Partially update a login identity

    Omitting password keeps the current one. Changes to role or linked
    employee apply to sessions opened after the change.
    """
    return user_to_out(update_user(db, user_id, user_data, current_user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """
    Delete a login identity

    Returns 400 CANNOT_DELETE_SELF when an admin targets their own account.
    """
    delete_user(db, user_id, current_user)
    return MessageResponse(message="User deleted successfully")
