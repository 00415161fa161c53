"""
Temporary viewer access endpoints (admin-only)
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.models.user import Role
from app.schemas.auth import SessionUser
from app.schemas.viewer_access import ViewerAccessCreate, ViewerAccessCreated, ViewerAccessOut
from app.services.viewer_access_service import (
    create_viewer_access,
    grant_to_out,
    list_viewer_access,
    revoke_viewer_access,
)

router = APIRouter()


@router.post("", response_model=ViewerAccessCreated, status_code=status.HTTP_201_CREATED)
async def create_viewer_access_endpoint(
    payload: ViewerAccessCreate,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """Create a viewer account whose access expires after VIEWER_ACCESS_DAYS"""
    grant = create_viewer_access(db, payload, current_user)
    return ViewerAccessCreated(id=grant.id, username=grant.user.username, expires_at=grant.expires_at)


@router.get("", response_model=List[ViewerAccessOut])
async def list_viewer_access_endpoint(
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """All grants, each with status active, expired or revoked"""
    return list_viewer_access(db)


@router.put("/{grant_id}/revoke", response_model=ViewerAccessOut)
async def revoke_viewer_access_endpoint(
    grant_id: int,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN))
):
    """Revoke a grant. The viewer account remains but can no longer log in."""
    return grant_to_out(revoke_viewer_access(db, grant_id, current_user))
