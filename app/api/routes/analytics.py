"""
Dashboard, gallery and cost endpoints

All of them read through the same visibility scoping as the report list.
"""
from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_roles
from app.models.user import Role
from app.schemas.auth import SessionUser
from app.schemas.report import CostsOut, GalleryItem, MissingEodsOut, StatsOut
from app.services.report_service import get_costs, get_missing_eods, get_stats, list_gallery, list_projects

router = APIRouter()


@router.get("/projects", response_model=List[str])
async def list_projects_endpoint(
    employee_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    """Distinct project names of visible reports"""
    return list_projects(db, current_user, employee_id)


@router.get("/stats", response_model=StatsOut)
async def stats_endpoint(
    employee_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    return get_stats(db, current_user, employee_id)


@router.get("/gallery", response_model=List[GalleryItem])
async def gallery_endpoint(
    employee_id: Optional[int] = Query(None),
    start_date: Optional[date_type] = Query(None),
    end_date: Optional[date_type] = Query(None),
    project: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    """Screenshots of visible reports with their report context"""
    return list_gallery(db, current_user, employee_id, start_date, end_date, project)


@router.get("/costs", response_model=CostsOut)
async def costs_endpoint(
    employee_id: Optional[int] = Query(None),
    project: Optional[str] = Query(None),
    start_date: Optional[date_type] = Query(None),
    end_date: Optional[date_type] = Query(None),
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    return get_costs(db, current_user, employee_id, project, start_date, end_date)


@router.get("/missing-eods", response_model=MissingEodsOut)
async def missing_eods_endpoint(
    target_date: Optional[date_type] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(require_roles(Role.ADMIN, Role.VIEWER))
):
    """Employees without a report for the date (defaults to today)"""
    return get_missing_eods(db, target_date)
