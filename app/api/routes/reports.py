"""
EOD report endpoints

Reads are scoped by role; create, update and delete go through the report
mutation guard. Create and update are multipart forms so screenshots can be
attached in the same request.
"""
import json
from datetime import date as date_type
from decimal import Decimal
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, get_mutating_user
from app.core.errors import ValidationFailed
from app.schemas.auth import MessageResponse, SessionUser
from app.schemas.report import BulkDeleteRequest, BulkDeleteResponse, ReportFields, ReportOut
from app.services.report_policy import check_report_creation, check_report_mutation
from app.services.report_service import (
    bulk_delete_reports,
    create_report,
    delete_report,
    get_report,
    list_reports,
    update_report,
)
from app.services.storage import BlobStorage, get_storage, read_uploads

router = APIRouter()


def _parse_json_field(raw: Optional[str], name: str, expected: type) -> Any:
    """Decode a JSON-encoded form field; empty means the type's empty value"""
    if raw is None or raw == "":
        return expected()
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationFailed(f"{name} must be valid JSON")
    if not isinstance(value, expected):
        raise ValidationFailed(f"{name} must be a JSON {expected.__name__}")
    return value


def _parse_captions(raw: Optional[str]) -> List[str]:
    return [str(c) if c is not None else "" for c in _parse_json_field(raw, "captions", list)]


@router.get("", response_model=List[ReportOut])
async def list_reports_endpoint(
    employee_id: Optional[int] = Query(None),
    start_date: Optional[date_type] = Query(None),
    end_date: Optional[date_type] = Query(None),
    project: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    """
    List reports, newest first

    employee_id is honoured for admins and viewers; for employees it is
    replaced by their own id.
    """
    return list_reports(db, current_user, employee_id, start_date, end_date, project)


@router.post("", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def create_report_endpoint(
    employee_id: Optional[int] = Form(None),
    date: Optional[date_type] = Form(None),
    hours: Optional[Decimal] = Form(None, gt=0, le=24),
    project: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    captions: Optional[str] = Form(None),
    screenshots: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
    current_user: SessionUser = Depends(get_mutating_user)
):
    """
    Create a report (admin for anyone, employee for themselves)

    captions is a JSON array matched by position to the uploaded screenshots.
    """
    check_report_creation(current_user, employee_id if employee_id is not None else current_user.employee_id)

    fields = ReportFields(
        employee_id=employee_id,
        date=date,
        hours=hours,
        project=project,
        description=description,
        captions=_parse_captions(captions),
    )
    files = await read_uploads(screenshots)
    return create_report(db, current_user, fields, files, storage)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_endpoint(
    payload: BulkDeleteRequest,
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
    current_user: SessionUser = Depends(get_mutating_user)
):
    """Delete several reports; nothing is deleted if any one of them is refused"""
    deleted_ids = bulk_delete_reports(db, current_user, payload.report_ids, storage)
    return BulkDeleteResponse(deleted=len(deleted_ids), report_ids=deleted_ids)


@router.get("/{report_id}", response_model=ReportOut)
async def get_report_endpoint(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: SessionUser = Depends(get_current_user)
):
    return get_report(db, current_user, report_id)


@router.put("/{report_id}", response_model=ReportOut)
async def update_report_endpoint(
    report_id: int,
    employee_id: Optional[int] = Form(None),
    date: Optional[date_type] = Form(None),
    hours: Optional[Decimal] = Form(None, gt=0, le=24),
    project: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    captions: Optional[str] = Form(None),
    deleted_screenshots: Optional[str] = Form(None),
    updated_captions: Optional[str] = Form(None),
    screenshots: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
    current_user: SessionUser = Depends(get_mutating_user)
):
    """
    Update a report

    Employees may only edit their own reports within the edit window; admins
    may edit any report. deleted_screenshots is a JSON array of screenshot
    ids, updated_captions a JSON object of screenshot id to caption.
    """
    check_report_mutation(db, current_user, report_id)

    raw_updated = _parse_json_field(updated_captions, "updated_captions", dict)
    try:
        updated = {int(k): str(v) if v is not None else "" for k, v in raw_updated.items()}
        deleted_ids = [int(i) for i in _parse_json_field(deleted_screenshots, "deleted_screenshots", list)]
    except (TypeError, ValueError):
        raise ValidationFailed("Screenshot ids must be integers")

    fields = ReportFields(
        employee_id=employee_id,
        date=date,
        hours=hours,
        project=project,
        description=description,
        captions=_parse_captions(captions),
        deleted_screenshot_ids=deleted_ids,
        updated_captions=updated,
    )
    files = await read_uploads(screenshots)
    return update_report(db, current_user, report_id, fields, files, storage)


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report_endpoint(
    report_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
    current_user: SessionUser = Depends(get_mutating_user)
):
    delete_report(db, current_user, report_id, storage)
    return MessageResponse(message="Report deleted successfully")
