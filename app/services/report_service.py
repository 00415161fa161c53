"""
Report service - EOD reports, screenshots and role-scoped analytics

Every read goes through scope_reports; every write goes through the guards in
report_policy before any row or blob is touched.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from app.core.errors import NotFound, ValidationFailed
from app.models.employee import Employee
from app.models.report import EodReport, Screenshot
from app.schemas.auth import SessionUser
from app.schemas.report import (
    CostRow,
    CostsOut,
    CostSummary,
    GalleryItem,
    MissingEmployee,
    MissingEodsOut,
    ReportFields,
    ReportOut,
    ScreenshotOut,
    StatsOut,
)
from app.services.audit_service import log_audit
from app.services.report_policy import can_edit, check_report_creation, check_report_mutation
from app.services.scope_service import ensure_can_read_employee, scope_reports, visible_employee_id
from app.services.storage import BlobStorage, IncomingFile
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _apply_filters(
    query: Query,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project: Optional[str] = None,
) -> Query:
    if start_date and end_date and start_date > end_date:
        raise ValidationFailed("start_date must be <= end_date")
    if start_date:
        query = query.filter(EodReport.date >= start_date)
    if end_date:
        query = query.filter(EodReport.date <= end_date)
    if project:
        query = query.filter(EodReport.project == project)
    return query


def report_to_out(report: EodReport, user: SessionUser, now: Optional[datetime] = None) -> ReportOut:
    employee = report.employee
    return ReportOut(
        id=report.id,
        employee_id=report.employee_id,
        employee_name=employee.name if employee else None,
        employee_email=employee.email if employee else None,
        employee_role=employee.role if employee else None,
        date=report.date,
        hours=float(report.hours),
        project=report.project,
        description=report.description,
        created_at=report.created_at,
        editable=can_edit(user, report, now),
        screenshots=[ScreenshotOut.model_validate(s) for s in report.screenshots],
    )


def list_reports(
    db: Session,
    user: SessionUser,
    employee_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project: Optional[str] = None,
) -> List[ReportOut]:
    """Reports visible to user, newest first, with employee details and screenshots"""
    query = db.query(EodReport).options(
        joinedload(EodReport.employee),
        selectinload(EodReport.screenshots),
    )
    query = scope_reports(query, user, employee_id)
    query = _apply_filters(query, start_date, end_date, project)
    reports = query.order_by(EodReport.date.desc(), EodReport.created_at.desc(), EodReport.id.desc()).all()
    now = now_utc()
    return [report_to_out(r, user, now) for r in reports]


def get_report(db: Session, user: SessionUser, report_id: int) -> ReportOut:
    report = (
        db.query(EodReport)
        .options(joinedload(EodReport.employee), selectinload(EodReport.screenshots))
        .filter(EodReport.id == report_id)
        .first()
    )
    if report is None:
        raise NotFound("Report not found")
    ensure_can_read_employee(user, report.employee_id)
    return report_to_out(report, user)


def get_last_report(db: Session, user: SessionUser, employee_id: int) -> Optional[ReportOut]:
    """Latest report of one employee, used to prefill a new report"""
    ensure_can_read_employee(user, employee_id)
    report = (
        db.query(EodReport)
        .options(joinedload(EodReport.employee), selectinload(EodReport.screenshots))
        .filter(EodReport.employee_id == employee_id)
        .order_by(EodReport.date.desc(), EodReport.created_at.desc())
        .first()
    )
    return report_to_out(report, user) if report else None


def _require_employee(db: Session, employee_id: int) -> None:
    if db.query(Employee.id).filter(Employee.id == employee_id).first() is None:
        raise ValidationFailed(f"Employee with id {employee_id} not found")


def _store_blobs(storage: BlobStorage, files: List[IncomingFile]) -> List[str]:
    urls = []
    try:
        for f in files:
            urls.append(storage.store(f))
    except Exception:
        storage.delete_many(urls)
        raise
    return urls


def create_report(
    db: Session,
    user: SessionUser,
    fields: ReportFields,
    files: List[IncomingFile],
    storage: BlobStorage,
) -> ReportOut:
    """
    Create a report and its screenshots in one transaction

    Blobs are stored first; if the transaction fails they are deleted again.
    """
    employee_id = fields.employee_id
    if employee_id is None and user.employee_id is not None:
        employee_id = user.employee_id
    check_report_creation(user, employee_id)

    if employee_id is None or fields.date is None or fields.hours is None:
        raise ValidationFailed("Employee ID, date, and hours are required")
    _require_employee(db, employee_id)

    urls = _store_blobs(storage, files)
    try:
        report = EodReport(
            employee_id=employee_id,
            date=fields.date,
            hours=fields.hours,
            project=fields.project or "",
            description=fields.description or "",
            created_at=now_utc(),
        )
        db.add(report)
        db.flush()
        for index, (f, url) in enumerate(zip(files, urls)):
            caption = fields.captions[index] if index < len(fields.captions) else ""
            db.add(Screenshot(report_id=report.id, filename=f.filename, filepath=url, caption=caption))
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_many(urls)
        raise
    db.refresh(report)

    log_audit(
        db=db,
        actor_id=user.id,
        action="REPORT_CREATE",
        entity_type="report",
        entity_id=report.id,
        meta={"employee_id": employee_id, "date": fields.date, "screenshots": len(urls)},
    )
    return report_to_out(report, user)


def update_report(
    db: Session,
    user: SessionUser,
    report_id: int,
    fields: ReportFields,
    files: List[IncomingFile],
    storage: BlobStorage,
) -> ReportOut:
    """
    Update a report, drop removed screenshots, recaption and add new ones

    All row changes happen in one transaction; blobs of removed screenshots
    are deleted only after it commits.
    """
    report = check_report_mutation(db, user, report_id)
    if report is None:
        report = db.query(EodReport).filter(EodReport.id == report_id).first()
        if report is None:
            raise NotFound("Report not found")

    if fields.employee_id is not None and fields.employee_id != report.employee_id:
        check_report_creation(user, fields.employee_id)
        _require_employee(db, fields.employee_id)

    urls = _store_blobs(storage, files)
    removed_urls: List[str] = []
    try:
        if fields.employee_id is not None:
            report.employee_id = fields.employee_id
        if fields.date is not None:
            report.date = fields.date
        if fields.hours is not None:
            report.hours = fields.hours
        if fields.project is not None:
            report.project = fields.project
        if fields.description is not None:
            report.description = fields.description

        if fields.deleted_screenshot_ids:
            doomed = (
                db.query(Screenshot)
                .filter(Screenshot.report_id == report.id, Screenshot.id.in_(fields.deleted_screenshot_ids))
                .all()
            )
            for screenshot in doomed:
                removed_urls.append(screenshot.filepath)
                db.delete(screenshot)

        for screenshot_id, caption in fields.updated_captions.items():
            db.query(Screenshot).filter(
                Screenshot.id == screenshot_id, Screenshot.report_id == report.id
            ).update({Screenshot.caption: caption}, synchronize_session=False)

        for index, (f, url) in enumerate(zip(files, urls)):
            caption = fields.captions[index] if index < len(fields.captions) else ""
            db.add(Screenshot(report_id=report.id, filename=f.filename, filepath=url, caption=caption))
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_many(urls)
        raise

    storage.delete_many(removed_urls)
    db.refresh(report)
    log_audit(
        db=db,
        actor_id=user.id,
        action="REPORT_UPDATE",
        entity_type="report",
        entity_id=report.id,
        meta={
            "screenshots_added": len(urls),
            "screenshots_removed": len(removed_urls),
        },
    )
    return report_to_out(report, user)


def delete_report(db: Session, user: SessionUser, report_id: int, storage: BlobStorage) -> None:
    check_report_mutation(db, user, report_id)
    report = db.query(EodReport).filter(EodReport.id == report_id).first()
    if report is None:
        raise NotFound("Report not found")

    urls = [s.filepath for s in report.screenshots]
    db.delete(report)
    db.commit()
    storage.delete_many(urls)
    log_audit(db=db, actor_id=user.id, action="REPORT_DELETE", entity_type="report", entity_id=report_id)


def bulk_delete_reports(db: Session, user: SessionUser, report_ids: List[int], storage: BlobStorage) -> List[int]:
    """Delete several reports; every id passes the guard before anything is deleted"""
    report_ids = list(dict.fromkeys(report_ids))
    for report_id in report_ids:
        check_report_mutation(db, user, report_id)

    reports = (
        db.query(EodReport)
        .options(selectinload(EodReport.screenshots))
        .filter(EodReport.id.in_(report_ids))
        .all()
    )
    deleted_ids = [r.id for r in reports]
    urls = [s.filepath for r in reports for s in r.screenshots]
    for report in reports:
        db.delete(report)
    db.commit()
    storage.delete_many(urls)
    log_audit(
        db=db,
        actor_id=user.id,
        action="REPORT_DELETE",
        entity_type="report",
        meta={"report_ids": deleted_ids},
    )
    return deleted_ids


def list_projects(db: Session, user: SessionUser, employee_id: Optional[int] = None) -> List[str]:
    query = db.query(EodReport.project).filter(EodReport.project.isnot(None), EodReport.project != "")
    query = scope_reports(query, user, employee_id)
    return [row[0] for row in query.distinct().order_by(EodReport.project).all()]


def get_stats(
    db: Session,
    user: SessionUser,
    employee_id: Optional[int] = None,
    today: Optional[date] = None,
) -> StatsOut:
    """Dashboard counters over the reports visible to user"""
    today = today or now_utc().date()
    scoped_id = visible_employee_id(user, employee_id)

    employees = db.query(func.count(Employee.id))
    if scoped_id is not None:
        employees = employees.filter(Employee.id == scoped_id)

    total_reports = scope_reports(db.query(func.count(EodReport.id)), user, employee_id).scalar()
    total_hours = scope_reports(db.query(func.sum(EodReport.hours)), user, employee_id).scalar()
    reports_today = (
        scope_reports(db.query(func.count(EodReport.id)), user, employee_id)
        .filter(EodReport.date == today)
        .scalar()
    )
    return StatsOut(
        totalEmployees=employees.scalar() or 0,
        totalReports=total_reports or 0,
        totalHours=float(total_hours or 0),
        reportsToday=reports_today or 0,
    )


def list_gallery(
    db: Session,
    user: SessionUser,
    employee_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project: Optional[str] = None,
) -> List[GalleryItem]:
    query = (
        db.query(Screenshot, EodReport, Employee)
        .join(EodReport, Screenshot.report_id == EodReport.id)
        .join(Employee, EodReport.employee_id == Employee.id)
    )
    query = scope_reports(query, user, employee_id)
    query = _apply_filters(query, start_date, end_date, project)
    rows = query.order_by(EodReport.date.desc(), Screenshot.id.asc()).all()
    return [
        GalleryItem(
            id=shot.id,
            report_id=report.id,
            filename=shot.filename,
            filepath=shot.filepath,
            caption=shot.caption,
            uploaded_at=shot.uploaded_at,
            date=report.date,
            project=report.project,
            employee_id=employee.id,
            employee_name=employee.name,
        )
        for shot, report, employee in rows
    ]


def get_costs(
    db: Session,
    user: SessionUser,
    employee_id: Optional[int] = None,
    project: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> CostsOut:
    """Hours times hourly rate per employee, highest cost first"""
    query = (
        db.query(
            EodReport.employee_id,
            Employee.name,
            Employee.hourly_rate,
            func.sum(EodReport.hours).label("total_hours"),
            func.count(EodReport.id).label("report_count"),
        )
        .join(Employee, EodReport.employee_id == Employee.id)
    )
    query = scope_reports(query, user, employee_id)
    query = _apply_filters(query, start_date, end_date, project)
    rows = query.group_by(EodReport.employee_id, Employee.name, Employee.hourly_rate).all()

    cost_rows = []
    for row in rows:
        hours = Decimal(str(row.total_hours or 0))
        rate = Decimal(str(row.hourly_rate or 0))
        cost_rows.append(CostRow(
            employee_id=row.employee_id,
            employee_name=row.name,
            hourly_rate=float(rate),
            total_hours=float(hours),
            report_count=row.report_count,
            total_cost=float(hours * rate),
        ))
    cost_rows.sort(key=lambda r: r.total_cost, reverse=True)

    grand_total = sum(r.total_cost for r in cost_rows)
    total_hours = sum(r.total_hours for r in cost_rows)
    return CostsOut(
        employees=cost_rows,
        summary=CostSummary(
            total_cost=grand_total,
            total_hours=total_hours,
            average_rate=grand_total / total_hours if total_hours > 0 else 0,
        ),
    )


def get_missing_eods(db: Session, target_date: Optional[date] = None) -> MissingEodsOut:
    """Employees without a report on target_date (admin/viewer only, enforced at the route)"""
    target_date = target_date or now_utc().date()
    employees = db.query(Employee).order_by(Employee.name).all()
    reported_ids = {
        row[0]
        for row in db.query(EodReport.employee_id).filter(EodReport.date == target_date).distinct().all()
    }
    missing = [e for e in employees if e.id not in reported_ids]
    return MissingEodsOut(
        date=target_date,
        total_employees=len(employees),
        reported=len(reported_ids),
        missing=len(missing),
        missing_employees=[MissingEmployee(id=e.id, name=e.name, role=e.role) for e in missing],
    )
