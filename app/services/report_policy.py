"""
Edit-window policy and report mutation guard

One guard serves update, delete and bulk delete so the rules cannot drift
apart between those paths.
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Forbidden, ForbiddenReason, NotFound
from app.models.report import EodReport
from app.models.user import Role
from app.schemas.auth import SessionUser
from app.utils.datetime_utils import ensure_utc, now_utc


def is_within_edit_window(created_at: datetime, now: Optional[datetime] = None, days: Optional[int] = None) -> bool:
    """True while now - created_at <= window; the boundary itself is still editable"""
    if days is None:
        days = settings.REPORT_EDIT_WINDOW_DAYS
    now = ensure_utc(now) if now else now_utc()
    return now - ensure_utc(created_at) <= timedelta(days=days)


def check_report_mutation(
    db: Session,
    user: SessionUser,
    report_id: int,
    now: Optional[datetime] = None,
) -> Optional[EodReport]:
    """
    Decide whether user may update or delete the report

    Returns:
        The report when it was looked up (employee path), or None for admins,
        who are permitted unconditionally; existence is checked downstream.

    Raises:
        Forbidden: viewer, foreign report, or report outside the edit window
        NotFound: employee targeting a report that does not exist
    """
    if user.role == Role.ADMIN:
        return None
    if user.role == Role.VIEWER:
        raise Forbidden("Viewers cannot edit reports", reason=ForbiddenReason.VIEWER_READ_ONLY)
    if user.role != Role.EMPLOYEE:
        raise ValueError(f"Unhandled role {user.role!r}")

    report = db.query(EodReport).filter(EodReport.id == report_id).first()
    if report is None:
        raise NotFound("Report not found")

    if user.employee_id is None or report.employee_id != user.employee_id:
        raise Forbidden("You can only edit your own reports", reason=ForbiddenReason.NOT_OWNER)

    if not is_within_edit_window(report.created_at, now):
        raise Forbidden(
            f"Report is older than {settings.REPORT_EDIT_WINDOW_DAYS} days. Only admin can edit.",
            reason=ForbiddenReason.REPORT_LOCKED,
        )
    return report


def check_report_creation(user: SessionUser, employee_id: Optional[int]) -> None:
    """Employees file reports only for themselves, viewers never, admins for anyone"""
    if user.role == Role.ADMIN:
        return
    if user.role == Role.VIEWER:
        raise Forbidden("Viewers cannot create reports", reason=ForbiddenReason.VIEWER_READ_ONLY)
    if user.role != Role.EMPLOYEE:
        raise ValueError(f"Unhandled role {user.role!r}")
    if user.employee_id is None or employee_id != user.employee_id:
        raise Forbidden("You can only create reports for yourself", reason=ForbiddenReason.NOT_OWNER)


def can_edit(user: SessionUser, report: EodReport, now: Optional[datetime] = None) -> bool:
    """Non-raising form of the mutation rules, used to flag reports in listings"""
    if user.role == Role.ADMIN:
        return True
    if user.role != Role.EMPLOYEE:
        return False
    return report.employee_id == user.employee_id and is_within_edit_window(report.created_at, now)
