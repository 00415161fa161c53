"""
Tests for the edit window and mutation guard
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import Forbidden, ForbiddenReason, NotFound
from app.models.user import Role
from app.schemas.auth import SessionUser
from app.services.report_policy import (
    can_edit,
    check_report_creation,
    check_report_mutation,
    is_within_edit_window,
)
from app.services.scope_service import visible_employee_id

CREATED = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _user(role, employee_id=None):
    return SessionUser(id=1, username="u", role=role, employee_id=employee_id)


def test_edit_window_boundary_is_inclusive():
    assert is_within_edit_window(CREATED, now=CREATED + timedelta(days=3))
    assert not is_within_edit_window(CREATED, now=CREATED + timedelta(days=3, microseconds=1))
    assert is_within_edit_window(CREATED, now=CREATED + timedelta(days=2, hours=23))


def test_edit_window_accepts_naive_created_at():
    naive = CREATED.replace(tzinfo=None)
    assert is_within_edit_window(naive, now=CREATED + timedelta(days=1))


def test_edit_window_custom_length():
    assert not is_within_edit_window(CREATED, now=CREATED + timedelta(days=2), days=1)


def test_admin_passes_without_lookup(db):
    assert check_report_mutation(db, _user(Role.ADMIN), 12345) is None


def test_viewer_is_read_only(db):
    with pytest.raises(Forbidden) as exc:
        check_report_mutation(db, _user(Role.VIEWER), 1)
    assert exc.value.reason == ForbiddenReason.VIEWER_READ_ONLY


def test_employee_missing_report(db, employee):
    with pytest.raises(NotFound):
        check_report_mutation(db, _user(Role.EMPLOYEE, employee.id), 999)


def test_employee_without_link_is_not_owner(db, employee, make_report):
    report = make_report(employee)
    with pytest.raises(Forbidden) as exc:
        check_report_mutation(db, _user(Role.EMPLOYEE, None), report.id)
    assert exc.value.reason == ForbiddenReason.NOT_OWNER


def test_employee_lock_uses_clock(db, employee, make_report):
    report = make_report(employee, created_at=CREATED)
    user = _user(Role.EMPLOYEE, employee.id)

    assert check_report_mutation(db, user, report.id, now=CREATED + timedelta(days=3)).id == report.id
    with pytest.raises(Forbidden) as exc:
        check_report_mutation(db, user, report.id, now=CREATED + timedelta(days=3, seconds=1))
    assert exc.value.reason == ForbiddenReason.REPORT_LOCKED


def test_creation_rules():
    check_report_creation(_user(Role.ADMIN), 5)
    check_report_creation(_user(Role.EMPLOYEE, 5), 5)
    with pytest.raises(Forbidden):
        check_report_creation(_user(Role.EMPLOYEE, 5), 6)
    with pytest.raises(Forbidden):
        check_report_creation(_user(Role.VIEWER), 5)


def test_can_edit_flags(db, employee, make_report):
    report = make_report(employee, created_at=CREATED)
    within = CREATED + timedelta(days=1)
    assert can_edit(_user(Role.ADMIN), report, within)
    assert can_edit(_user(Role.EMPLOYEE, employee.id), report, within)
    assert not can_edit(_user(Role.EMPLOYEE, employee.id + 1), report, within)
    assert not can_edit(_user(Role.VIEWER), report, within)
    assert not can_edit(_user(Role.EMPLOYEE, employee.id), report, CREATED + timedelta(days=4))


def test_visible_employee_id():
    assert visible_employee_id(_user(Role.ADMIN), 7) == 7
    assert visible_employee_id(_user(Role.VIEWER)) is None
    assert visible_employee_id(_user(Role.EMPLOYEE, 3), 7) == 3
    assert visible_employee_id(_user(Role.EMPLOYEE, None), 7) == -1
