"""
Tests for employee endpoints
"""
from datetime import timedelta

from fastapi import status

from app.models import EodReport, Employee, Screenshot
from app.services.storage import IncomingFile
from app.utils.datetime_utils import now_utc


def test_list_employees_scoped(admin_client, viewer_client, employee_client, employee, other_employee):
    assert len(admin_client.get("/api/employees").json()) == 2
    assert len(viewer_client.get("/api/employees").json()) == 2
    own = employee_client.get("/api/employees").json()
    assert [e["id"] for e in own] == [employee.id]


def test_get_employee_scoped(employee_client, employee, other_employee):
    assert employee_client.get(f"/api/employees/{employee.id}").status_code == status.HTTP_200_OK
    assert employee_client.get(f"/api/employees/{other_employee.id}").status_code == status.HTTP_403_FORBIDDEN


def test_create_employee(admin_client):
    response = admin_client.post(
        "/api/employees",
        json={"name": "Carol White", "email": "Carol@Example.com", "role": "Designer", "hourly_rate": "65.5"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["email"] == "carol@example.com"
    assert data["hourly_rate"] == 65.5


def test_create_employee_duplicate_email(admin_client, employee):
    response = admin_client.post(
        "/api/employees",
        json={"name": "Alice Again", "email": "ALICE@example.com", "role": "Developer"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Email already exists"


def test_employee_changes_are_admin_only(employee_client, viewer_client, employee):
    for c in (employee_client, viewer_client):
        assert c.post(
            "/api/employees", json={"name": "X", "email": "x@example.com", "role": "Dev"}
        ).status_code == status.HTTP_403_FORBIDDEN
        assert c.put(f"/api/employees/{employee.id}", json={"name": "X"}).status_code == status.HTTP_403_FORBIDDEN
        assert c.delete(f"/api/employees/{employee.id}").status_code == status.HTTP_403_FORBIDDEN


def test_update_employee(admin_client, employee):
    response = admin_client.put(f"/api/employees/{employee.id}", json={"role": "Lead Developer"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["role"] == "Lead Developer"
    assert response.json()["name"] == "Alice Smith"


def test_update_missing_employee(admin_client):
    assert admin_client.put("/api/employees/999", json={"name": "X"}).status_code == status.HTTP_404_NOT_FOUND


def test_delete_employee_cascades_reports(db, admin_client, make_employee, make_report, storage):
    carol = make_employee("Carol White")
    report = make_report(carol)
    url = storage.store(IncomingFile(filename="shot.png", content_type="image/png", data=b"png"))
    db.add(Screenshot(report_id=report.id, filename="shot.png", filepath=url))
    db.commit()

    response = admin_client.delete(f"/api/employees/{carol.id}")
    assert response.status_code == status.HTTP_200_OK
    db.expire_all()
    assert db.query(Employee).filter(Employee.id == carol.id).first() is None
    assert db.query(EodReport).count() == 0
    assert db.query(Screenshot).count() == 0
    assert not (storage.root / url.rsplit("/", 1)[1]).exists()


def test_delete_linked_employee_refused(admin_client, employee_user, employee):
    response = admin_client.delete(f"/api/employees/{employee.id}")
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_last_report(employee_client, employee, other_employee, make_report):
    make_report(employee, report_date=now_utc().date() - timedelta(days=1), project="Old")
    make_report(employee, report_date=now_utc().date(), project="New")

    response = employee_client.get(f"/api/employees/{employee.id}/last-report")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["project"] == "New"

    assert employee_client.get(f"/api/employees/{other_employee.id}/last-report").status_code == 403


def test_last_report_none(admin_client, employee):
    response = admin_client.get(f"/api/employees/{employee.id}/last-report")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() is None
