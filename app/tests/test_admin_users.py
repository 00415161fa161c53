"""
Tests for admin management of login identities
"""
from fastapi import status

from app.models import User, UserSession

EMPLOYEE_PASSWORD = "emppass123"


def test_admin_routes_require_session(client):
    response = client.get("/api/admin/users")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["code"] == "UNAUTHENTICATED"


def test_admin_routes_reject_employee_and_viewer(employee_client, viewer_client):
    for c in (employee_client, viewer_client):
        response = c.get("/api/admin/users")
        assert response.status_code == status.HTTP_403_FORBIDDEN
        body = response.json()
        assert body["code"] == "FORBIDDEN"
        assert body["reason"] == "insufficient_role"


def test_create_employee_user(admin_client, employee, client):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "alice2", "password": "secret1", "role": "employee", "employee_id": employee.id},
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["username"] == "alice2"
    assert data["role"] == "employee"
    assert data["employee_id"] == employee.id
    assert data["employee_name"] == "Alice Smith"
    assert "password" not in data and "password_hash" not in data

    login = client.post("/api/auth/login", json={"username": "alice2", "password": "secret1"})
    assert login.status_code == status.HTTP_200_OK


def test_create_employee_user_requires_employee_id(admin_client):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "nolink", "password": "secret1", "role": "employee"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "VALIDATION"


def test_create_user_with_unknown_employee(admin_client):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "nolink", "password": "secret1", "role": "employee", "employee_id": 999},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_create_admin_user_drops_employee_link(admin_client, employee):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "boss", "password": "secret1", "role": "admin", "employee_id": employee.id},
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["employee_id"] is None


def test_create_user_duplicate_username(admin_client, employee_user):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "alice", "password": "secret1", "role": "admin"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "DUPLICATE_USERNAME"


def test_create_user_weak_password(admin_client):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "shorty", "password": "12345", "role": "admin"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "WEAK_PASSWORD"


def test_create_user_unknown_role(admin_client):
    response = admin_client.post(
        "/api/admin/users",
        json={"username": "odd", "password": "secret1", "role": "superuser"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "VALIDATION"


def test_list_users(admin_client, employee_user, viewer_user):
    response = admin_client.get("/api/admin/users")
    assert response.status_code == status.HTTP_200_OK
    usernames = {u["username"] for u in response.json()}
    assert usernames == {"admin", "alice", "auditor"}
    alice = next(u for u in response.json() if u["username"] == "alice")
    assert alice["employee_name"] == "Alice Smith"


def test_update_user_keeps_password_when_omitted(admin_client, client, employee_user):
    response = admin_client.put(f"/api/admin/users/{employee_user.id}", json={"username": "alice.s"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == "alice.s"

    login = client.post("/api/auth/login", json={"username": "alice.s", "password": EMPLOYEE_PASSWORD})
    assert login.status_code == status.HTTP_200_OK


def test_update_user_password(admin_client, client, employee_user):
    response = admin_client.put(f"/api/admin/users/{employee_user.id}", json={"password": "changed1"})
    assert response.status_code == status.HTTP_200_OK
    login = client.post("/api/auth/login", json={"username": "alice", "password": "changed1"})
    assert login.status_code == status.HTTP_200_OK


def test_update_user_to_employee_without_link(admin_client, viewer_user):
    response = admin_client.put(f"/api/admin/users/{viewer_user.id}", json={"role": "employee"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_user_duplicate_username(admin_client, employee_user, other_user):
    response = admin_client.put(f"/api/admin/users/{other_user.id}", json={"username": "alice"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "DUPLICATE_USERNAME"


def test_update_missing_user(admin_client):
    response = admin_client.put("/api/admin/users/999", json={"username": "x"})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "NOT_FOUND"


def test_delete_user(db, admin_client, employee_client, employee_user):
    response = admin_client.delete(f"/api/admin/users/{employee_user.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "User deleted successfully"

    db.expire_all()
    assert db.query(User).filter(User.id == employee_user.id).first() is None
    assert db.query(UserSession).filter(UserSession.user_id == employee_user.id).count() == 0
    assert employee_client.get("/api/auth/me").status_code == status.HTTP_401_UNAUTHORIZED


def test_admin_cannot_delete_self(db, admin_client, admin_user):
    response = admin_client.delete(f"/api/admin/users/{admin_user.id}")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "CANNOT_DELETE_SELF"

    db.expire_all()
    assert db.query(User).filter(User.id == admin_user.id).one().is_active is True
    assert admin_client.get("/api/auth/me").status_code == status.HTTP_200_OK


def test_delete_missing_user(admin_client):
    response = admin_client.delete("/api/admin/users/999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
