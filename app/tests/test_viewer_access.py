"""
Tests for temporary viewer access grants
"""
from datetime import timedelta

import pytest
from fastapi import status

from app.core.config import settings
from app.models import User, ViewerAccess
from app.models.user import Role
from app.schemas.auth import SessionUser
from app.schemas.viewer_access import ViewerAccessCreate
from app.services import viewer_access_service
from app.services.access_service import grant_status, is_grant_valid, require_viewer_grant_valid
from app.core.errors import ViewerExpired
from app.utils.datetime_utils import ensure_utc, now_utc

VIEWER_PASSWORD = "viewpass123"


def _create_viewer(admin_client, username="guest", password="guestpass", notes=None):
    payload = {"username": username, "password": password}
    if notes is not None:
        payload["notes"] = notes
    return admin_client.post("/api/admin/viewer-access", json=payload)


def test_create_viewer_access(db, admin_client, admin_user):
    before = now_utc()
    response = _create_viewer(admin_client, notes="Quarterly audit")
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["username"] == "guest"
    assert data["expires_at"].endswith("Z")

    user = db.query(User).filter(User.username == "guest").one()
    assert user.role == Role.VIEWER.value
    assert user.employee_id is None
    grant = db.query(ViewerAccess).filter(ViewerAccess.user_id == user.id).one()
    assert grant.id == data["id"]
    assert grant.created_by == admin_user.id
    assert grant.notes == "Quarterly audit"
    lifetime = ensure_utc(grant.expires_at) - before
    assert timedelta(days=settings.VIEWER_ACCESS_DAYS) <= lifetime < timedelta(days=settings.VIEWER_ACCESS_DAYS, minutes=1)


def test_create_viewer_access_duplicate_username(admin_client, employee_user):
    response = _create_viewer(admin_client, username="alice")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "DUPLICATE_USERNAME"


def test_create_viewer_access_weak_password(db, admin_client):
    response = _create_viewer(admin_client, password="123")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "WEAK_PASSWORD"
    assert db.query(User).filter(User.username == "guest").first() is None


def test_viewer_and_grant_created_atomically(db, admin_user, monkeypatch):
    def broken_grant(*args, **kwargs):
        raise RuntimeError("grant insert failed")

    monkeypatch.setattr(viewer_access_service, "_new_viewer_grant", broken_grant)
    actor = SessionUser(id=admin_user.id, username="admin", role=Role.ADMIN)

    with pytest.raises(RuntimeError):
        viewer_access_service.create_viewer_access(
            db, ViewerAccessCreate(username="guest", password="guestpass"), actor
        )

    assert db.query(User).filter(User.username == "guest").first() is None
    assert db.query(ViewerAccess).count() == 0


def test_viewer_access_is_admin_only(employee_client, viewer_client):
    for c in (employee_client, viewer_client):
        assert c.get("/api/admin/viewer-access").status_code == status.HTTP_403_FORBIDDEN
        assert _create_viewer(c).status_code == status.HTTP_403_FORBIDDEN


def test_revoke_ends_viewer_access(db, admin_client, client_factory):
    grant_id = _create_viewer(admin_client).json()["id"]

    viewer = client_factory()
    assert viewer.post("/api/auth/login", json={"username": "guest", "password": "guestpass"}).status_code == 200
    assert viewer.get("/api/reports").status_code == status.HTTP_200_OK

    response = admin_client.put(f"/api/admin/viewer-access/{grant_id}/revoke")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "revoked"
    assert response.json()["revoked_at"] is not None

    # The open session stops working on its next request
    denied = viewer.get("/api/reports")
    assert denied.status_code == status.HTTP_403_FORBIDDEN
    assert denied.json()["code"] == "VIEWER_EXPIRED"

    relogin = client_factory().post("/api/auth/login", json={"username": "guest", "password": "guestpass"})
    assert relogin.status_code == status.HTTP_403_FORBIDDEN
    assert relogin.json()["code"] == "VIEWER_EXPIRED"

    listing = admin_client.get("/api/admin/viewer-access").json()
    entry = next(g for g in listing if g["id"] == grant_id)
    assert entry["status"] == "revoked"
    assert entry["is_active"] is True
    assert entry["created_by_username"] == "admin"


def test_revoke_keeps_first_timestamp(db, admin_client):
    grant_id = _create_viewer(admin_client).json()["id"]
    first = admin_client.put(f"/api/admin/viewer-access/{grant_id}/revoke").json()["revoked_at"]
    second = admin_client.put(f"/api/admin/viewer-access/{grant_id}/revoke").json()["revoked_at"]
    assert first == second


def test_revoke_missing_grant(admin_client):
    response = admin_client.put("/api/admin/viewer-access/999/revoke")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_expired_grant_blocks_login(client, make_user, make_grant):
    user = make_user("late", VIEWER_PASSWORD, Role.VIEWER)
    make_grant(user, expires_in=timedelta(days=3), created_at=now_utc() - timedelta(days=3, minutes=1))

    response = client.post("/api/auth/login", json={"username": "late", "password": VIEWER_PASSWORD})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "VIEWER_EXPIRED"


def test_viewer_without_grant_cannot_log_in(client, make_user):
    make_user("nogrant", VIEWER_PASSWORD, Role.VIEWER)
    response = client.post("/api/auth/login", json={"username": "nogrant", "password": VIEWER_PASSWORD})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "VIEWER_EXPIRED"


def test_wrong_password_for_viewer_is_invalid_credentials(client, make_user, make_grant):
    user = make_user("late", VIEWER_PASSWORD, Role.VIEWER)
    make_grant(user, revoked=True)
    response = client.post("/api/auth/login", json={"username": "late", "password": "wrong-one"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_only_latest_grant_counts(db, make_user, make_grant):
    user = make_user("multi", VIEWER_PASSWORD, Role.VIEWER)
    make_grant(user, created_at=now_utc() - timedelta(hours=2))
    make_grant(user, created_at=now_utc() - timedelta(hours=1), revoked=True)

    with pytest.raises(ViewerExpired):
        require_viewer_grant_valid(db, user.id)


def test_grant_validity_window(db, make_user, make_grant):
    user = make_user("window", VIEWER_PASSWORD, Role.VIEWER)
    grant = make_grant(user)
    expires_at = ensure_utc(grant.expires_at)

    assert is_grant_valid(grant, now=expires_at - timedelta(seconds=1))
    assert not is_grant_valid(grant, now=expires_at)
    assert grant_status(grant, now=expires_at) == "expired"
    assert grant_status(grant, now=expires_at - timedelta(seconds=1)) == "active"


def test_list_viewer_access_statuses(admin_client, make_user, make_grant):
    active = make_user("active", VIEWER_PASSWORD, Role.VIEWER)
    expired = make_user("expired", VIEWER_PASSWORD, Role.VIEWER)
    revoked = make_user("revoked", VIEWER_PASSWORD, Role.VIEWER)
    make_grant(active)
    make_grant(expired, created_at=now_utc() - timedelta(days=4))
    make_grant(revoked, revoked=True)

    response = admin_client.get("/api/admin/viewer-access")
    assert response.status_code == status.HTTP_200_OK
    statuses = {g["username"]: g["status"] for g in response.json()}
    assert statuses == {"active": "active", "expired": "expired", "revoked": "revoked"}


def test_grant_rechecked_on_each_request_when_enforced(db, viewer_client, viewer_user, monkeypatch):
    grant = db.query(ViewerAccess).filter(ViewerAccess.user_id == viewer_user.id).one()
    grant.expires_at = now_utc() - timedelta(seconds=1)
    db.commit()

    response = viewer_client.get("/api/reports")
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "VIEWER_EXPIRED"

    monkeypatch.setattr(settings, "ENFORCE_VIEWER_GRANT_ON_REQUEST", False)
    assert viewer_client.get("/api/reports").status_code == status.HTTP_200_OK
