"""
Pytest configuration and fixtures
"""
import os
import tempfile

# Keep the import-time engine and upload mount away from the working tree
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="eod-uploads-"))

from datetime import timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.core.deps import get_db  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.models import Employee, EodReport, Role, User, ViewerAccess  # noqa: E402
from app.services.storage import LocalBlobStorage, get_storage  # noqa: E402
from app.utils.datetime_utils import now_utc  # noqa: E402


# Use in-memory SQLite for testing; foreign keys are switched on by the
# engine listener in app.db.session
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_PASSWORD = "adminpass123"
EMPLOYEE_PASSWORD = "emppass123"
VIEWER_PASSWORD = "viewpass123"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def storage(tmp_path):
    return LocalBlobStorage(str(tmp_path / "uploads"), "/uploads")


@pytest.fixture(scope="function")
def client_factory(db, storage):
    """Each call returns a client with its own cookie jar, all sharing the test database"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield lambda: TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(client_factory):
    """Anonymous test client"""
    return client_factory()


@pytest.fixture
def make_employee(db):
    def _make(name="Test Employee", email=None, role="Developer", hourly_rate="50.00"):
        employee = Employee(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            role=role,
            hourly_rate=Decimal(hourly_rate),
        )
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee
    return _make


@pytest.fixture
def make_user(db):
    def _make(username, password, role, employee_id=None, is_active=True):
        user = User(
            username=username,
            password_hash=hash_password(password),
            role=role.value,
            employee_id=employee_id,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_grant(db):
    def _make(user, expires_in=timedelta(days=3), revoked=False, created_at=None, created_by=None):
        created_at = created_at or now_utc()
        grant = ViewerAccess(
            user_id=user.id,
            created_at=created_at,
            expires_at=created_at + expires_in,
            revoked_at=now_utc() if revoked else None,
            created_by=created_by,
        )
        db.add(grant)
        db.commit()
        db.refresh(grant)
        return grant
    return _make


@pytest.fixture
def make_report(db):
    def _make(employee, report_date=None, hours="8.00", project="Apollo", description="Work done", created_at=None):
        report = EodReport(
            employee_id=employee.id,
            date=report_date or now_utc().date(),
            hours=Decimal(hours),
            project=project,
            description=description,
            created_at=created_at or now_utc(),
        )
        db.add(report)
        db.commit()
        db.refresh(report)
        return report
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", ADMIN_PASSWORD, Role.ADMIN)


@pytest.fixture
def employee(make_employee):
    return make_employee("Alice Smith", "alice@example.com")


@pytest.fixture
def employee_user(make_user, employee):
    return make_user("alice", EMPLOYEE_PASSWORD, Role.EMPLOYEE, employee_id=employee.id)


@pytest.fixture
def other_employee(make_employee):
    return make_employee("Bob Jones", "bob@example.com", hourly_rate="80.00")


@pytest.fixture
def other_user(make_user, other_employee):
    return make_user("bob", EMPLOYEE_PASSWORD, Role.EMPLOYEE, employee_id=other_employee.id)


@pytest.fixture
def viewer_user(make_user, make_grant):
    user = make_user("auditor", VIEWER_PASSWORD, Role.VIEWER)
    make_grant(user)
    return user


@pytest.fixture
def login_as(client_factory):
    """Return a fresh client logged in with the given credentials"""
    def _login(username, password):
        c = client_factory()
        response = c.post("/api/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return c
    return _login


@pytest.fixture
def admin_client(login_as, admin_user):
    return login_as("admin", ADMIN_PASSWORD)


@pytest.fixture
def employee_client(login_as, employee_user):
    return login_as("alice", EMPLOYEE_PASSWORD)


@pytest.fixture
def other_client(login_as, other_user):
    return login_as("bob", EMPLOYEE_PASSWORD)


@pytest.fixture
def viewer_client(login_as, viewer_user):
    return login_as("auditor", VIEWER_PASSWORD)
