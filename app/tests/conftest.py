"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; provide test values before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-attendance-engine")
os.environ.setdefault("APP_ENV", "local")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.core.deps import get_db  # noqa: E402
from app.core.security import hash_password  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from app.models import (  # noqa: E402
    Company,
    Department,
    Employee,
    Role,
    Shift,
)


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db):
    """Session factory bound to the test database (for code that opens its own sessions)"""
    return TestingSessionLocal


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def company(db: Session):
    """Company in UTC with 15 minutes of grace and the standard 480-minute overtime threshold"""
    company = Company(
        name="Acme",
        timezone="UTC",
        grace_time_minutes=15,
        overtime_threshold_minutes=480,
        require_gps_tracking=False,
        is_active=True,
    )
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


@pytest.fixture
def department(db: Session, company):
    dept = Department(company_id=company.id, name="Engineering", active=True)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def shift(db: Session, company):
    """09:00-18:00 Monday-Friday, no shift-level grace"""
    shift = Shift(
        company_id=company.id,
        name="General",
        start_time="09:00",
        end_time="18:00",
        grace_time_in=0,
        working_days=[1, 2, 3, 4, 5],
        half_day_threshold=240,
        is_default=False,
        is_active=True,
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return shift


@pytest.fixture
def make_employee(db: Session, company, department):
    """Factory creating employees of the test company"""
    counter = {"n": 0}

    def _make(role=Role.EMPLOYEE, shift=None, password="testpass123", company_id=None, **kwargs):
        counter["n"] += 1
        employee = Employee(
            company_id=company_id or company.id,
            department_id=kwargs.pop("department_id", department.id),
            shift_id=shift.id if shift is not None else None,
            emp_code=kwargs.pop("emp_code", f"EMP{counter['n']:03d}"),
            name=kwargs.pop("name", f"Employee {counter['n']}"),
            role=role.value,
            password_hash=hash_password(password),
            join_date=date(2025, 1, 1),
            active=kwargs.pop("active", True),
            **kwargs,
        )
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee

    return _make


@pytest.fixture
def employee(make_employee, shift):
    return make_employee(shift=shift, emp_code="EMP001", name="Test Employee")


@pytest.fixture
def hr_user(make_employee):
    return make_employee(role=Role.HR, emp_code="HR001", name="Test HR", password="hrpass123")


def _login(client, emp_code, password):
    response = client.post(
        "/api/v1/auth/login",
        json={"emp_code": emp_code, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    """Helper returning bearer headers for an emp_code/password pair"""
    return lambda emp_code, password="testpass123": _login(client, emp_code, password)
