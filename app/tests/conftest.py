"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time: configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-attendance-tests")
os.environ["TZ"] = "Asia/Kolkata"
os.environ["HEARTBEAT_SWEEP_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.core.deps import get_db  # noqa: E402
from app.schemas.office_settings import OfficeSettingsSnapshot  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from app.models import (  # noqa: E402,F401
    Employee,
    Role,
    AuditLog,
    LeaveRequest,
    OfficeSettings,
    AttendanceDay,
    PunchEvent,
    OutPeriod,
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
def office():
    """Office geofence used by service tests (same values as the configured defaults)"""
    return OfficeSettingsSnapshot(
        latitude=17.489313654492967,
        longitude=78.39285505628658,
        radius_meters=50,
        office_public_ip="103.206.104.149",
    )


