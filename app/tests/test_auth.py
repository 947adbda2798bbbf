"""
Tests for authentication endpoints, token handling and role guards
"""
import pytest
from fastapi import status
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.models.employee import Employee, Role
from app.core.security import create_access_token, decode_token, hash_password, verify_password


@pytest.fixture
def test_employee(db: Session):
    """Create a test employee"""
    employee = Employee(
        emp_code="EMP001",
        name="Test Employee",
        role=Role.EMPLOYEE.value,
        password_hash=hash_password("testpass123"),
        active=True
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def test_hr_employee(db: Session):
    """Create a test HR employee"""
    employee = Employee(
        emp_code="HR001",
        name="Test HR",
        role=Role.HR.value,
        password_hash=hash_password("hrpass123"),
        active=True
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def test_admin(db: Session):
    """Create a test admin"""
    employee = Employee(
        emp_code="ADM001",
        name="Test Admin",
        role=Role.ADMIN.value,
        password_hash=hash_password("adminpass123"),
        active=True
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def inactive_employee(db: Session):
    """Create an inactive test employee"""
    employee = Employee(
        emp_code="INACTIVE001",
        name="Inactive Employee",
        role=Role.EMPLOYEE.value,
        password_hash=hash_password("testpass123"),
        active=False
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def _login(client, emp_code, password):
    return client.post(
        "/api/v1/auth/login",
        json={
            "emp_code": emp_code,
            "password": password
        }
    )


def test_auth_login_success(client, db, test_employee):
    """Test successful login returns 200 and access_token"""
    response = _login(client, "EMP001", "testpass123")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert len(data["access_token"]) > 0
    assert db.query(AuditLog).filter(AuditLog.action == "AUTH_LOGIN_SUCCESS").count() == 1


def test_auth_login_wrong_password(client, test_employee):
    """Test login with wrong password returns 401"""
    response = _login(client, "EMP001", "wrongpassword")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    data = response.json()
    assert "detail" in data


def test_auth_login_invalid_emp_code(client):
    """Test login with invalid emp_code returns 401"""
    response = _login(client, "INVALID001", "testpass123")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_auth_login_empty_credentials_rejected(client):
    response = _login(client, "", "")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_auth_inactive_user_blocked(client, inactive_employee):
    """Test inactive user cannot login - returns 403"""
    response = _login(client, "INACTIVE001", "testpass123")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    data = response.json()
    assert "inactive" in data["detail"].lower()


def test_token_claims(client, test_hr_employee):
    """Token carries emp_code, role and the employee id as a string sub"""
    token = _login(client, "HR001", "hrpass123").json()["access_token"]

    payload = decode_token(token)
    assert payload["role"] == "HR"
    assert payload.get("emp_code") == "HR001"
    # sub is a string in JWT (per JWT spec)
    assert int(payload.get("sub")) == test_hr_employee.id


def test_invalid_token_rejected(client):
    response = client.get(
        "/api/v1/attendance/today",
        headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_token_for_deleted_user_rejected(client):
    token = create_access_token({"sub": "9999"})
    response = client.get("/api/v1/attendance/today", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "User not found"


def test_role_guard_blocks_unauthorized_access(client, test_employee):
    """EMPLOYEE cannot read office settings (HR/ADMIN only)"""
    token = _login(client, "EMP001", "testpass123").json()["access_token"]

    response = client.get(
        "/api/v1/admin/office-settings",
        headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_role_guard_allows_authorized_access(client, test_hr_employee):
    token = _login(client, "HR001", "hrpass123").json()["access_token"]

    response = client.get(
        "/api/v1/admin/office-settings",
        headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == status.HTTP_200_OK


def test_admin_passes_every_role_guard(client, test_admin):
    token = _login(client, "ADM001", "adminpass123").json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/v1/admin/office-settings", headers=headers).status_code == status.HTTP_200_OK
    assert client.get("/api/v1/admin/attendance/today", headers=headers).status_code == status.HTTP_200_OK


def test_password_hashing():
    hashed = hash_password("s3cret")
    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed) is True
    assert verify_password("wrong", hashed) is False
    assert verify_password("s3cret", None) is False
    assert verify_password("s3cret", "not-a-bcrypt-hash") is False


def test_decode_token_rejects_garbage():
    with pytest.raises(ValueError, match="Invalid token"):
        decode_token("garbage")
