"""
Tests for attendance endpoints (validate-location, punch-in/out, heartbeat, today, presence)
"""
import math

import pytest
from fastapi import status
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models.attendance import AttendanceDay
from app.models.employee import Employee, Role

OFFICE_LAT = 17.489313654492967
OFFICE_LNG = 78.39285505628658
OFFICE_IP = "103.206.104.149"
HOME_IP = "49.37.1.2"


def offset_north(meters: float) -> float:
    return OFFICE_LAT + math.degrees(meters / 6371000)


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


def get_auth_token(client, emp_code, password):
    """Helper to get auth token"""
    response = client.post(
        "/api/v1/auth/login",
        json={"emp_code": emp_code, "password": password}
    )
    return response.json()["access_token"]


@pytest.fixture
def auth_headers(client, test_employee):
    token = get_auth_token(client, "EMP001", "testpass123")
    return {"Authorization": f"Bearer {token}"}


def _office_body(**overrides):
    body = {"latitude": OFFICE_LAT, "longitude": OFFICE_LNG, "ip_address": OFFICE_IP}
    body.update(overrides)
    return body


def test_validate_location_at_office(client, auth_headers):
    response = client.post("/api/v1/attendance/validate-location", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["valid"] is True
    assert data["location_valid"] is True
    assert data["wifi_valid"] is True
    assert data["distance_meters"] == 0
    assert data["office_location"]["radius_meters"] == 50
    assert data["employee_location"]["ip_address"] == OFFICE_IP


def test_validate_location_reports_both_checks(client, auth_headers, db):
    response = client.post(
        "/api/v1/attendance/validate-location",
        json=_office_body(latitude=offset_north(60), ip_address=HOME_IP),
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["valid"] is False
    assert data["location_valid"] is False
    assert data["wifi_valid"] is False
    assert data["location_error"] == "Location is 60.00 meters away from office. Must be within 50 meters."
    assert HOME_IP in data["wifi_error"]
    # Dry run: nothing recorded
    assert db.query(AttendanceDay).count() == 0


def test_validate_location_invalid_coordinates(client, auth_headers):
    response = client.post(
        "/api/v1/attendance/validate-location",
        json=_office_body(latitude=123.0),
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    data = response.json()
    assert data["detail"] == "Invalid latitude or longitude"
    assert data["reason"] == "INVALID_COORDINATES"
    assert data["error_type"] == "ValidationError"


def test_attendance_requires_auth(client):
    response = client.post("/api/v1/attendance/punch-in", json=_office_body())
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_punch_in_success(client, auth_headers, test_employee):
    response = client.post("/api/v1/attendance/punch-in", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"] == "Punched in successfully"
    assert data["attendance"]["employee_id"] == test_employee.id
    assert data["attendance"]["status"] == "INSIDE_OFFICE"
    assert data["punch_in_count"] == 1
    # API datetimes are in settings.TZ
    assert data["attendance"]["last_punch_in_at"].endswith("+05:30")


def test_punch_in_accepts_camel_case_ip(client, auth_headers):
    body = {"latitude": OFFICE_LAT, "longitude": OFFICE_LNG, "ipAddress": OFFICE_IP}
    response = client.post("/api/v1/attendance/punch-in", json=body, headers=auth_headers)
    assert response.status_code == status.HTTP_201_CREATED


def test_punch_in_falls_back_to_forwarded_ip(client, auth_headers):
    headers = dict(auth_headers)
    headers["X-Forwarded-For"] = f"{OFFICE_IP}, 10.0.0.1"
    response = client.post(
        "/api/v1/attendance/punch-in",
        json={"latitude": OFFICE_LAT, "longitude": OFFICE_LNG},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["punch_events"][0]["ip_address"] == OFFICE_IP


def test_punch_in_twice_rejected(client, auth_headers):
    client.post("/api/v1/attendance/punch-in", json=_office_body(), headers=auth_headers)
    response = client.post("/api/v1/attendance/punch-in", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    data = response.json()
    assert data["detail"] == "You are already punched in. Please punch out first."
    assert data["error_type"] == "StateConflictError"


def test_punch_in_off_wifi_rejected_with_context(client, auth_headers):
    response = client.post(
        "/api/v1/attendance/punch-in",
        json=_office_body(ip_address=HOME_IP),
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    data = response.json()
    assert data["reason"] == "WIFI"
    assert data["location_valid"] is True
    assert data["wifi_valid"] is False
    assert data["detail"].startswith("Not connected to office Wi-Fi")


def test_punch_in_missing_coordinates_is_422(client, auth_headers):
    response = client.post("/api/v1/attendance/punch-in", json={"ip_address": OFFICE_IP}, headers=auth_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_punch_out_without_punch_in_not_found(client, auth_headers):
    response = client.post("/api/v1/attendance/punch-out", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "No attendance record found for today"


def test_heartbeat_flow(client, auth_headers):
    client.post("/api/v1/attendance/punch-in", json=_office_body(), headers=auth_headers)

    # Empty heartbeat: no signal counts as outside
    response = client.post("/api/v1/attendance/heartbeat", json={}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["action"] == "MARKED_OUT"
    assert data["reason"] == "GEO_FENCE_EXIT"
    assert data["inside_office"] is False

    response = client.get("/api/v1/attendance/presence", headers=auth_headers)
    assert response.json()["status"] == "OUT_OF_OFFICE"

    response = client.post("/api/v1/attendance/heartbeat", json=_office_body(), headers=auth_headers)
    data = response.json()
    assert data["action"] == "MARKED_IN"
    assert data["message"] == "Back IN OFFICE"

    response = client.get("/api/v1/attendance/presence", headers=auth_headers)
    data = response.json()
    assert data["status"] == "INSIDE_OFFICE"
    assert data["out_count"] == 1


def test_heartbeat_with_malformed_fields_counts_as_outside(client, auth_headers):
    client.post("/api/v1/attendance/punch-in", json=_office_body(), headers=auth_headers)
    response = client.post(
        "/api/v1/attendance/heartbeat",
        json={"latitude": "north", "longitude": OFFICE_LNG, "ip_address": OFFICE_IP},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["action"] == "MARKED_OUT"


def test_heartbeat_without_punch_in(client, auth_headers):
    response = client.post("/api/v1/attendance/heartbeat", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["action"] == "NOT_PUNCHED_IN"
    assert data["punched_in"] is False


def test_today_and_punch_out(client, auth_headers):
    response = client.get("/api/v1/attendance/today", headers=auth_headers)
    assert response.json()["status"] == "NOT_PUNCHED_IN"

    client.post("/api/v1/attendance/punch-in", json=_office_body(), headers=auth_headers)
    response = client.get("/api/v1/attendance/today", headers=auth_headers)
    data = response.json()
    assert data["punched_in"] is True
    assert data["inside_office"] is True
    assert data["status"] == "INSIDE_OFFICE"

    response = client.post("/api/v1/attendance/punch-out", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["message"] == "Punched out successfully"
    assert data["status"] == "ABSENT"
    assert data["punch_out_count"] == 1
    assert data["net_working_minutes"] >= 0

    response = client.get("/api/v1/attendance/presence", headers=auth_headers)
    assert response.json()["status"] == "PUNCHED_OUT"

    response = client.post("/api/v1/attendance/punch-out", json=_office_body(), headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Already punched out for today"
