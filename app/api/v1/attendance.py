"""
Attendance endpoints: location dry-run, punch in/out, heartbeat and today's status.
Every role calls these for itself; the employee is always the authenticated user.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, get_office
from app.models.employee import Employee
from app.schemas.office_settings import OfficeSettingsSnapshot
from app.schemas.attendance import (
    AttendanceSnapshot,
    EmployeeLocation,
    HeartbeatRequest,
    LocationRequest,
    MyAttendanceResponse,
    PresenceEvent,
    PresenceStatus,
    PunchOutResult,
    TodayStatus,
    ValidateLocationResponse,
)
from app.services import presence_service, punch_service
from app.services.geofence_service import validate_location_and_ip

router = APIRouter()
_log = logging.getLogger(__name__)


def _client_ip(request: Request) -> Optional[str]:
    """Client IP: X-Forwarded-For (first hop) when behind proxy, else request.client.host."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.post("/validate-location", response_model=ValidateLocationResponse)
async def validate_location_endpoint(
    request: Request,
    payload: LocationRequest,
    db: Session = Depends(get_db),
    office: OfficeSettingsSnapshot = Depends(get_office),
    current_user: Employee = Depends(get_current_user),
):
    """
    Dry run of the punch checks: geofence distance and office Wi-Fi.
    Nothing is recorded.
    """
    ip_address = payload.ip_address or _client_ip(request)
    verdict = validate_location_and_ip(payload.latitude, payload.longitude, ip_address, office)
    return ValidateLocationResponse(
        success=True,
        valid=verdict.valid,
        location_valid=verdict.location_valid,
        wifi_valid=verdict.wifi_valid,
        message="Location and Wi-Fi verified" if verdict.valid else verdict.error,
        location_error=verdict.location_error,
        wifi_error=verdict.wifi_error,
        distance_meters=verdict.distance_meters,
        office_location=office,
        employee_location=EmployeeLocation(
            latitude=payload.latitude,
            longitude=payload.longitude,
            ip_address=ip_address.strip(),
        ),
    )


@router.post("/punch-in", response_model=AttendanceSnapshot, status_code=201)
async def punch_in_endpoint(
    request: Request,
    payload: LocationRequest,
    db: Session = Depends(get_db),
    office: OfficeSettingsSnapshot = Depends(get_office),
    current_user: Employee = Depends(get_current_user),
):
    """
    Punch in for current user. Work date = settings.TZ today.
    Requires being inside the office geofence and on the office Wi-Fi.
    """
    ip_address = payload.ip_address or _client_ip(request)
    _log.debug("punch_in: employee_id=%s ip=%s", current_user.id, ip_address)
    return punch_service.punch_in(
        db,
        employee_id=current_user.id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        ip_address=ip_address,
        office=office,
    )


@router.post("/punch-out", response_model=PunchOutResult)
async def punch_out_endpoint(
    request: Request,
    payload: LocationRequest,
    db: Session = Depends(get_db),
    office: OfficeSettingsSnapshot = Depends(get_office),
    current_user: Employee = Depends(get_current_user),
):
    """Punch out for current user; returns the day's working-time breakdown."""
    ip_address = payload.ip_address or _client_ip(request)
    _log.debug("punch_out: employee_id=%s ip=%s", current_user.id, ip_address)
    return punch_service.punch_out(
        db,
        employee_id=current_user.id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        ip_address=ip_address,
        office=office,
    )


@router.get("/today", response_model=TodayStatus)
async def today_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Current user's attendance for today (live totals while punched in)."""
    return punch_service.get_today_status(db, employee_id=current_user.id)


@router.post("/heartbeat", response_model=PresenceEvent)
async def heartbeat_endpoint(
    payload: Optional[HeartbeatRequest] = None,
    db: Session = Depends(get_db),
    office: OfficeSettingsSnapshot = Depends(get_office),
    current_user: Employee = Depends(get_current_user),
):
    """
    Periodic presence signal from the client. A missing location or IP is
    treated as being outside the office.
    """
    payload = payload or HeartbeatRequest()
    return presence_service.send_heartbeat(
        db,
        employee_id=current_user.id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        ip_address=payload.ip_address,
        office=office,
    )


@router.get("/presence", response_model=PresenceStatus)
async def presence_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return presence_service.get_presence_status(db, employee_id=current_user.id)


@router.get("/my", response_model=MyAttendanceResponse)
async def my_attendance_endpoint(
    month: Optional[int] = Query(None, ge=1, le=12, description="Month (1-12); used together with year"),
    year: Optional[int] = Query(None, ge=2000, le=9999, description="Year; used together with month"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/attendance/my?month=&year= - own day history; last 30 records when month/year are not both given."""
    return punch_service.list_my_days(db, employee_id=current_user.id, month=month, year=year)
