"""
Attendance schemas: punch/heartbeat requests, geofence verdict, day snapshots and
presence projections. All datetimes are emitted in settings.TZ.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, field_serializer

from app.schemas.office_settings import OfficeSettingsSnapshot
from app.utils.datetime_utils import iso_local


def _enum_value(v: Any) -> str:
    return v.value if isinstance(v, Enum) else str(v)


class LocationRequest(BaseModel):
    """Body for validate-location, punch-in and punch-out. ip_address (or ipAddress) falls back to the client IP."""
    latitude: float = Field(..., description="GPS latitude [-90, 90]")
    longitude: float = Field(..., description="GPS longitude [-180, 180]")
    ip_address: Optional[str] = Field(None, alias="ipAddress", description="Public IP seen by the client")

    model_config = ConfigDict(populate_by_name=True)


def _coerce_coordinate(v: Any) -> Optional[float]:
    """Heartbeat coordinates: anything that is not a number becomes None (treated as no signal)."""
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


class HeartbeatRequest(BaseModel):
    """Heartbeat body; every field is optional because a missing signal means 'outside office'."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    ip_address: Optional[str] = Field(None, alias="ipAddress")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def lenient_coordinate(cls, v: Any) -> Optional[float]:
        return _coerce_coordinate(v)

    @field_validator("ip_address", mode="before")
    @classmethod
    def lenient_ip(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class GeoVerdict(BaseModel):
    """Result of the geofence + Wi-Fi check. Both sub-verdicts are always reported."""
    location_valid: bool
    wifi_valid: bool
    distance_meters: float
    valid: bool
    location_error: Optional[str] = None
    wifi_error: Optional[str] = None
    error: Optional[str] = None


class EmployeeLocation(BaseModel):
    latitude: float
    longitude: float
    ip_address: str


class ValidateLocationResponse(BaseModel):
    """Dry-run response: verdict plus office and employee location echo."""
    success: bool
    valid: bool
    location_valid: bool
    wifi_valid: bool
    message: Optional[str] = None
    location_error: Optional[str] = None
    wifi_error: Optional[str] = None
    distance_meters: float
    office_location: OfficeSettingsSnapshot
    employee_location: EmployeeLocation


class PunchEventDto(BaseModel):
    id: int
    punch_in_at: datetime
    punched_out_at: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    ip_address: Optional[str] = None
    distance_meters: Optional[float] = None
    is_active: bool
    is_auto_closed: bool = False

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("punch_in_at", "punched_out_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class OutPeriodDto(BaseModel):
    id: int
    out_time: datetime
    in_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    reason: str
    is_active: bool = False

    model_config = ConfigDict(from_attributes=True)

    @field_validator("reason", mode="before")
    @classmethod
    def reason_to_str(cls, v: Any) -> str:
        return _enum_value(v)

    @field_serializer("out_time", "in_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class AttendanceDayDto(BaseModel):
    """Stored state of one employee's work date."""
    id: int
    employee_id: int
    work_date: date
    status: str
    first_punch_in_at: Optional[datetime] = None
    last_punch_in_at: Optional[datetime] = None
    last_punch_out_at: Optional[datetime] = None
    total_out_minutes: int = 0
    out_count: int = 0
    last_heartbeat_at: Optional[datetime] = None
    is_auto_punched_out: bool = False
    last_latitude: Optional[float] = None
    last_longitude: Optional[float] = None
    last_ip_address: Optional[str] = None
    last_distance_meters: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def status_to_str(cls, v: Any) -> str:
        return _enum_value(v)

    @field_serializer(
        "first_punch_in_at", "last_punch_in_at", "last_punch_out_at", "last_heartbeat_at",
        when_used="always",
    )
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class AttendanceSnapshot(BaseModel):
    """Punch-in response: the day record plus its punch history."""
    success: bool = True
    message: str
    attendance: AttendanceDayDto
    punch_events: List[PunchEventDto] = []
    punch_in_count: int = 0
    punch_out_count: int = 0


class PunchOutResult(AttendanceSnapshot):
    """Punch-out response with working-time breakdown."""
    status: str
    out_count: int = 0
    total_out_minutes: int = 0
    total_out_hours: float = 0.0
    net_working_minutes: int = 0
    net_working_hours: float = 0.0
    total_time_minutes: int = 0
    total_time_hours: float = 0.0
    out_sessions: List[OutPeriodDto] = []


class TodayStatus(BaseModel):
    """Read-only projection of today; open sessions are computed up to now."""
    success: bool = True
    punched_in: bool
    punch_in_time: Optional[datetime] = None
    punch_out_time: Optional[datetime] = None
    inside_office: Optional[bool] = None
    last_heartbeat: Optional[datetime] = None
    is_auto_punched_out: bool = False
    punch_in_count: int = 0
    out_count: int = 0
    total_out_minutes: int = 0
    total_out_hours: float = 0.0
    net_working_minutes: int = 0
    net_working_hours: float = 0.0
    total_time_minutes: int = 0
    out_sessions: List[OutPeriodDto] = []
    status: str

    @field_serializer("punch_in_time", "punch_out_time", "last_heartbeat", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class PresenceEvent(BaseModel):
    """Outcome of one heartbeat."""
    success: bool = True
    action: str
    message: str
    punched_in: bool
    inside_office: Optional[bool] = None
    status: str
    location_valid: Optional[bool] = None
    wifi_valid: Optional[bool] = None
    distance_meters: Optional[float] = None
    reason: Optional[str] = None
    out_time: Optional[datetime] = None
    in_time: Optional[datetime] = None
    out_duration_minutes: Optional[int] = None

    @field_serializer("out_time", "in_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class PresenceStatus(BaseModel):
    success: bool = True
    punched_in: bool
    inside_office: bool
    status: str
    last_heartbeat: Optional[datetime] = None
    punch_out_time: Optional[datetime] = None
    out_count: int = 0
    total_out_minutes: int = 0

    @field_serializer("last_heartbeat", "punch_out_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class AdminDayDto(AttendanceDayDto):
    """Day record with employee info and live presence for the admin today list."""
    emp_code: Optional[str] = None
    employee_name: Optional[str] = None
    inside_office: Optional[bool] = None
    net_working_minutes: int = 0


class AdminDayListResponse(BaseModel):
    items: List[AdminDayDto]
    total: int


class MyAttendanceResponse(BaseModel):
    """The caller's own day records, newest first."""
    items: List[AttendanceDayDto]
    total: int


class MovementLogEntry(BaseModel):
    """One out-of-office excursion with its employee and day context."""
    period_id: int
    employee_id: int
    emp_code: Optional[str] = None
    employee_name: Optional[str] = None
    work_date: date
    out_time: datetime
    in_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    reason: str
    status: str  # OUT while the excursion is open, IN once closed
    ip_address: Optional[str] = None
    location_status: Optional[str] = None

    @field_validator("reason", mode="before")
    @classmethod
    def reason_to_str(cls, v: Any) -> str:
        return _enum_value(v)

    @field_serializer("out_time", "in_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class MovementLogResponse(BaseModel):
    items: List[MovementLogEntry]
    total: int
