"""
Attendance domain errors.

They subclass HTTPException so routers can let them propagate; the central
handler in app.core.errors renders them with their extra context.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class AttendanceError(HTTPException):
    """Base class for attendance errors with a human-readable detail and optional context."""

    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, **context: Any):
        super().__init__(status_code=self.status_code_default, detail=detail)
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}


class ValidationError(AttendanceError):
    """Malformed coordinates/IP, or the geofence / Wi-Fi check failed."""

    INVALID_COORDINATES = "INVALID_COORDINATES"
    INVALID_IP = "INVALID_IP"
    LOCATION = "LOCATION"
    WIFI = "WIFI"

    def __init__(
        self,
        detail: str,
        *,
        reason: str,
        location_valid: Optional[bool] = None,
        wifi_valid: Optional[bool] = None,
        distance_meters: Optional[float] = None,
    ):
        super().__init__(
            detail,
            reason=reason,
            location_valid=location_valid,
            wifi_valid=wifi_valid,
            distance_meters=distance_meters,
        )
        self.reason = reason


class StateConflictError(AttendanceError):
    """Operation violates a session invariant (already in/out, punch limit, leave day)."""


class NotFoundError(AttendanceError):
    status_code_default = status.HTTP_404_NOT_FOUND


class TransientStoreError(AttendanceError):
    """Store operation failed and was rolled back; the caller may retry."""

    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE


class BackgroundSweepError(AttendanceError):
    """Failure closing one record during the heartbeat sweep. Logged, never raised to callers."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, *, attendance_day_id: Optional[int] = None):
        super().__init__(detail, attendance_day_id=attendance_day_id)
        self.attendance_day_id = attendance_day_id
