"""
Database models
"""
from app.models.employee import Employee, Role
from app.models.audit_log import AuditLog
from app.models.leave import LeaveRequest, LeaveStatus, APPROVED_LEAVE_STATUSES
from app.models.office_settings import OfficeSettings
from app.models.attendance import (
    AttendanceDay,
    PunchEvent,
    OutPeriod,
    AttendanceStatus,
    OutReason,
)

__all__ = [
    "Employee",
    "Role",
    "AuditLog",
    "LeaveRequest",
    "LeaveStatus",
    "APPROVED_LEAVE_STATUSES",
    "OfficeSettings",
    "AttendanceDay",
    "PunchEvent",
    "OutPeriod",
    "AttendanceStatus",
    "OutReason",
]
