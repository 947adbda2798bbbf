"""
Punch session service: punch in/out against the office geofence and Wi-Fi, with
work_date in settings.TZ. A day may hold several punch sessions (up to
MAX_PUNCHES_PER_DAY); at most one is active at any time.

All timestamps stored in UTC (server time, never client time).
"""
import calendar
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import NotFoundError, StateConflictError
from app.models.attendance import AttendanceDay, AttendanceStatus, OutPeriod, OutReason, PunchEvent
from app.models.employee import Employee
from app.schemas.attendance import (
    AdminDayDto,
    AttendanceDayDto,
    AttendanceSnapshot,
    MyAttendanceResponse,
    OutPeriodDto,
    PunchEventDto,
    PunchOutResult,
    TodayStatus,
)
from app.schemas.office_settings import OfficeSettingsSnapshot
from app.services import attendance_store as store
from app.services.audit_service import try_log_audit
from app.services.geofence_service import require_valid, validate_location_and_ip
from app.services.leave_service import has_approved_leave
from app.services.office_settings_service import get_office_settings
from app.utils.datetime_utils import (
    ensure_utc,
    get_work_date,
    minutes_between,
    minutes_to_hours,
    now_utc,
)

_log = logging.getLogger(__name__)

MY_ATTENDANCE_DEFAULT_DAYS = 30


def derive_final_status(net_working_minutes: int) -> AttendanceStatus:
    """ABSENT below the half-day threshold, HALF_DAY below the full-day threshold, else PRESENT."""
    if net_working_minutes < settings.HALF_DAY_MIN_MINUTES:
        return AttendanceStatus.ABSENT
    if net_working_minutes < settings.FULL_DAY_MIN_MINUTES:
        return AttendanceStatus.HALF_DAY
    return AttendanceStatus.PRESENT


def session_minutes(punches: List[PunchEvent], until: datetime) -> int:
    """Floored minutes across all punch sessions; an open session runs until `until`."""
    total = 0
    for p in punches:
        end = p.punched_out_at if p.punched_out_at is not None else until
        total += minutes_between(p.punch_in_at, end)
    return total


def out_minutes(periods: List[OutPeriod], until: datetime) -> int:
    """Closed excursion minutes plus the open one (if any) measured to `until`."""
    total = 0
    for op in periods:
        if op.in_time is not None:
            total += op.duration_minutes or 0
        else:
            total += minutes_between(op.out_time, until)
    return total


def _out_dtos(periods: List[OutPeriod]) -> List[OutPeriodDto]:
    return [
        OutPeriodDto(
            id=op.id,
            out_time=ensure_utc(op.out_time),
            in_time=ensure_utc(op.in_time),
            duration_minutes=op.duration_minutes,
            reason=op.reason,
            is_active=op.in_time is None,
        )
        for op in periods
    ]


def _snapshot_parts(db: Session, day: AttendanceDay) -> Tuple[List[PunchEvent], List[PunchEventDto], int, int]:
    punches = store.list_punches(db, day)
    dtos = [PunchEventDto.model_validate(p) for p in punches]
    punch_in_count = len(punches)
    punch_out_count = sum(1 for p in punches if p.punched_out_at is not None)
    return punches, dtos, punch_in_count, punch_out_count


def punch_in(
    db: Session,
    employee_id: int,
    latitude: float,
    longitude: float,
    ip_address: str,
    now: Optional[datetime] = None,
    office: Optional[OfficeSettingsSnapshot] = None,
) -> AttendanceSnapshot:
    """
    Open a punch session for today.

    Rejects approved-leave dates, locations outside the geofence or off the office
    Wi-Fi, a second concurrent session, and punches beyond MAX_PUNCHES_PER_DAY.
    """
    now = ensure_utc(now) or now_utc()
    work_date = get_work_date(now)
    office = office or get_office_settings(db)

    if has_approved_leave(db, employee_id, work_date):
        raise StateConflictError("Cannot mark attendance on approved leave dates")

    verdict = require_valid(validate_location_and_ip(latitude, longitude, ip_address, office))

    with store.unit_of_work(db):
        day = store.lock_or_create_day(db, employee_id, work_date)

        if store.get_active_punch(db, day) is not None:
            raise StateConflictError("You are already punched in. Please punch out first.")

        if store.count_punches(db, day) >= settings.MAX_PUNCHES_PER_DAY:
            raise StateConflictError(f"Maximum {settings.MAX_PUNCHES_PER_DAY} punch ins allowed per day")

        event = store.add_punch(
            db,
            day,
            now,
            latitude=float(latitude),
            longitude=float(longitude),
            ip_address=ip_address.strip(),
            distance_meters=verdict.distance_meters,
        )
        if day.first_punch_in_at is None:
            day.first_punch_in_at = now
        day.last_punch_in_at = now
        day.last_punch_out_at = None
        day.is_auto_punched_out = False
        day.last_heartbeat_at = now
        day.status = AttendanceStatus.INSIDE_OFFICE
        store.record_observation(
            day,
            latitude=latitude,
            longitude=longitude,
            ip_address=ip_address.strip(),
            distance_meters=verdict.distance_meters,
        )
        _log.debug(
            "punch_in persist: employee_id=%s day_id=%s punch_event_id=%s distance=%s",
            employee_id, day.id, event.id, verdict.distance_meters,
        )

    db.refresh(day)
    _punches, dtos, in_count, out_count = _snapshot_parts(db, day)
    _log.info("punch in: employee_id=%s work_date=%s punch=%s/%s", employee_id, work_date, in_count, settings.MAX_PUNCHES_PER_DAY)

    try_log_audit(
        db,
        actor_id=employee_id,
        action="ATTENDANCE_PUNCH_IN",
        entity_type="attendance_days",
        entity_id=day.id,
        meta={
            "work_date": str(work_date),
            "punch_in_at": now.isoformat(),
            "punch_event_id": event.id,
            "distance_meters": verdict.distance_meters,
            "ip_address": ip_address,
        },
    )
    return AttendanceSnapshot(
        message="Punched in successfully",
        attendance=AttendanceDayDto.model_validate(day),
        punch_events=dtos,
        punch_in_count=in_count,
        punch_out_count=out_count,
    )


def punch_out(
    db: Session,
    employee_id: int,
    latitude: float,
    longitude: float,
    ip_address: str,
    now: Optional[datetime] = None,
    office: Optional[OfficeSettingsSnapshot] = None,
) -> PunchOutResult:
    """
    Close the active punch session and compute the day's working time.

    An open excursion is closed (reason MANUAL) at punch-out time; net working
    minutes = all session minutes - closed excursion minutes, floored at 0.
    """
    now = ensure_utc(now) or now_utc()
    work_date = get_work_date(now)
    office = office or get_office_settings(db)

    require_valid(validate_location_and_ip(latitude, longitude, ip_address, office))

    with store.unit_of_work(db):
        day = store.lock_day(db, employee_id, work_date)
        if day is None:
            raise NotFoundError("No attendance record found for today")
        if day.first_punch_in_at is None:
            raise StateConflictError("Must punch in before punching out")

        event = store.get_active_punch(db, day)
        if event is None:
            raise StateConflictError("Already punched out for today")

        open_period = store.get_open_out_period(db, day)
        if open_period is not None:
            store.close_out_period(open_period, now, reason=OutReason.MANUAL)
        day.total_out_minutes = store.sum_closed_out_minutes(db, day)

        store.close_punch(day, event, now)
        punches = store.list_punches(db, day)
        total_minutes = session_minutes(punches, now)
        net_minutes = max(0, total_minutes - day.total_out_minutes)

        day.status = derive_final_status(net_minutes)
        day.is_auto_punched_out = False
        store.record_observation(day, latitude=latitude, longitude=longitude, ip_address=ip_address.strip())
        _log.debug(
            "punch_out persist: day_id=%s punch_event_id=%s total=%s out=%s net=%s",
            day.id, event.id, total_minutes, day.total_out_minutes, net_minutes,
        )

    db.refresh(day)
    _punches, dtos, in_count, out_count = _snapshot_parts(db, day)
    periods = store.list_out_periods(db, day)
    status = day.status.value
    _log.info("punch out: employee_id=%s work_date=%s net=%s status=%s", employee_id, work_date, net_minutes, status)

    try_log_audit(
        db,
        actor_id=employee_id,
        action="ATTENDANCE_PUNCH_OUT",
        entity_type="attendance_days",
        entity_id=day.id,
        meta={
            "work_date": str(work_date),
            "punch_out_at": now.isoformat(),
            "total_minutes": total_minutes,
            "total_out_minutes": day.total_out_minutes,
            "net_working_minutes": net_minutes,
            "status": status,
        },
    )
    return PunchOutResult(
        message="Punched out successfully",
        attendance=AttendanceDayDto.model_validate(day),
        punch_events=dtos,
        punch_in_count=in_count,
        punch_out_count=out_count,
        status=status,
        out_count=day.out_count,
        total_out_minutes=day.total_out_minutes,
        total_out_hours=minutes_to_hours(day.total_out_minutes),
        net_working_minutes=net_minutes,
        net_working_hours=minutes_to_hours(net_minutes),
        total_time_minutes=total_minutes,
        total_time_hours=minutes_to_hours(total_minutes),
        out_sessions=_out_dtos(periods),
    )


def get_today_status(db: Session, employee_id: int, now: Optional[datetime] = None) -> TodayStatus:
    """
    Read-only projection of today. While a session is open, `now` stands in for
    the punch-out time and for the end of an open excursion.
    """
    now = ensure_utc(now) or now_utc()
    day = store.get_day(db, employee_id, get_work_date(now))
    if day is None or day.first_punch_in_at is None:
        return TodayStatus(punched_in=False, status=AttendanceStatus.NOT_PUNCHED_IN.value)

    punches = store.list_punches(db, day)
    periods = store.list_out_periods(db, day)
    is_open = any(p.is_active for p in punches)
    until = now if is_open else (ensure_utc(day.last_punch_out_at) or now)

    total_minutes = session_minutes(punches, until)
    out_total = out_minutes(periods, until)
    net_minutes = max(0, total_minutes - out_total)
    has_open_period = any(op.in_time is None for op in periods)

    if is_open:
        inside = not has_open_period
        status = AttendanceStatus.INSIDE_OFFICE.value if inside else AttendanceStatus.OUT_OF_OFFICE.value
    else:
        inside = None
        status = day.status.value

    return TodayStatus(
        punched_in=is_open,
        punch_in_time=ensure_utc(day.last_punch_in_at),
        punch_out_time=ensure_utc(day.last_punch_out_at),
        inside_office=inside,
        last_heartbeat=ensure_utc(day.last_heartbeat_at),
        is_auto_punched_out=bool(day.is_auto_punched_out),
        punch_in_count=len(punches),
        out_count=day.out_count or 0,
        total_out_minutes=out_total,
        total_out_hours=minutes_to_hours(out_total),
        net_working_minutes=net_minutes,
        net_working_hours=minutes_to_hours(net_minutes),
        total_time_minutes=total_minutes,
        out_sessions=_out_dtos(periods),
        status=status,
    )


def list_today(
    db: Session,
    now: Optional[datetime] = None,
    *,
    status_filter: Optional[str] = None,
    q: Optional[str] = None,
) -> List[AdminDayDto]:
    """Today's day records for all employees, with live presence and net minutes."""
    now = ensure_utc(now) or now_utc()
    query = (
        db.query(AttendanceDay)
        .join(Employee, Employee.id == AttendanceDay.employee_id)
        .options(joinedload(AttendanceDay.employee))
        .filter(AttendanceDay.work_date == get_work_date(now))
    )
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(Employee.name.ilike(pattern), Employee.emp_code.ilike(pattern)))
    days = query.order_by(Employee.emp_code).all()

    items = []
    for day in days:
        punches = store.list_punches(db, day)
        periods = store.list_out_periods(db, day)
        is_open = any(p.is_active for p in punches)
        until = now if is_open else (ensure_utc(day.last_punch_out_at) or now)
        net_minutes = max(0, session_minutes(punches, until) - out_minutes(periods, until))

        dto = AdminDayDto.model_validate(day)
        dto.emp_code = day.employee.emp_code if day.employee else None
        dto.employee_name = day.employee.name if day.employee else None
        dto.inside_office = (not any(op.in_time is None for op in periods)) if is_open else None
        dto.net_working_minutes = net_minutes
        if status_filter and dto.status != status_filter:
            continue
        items.append(dto)
    return items


def list_my_days(
    db: Session,
    employee_id: int,
    *,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> MyAttendanceResponse:
    """
    An employee's own day records, newest first: the whole of month/year when
    both are given, otherwise the latest MY_ATTENDANCE_DEFAULT_DAYS records.
    """
    if month is not None and year is not None:
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        days = store.list_days(db, employee_id, start=start, end=end)
    else:
        days = store.list_days(db, employee_id, limit=MY_ATTENDANCE_DEFAULT_DAYS)
    items = [AttendanceDayDto.model_validate(d) for d in days]
    return MyAttendanceResponse(items=items, total=len(items))
