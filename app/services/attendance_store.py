"""
Attendance day store: transaction boundary, row-locked load/lazy create of the
(employee, work_date) record, and the punch / out-period queries and mutations
shared by punch, presence and sweep services.

Every mutating operation runs inside unit_of_work() and takes the day row lock
first, so operations on the same day serialize on the database.
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StateConflictError, TransientStoreError
from app.models.attendance import (
    AttendanceDay,
    AttendanceStatus,
    OutPeriod,
    OutReason,
    PunchEvent,
)
from app.models.employee import Employee
from app.utils.datetime_utils import minutes_between

_log = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit on success, roll back on any error.
    IntegrityError -> StateConflictError; other SQLAlchemy errors -> TransientStoreError.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        _log.warning("integrity violation, rolled back: %s", exc.orig)
        raise StateConflictError("Attendance record was modified concurrently. Please retry.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        _log.error("store error, rolled back: %s", exc, exc_info=True)
        raise TransientStoreError("Attendance store is temporarily unavailable. Please retry.") from exc
    except Exception:
        db.rollback()
        raise


def get_day(db: Session, employee_id: int, work_date: date) -> Optional[AttendanceDay]:
    """Unlocked read of the day record, for read-only projections."""
    return (
        db.query(AttendanceDay)
        .filter(
            AttendanceDay.employee_id == employee_id,
            AttendanceDay.work_date == work_date,
        )
        .first()
    )


def lock_day(db: Session, employee_id: int, work_date: date) -> Optional[AttendanceDay]:
    """SELECT ... FOR UPDATE of the day record; attributes are refreshed from the row."""
    return (
        db.query(AttendanceDay)
        .filter(
            AttendanceDay.employee_id == employee_id,
            AttendanceDay.work_date == work_date,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )


def lock_day_by_id(db: Session, day_id: int) -> Optional[AttendanceDay]:
    return (
        db.query(AttendanceDay)
        .filter(AttendanceDay.id == day_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def lock_or_create_day(db: Session, employee_id: int, work_date: date) -> AttendanceDay:
    """
    Locked day record, created lazily on first use.

    Must be the first write of the unit of work: a concurrent insert that wins the
    (employee_id, work_date) unique constraint makes us roll back and lock the winner's row.
    """
    day = lock_day(db, employee_id, work_date)
    if day is not None:
        return day

    day = AttendanceDay(
        employee_id=employee_id,
        work_date=work_date,
        status=AttendanceStatus.NOT_PUNCHED_IN,
        total_out_minutes=0,
        out_count=0,
        is_auto_punched_out=False,
    )
    db.add(day)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        _log.info("attendance day created concurrently: employee_id=%s work_date=%s", employee_id, work_date)
        day = lock_day(db, employee_id, work_date)
        if day is None:
            raise
        return day
    _log.debug("attendance day created: id=%s employee_id=%s work_date=%s", day.id, employee_id, work_date)
    return day


def get_active_punch(db: Session, day: AttendanceDay) -> Optional[PunchEvent]:
    return (
        db.query(PunchEvent)
        .filter(
            PunchEvent.attendance_day_id == day.id,
            PunchEvent.is_active.is_(True),
        )
        .first()
    )


def count_punches(db: Session, day: AttendanceDay) -> int:
    return (
        db.query(func.count(PunchEvent.id))
        .filter(PunchEvent.attendance_day_id == day.id)
        .scalar()
        or 0
    )


def list_punches(db: Session, day: AttendanceDay) -> List[PunchEvent]:
    return (
        db.query(PunchEvent)
        .filter(PunchEvent.attendance_day_id == day.id)
        .order_by(PunchEvent.punch_in_at, PunchEvent.id)
        .all()
    )


def add_punch(
    db: Session,
    day: AttendanceDay,
    at: datetime,
    *,
    latitude: Optional[float],
    longitude: Optional[float],
    ip_address: Optional[str],
    distance_meters: Optional[float],
) -> PunchEvent:
    """Create the active punch event and point the day at it."""
    event = PunchEvent(
        attendance_day_id=day.id,
        employee_id=day.employee_id,
        punch_in_at=at,
        latitude=latitude,
        longitude=longitude,
        ip_address=ip_address,
        distance_meters=distance_meters,
        is_active=True,
        is_auto_closed=False,
    )
    db.add(event)
    db.flush()
    day.active_punch_event_id = event.id
    return event


def close_punch(day: AttendanceDay, event: PunchEvent, at: datetime, *, auto: bool = False) -> None:
    event.is_active = False
    event.punched_out_at = at
    event.is_auto_closed = auto
    day.active_punch_event_id = None
    day.last_punch_out_at = at


def get_open_out_period(db: Session, day: AttendanceDay) -> Optional[OutPeriod]:
    return (
        db.query(OutPeriod)
        .filter(
            OutPeriod.attendance_day_id == day.id,
            OutPeriod.in_time.is_(None),
        )
        .first()
    )


def list_out_periods(db: Session, day: AttendanceDay) -> List[OutPeriod]:
    return (
        db.query(OutPeriod)
        .filter(OutPeriod.attendance_day_id == day.id)
        .order_by(OutPeriod.out_time, OutPeriod.id)
        .all()
    )


def open_out_period(db: Session, day: AttendanceDay, at: datetime, reason: OutReason) -> OutPeriod:
    """Start an excursion and count it on the day."""
    period = OutPeriod(attendance_day_id=day.id, out_time=at, reason=reason)
    db.add(period)
    day.out_count = (day.out_count or 0) + 1
    db.flush()
    return period


def close_out_period(period: OutPeriod, at: datetime, *, reason: Optional[OutReason] = None) -> int:
    """End an excursion; returns its floored duration in minutes."""
    period.in_time = at
    period.duration_minutes = minutes_between(period.out_time, at)
    if reason is not None:
        period.reason = reason
    return period.duration_minutes


def sum_closed_out_minutes(db: Session, day: AttendanceDay) -> int:
    db.flush()
    total = (
        db.query(func.coalesce(func.sum(OutPeriod.duration_minutes), 0))
        .filter(
            OutPeriod.attendance_day_id == day.id,
            OutPeriod.in_time.isnot(None),
        )
        .scalar()
    )
    return int(total or 0)


def record_observation(
    day: AttendanceDay,
    *,
    latitude,
    longitude,
    ip_address: Optional[str],
    distance_meters: Optional[float] = None,
) -> None:
    """Best-effort copy of the last observed location/IP onto the day; unparseable values are stored as NULL."""
    try:
        day.last_latitude = float(latitude) if latitude is not None else None
        day.last_longitude = float(longitude) if longitude is not None else None
    except (TypeError, ValueError):
        day.last_latitude = None
        day.last_longitude = None
    day.last_ip_address = ip_address
    day.last_distance_meters = distance_meters


def find_stale_day_ids(db: Session, work_date: date, threshold: datetime) -> List[int]:
    """Days of work_date with an open session whose last heartbeat is missing or older than threshold."""
    rows = (
        db.query(AttendanceDay.id)
        .filter(
            AttendanceDay.work_date == work_date,
            AttendanceDay.active_punch_event_id.isnot(None),
            or_(
                AttendanceDay.last_heartbeat_at.is_(None),
                AttendanceDay.last_heartbeat_at < threshold,
            ),
        )
        .order_by(AttendanceDay.id)
        .all()
    )
    return [r[0] for r in rows]


def list_days(
    db: Session,
    employee_id: int,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[AttendanceDay]:
    """One employee's day records, newest work_date first."""
    query = db.query(AttendanceDay).filter(AttendanceDay.employee_id == employee_id)
    if start is not None:
        query = query.filter(AttendanceDay.work_date >= start)
    if end is not None:
        query = query.filter(AttendanceDay.work_date <= end)
    query = query.order_by(AttendanceDay.work_date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_out_periods_between(
    db: Session,
    start: date,
    end: date,
    employee_id: Optional[int] = None,
) -> List[Tuple[OutPeriod, AttendanceDay, Employee]]:
    """Excursions of days in [start, end], ordered by employee name, work_date, out_time."""
    query = (
        db.query(OutPeriod, AttendanceDay, Employee)
        .join(AttendanceDay, AttendanceDay.id == OutPeriod.attendance_day_id)
        .join(Employee, Employee.id == AttendanceDay.employee_id)
        .filter(AttendanceDay.work_date >= start, AttendanceDay.work_date <= end)
    )
    if employee_id is not None:
        query = query.filter(AttendanceDay.employee_id == employee_id)
    return query.order_by(Employee.name, AttendanceDay.work_date, OutPeriod.out_time, OutPeriod.id).all()
