"""
Presence tracking from client heartbeats.

While a punch session is open the employee is either INSIDE the office (no open
excursion) or OUTSIDE (one open OutPeriod). Each heartbeat is classified and may
flip the state: INSIDE -> OUTSIDE opens an excursion, OUTSIDE -> INSIDE closes it
and adds its minutes to total_out_minutes. A missing or malformed signal counts
as outside. Heartbeats never punch out.
"""
import enum
import logging
from datetime import date, datetime
from typing import Optional, Tuple
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceStatus, OutReason
from app.schemas.attendance import (
    GeoVerdict,
    MovementLogEntry,
    MovementLogResponse,
    PresenceEvent,
    PresenceStatus,
)
from app.schemas.office_settings import OfficeSettingsSnapshot
from app.services import attendance_store as store
from app.services.geofence_service import validate_location_and_ip
from app.services.office_settings_service import get_office_settings
from app.utils.datetime_utils import ensure_utc, get_work_date, now_utc

_log = logging.getLogger(__name__)


class PresenceAction(str, enum.Enum):
    NOT_PUNCHED_IN = "NOT_PUNCHED_IN"
    PUNCHED_OUT = "PUNCHED_OUT"
    MARKED_OUT = "MARKED_OUT"
    MARKED_IN = "MARKED_IN"
    STILL_OUT = "STILL_OUT"
    STILL_IN = "STILL_IN"
    STALE = "STALE"


class PresenceLabel(str, enum.Enum):
    NOT_PUNCHED_IN = "NOT_PUNCHED_IN"
    PUNCHED_OUT = "PUNCHED_OUT"
    INSIDE_OFFICE = "INSIDE_OFFICE"
    OUT_OF_OFFICE = "OUT_OF_OFFICE"


def classify_signal(
    latitude: Optional[float],
    longitude: Optional[float],
    ip_address: Optional[str],
    office: OfficeSettingsSnapshot,
) -> Tuple[bool, OutReason, Optional[GeoVerdict]]:
    """
    Returns (outside, reason, verdict). Missing fields, a signal the validator
    rejects or a validator failure are treated as outside with GEO_FENCE_EXIT
    and no verdict.
    """
    if latitude is None or longitude is None or not ip_address:
        return True, OutReason.GEO_FENCE_EXIT, None
    try:
        verdict = validate_location_and_ip(latitude, longitude, ip_address, office)
    except ValidationError as exc:
        _log.debug("heartbeat signal rejected (%s), treating as outside", exc.reason)
        return True, OutReason.GEO_FENCE_EXIT, None
    except Exception:
        _log.warning("heartbeat signal check failed, treating as outside", exc_info=True)
        return True, OutReason.GEO_FENCE_EXIT, None

    outside = not verdict.location_valid or ip_address.strip() != office.office_public_ip
    reason = OutReason.GEO_FENCE_EXIT if not verdict.location_valid else OutReason.IP_CHANGE
    return outside, reason, verdict


def _no_op(action: PresenceAction, message: str, label: PresenceLabel) -> PresenceEvent:
    return PresenceEvent(
        action=action.value,
        message=message,
        punched_in=False,
        inside_office=None,
        status=label.value,
    )


def send_heartbeat(
    db: Session,
    employee_id: int,
    latitude: Optional[float],
    longitude: Optional[float],
    ip_address: Optional[str],
    now: Optional[datetime] = None,
    office: Optional[OfficeSettingsSnapshot] = None,
) -> PresenceEvent:
    """
    Record one heartbeat for today's open session and apply the presence transition.

    No-op when the employee has not punched in or has already punched out.
    A heartbeat older than the day's last_heartbeat_at is ignored (action STALE).
    """
    now = ensure_utc(now) or now_utc()
    work_date = get_work_date(now)
    office = office or get_office_settings(db)

    outside, reason, verdict = classify_signal(latitude, longitude, ip_address, office)

    with store.unit_of_work(db):
        day = store.lock_day(db, employee_id, work_date)
        if day is None or day.first_punch_in_at is None:
            return _no_op(PresenceAction.NOT_PUNCHED_IN, "Not currently punched in", PresenceLabel.NOT_PUNCHED_IN)
        if store.get_active_punch(db, day) is None:
            return _no_op(PresenceAction.PUNCHED_OUT, "Already punched out", PresenceLabel.PUNCHED_OUT)

        last_seen = ensure_utc(day.last_heartbeat_at)
        open_period = store.get_open_out_period(db, day)
        if last_seen is not None and now < last_seen:
            _log.info("stale heartbeat ignored: day_id=%s at=%s last=%s", day.id, now, last_seen)
            inside = open_period is None
            return PresenceEvent(
                action=PresenceAction.STALE.value,
                message="Stale heartbeat ignored",
                punched_in=True,
                inside_office=inside,
                status=(PresenceLabel.INSIDE_OFFICE if inside else PresenceLabel.OUT_OF_OFFICE).value,
            )

        day.last_heartbeat_at = now
        store.record_observation(
            day,
            latitude=latitude,
            longitude=longitude,
            ip_address=ip_address,
            distance_meters=verdict.distance_meters if verdict is not None else None,
        )

        event_kwargs = dict(
            punched_in=True,
            location_valid=verdict.location_valid if verdict is not None else None,
            wifi_valid=verdict.wifi_valid if verdict is not None else None,
            distance_meters=verdict.distance_meters if verdict is not None else None,
        )

        if outside and open_period is None:
            period = store.open_out_period(db, day, now, reason)
            day.status = AttendanceStatus.OUT_OF_OFFICE
            _log.info("marked out: day_id=%s reason=%s out_count=%s", day.id, reason.value, day.out_count)
            result = PresenceEvent(
                action=PresenceAction.MARKED_OUT.value,
                message="Marked as OUT OF OFFICE",
                inside_office=False,
                status=PresenceLabel.OUT_OF_OFFICE.value,
                reason=reason.value,
                out_time=period.out_time,
                **event_kwargs,
            )
        elif outside:
            result = PresenceEvent(
                action=PresenceAction.STILL_OUT.value,
                message="Still OUT OF OFFICE",
                inside_office=False,
                status=PresenceLabel.OUT_OF_OFFICE.value,
                reason=open_period.reason.value,
                out_time=ensure_utc(open_period.out_time),
                **event_kwargs,
            )
        elif open_period is not None:
            duration = store.close_out_period(open_period, now)
            day.total_out_minutes = (day.total_out_minutes or 0) + duration
            day.status = AttendanceStatus.INSIDE_OFFICE
            _log.info("marked in: day_id=%s out_minutes=%s total_out=%s", day.id, duration, day.total_out_minutes)
            result = PresenceEvent(
                action=PresenceAction.MARKED_IN.value,
                message="Back IN OFFICE",
                inside_office=True,
                status=PresenceLabel.INSIDE_OFFICE.value,
                reason=open_period.reason.value,
                out_time=ensure_utc(open_period.out_time),
                in_time=now,
                out_duration_minutes=duration,
                **event_kwargs,
            )
        else:
            result = PresenceEvent(
                action=PresenceAction.STILL_IN.value,
                message="Inside office",
                inside_office=True,
                status=PresenceLabel.INSIDE_OFFICE.value,
                **event_kwargs,
            )
        _log.debug("heartbeat: day_id=%s outside=%s action=%s", day.id, outside, result.action)
    return result


def get_presence_status(db: Session, employee_id: int, now: Optional[datetime] = None) -> PresenceStatus:
    """Current presence label for today, with heartbeat and excursion totals."""
    now = ensure_utc(now) or now_utc()
    day = store.get_day(db, employee_id, get_work_date(now))
    if day is None or day.first_punch_in_at is None:
        return PresenceStatus(punched_in=False, inside_office=False, status=PresenceLabel.NOT_PUNCHED_IN.value)

    common = dict(
        last_heartbeat=ensure_utc(day.last_heartbeat_at),
        out_count=day.out_count or 0,
        total_out_minutes=day.total_out_minutes or 0,
    )
    if store.get_active_punch(db, day) is None:
        return PresenceStatus(
            punched_in=False,
            inside_office=False,
            status=PresenceLabel.PUNCHED_OUT.value,
            punch_out_time=ensure_utc(day.last_punch_out_at),
            **common,
        )
    inside = store.get_open_out_period(db, day) is None
    return PresenceStatus(
        punched_in=True,
        inside_office=inside,
        status=(PresenceLabel.INSIDE_OFFICE if inside else PresenceLabel.OUT_OF_OFFICE).value,
        **common,
    )


def _location_status(distance_meters: Optional[float], office: OfficeSettingsSnapshot) -> Optional[str]:
    if distance_meters is None:
        return None
    return "Inside Radius" if distance_meters <= office.radius_meters else "Outside Radius"


def get_movement_log(
    db: Session,
    from_date: date,
    to_date: date,
    *,
    employee_id: Optional[int] = None,
    office: Optional[OfficeSettingsSnapshot] = None,
) -> MovementLogResponse:
    """
    Out-of-office excursions for work dates in [from_date, to_date], optionally
    for one employee. Each entry carries the day's last observed IP and whether
    its last observed distance lies inside the current office radius.
    """
    if from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from must be less than or equal to to",
        )
    office = office or get_office_settings(db)

    items = []
    for period, day, employee in store.list_out_periods_between(db, from_date, to_date, employee_id):
        items.append(
            MovementLogEntry(
                period_id=period.id,
                employee_id=employee.id,
                emp_code=employee.emp_code,
                employee_name=employee.name,
                work_date=day.work_date,
                out_time=ensure_utc(period.out_time),
                in_time=ensure_utc(period.in_time),
                duration_minutes=period.duration_minutes,
                reason=period.reason,
                status="OUT" if period.in_time is None else "IN",
                ip_address=day.last_ip_address,
                location_status=_location_status(day.last_distance_meters, office),
            )
        )
    return MovementLogResponse(items=items, total=len(items))
