"""
Heartbeat timeout sweep: force-close today's open punch sessions whose client
stopped sending heartbeats. The day is marked INCOMPLETE and auto-punched-out;
an open excursion is closed with reason HEARTBEAT_TIMEOUT and counted as out time.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import BackgroundSweepError
from app.db.session import SessionLocal
from app.models.attendance import AttendanceStatus, OutReason
from app.services import attendance_store as store
from app.services.audit_service import try_log_audit
from app.utils.datetime_utils import ensure_utc, get_work_date, now_utc

_log = logging.getLogger(__name__)


def _is_stale(last_heartbeat_at: Optional[datetime], threshold: datetime) -> bool:
    last = ensure_utc(last_heartbeat_at)
    return last is None or last < threshold


def _close_stale_day(db: Session, day_id: int, now: datetime, threshold: datetime) -> bool:
    """Re-lock and re-check one candidate; returns True when it was closed."""
    with store.unit_of_work(db):
        day = store.lock_day_by_id(db, day_id)
        if day is None or not _is_stale(day.last_heartbeat_at, threshold):
            return False
        event = store.get_active_punch(db, day)
        if event is None:
            return False

        open_period = store.get_open_out_period(db, day)
        if open_period is not None:
            store.close_out_period(open_period, now, reason=OutReason.HEARTBEAT_TIMEOUT)
            day.total_out_minutes = store.sum_closed_out_minutes(db, day)

        store.close_punch(day, event, now, auto=True)
        day.status = AttendanceStatus.INCOMPLETE
        day.is_auto_punched_out = True
        _log.debug(
            "auto punch-out persist: day_id=%s employee_id=%s last_heartbeat=%s",
            day.id, day.employee_id, day.last_heartbeat_at,
        )
        employee_id = day.employee_id
        total_out = day.total_out_minutes

    try_log_audit(
        db,
        actor_id=None,
        action="ATTENDANCE_AUTO_PUNCH_OUT",
        entity_type="attendance_days",
        entity_id=day_id,
        meta={
            "employee_id": employee_id,
            "punch_out_at": now.isoformat(),
            "reason": OutReason.HEARTBEAT_TIMEOUT.value,
            "total_out_minutes": total_out,
        },
    )
    return True


def _sweep(db: Session, now: datetime, timeout: int) -> int:
    threshold = now - timedelta(minutes=timeout)
    work_date = get_work_date(now)
    candidate_ids = store.find_stale_day_ids(db, work_date, threshold)

    closed = 0
    for day_id in candidate_ids:
        try:
            if _close_stale_day(db, day_id, now, threshold):
                closed += 1
        except Exception as exc:
            db.rollback()
            err = BackgroundSweepError(f"Failed to auto punch-out attendance day {day_id}: {exc}", attendance_day_id=day_id)
            _log.error("heartbeat sweep: %s", err.detail, exc_info=True)

    if candidate_ids:
        _log.info(
            "heartbeat sweep: work_date=%s candidates=%s closed=%s timeout=%smin",
            work_date, len(candidate_ids), closed, timeout,
        )
    return closed


def check_heartbeat_timeouts(
    db: Session,
    now: Optional[datetime] = None,
    timeout_minutes: Optional[int] = None,
) -> int:
    """
    Auto punch-out every open session for today's work date whose last heartbeat
    is missing or older than timeout_minutes. Returns the number of days closed.

    A record that fails to close is rolled back, logged and skipped. Any other
    failure (loading candidates included) is logged and yields 0. Never raises.
    """
    now = ensure_utc(now) or now_utc()
    timeout = timeout_minutes if timeout_minutes is not None else settings.HEARTBEAT_TIMEOUT_MINUTES
    try:
        return _sweep(db, now, timeout)
    except Exception:
        db.rollback()
        _log.exception("heartbeat sweep failed at %s", now.isoformat())
        return 0


def run_heartbeat_sweep() -> int:
    """Scheduler entry point: runs one sweep in its own DB session."""
    db = SessionLocal()
    try:
        return check_heartbeat_timeouts(db)
    finally:
        db.close()
