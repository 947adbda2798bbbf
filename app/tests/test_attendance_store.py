"""
Tests for the attendance day store: transaction boundary, lazy day creation and
the database-level one-active-punch / one-open-excursion constraints
"""
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import StateConflictError, TransientStoreError
from app.core.security import hash_password
from app.models.attendance import AttendanceDay, OutPeriod, OutReason, PunchEvent
from app.models.employee import Employee, Role
from app.services import attendance_store as store
from app.utils.datetime_utils import get_work_date, iso_local, minutes_between, minutes_to_hours

T0 = datetime(2026, 3, 2, 4, 0, tzinfo=timezone.utc)
WORK_DATE = date(2026, 3, 2)


@pytest.fixture
def test_employee(db: Session):
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


def test_lock_or_create_day_is_lazy_and_unique(db, test_employee):
    with store.unit_of_work(db):
        first = store.lock_or_create_day(db, test_employee.id, WORK_DATE)
    with store.unit_of_work(db):
        second = store.lock_or_create_day(db, test_employee.id, WORK_DATE)

    assert first.id == second.id
    assert db.query(AttendanceDay).count() == 1
    assert second.status.value == "NOT_PUNCHED_IN"
    assert second.out_count == 0


def test_duplicate_day_insert_surfaces_as_conflict(db, test_employee):
    with store.unit_of_work(db):
        store.lock_or_create_day(db, test_employee.id, WORK_DATE)

    with pytest.raises(StateConflictError):
        with store.unit_of_work(db):
            db.add(AttendanceDay(employee_id=test_employee.id, work_date=WORK_DATE))
    assert db.query(AttendanceDay).count() == 1


def test_second_active_punch_rejected_by_database(db, test_employee):
    with store.unit_of_work(db):
        day = store.lock_or_create_day(db, test_employee.id, WORK_DATE)
        store.add_punch(db, day, T0, latitude=None, longitude=None, ip_address=None, distance_meters=None)

    with pytest.raises(StateConflictError):
        with store.unit_of_work(db):
            db.add(PunchEvent(attendance_day_id=day.id, employee_id=test_employee.id, punch_in_at=T0, is_active=True))
    assert db.query(PunchEvent).count() == 1


def test_second_open_out_period_rejected_by_database(db, test_employee):
    with store.unit_of_work(db):
        day = store.lock_or_create_day(db, test_employee.id, WORK_DATE)
        store.open_out_period(db, day, T0, OutReason.IP_CHANGE)

    with pytest.raises(StateConflictError):
        with store.unit_of_work(db):
            db.add(OutPeriod(attendance_day_id=day.id, out_time=T0, reason=OutReason.GEO_FENCE_EXIT))
    assert db.query(OutPeriod).count() == 1


def test_closed_out_periods_summed(db, test_employee):
    with store.unit_of_work(db):
        day = store.lock_or_create_day(db, test_employee.id, WORK_DATE)
        first = store.open_out_period(db, day, T0, OutReason.IP_CHANGE)
        store.close_out_period(first, datetime(2026, 3, 2, 4, 8, 59, tzinfo=timezone.utc))
        second = store.open_out_period(db, day, datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc), OutReason.GEO_FENCE_EXIT)
        store.close_out_period(second, datetime(2026, 3, 2, 5, 12, tzinfo=timezone.utc))
        store.open_out_period(db, day, datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc), OutReason.IP_CHANGE)

        assert first.duration_minutes == 8
        assert store.sum_closed_out_minutes(db, day) == 20
        assert day.out_count == 3


def test_store_error_rolls_back_as_transient(db, test_employee):
    with pytest.raises(TransientStoreError) as exc_info:
        with store.unit_of_work(db):
            store.lock_or_create_day(db, test_employee.id, WORK_DATE)
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))
    assert exc_info.value.status_code == 503
    assert db.query(AttendanceDay).count() == 0


def test_record_observation_is_best_effort(db, test_employee):
    day = AttendanceDay(employee_id=test_employee.id, work_date=WORK_DATE)
    store.record_observation(day, latitude="north", longitude=78.4, ip_address="1.2.3.4")
    assert day.last_latitude is None
    assert day.last_longitude is None
    assert day.last_ip_address == "1.2.3.4"


def test_work_date_and_local_serialization():
    # 18:29 UTC is 23:59 IST; 18:30 UTC is already the next local day
    assert get_work_date(datetime(2026, 3, 2, 18, 29, tzinfo=timezone.utc)) == date(2026, 3, 2)
    assert get_work_date(datetime(2026, 3, 2, 18, 30, tzinfo=timezone.utc)) == date(2026, 3, 3)
    assert iso_local(T0) == "2026-03-02T09:30:00+05:30"
    assert iso_local(datetime(2026, 3, 2, 4, 0)) == "2026-03-02T09:30:00+05:30"


def test_minutes_between_floors_and_clamps():
    assert minutes_between(T0, datetime(2026, 3, 2, 4, 59, 59, tzinfo=timezone.utc)) == 59
    assert minutes_between(datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc), T0) == 0
    assert minutes_to_hours(500) == 8.33
