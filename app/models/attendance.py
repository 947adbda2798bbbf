"""
Attendance models: one AttendanceDay per (employee, work_date), owning its punch-in
events and its out-of-office periods.
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    Float,
    ForeignKey,
    String,
    Boolean,
    UniqueConstraint,
    Index,
    Enum as SQLEnum,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    NOT_PUNCHED_IN = "NOT_PUNCHED_IN"
    INSIDE_OFFICE = "INSIDE_OFFICE"
    OUT_OF_OFFICE = "OUT_OF_OFFICE"
    PRESENT = "PRESENT"
    HALF_DAY = "HALF_DAY"
    ABSENT = "ABSENT"
    INCOMPLETE = "INCOMPLETE"  # session force-closed by the heartbeat sweep


class OutReason(str, enum.Enum):
    GEO_FENCE_EXIT = "GEO_FENCE_EXIT"
    IP_CHANGE = "IP_CHANGE"
    MANUAL = "MANUAL"
    HEARTBEAT_TIMEOUT = "HEARTBEAT_TIMEOUT"


class AttendanceDay(Base):
    __tablename__ = "attendance_days"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # date in settings.TZ
    # Pointer to the punch_events row with is_active=True (NULL when no open session)
    active_punch_event_id = Column(Integer, nullable=True)
    first_punch_in_at = Column(DateTime(timezone=True), nullable=True)
    last_punch_in_at = Column(DateTime(timezone=True), nullable=True)
    last_punch_out_at = Column(DateTime(timezone=True), nullable=True)
    total_out_minutes = Column(Integer, nullable=False, default=0)
    out_count = Column(Integer, nullable=False, default=0)
    last_heartbeat_at = Column(DateTime(timezone=True), nullable=True, index=True)
    status = Column(SQLEnum(AttendanceStatus), nullable=False, default=AttendanceStatus.NOT_PUNCHED_IN)
    is_auto_punched_out = Column(Boolean, nullable=False, default=False)
    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    last_ip_address = Column(String, nullable=True)
    last_distance_meters = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", backref="attendance_days")
    punch_events = relationship(
        "PunchEvent",
        back_populates="attendance_day",
        order_by="PunchEvent.punch_in_at",
        cascade="all, delete-orphan",
    )
    out_periods = relationship(
        "OutPeriod",
        back_populates="attendance_day",
        order_by="OutPeriod.out_time",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_attendance_days_employee_work_date"),
    )


class PunchEvent(Base):
    __tablename__ = "punch_events"

    id = Column(Integer, primary_key=True, index=True)
    attendance_day_id = Column(Integer, ForeignKey("attendance_days.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    punch_in_at = Column(DateTime(timezone=True), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    ip_address = Column(String, nullable=True)
    distance_meters = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    punched_out_at = Column(DateTime(timezone=True), nullable=True)
    is_auto_closed = Column(Boolean, nullable=False, default=False)

    attendance_day = relationship("AttendanceDay", back_populates="punch_events")

    __table_args__ = (
        # At most one active punch per day
        Index(
            "uq_punch_events_one_active_per_day",
            "attendance_day_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )


class OutPeriod(Base):
    __tablename__ = "out_periods"

    id = Column(Integer, primary_key=True, index=True)
    attendance_day_id = Column(Integer, ForeignKey("attendance_days.id", ondelete="CASCADE"), nullable=False, index=True)
    out_time = Column(DateTime(timezone=True), nullable=False)
    in_time = Column(DateTime(timezone=True), nullable=True)  # NULL while still out
    duration_minutes = Column(Integer, nullable=True)
    reason = Column(SQLEnum(OutReason), nullable=False)

    attendance_day = relationship("AttendanceDay", back_populates="out_periods")

    __table_args__ = (
        # At most one open excursion per day
        Index(
            "uq_out_periods_one_open_per_day",
            "attendance_day_id",
            unique=True,
            sqlite_where=text("in_time IS NULL"),
            postgresql_where=text("in_time IS NULL"),
        ),
    )
