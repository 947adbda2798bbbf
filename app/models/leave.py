"""
Leave request model.

Only the columns the attendance core reads: the approval workflow that
moves a request between statuses lives outside this service.
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    MANAGER_APPROVED = "MANAGER_APPROVED"
    HR_APPROVED = "HR_APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Statuses that block punch-in for the covered dates
APPROVED_LEAVE_STATUSES = (LeaveStatus.MANAGER_APPROVED.value, LeaveStatus.HR_APPROVED.value)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String, nullable=False)  # CASUAL/SICK/EARNED/...
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=LeaveStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", backref="leave_requests")

    __table_args__ = (
        Index("ix_leave_requests_employee_dates", "employee_id", "from_date", "to_date"),
    )
