"""
Leave lookup used by the attendance core: punch-in is blocked on dates covered
by an approved leave request.
"""
from datetime import date
from sqlalchemy.orm import Session

from app.models.leave import LeaveRequest, APPROVED_LEAVE_STATUSES


def has_approved_leave(db: Session, employee_id: int, work_date: date) -> bool:
    """True when an approved leave request covers work_date (inclusive range)."""
    return (
        db.query(LeaveRequest.id)
        .filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status.in_(APPROVED_LEAVE_STATUSES),
            LeaveRequest.from_date <= work_date,
            LeaveRequest.to_date >= work_date,
        )
        .first()
        is not None
    )
