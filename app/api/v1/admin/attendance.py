"""
Admin attendance endpoints: today's day records for every employee with live
presence, and the out-of-office movement log over a date range.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_office, require_roles
from app.models.employee import Employee, Role
from app.schemas.attendance import AdminDayListResponse, MovementLogResponse
from app.schemas.office_settings import OfficeSettingsSnapshot
from app.services import presence_service
from app.services import punch_service as svc

router = APIRouter()


@router.get("/today", response_model=AdminDayListResponse)
async def admin_today(
    status: Optional[str] = Query(None, description="INSIDE_OFFICE, OUT_OF_OFFICE, PRESENT, HALF_DAY, ABSENT, INCOMPLETE"),
    q: Optional[str] = Query(None, description="Search by name or emp_code"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.HR)),
):
    """GET /api/v1/admin/attendance/today - list today's attendance with optional filters."""
    items = svc.list_today(db, status_filter=status, q=q)
    return AdminDayListResponse(items=items, total=len(items))


@router.get("/movement-log", response_model=MovementLogResponse)
async def admin_movement_log(
    from_date: date = Query(..., alias="from", description="Start work date (YYYY-MM-DD)"),
    to_date: date = Query(..., alias="to", description="End work date (YYYY-MM-DD)"),
    employee_id: Optional[int] = Query(None, description="Filter by employee ID"),
    db: Session = Depends(get_db),
    office: OfficeSettingsSnapshot = Depends(get_office),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """GET /api/v1/admin/attendance/movement-log?from=&to=&employee_id= - out/in excursions per employee and day."""
    return presence_service.get_movement_log(
        db, from_date, to_date, employee_id=employee_id, office=office
    )
