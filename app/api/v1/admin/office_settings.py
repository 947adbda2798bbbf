"""
Admin office settings endpoints: read and replace the office geofence and Wi-Fi IP.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.models.employee import Employee, Role
from app.schemas.office_settings import OfficeSettingsOut, OfficeSettingsUpdateRequest
from app.services import office_settings_service as svc

router = APIRouter()


@router.get("", response_model=OfficeSettingsOut)
async def get_settings(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Active office settings (configured defaults until the first update)."""
    return svc.get_office_settings_detail(db)


@router.put("", response_model=OfficeSettingsOut)
async def put_settings(
    payload: OfficeSettingsUpdateRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Replace the office settings; applies to the next punch or heartbeat."""
    return svc.update_office_settings(db, payload, updated_by=current_user.id)
