"""
Office settings provider: the newest office_settings row is the active geofence
configuration; when the table is empty the configured defaults apply.
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.office_settings import OfficeSettings
from app.schemas.office_settings import (
    OfficeSettingsOut,
    OfficeSettingsSnapshot,
    OfficeSettingsUpdateRequest,
)
from app.services.attendance_store import unit_of_work
from app.services.audit_service import try_log_audit
from app.utils.datetime_utils import now_utc

_log = logging.getLogger(__name__)


def default_office_settings() -> OfficeSettingsSnapshot:
    return OfficeSettingsSnapshot(
        latitude=settings.DEFAULT_OFFICE_LATITUDE,
        longitude=settings.DEFAULT_OFFICE_LONGITUDE,
        radius_meters=settings.DEFAULT_OFFICE_RADIUS_METERS,
        office_public_ip=settings.DEFAULT_OFFICE_PUBLIC_IP,
    )


def _latest_row(db: Session) -> Optional[OfficeSettings]:
    return db.query(OfficeSettings).order_by(OfficeSettings.id.desc()).first()


def get_office_settings(db: Session) -> OfficeSettingsSnapshot:
    """Active office configuration as an immutable snapshot."""
    row = _latest_row(db)
    if row is None:
        return default_office_settings()
    return OfficeSettingsSnapshot.model_validate(row)


def get_office_settings_detail(db: Session) -> OfficeSettingsOut:
    row = _latest_row(db)
    if row is None:
        return OfficeSettingsOut(**default_office_settings().model_dump(), is_default=True)
    return OfficeSettingsOut.model_validate(row)


def update_office_settings(
    db: Session,
    payload: OfficeSettingsUpdateRequest,
    *,
    updated_by: int,
) -> OfficeSettingsOut:
    """Append a new office_settings row; it becomes the active configuration immediately."""
    with unit_of_work(db):
        row = OfficeSettings(
            latitude=payload.latitude,
            longitude=payload.longitude,
            radius_meters=payload.radius_meters,
            office_public_ip=payload.office_public_ip,
            updated_by=updated_by,
            created_at=now_utc(),
        )
        db.add(row)
    db.refresh(row)
    _log.info(
        "office settings updated: id=%s radius=%s ip=%s by=%s",
        row.id, row.radius_meters, row.office_public_ip, updated_by,
    )

    try_log_audit(
        db,
        actor_id=updated_by,
        action="OFFICE_SETTINGS_UPDATE",
        entity_type="office_settings",
        entity_id=row.id,
        meta=payload.model_dump(),
    )
    return OfficeSettingsOut.model_validate(row)
