"""
Office geofence settings schemas
"""
import ipaddress
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, field_serializer

from app.utils.datetime_utils import iso_local


class OfficeSettingsSnapshot(BaseModel):
    """Office reference point, geofence radius and Wi-Fi public IP, passed explicitly to the validator."""
    latitude: float
    longitude: float
    radius_meters: int = Field(..., gt=0)
    office_public_ip: str

    model_config = ConfigDict(from_attributes=True, frozen=True)


class OfficeSettingsUpdateRequest(BaseModel):
    """Admin PUT body for a new office configuration"""
    latitude: float = Field(..., ge=-90, le=90, description="Office latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Office longitude")
    radius_meters: int = Field(..., gt=0, le=100000, description="Geofence radius in meters")
    office_public_ip: str = Field(..., description="Office Wi-Fi public IP (IPv4 or IPv6)")

    @field_validator("office_public_ip")
    @classmethod
    def check_ip(cls, v: str) -> str:
        v = v.strip()
        try:
            ipaddress.ip_address(v)
        except ValueError:
            raise ValueError("office_public_ip must be a valid IPv4 or IPv6 address")
        return v


class OfficeSettingsOut(OfficeSettingsSnapshot):
    """Active office settings; is_default=True when served from configuration defaults."""
    id: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    is_default: bool = False

    @field_serializer("created_at", when_used="always")
    def _ser_created_at(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)
