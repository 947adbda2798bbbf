"""
Geofence + office Wi-Fi validation.

Location is valid when the great-circle distance to the office is within the
configured radius (inclusive); Wi-Fi is valid when the client's public IP equals
the office public IP exactly. Pure functions: no DB access, no clock.
"""
import ipaddress
import logging
import math
from typing import Any, Optional, Tuple

from app.core.exceptions import ValidationError
from app.schemas.attendance import GeoVerdict
from app.schemas.office_settings import OfficeSettingsSnapshot

_log = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def _parse_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        raise ValidationError("Invalid latitude or longitude", reason=ValidationError.INVALID_COORDINATES)
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Invalid latitude or longitude", reason=ValidationError.INVALID_COORDINATES)
    if math.isnan(lat) or math.isnan(lon) or not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        raise ValidationError("Invalid latitude or longitude", reason=ValidationError.INVALID_COORDINATES)
    return lat, lon


def _parse_ip(ip_address: Optional[str]) -> str:
    if not ip_address or not isinstance(ip_address, str):
        raise ValidationError("Invalid IP address format", reason=ValidationError.INVALID_IP)
    ip = ip_address.strip()
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        raise ValidationError("Invalid IP address format", reason=ValidationError.INVALID_IP)
    return ip


def validate_location_and_ip(
    latitude: float,
    longitude: float,
    ip_address: str,
    office: OfficeSettingsSnapshot,
) -> GeoVerdict:
    """
    Check that the employee is inside the office geofence and on the office Wi-Fi.

    Raises ValidationError (INVALID_COORDINATES / INVALID_IP) for malformed input.
    A failed geofence or Wi-Fi check is not an error here: both sub-verdicts and
    their messages are returned so callers decide how to react.
    """
    lat, lon = _parse_coordinates(latitude, longitude)
    ip = _parse_ip(ip_address)

    distance = haversine_distance(lat, lon, office.latitude, office.longitude)
    location_valid = distance <= office.radius_meters
    wifi_valid = ip == office.office_public_ip

    location_error = None
    if not location_valid:
        location_error = (
            f"Location is {distance:.2f} meters away from office. "
            f"Must be within {office.radius_meters} meters."
        )
    wifi_error = None
    if not wifi_valid:
        wifi_error = f"Not connected to office Wi-Fi. Your IP: {ip}, Office IP: {office.office_public_ip}"

    errors = [e for e in (location_error, wifi_error) if e]
    _log.debug(
        "geofence check: distance=%.2f radius=%s location_valid=%s wifi_valid=%s",
        distance, office.radius_meters, location_valid, wifi_valid,
    )
    return GeoVerdict(
        location_valid=location_valid,
        wifi_valid=wifi_valid,
        distance_meters=round(distance, 2),
        valid=location_valid and wifi_valid,
        location_error=location_error,
        wifi_error=wifi_error,
        error=" ".join(errors) if errors else None,
    )


def require_valid(verdict: GeoVerdict) -> GeoVerdict:
    """Raise ValidationError when the verdict rejects the location or the Wi-Fi."""
    if verdict.valid:
        return verdict
    reason = ValidationError.LOCATION if not verdict.location_valid else ValidationError.WIFI
    raise ValidationError(
        verdict.error,
        reason=reason,
        location_valid=verdict.location_valid,
        wifi_valid=verdict.wifi_valid,
        distance_meters=verdict.distance_meters,
    )
