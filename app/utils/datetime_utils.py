"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Work dates and API responses use settings.TZ (Asia/Kolkata by default).
"""
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc
LOCAL_TZ = ZoneInfo(settings.TZ)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to settings.TZ. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(LOCAL_TZ)


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the settings.TZ offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def get_work_date(utc_now: Optional[datetime] = None) -> date:
    """Return work_date (date in settings.TZ) for the given instant (default now)."""
    now = utc_now or now_utc()
    return to_local(now).date()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, floored; never negative."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return max(0, int(seconds // 60))


def minutes_to_hours(minutes: int) -> float:
    """Minutes as hours rounded to 2 decimals (e.g. 500 -> 8.33)."""
    return round(minutes / 60, 2)
