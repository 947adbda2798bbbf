"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings

BASE = {"DATABASE_URL": "postgresql://test", "JWT_SECRET_KEY": "test-key"}


def test_prod_settings_rejects_wildcard_origins():
    """Production settings reject wildcard origins"""
    settings = Settings(**dict(BASE, JWT_SECRET_KEY="a" * 32, APP_ENV="prod", ALLOWED_ORIGINS="*"))
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    """Production settings reject a short JWT secret"""
    settings = Settings(**dict(BASE, JWT_SECRET_KEY="short", APP_ENV="prod", ALLOWED_ORIGINS="https://example.com"))
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        settings.validate_production()


def test_local_settings_allows_wildcard_origins():
    settings = Settings(**dict(BASE, APP_ENV="local", ALLOWED_ORIGINS="*"))
    settings.validate_production()  # Should pass for local
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    """Test parsing of comma-separated ALLOWED_ORIGINS"""
    settings = Settings(**dict(BASE, ALLOWED_ORIGINS="https://example.com, https://app.example.com,"))
    assert settings.get_allowed_origins_list() == ["https://example.com", "https://app.example.com"]


def test_attendance_policy_defaults():
    settings = Settings(**dict(BASE, TZ="Asia/Kolkata"))
    assert settings.TZ == "Asia/Kolkata"
    assert settings.MAX_PUNCHES_PER_DAY == 4
    assert settings.HALF_DAY_MIN_MINUTES == 240
    assert settings.FULL_DAY_MIN_MINUTES == 480
    assert settings.HEARTBEAT_TIMEOUT_MINUTES == 10
    assert settings.HEARTBEAT_SWEEP_INTERVAL_MINUTES == 5
    assert settings.DEFAULT_OFFICE_RADIUS_METERS == 50


def test_full_day_threshold_below_half_day_rejected():
    with pytest.raises(ValidationError):
        Settings(**dict(BASE, HALF_DAY_MIN_MINUTES=300, FULL_DAY_MIN_MINUTES=200))


@pytest.mark.parametrize("field,value", [("APP_ENV", "dev"), ("LOG_LEVEL", "VERBOSE"), ("DEFAULT_OFFICE_RADIUS_METERS", 0)])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(**dict(BASE, **{field: value}))
