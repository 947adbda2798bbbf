"""
Configuration management for the geo-attendance backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="PostgreSQL database URL")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token signing")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Work date and API datetimes use this zone; DB storage stays UTC
    TZ: str = Field(default="Asia/Kolkata", description="Timezone for work_date and display")

    # Office geofence used when no office_settings row exists
    DEFAULT_OFFICE_LATITUDE: float = Field(default=17.489313654492967, description="Office latitude")
    DEFAULT_OFFICE_LONGITUDE: float = Field(default=78.39285505628658, description="Office longitude")
    DEFAULT_OFFICE_RADIUS_METERS: int = Field(default=50, gt=0, description="Geofence radius in meters")
    DEFAULT_OFFICE_PUBLIC_IP: str = Field(default="103.206.104.149", description="Office Wi-Fi public IP")

    # Attendance policy
    MAX_PUNCHES_PER_DAY: int = Field(default=4, gt=0, description="Maximum punch-ins per work date")
    HALF_DAY_MIN_MINUTES: int = Field(default=240, description="Net minutes below this => ABSENT")
    FULL_DAY_MIN_MINUTES: int = Field(default=480, description="Net minutes at or above this => PRESENT")

    # Heartbeat timeout sweep
    HEARTBEAT_TIMEOUT_MINUTES: int = Field(default=10, gt=0, description="Stale heartbeat threshold")
    HEARTBEAT_SWEEP_INTERVAL_MINUTES: int = Field(default=5, gt=0, description="Sweep interval")
    HEARTBEAT_SWEEP_ENABLED: bool = Field(default=True, description="Run the sweep scheduler on startup")

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    # Initial admin bootstrap settings
    INITIAL_ADMIN_PASSWORD: str = Field(
        default="Admin@12345",
        description="Password for initial admin user (used when no admin exists)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("FULL_DAY_MIN_MINUTES")
    @classmethod
    def validate_full_day(cls, v: int, info) -> int:
        """Full-day threshold must not be below the half-day threshold"""
        half_day = info.data.get("HALF_DAY_MIN_MINUTES")
        if half_day is not None and v < half_day:
            raise ValueError("FULL_DAY_MIN_MINUTES must be >= HALF_DAY_MIN_MINUTES")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
