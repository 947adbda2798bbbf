"""
Office geofence settings. Rows are append-only; the newest row is the active configuration.
"""
from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from app.db.base import Base


class OfficeSettings(Base):
    __tablename__ = "office_settings"

    id = Column(Integer, primary_key=True, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    radius_meters = Column(Integer, nullable=False)
    office_public_ip = Column(String, nullable=False)
    updated_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("radius_meters > 0", name="ck_office_settings_radius_positive"),
    )
