"""Admin API (MANAGER/HR/ADMIN for attendance views; HR/ADMIN for office settings)."""
from fastapi import APIRouter
from app.api.v1.admin import attendance as admin_attendance
from app.api.v1.admin import office_settings as admin_office_settings

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_attendance.router, prefix="/attendance", tags=["admin-attendance"])
admin_router.include_router(admin_office_settings.router, prefix="/office-settings", tags=["admin-office-settings"])
