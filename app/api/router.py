"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    auth,
    attendance,
    version,
)
from app.api.v1.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(admin_router)
