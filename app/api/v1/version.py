"""
Build metadata: service version, environment and the timezone work dates are computed in
"""
from fastapi import APIRouter
from app.core.config import settings

router = APIRouter()


@router.get("/version")
async def get_version():
    return {
        "service": "geo-attendance-backend",
        "version": settings.VERSION or "1.0.0",
        "env": settings.APP_ENV,
        "timezone": settings.TZ,
    }
